import inspect

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from viewerstats.api.routers import competitions
from viewerstats.models import Competition
from viewerstats.services.achievements import get_achievement_awarder

from .helpers import RecordingAwarder, add_map, add_seasons

SUBMIT = "/api/v1/competitions/submit"
STARTED = 1_700_000_000_000


def _body(uuid="race-1", results=None, **competition):
    payload = {
        "competitionUuid": uuid,
        "startedAtMs": STARTED,
        "endedAtMs": STARTED + 90_000,
        "trackId": "7",
        "trackName": "Canyon Run",
        "trackVersion": 1,
        "vehicleType": "ground",
    }
    payload.update(competition)
    if results is None:
        results = [
            {"userId": "u1", "login": "Alice", "displayName": "Alice", "position": 1, "status": "finished", "timeMs": 60_000},
            {"userId": "u2", "login": "bob", "position": 2, "status": "FINISHED", "timeMs": 65_000},
            {"userId": "u3", "login": "cara", "position": 3, "status": "DNF", "timeMs": 99_000},
        ]
    return {"competition": payload, "results": results}


def _results(engine, uuid):
    with engine.connect() as conn:
        return conn.execute(
            text(
                "SELECT r.viewer_user_id, r.viewer_login, r.finish_position, r.status, "
                "r.finish_time_ms, r.is_bot FROM competition_results r "
                "JOIN competitions c ON c.id = r.competition_id "
                "WHERE c.competition_uuid = :uuid ORDER BY r.viewer_user_id"
            ),
            {"uuid": uuid},
        ).all()


def test_submit_stores_competition_and_results(client, engine):
    response = client.post(SUBMIT, json=_body())
    assert response.status_code == 200
    payload = response.json()

    assert payload["ok"] is True
    assert payload["competitionUuid"] == "race-1"
    assert payload["resultsReceived"] == 3
    assert payload["resultsWritten"] == 3
    assert payload["seasonId"] is None

    rows = _results(engine, "race-1")
    assert [tuple(row) for row in rows] == [
        ("u1", "alice", 1, "FINISHED", 60_000, 0),
        ("u2", "bob", 2, "FINISHED", 65_000, 0),
        ("u3", "cara", 3, "DNF", None, 0),
    ]


def test_competition_fields_are_recorded(client, engine, streamer):
    payload = client.post(SUBMIT, json=_body(trackHashSha256="abc")).json()

    with Session(engine) as session:
        competition = session.get(Competition, payload["competitionId"])
    assert competition.streamer_user_id == streamer.user_id
    assert competition.streamer_login == streamer.login
    assert competition.map_id == 7
    assert competition.map_key is None
    assert competition.map_hash_sha256 == "abc"
    assert competition.winner_user_id == "u1"


def test_text_track_id_is_stored_as_legacy_key(client, engine):
    payload = client.post(SUBMIT, json=_body(trackId="canyon")).json()

    assert payload["mapBaseline"] is None
    with Session(engine) as session:
        competition = session.get(Competition, payload["competitionId"])
    assert competition.map_id is None
    assert competition.map_key == "canyon"


def test_resubmission_updates_in_place(client, engine):
    first = client.post(SUBMIT, json=_body()).json()
    corrected = _body(
        results=[
            {"userId": "u1", "login": "alice", "position": 2, "status": "FINISHED", "timeMs": 61_000},
            {"userId": "u2", "login": "bob", "position": 1, "status": "FINISHED", "timeMs": 59_000},
        ]
    )
    second = client.post(SUBMIT, json=corrected).json()

    assert second["competitionId"] == first["competitionId"]
    rows = _results(engine, "race-1")
    assert [(row.viewer_user_id, row.finish_position) for row in rows] == [
        ("u1", 2),
        ("u2", 1),
        ("u3", 3),
    ]
    with engine.connect() as conn:
        count = conn.execute(text("SELECT COUNT(*) FROM competitions")).scalar_one()
        winner = conn.execute(text("SELECT winner_user_id FROM competitions")).scalar_one()
    assert count == 1
    assert winner == "u2"


def test_duplicate_viewers_keep_last_entry(client, engine):
    results = [
        {"userId": "u1", "position": 5, "status": "FINISHED", "timeMs": 70_000},
        {"userId": "u1", "position": 1, "status": "FINISHED", "timeMs": 60_000},
        {"displayName": "nobody"},
    ]
    payload = client.post(SUBMIT, json=_body(results=results)).json()

    assert payload["resultsReceived"] == 3
    assert payload["resultsWritten"] == 1
    (row,) = _results(engine, "race-1")
    assert row.finish_position == 1


def test_bots_are_flagged(client, engine, awarder):
    results = [
        {"userId": "u1", "login": "alice", "position": 1, "status": "FINISHED", "timeMs": 60_000},
        {"userId": "BOT:7", "position": 2, "status": "FINISHED", "timeMs": 61_000},
        {"userId": "Racer 3", "position": 3, "status": "FINISHED", "timeMs": 62_000},
        {"userId": "u9", "login": "nine", "isBot": True, "position": 4, "status": "DNF"},
    ]
    client.post(SUBMIT, json=_body(results=results))

    flags = {row.viewer_user_id: row.is_bot for row in _results(engine, "race-1")}
    assert flags == {"u1": 0, "BOT:7": 1, "Racer 3": 1, "u9": 1}
    assert awarder.calls[0]["viewer_ids"] == ["u1"]
    assert awarder.calls[0]["source"] == "competition"


def test_results_are_capped(client, engine):
    results = [
        {"userId": f"u{i}", "position": i + 1, "status": "FINISHED", "timeMs": 60_000 + i}
        for i in range(650)
    ]
    payload = client.post(SUBMIT, json=_body(results=results)).json()

    assert payload["resultsReceived"] == 600
    assert payload["resultsWritten"] == 600


def test_position_and_time_are_sanitised(client, engine):
    results = [
        {"userId": "u1", "position": "abc", "status": "FINISHED", "timeMs": -4},
        {"userId": "u2", "position": 50_000, "status": "FINISHED", "timeMs": 61_000.9},
    ]
    client.post(SUBMIT, json=_body(results=results))

    rows = {row.viewer_user_id: row for row in _results(engine, "race-1")}
    assert (rows["u1"].finish_position, rows["u1"].finish_time_ms) == (9999, None)
    assert (rows["u2"].finish_position, rows["u2"].finish_time_ms) == (10_000, 61_000)


@pytest.mark.parametrize(
    "competition, error",
    [
        ({"competitionUuid": ""}, "competition_uuid_required"),
        ({"startedAtMs": None}, "started_at_required"),
        ({"startedAtMs": -1}, "started_at_required"),
        ({"endedAtMs": STARTED - 1}, "ended_at_invalid"),
        ({"endedAtMs": "soon"}, "ended_at_invalid"),
    ],
)
def test_invalid_competition_is_400(client, engine, competition, error):
    body = _body()
    body["competition"].update(competition)

    response = client.post(SUBMIT, json=body)

    assert response.status_code == 400
    assert response.json()["error"] == error
    with engine.connect() as conn:
        assert conn.execute(text("SELECT COUNT(*) FROM competitions")).scalar_one() == 0


def test_non_json_body_is_400(client):
    response = client.post(SUBMIT, content=b"{not json", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_json"


def test_season_is_resolved_from_start_time(client, session):
    add_seasons(
        session,
        [
            ("S1", STARTED - 10_000, STARTED),
            ("s2", STARTED + 1, STARTED + 10_000_000),
        ],
    )

    assert client.post(SUBMIT, json=_body()).json()["seasonId"] == "s1"
    later = _body(uuid="race-2", startedAtMs=STARTED + 1, endedAtMs=STARTED + 2)
    assert client.post(SUBMIT, json=later).json()["seasonId"] == "s2"
    outside = _body(uuid="race-3", startedAtMs=STARTED + 20_000_000, endedAtMs=STARTED + 20_000_001)
    assert client.post(SUBMIT, json=outside).json()["seasonId"] is None


def test_legacy_schema_accepts_submissions(legacy_client, legacy_engine):
    payload = legacy_client.post(SUBMIT, json=_body()).json()

    assert payload["resultsWritten"] == 3
    assert payload["mapBaseline"]["reason"] == "no_finish_time_column"
    with legacy_engine.connect() as conn:
        assert conn.execute(text("SELECT COUNT(*) FROM competition_results")).scalar_one() == 3


def test_achievement_failure_does_not_fail_submission(build_client, engine):
    client = build_client(engine)
    failing = RecordingAwarder(error=RuntimeError("evaluator down"))
    client.app.dependency_overrides[get_achievement_awarder] = lambda: failing

    response = client.post(SUBMIT, json=_body())

    assert response.status_code == 200
    assert response.json()["achievementsUnlocked"] == []
    assert response.json()["resultsWritten"] == 3
    assert failing.calls


def test_unlocked_achievements_are_returned(build_client, engine):
    client = build_client(engine)
    unlocking = RecordingAwarder(unlocked=[{"key": "first_win", "viewerUserId": "u1"}])
    client.app.dependency_overrides[get_achievement_awarder] = lambda: unlocking

    payload = client.post(SUBMIT, json=_body()).json()

    assert payload["achievementsUnlocked"] == [{"key": "first_win", "viewerUserId": "u1"}]
    assert unlocking.calls[0]["source_ref"] == str(payload["competitionId"])


def test_submission_recomputes_map_baseline(client, session, engine):
    add_map(session, 7)

    payload = client.post(SUBMIT, json=_body()).json()

    assert payload["mapBaseline"] == {
        "ok": True,
        "reason": None,
        "finishTimeMs": 60_000,
        "sampleCount": 1,
        "usedBots": False,
    }
    with engine.connect() as conn:
        assert conn.execute(text("SELECT finish_time_ms FROM maps WHERE id = 7")).scalar_one() == 60_000


def test_unknown_map_reports_without_failing(client):
    payload = client.post(SUBMIT, json=_body()).json()

    assert payload["ok"] is True
    assert payload["mapBaseline"]["reason"] == "map_not_found"


def test_missing_results_table_is_503(client, engine):
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE competition_results")

    response = client.post(SUBMIT, json=_body())

    assert response.status_code == 503
    assert response.json()["error"] == "db_not_initialized"


def test_baseline_failure_does_not_fail_submission(client, session, engine, monkeypatch):
    add_map(session, 7)

    def locked(*args, **kwargs):
        raise OperationalError("UPDATE maps", {}, Exception("database is locked"))

    monkeypatch.setattr(competitions, "recompute_map_baseline", locked)

    response = client.post(SUBMIT, json=_body())

    assert response.status_code == 200
    payload = response.json()
    assert payload["ok"] is True
    assert payload["mapBaseline"] is None
    assert payload["resultsWritten"] == 3
    assert len(_results(engine, "race-1")) == 3
    with engine.connect() as conn:
        assert conn.execute(text("SELECT COUNT(*) FROM competitions")).scalar_one() == 1
        assert conn.execute(text("SELECT finish_time_ms FROM maps WHERE id = 7")).scalar_one() is None


def test_non_object_body_is_400(client):
    response = client.post(SUBMIT, json=["race-1"])

    assert response.status_code == 400
    assert response.json()["error"] == "competition_uuid_required"


def test_submit_handler_runs_in_threadpool():
    assert not inspect.iscoroutinefunction(competitions.submit_competition)
