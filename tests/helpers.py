# tests/helpers.py

from typing import Iterable, Optional, Sequence

from sqlalchemy import text
from sqlmodel import Session

from viewerstats.models import Competition, CompetitionResult, GameMap, Season

_counter = {"competition": 0}


def add_competition(
    session: Session,
    results: Sequence[dict],
    *,
    streamer_user_id: str = "1001",
    streamer_login: str = "streamer",
    map_id: Optional[int] = 1,
    map_name: str = "Canyon Run",
    map_key: Optional[str] = None,
    map_version: int = 1,
    map_hash: str = "",
    vehicle_type: str = "ground",
    season_id: Optional[str] = None,
) -> Competition:
    """Insert a competition and its results directly.

    Each result dict carries ``viewer`` plus optional ``position``, ``status``,
    ``time_ms``, ``login``, ``display`` and ``bot``.
    """

    _counter["competition"] += 1
    competition = Competition(
        competition_uuid=f"comp-{_counter['competition']}",
        streamer_user_id=streamer_user_id,
        streamer_login=streamer_login,
        season_id=season_id,
        map_id=map_id,
        map_key=map_key,
        map_name=map_name,
        map_version=map_version,
        map_hash_sha256=map_hash,
        vehicle_type=vehicle_type,
        started_at_ms=1_700_000_000_000,
        ended_at_ms=1_700_000_060_000,
        created_at_ms=1_700_000_060_000,
        updated_at_ms=1_700_000_060_000,
    )
    session.add(competition)
    session.flush()

    bots = []
    for result in results:
        viewer = result["viewer"]
        session.add(
            CompetitionResult(
                competition_id=competition.id,
                viewer_user_id=viewer,
                viewer_login=result.get("login", viewer.lower()),
                viewer_display_name=result.get("display", viewer),
                finish_position=result.get("position"),
                status=result.get("status", "FINISHED"),
                finish_time_ms=result.get("time_ms"),
                created_at_ms=1_700_000_060_000,
                updated_at_ms=1_700_000_060_000,
            )
        )
        if result.get("bot"):
            bots.append(viewer)
    session.flush()

    for viewer in bots:
        session.connection().execute(
            text(
                "UPDATE competition_results SET is_bot = 1 "
                "WHERE competition_id = :cid AND viewer_user_id = :vid"
            ),
            {"cid": competition.id, "vid": viewer},
        )
    session.commit()
    session.refresh(competition)
    return competition


def add_map(
    session: Session,
    map_id: int,
    *,
    name: str = "Canyon Run",
    version: int = 1,
    map_hash: str = "",
) -> GameMap:
    game_map = GameMap(
        id=map_id,
        name=name,
        map_version=version,
        map_hash_sha256=map_hash,
        created_at_ms=1_700_000_000_000,
        updated_at_ms=1_700_000_000_000,
    )
    session.add(game_map)
    session.commit()
    return game_map


def set_map_baseline(session: Session, map_id: int, value: Optional[int]) -> None:
    session.connection().execute(
        text("UPDATE maps SET finish_time_ms = :value WHERE id = :id"),
        {"value": value, "id": map_id},
    )
    session.commit()


def read_map_baseline(session: Session, map_id: int) -> Optional[int]:
    return session.connection().execute(
        text("SELECT finish_time_ms FROM maps WHERE id = :id"), {"id": map_id}
    ).scalar_one()


def add_seasons(session: Session, seasons: Iterable[tuple]) -> None:
    for season_id, start_ms, end_ms in seasons:
        session.add(Season(season_id=season_id, name=season_id.upper(), start_at_ms=start_ms, end_at_ms=end_ms))
    session.commit()


class RecordingAwarder:
    """Collects award calls so tests can assert on them."""

    def __init__(self, unlocked=None, error=None):
        self.calls = []
        self.unlocked = unlocked or []
        self.error = error

    def award(self, session, viewer_ids, *, source, source_ref):
        self.calls.append(
            {"viewer_ids": list(viewer_ids), "source": source, "source_ref": source_ref}
        )
        if self.error is not None:
            raise self.error
        return list(self.unlocked)
