"""Competition submission parsing and idempotent persistence."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence

from sqlalchemy import column, table
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlmodel import Session, select

from ..core import BadRequestError, QueryFailedError, now_ms
from ..models import STATUS_DNF, STATUS_FINISHED, Competition
from ..utils import norm_str, to_bool, to_float, to_int, to_positive_ms
from .twitch import TwitchUser

logger = logging.getLogger(__name__)

MAX_RESULTS = 600
BATCH_SIZE = 100
UNPLACED_POSITION = 9999

_BOT_ID = re.compile(r"^bot[:_]", re.IGNORECASE)
_LEGACY_RACER_ID = re.compile(r"^racer\s+\d+$", re.IGNORECASE)

_RESULT_COLUMNS = (
    "competition_id",
    "viewer_user_id",
    "viewer_login",
    "viewer_display_name",
    "viewer_profile_image_url",
    "finish_position",
    "status",
    "finish_time_ms",
    "vehicle_id",
    "distance_m",
    "progress01",
    "created_at_ms",
    "updated_at_ms",
)
_RESULT_KEY = ("competition_id", "viewer_user_id")
_COMPETITION_IMMUTABLE = {"id", "competition_uuid", "created_at_ms"}


def detect_bot(raw: Mapping[str, Any], viewer_user_id: str, viewer_login: str) -> bool:
    """Explicit ``isBot`` wins; older clients are recognised by their naming."""

    if to_bool(raw.get("isBot")):
        return True
    if _BOT_ID.match(viewer_user_id):
        return True
    return not viewer_login and bool(_LEGACY_RACER_ID.match(viewer_user_id))


@dataclass(frozen=True)
class ViewerResult:
    viewer_user_id: str
    viewer_login: str
    viewer_display_name: str
    viewer_profile_image_url: str
    is_bot: bool
    finish_position: int
    status: str
    finish_time_ms: Optional[int]
    vehicle_id: str
    distance_m: float
    progress01: float

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["ViewerResult"]:
        if not isinstance(raw, Mapping):
            return None
        viewer_user_id = norm_str(raw.get("userId")) or norm_str(raw.get("login"))
        if not viewer_user_id:
            return None

        viewer_login = norm_str(raw.get("login")).lower()
        status = STATUS_FINISHED if norm_str(raw.get("status")).upper() == STATUS_FINISHED else STATUS_DNF
        return cls(
            viewer_user_id=viewer_user_id,
            viewer_login=viewer_login,
            viewer_display_name=norm_str(raw.get("displayName")),
            viewer_profile_image_url=norm_str(raw.get("profileImageUrl")),
            is_bot=detect_bot(raw, viewer_user_id, viewer_login),
            finish_position=to_int(
                raw.get("position"), minimum=1, maximum=10_000, fallback=UNPLACED_POSITION
            ),
            status=status,
            finish_time_ms=to_positive_ms(raw.get("timeMs")) if status == STATUS_FINISHED else None,
            vehicle_id=norm_str(raw.get("vehicleId")),
            distance_m=to_float(raw.get("distanceM"), minimum=0, maximum=1_000_000),
            progress01=to_float(raw.get("progress01"), minimum=0, maximum=1),
        )

    def row(self, competition_id: int, timestamp_ms: int, *, has_bot_flag: bool) -> Dict[str, Any]:
        values: Dict[str, Any] = {
            "competition_id": competition_id,
            "viewer_user_id": self.viewer_user_id,
            "viewer_login": self.viewer_login,
            "viewer_display_name": self.viewer_display_name,
            "viewer_profile_image_url": self.viewer_profile_image_url,
            "finish_position": self.finish_position,
            "status": self.status,
            "finish_time_ms": self.finish_time_ms,
            "vehicle_id": self.vehicle_id,
            "distance_m": self.distance_m,
            "progress01": self.progress01,
            "created_at_ms": timestamp_ms,
            "updated_at_ms": timestamp_ms,
        }
        if has_bot_flag:
            values["is_bot"] = int(self.is_bot)
        return values


@dataclass
class CompetitionSubmission:
    competition_uuid: str
    started_at_ms: int
    ended_at_ms: int
    map_id: Optional[int] = None
    map_key: Optional[str] = None
    map_name: str = ""
    map_version: int = 0
    map_hash_sha256: str = ""
    vehicle_type: str = ""
    game_mode: str = ""
    race_seed: int = 0
    track_length_m: float = 0.0
    client_version: str = ""
    engine_version: str = ""
    results_received: int = 0
    results: List[ViewerResult] = field(default_factory=list)

    @classmethod
    def parse(cls, body: Any) -> "CompetitionSubmission":
        """Validate a raw request body. Raises ``BadRequestError`` before any store access."""

        body = body if isinstance(body, Mapping) else {}
        competition = body.get("competition")
        competition = competition if isinstance(competition, Mapping) else {}

        competition_uuid = norm_str(competition.get("competitionUuid"))
        if not competition_uuid:
            raise BadRequestError("competitionUuid is required.", error="competition_uuid_required")

        started_at_ms = to_positive_ms(competition.get("startedAtMs"))
        if started_at_ms is None:
            raise BadRequestError("startedAtMs is required.", error="started_at_required")
        ended_at_ms = to_positive_ms(competition.get("endedAtMs"))
        if ended_at_ms is None or ended_at_ms < started_at_ms:
            raise BadRequestError(
                "endedAtMs must be set and not before startedAtMs.", error="ended_at_invalid"
            )

        # Maps are addressed by integer id; older clients send string keys.
        track_id = norm_str(competition.get("trackId"))
        map_id = int(track_id) if track_id.isdigit() else None
        map_key = track_id if track_id and map_id is None else None

        raw_results = body.get("results")
        raw_results = list(raw_results)[:MAX_RESULTS] if isinstance(raw_results, list) else []

        # Last entry wins when a viewer is listed twice.
        by_viewer: Dict[str, ViewerResult] = {}
        for raw in raw_results:
            result = ViewerResult.from_raw(raw)
            if result is not None:
                by_viewer[result.viewer_user_id] = result

        return cls(
            competition_uuid=competition_uuid,
            started_at_ms=started_at_ms,
            ended_at_ms=ended_at_ms,
            map_id=map_id,
            map_key=map_key,
            map_name=norm_str(competition.get("trackName")),
            map_version=to_int(competition.get("trackVersion"), minimum=0, maximum=9999),
            map_hash_sha256=norm_str(competition.get("trackHashSha256")),
            vehicle_type=norm_str(competition.get("vehicleType")),
            game_mode=norm_str(competition.get("gameMode")),
            race_seed=to_int(competition.get("raceSeed"), minimum=0, maximum=2_000_000_000),
            track_length_m=to_float(competition.get("trackLengthM"), minimum=0, maximum=1_000_000),
            client_version=norm_str(competition.get("clientVersion")),
            engine_version=norm_str(competition.get("engineVersion")),
            results_received=len(raw_results),
            results=list(by_viewer.values()),
        )

    @property
    def winner_user_id(self) -> Optional[str]:
        for result in self.results:
            if result.status == STATUS_FINISHED and result.finish_position == 1:
                return result.viewer_user_id
        return None

    @property
    def human_viewer_ids(self) -> List[str]:
        return [result.viewer_user_id for result in self.results if not result.is_bot]


@dataclass(frozen=True)
class StoredSubmission:
    competition_id: int
    season_id: Optional[str]
    results_written: int


def chunked(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def _upsert_competition(
    session: Session,
    submission: CompetitionSubmission,
    streamer: TwitchUser,
    season_id: Optional[str],
    timestamp_ms: int,
) -> int:
    competitions = Competition.__table__
    values = {
        "competition_uuid": submission.competition_uuid,
        "streamer_user_id": streamer.user_id,
        "streamer_login": streamer.login,
        "season_id": season_id,
        "map_id": submission.map_id,
        "map_key": submission.map_key,
        "map_name": submission.map_name,
        "map_version": submission.map_version,
        "map_hash_sha256": submission.map_hash_sha256,
        "vehicle_type": submission.vehicle_type,
        "game_mode": submission.game_mode,
        "race_seed": submission.race_seed,
        "track_length_m": submission.track_length_m,
        "started_at_ms": submission.started_at_ms,
        "ended_at_ms": submission.ended_at_ms,
        "winner_user_id": submission.winner_user_id,
        "client_version": submission.client_version,
        "engine_version": submission.engine_version,
        "created_at_ms": timestamp_ms,
        "updated_at_ms": timestamp_ms,
    }
    stmt = sqlite_insert(competitions).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=[competitions.c.competition_uuid],
        set_={
            name: stmt.excluded[name]
            for name in values
            if name not in _COMPETITION_IMMUTABLE
        },
    )
    session.exec(stmt)

    competition_id = session.exec(
        select(Competition.id).where(
            Competition.competition_uuid == submission.competition_uuid
        )
    ).first()
    if competition_id is None:
        raise QueryFailedError("Failed to read competition id after upsert.", error="db_error")
    return competition_id


def _upsert_results(
    session: Session,
    competition_id: int,
    results: Sequence[ViewerResult],
    timestamp_ms: int,
    *,
    has_bot_flag: bool,
) -> int:
    names = _RESULT_COLUMNS + (("is_bot",) if has_bot_flag else ())
    # A bare table clause so the optional is_bot column is only named when present.
    target = table("competition_results", *(column(name) for name in names))

    written = 0
    for batch in chunked(results, BATCH_SIZE):
        stmt = sqlite_insert(target).values(
            [result.row(competition_id, timestamp_ms, has_bot_flag=has_bot_flag) for result in batch]
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_RESULT_KEY),
            set_={
                name: stmt.excluded[name]
                for name in names
                if name not in _RESULT_KEY and name != "created_at_ms"
            },
        )
        session.exec(stmt)
        written += len(batch)
    return written


def store_submission(
    session: Session,
    submission: CompetitionSubmission,
    streamer: TwitchUser,
    *,
    season_id: Optional[str],
    has_bot_flag: bool,
) -> StoredSubmission:
    """Upsert the competition and its results in a single transaction."""

    timestamp_ms = now_ms()
    try:
        competition_id = _upsert_competition(
            session, submission, streamer, season_id, timestamp_ms
        )
        written = _upsert_results(
            session,
            competition_id,
            submission.results,
            timestamp_ms,
            has_bot_flag=has_bot_flag,
        )
        session.commit()
    except Exception:
        session.rollback()
        raise

    logger.info(
        "Stored competition %s (id=%s): %d results written",
        submission.competition_uuid,
        competition_id,
        written,
    )
    return StoredSubmission(
        competition_id=competition_id, season_id=season_id, results_written=written
    )


__all__ = [
    "BATCH_SIZE",
    "CompetitionSubmission",
    "MAX_RESULTS",
    "StoredSubmission",
    "ViewerResult",
    "chunked",
    "detect_bot",
    "store_submission",
]
