"""Expected finish time per map, derived from historical winning times.

The baseline is the average over competitions of each competition's best
FINISHED time. Non-bot results are preferred; a map that so far has only bot
races falls back to including bots so it still gets a value. A recompute that
finds no usable samples never overwrites the stored baseline.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from sqlalchemy import column, func, or_, table, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, select

from ..core import now_ms
from ..models import STATUS_FINISHED, Competition, CompetitionResult, GameMap
from .capabilities import SchemaCapabilities
from .filters import RESULT_IS_BOT

logger = logging.getLogger(__name__)

# finish_time_ms is an optional column, so the write goes through a bare table clause.
_maps_baseline = table(
    "maps", column("id"), column("finish_time_ms"), column("updated_at_ms")
)


@dataclass(frozen=True)
class BaselineOutcome:
    ok: bool
    reason: str = ""
    finish_time_ms: Optional[int] = None
    sample_count: int = 0
    used_bots: bool = False

    def to_dict(self) -> dict:
        return {
            "ok": self.ok,
            "reason": self.reason or None,
            "finishTimeMs": self.finish_time_ms,
            "sampleCount": self.sample_count,
            "usedBots": self.used_bots,
        }


def _version_predicates(game_map: GameMap) -> List[ColumnElement[bool]]:
    map_hash = (game_map.map_hash_sha256 or "").strip()
    if map_hash:
        return [Competition.map_hash_sha256 == map_hash]
    if game_map.map_version and game_map.map_version > 0:
        return [Competition.map_version == game_map.map_version]
    return []


def _winning_time_average(
    session: Session,
    map_id: int,
    version_predicates: List[ColumnElement[bool]],
    *,
    exclude_bots: bool,
) -> Tuple[Optional[float], int]:
    predicates = [
        Competition.map_id == map_id,
        *version_predicates,
        CompetitionResult.status == STATUS_FINISHED,
        CompetitionResult.finish_time_ms.is_not(None),
        CompetitionResult.finish_time_ms > 0,
    ]
    if exclude_bots:
        predicates.append(or_(RESULT_IS_BOT.is_(None), RESULT_IS_BOT == 0))

    per_competition = (
        select(
            Competition.id,
            func.min(CompetitionResult.finish_time_ms).label("best_time_ms"),
        )
        .select_from(Competition)
        .join(CompetitionResult, CompetitionResult.competition_id == Competition.id)
        .where(*predicates)
        .group_by(Competition.id)
        .subquery()
    )
    average, samples = session.exec(
        select(func.avg(per_competition.c.best_time_ms), func.count()).select_from(
            per_competition
        )
    ).one()
    return average, int(samples or 0)


def recompute_map_baseline(
    session: Session, map_id: int, capabilities: SchemaCapabilities
) -> BaselineOutcome:
    """Recompute and store ``maps.finish_time_ms`` for ``map_id``.

    Returns an outcome describing what happened; only store errors during
    the final write propagate.
    """

    if not map_id or map_id <= 0:
        return BaselineOutcome(ok=False, reason="missing_map")

    if not capabilities.has_map_baseline(session):
        logger.debug("maps.finish_time_ms absent; skipping baseline for map %s", map_id)
        return BaselineOutcome(ok=False, reason="no_finish_time_column")

    game_map = session.get(GameMap, map_id)
    if game_map is None:
        return BaselineOutcome(ok=False, reason="map_not_found")

    version_predicates = _version_predicates(game_map)
    has_bot_flag = capabilities.has_bot_flag(session)

    try:
        average, samples = _winning_time_average(
            session, map_id, version_predicates, exclude_bots=has_bot_flag
        )
        used_bots = False
        if samples == 0 and has_bot_flag:
            with_bots = _winning_time_average(
                session, map_id, version_predicates, exclude_bots=False
            )
            if with_bots[1] > 0:
                average, samples = with_bots
                used_bots = True
    except SQLAlchemyError:
        logger.warning("Baseline aggregate failed for map %s", map_id, exc_info=True)
        session.rollback()
        return BaselineOutcome(ok=False, reason="aggregate_query_failed")

    if samples <= 0 or average is None:
        logger.debug("No usable samples for map %s; baseline left unchanged", map_id)
        return BaselineOutcome(ok=False, reason="no_samples")

    finish_time_ms = int(float(average) + 0.5)
    session.exec(
        update(_maps_baseline)
        .where(_maps_baseline.c.id == map_id)
        .values(finish_time_ms=finish_time_ms, updated_at_ms=now_ms())
    )
    session.commit()

    logger.info(
        "Map %s baseline set to %sms from %s competitions%s",
        map_id,
        finish_time_ms,
        samples,
        " (including bots)" if used_bots else "",
    )
    return BaselineOutcome(
        ok=True,
        finish_time_ms=finish_time_ms,
        sample_count=samples,
        used_bots=used_bots,
    )


__all__ = ["BaselineOutcome", "recompute_map_baseline"]
