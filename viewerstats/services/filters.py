"""Leaderboard filter parsing and predicate building.

Every caller-supplied value ends up as a bound parameter. The only literal
SQL text emitted here is the optional ``is_bot`` column reference, which is
a fixed identifier.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Mapping

from sqlalchemy import String, cast, func, literal_column, or_
from sqlalchemy.sql.elements import ColumnElement

from ..models import Competition, CompetitionResult
from ..utils import norm_str, to_bool

ALL_SENTINEL = "ALL"
SEARCH_MAX_LENGTH = 80

# Not mapped on CompetitionResult: the column may not exist yet.
RESULT_IS_BOT = literal_column("competition_results.is_bot")


def normalize_exact(value: Any) -> str:
    """Return the trimmed filter value, or "" for missing and ``ALL``."""

    text = norm_str(value)
    if text.upper() == ALL_SENTINEL:
        return ""
    return text


def normalize_search(value: Any) -> str:
    return norm_str(value).lower()[:SEARCH_MAX_LENGTH]


@dataclass(frozen=True)
class LeaderboardFilters:
    season_id: str = ""
    streamer_id: str = ""
    map_id: str = ""
    vehicle_type: str = ""
    streamer_search: str = ""
    viewer_search: str = ""
    map_search: str = ""
    include_bots: bool = False

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "LeaderboardFilters":
        return cls(
            season_id=normalize_exact(params.get("seasonId")),
            streamer_id=normalize_exact(params.get("streamerId")),
            map_id=normalize_exact(params.get("mapId")),
            vehicle_type=normalize_exact(params.get("vehicleType")),
            streamer_search=normalize_search(params.get("streamerSearch")),
            viewer_search=normalize_search(params.get("viewerSearch")),
            map_search=normalize_search(params.get("mapSearch")),
            include_bots=to_bool(params.get("showBots")),
        )


def _folded(expr: Any) -> ColumnElement:
    return func.lower(func.coalesce(expr, ""))


def _contains_any(term: str, *exprs: Any) -> ColumnElement[bool]:
    return or_(*(_folded(expr).contains(term, autoescape=True) for expr in exprs))


def bot_exclusion() -> ColumnElement[bool]:
    return RESULT_IS_BOT == 0


def build_predicates(
    filters: LeaderboardFilters, *, has_bot_flag: bool
) -> List[ColumnElement[bool]]:
    """Build the AND-ed predicate list over ``competitions`` x ``competition_results``."""

    where: List[ColumnElement[bool]] = []

    if filters.season_id:
        where.append(Competition.season_id == filters.season_id)

    if filters.streamer_id:
        where.append(Competition.streamer_user_id == filters.streamer_id)

    if filters.map_id:
        # Numeric ids address maps; anything else is a legacy string key.
        if filters.map_id.isdigit():
            where.append(Competition.map_id == int(filters.map_id))
        else:
            where.append(Competition.map_key == filters.map_id)

    if filters.vehicle_type:
        where.append(
            func.lower(func.trim(func.coalesce(Competition.vehicle_type, "")))
            == filters.vehicle_type.lower()
        )

    if filters.streamer_search:
        where.append(
            _contains_any(
                filters.streamer_search,
                Competition.streamer_login,
                Competition.streamer_user_id,
            )
        )

    if filters.viewer_search:
        where.append(
            _contains_any(
                filters.viewer_search,
                CompetitionResult.viewer_login,
                CompetitionResult.viewer_display_name,
                CompetitionResult.viewer_user_id,
            )
        )

    if filters.map_search:
        where.append(
            _contains_any(
                filters.map_search,
                cast(Competition.map_id, String),
                Competition.map_key,
                Competition.map_name,
            )
        )

    # Older databases cannot tell bots apart, so there is nothing to exclude.
    if not filters.include_bots and has_bot_flag:
        where.append(bot_exclusion())

    return where


__all__ = [
    "ALL_SENTINEL",
    "LeaderboardFilters",
    "RESULT_IS_BOT",
    "SEARCH_MAX_LENGTH",
    "bot_exclusion",
    "build_predicates",
    "normalize_exact",
    "normalize_search",
]
