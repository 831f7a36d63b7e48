"""Viewer leaderboard pipeline: filter, aggregate, order, paginate."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Sequence

from sqlalchemy import distinct, func
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import Session, select

from ..core import store_errors
from ..models import Competition, CompetitionResult
from .aggregation import aggregate_viewers
from .capabilities import SchemaCapabilities
from .filters import LeaderboardFilters, build_predicates
from .ordering import resolve_order
from .pagination import paginate, parse_page, parse_page_size


@dataclass(frozen=True)
class LeaderboardQuery:
    filters: LeaderboardFilters
    page: int = 1
    page_size: int = 25
    sort_by: str = ""
    sort_dir: str = ""

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "LeaderboardQuery":
        return cls(
            filters=LeaderboardFilters.from_params(params),
            page=parse_page(params.get("page")),
            page_size=parse_page_size(params.get("pageSize")),
            sort_by=params.get("sortBy") or "",
            sort_dir=params.get("sortDir") or "",
        )


def _filtered(*columns: Any, predicates: Sequence[ColumnElement[bool]]):
    """``SELECT columns FROM competitions JOIN competition_results WHERE ...``."""

    stmt = (
        select(*columns)
        .select_from(Competition)
        .join(CompetitionResult, CompetitionResult.competition_id == Competition.id)
    )
    if predicates:
        stmt = stmt.where(*predicates)
    return stmt


def count_viewers(session: Session, predicates: Sequence[ColumnElement[bool]]) -> int:
    stmt = _filtered(
        func.count(distinct(CompetitionResult.viewer_user_id)), predicates=predicates
    )
    return int(session.exec(stmt).one() or 0)


def fetch_result_rows(
    session: Session, predicates: Sequence[ColumnElement[bool]]
) -> List[Any]:
    stmt = _filtered(
        CompetitionResult.viewer_user_id,
        CompetitionResult.viewer_login,
        CompetitionResult.viewer_display_name,
        CompetitionResult.viewer_profile_image_url,
        CompetitionResult.finish_position,
        CompetitionResult.status,
        CompetitionResult.finish_time_ms,
        predicates=predicates,
    )
    return list(session.exec(stmt).all())


def build_leaderboard(
    session: Session, query: LeaderboardQuery, capabilities: SchemaCapabilities
) -> Dict[str, Any]:
    with store_errors("Failed to inspect the stats schema."):
        has_bot_flag = capabilities.has_bot_flag(session)
    predicates = build_predicates(query.filters, has_bot_flag=has_bot_flag)

    # The count and the rows share one predicate list so totalPages always
    # agrees with the window that is returned.
    with store_errors("Failed to count leaderboard viewers."):
        total_items = count_viewers(session, predicates)
    window = paginate(total_items, query.page, query.page_size)

    order = resolve_order(query.sort_by, query.sort_dir)
    with store_errors("Failed to query leaderboard."):
        rows = fetch_result_rows(session, predicates)

    ranked = order.apply(aggregate_viewers(rows))

    return {
        "ok": True,
        "page": window.page,
        "pageSize": window.page_size,
        "totalItems": window.total_items,
        "totalPages": window.total_pages,
        "sortBy": order.key,
        "sortDir": order.direction,
        "items": [stats.to_dict() for stats in window.slice(ranked)],
    }


def build_metadata(session: Session) -> Dict[str, Any]:
    """Distinct streamers and maps with competition counts, for filter pickers."""

    with store_errors("Failed to query leaderboard metadata."):
        streamer_rows = session.exec(
            select(
                Competition.streamer_user_id,
                func.max(Competition.streamer_login),
                func.count(Competition.id),
            ).group_by(Competition.streamer_user_id)
        ).all()
        map_rows = session.exec(
            select(
                Competition.map_id,
                func.max(func.coalesce(Competition.map_name, "")),
                func.count(Competition.id),
            )
            .where(Competition.map_id.is_not(None))
            .group_by(Competition.map_id)
        ).all()
        legacy_map_rows = session.exec(
            select(
                Competition.map_key,
                func.max(func.coalesce(Competition.map_name, "")),
                func.count(Competition.id),
            )
            .where(Competition.map_id.is_(None))
            .where(func.trim(func.coalesce(Competition.map_key, "")) != "")
            .group_by(Competition.map_key)
        ).all()

    streamers = [
        {
            "userId": user_id,
            "login": login,
            "displayName": login,
            "profileImageUrl": None,
            "competitions": competitions,
        }
        for user_id, login, competitions in streamer_rows
    ]
    streamers.sort(key=lambda item: (item["login"] or item["userId"] or "").lower())

    maps = [
        {
            "trackId": str(track_id),
            "trackName": name or str(track_id),
            "competitions": competitions,
        }
        for track_id, name, competitions in [*map_rows, *legacy_map_rows]
    ]
    maps.sort(key=lambda item: item["trackName"].lower())

    return {"ok": True, "streamers": streamers, "maps": maps}


__all__ = [
    "LeaderboardQuery",
    "build_leaderboard",
    "build_metadata",
    "count_viewers",
    "fetch_result_rows",
]
