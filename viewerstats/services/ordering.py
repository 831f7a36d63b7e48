"""Allowlisted leaderboard ordering."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List

from ..utils import norm_str
from .aggregation import ViewerStatistics

ASC = "asc"
DESC = "desc"


@dataclass(frozen=True)
class SortColumn:
    attribute: str
    nullable: bool = False
    default_dir: str = DESC


def _stat(attribute: str) -> SortColumn:
    return SortColumn(attribute, nullable=True)


SORT_COLUMNS: Dict[str, SortColumn] = {
    "viewer": SortColumn("sort_name", default_dir=ASC),
    "competitions": SortColumn("competitions"),
    "wins": SortColumn("firsts"),
    "firsts": SortColumn("firsts"),
    "seconds": SortColumn("seconds"),
    "thirds": SortColumn("thirds"),
    "finishedCount": SortColumn("finished_count"),
    "dnfCount": SortColumn("dnf_count"),
    "bestFinishPos": _stat("best_finish_pos"),
    "worstFinishPos": _stat("worst_finish_pos"),
    "avgFinishPos": _stat("avg_finish_pos"),
    "p10FinishPos": _stat("p10_finish_pos"),
    "p25FinishPos": _stat("p25_finish_pos"),
    "medianFinishPos": _stat("median_finish_pos"),
    "p75FinishPos": _stat("p75_finish_pos"),
    "p90FinishPos": _stat("p90_finish_pos"),
    "bestTimeMs": _stat("best_time_ms"),
    "worstTimeMs": _stat("worst_time_ms"),
    "avgTimeMs": _stat("avg_time_ms"),
    "p10TimeMs": _stat("p10_time_ms"),
    "p25TimeMs": _stat("p25_time_ms"),
    "medianTimeMs": _stat("median_time_ms"),
    "p75TimeMs": _stat("p75_time_ms"),
    "p90TimeMs": _stat("p90_time_ms"),
}

DEFAULT_SORT_KEY = "wins"


@dataclass(frozen=True)
class SortOrder:
    key: str
    direction: str
    column: SortColumn

    def value(self, stats: ViewerStatistics) -> Any:
        return getattr(stats, self.column.attribute)

    def apply(self, items: Iterable[ViewerStatistics]) -> List[ViewerStatistics]:
        """Sort by (is-null, value in direction, viewer identity ascending).

        Built from stable sorts applied least significant term first.
        """

        ordered = sorted(items, key=lambda stats: stats.sort_identity)
        present = [stats for stats in ordered if self.value(stats) is not None]
        missing = [stats for stats in ordered if self.value(stats) is None]
        present.sort(key=self.value, reverse=self.direction == DESC)
        return present + missing


def resolve_order(sort_by: Any, sort_dir: Any) -> SortOrder:
    key = norm_str(sort_by)
    if key not in SORT_COLUMNS:
        key = DEFAULT_SORT_KEY
    column = SORT_COLUMNS[key]

    direction = norm_str(sort_dir).lower()
    if direction not in (ASC, DESC):
        direction = column.default_dir

    return SortOrder(key=key, direction=direction, column=column)


__all__ = [
    "ASC",
    "DEFAULT_SORT_KEY",
    "DESC",
    "SORT_COLUMNS",
    "SortColumn",
    "SortOrder",
    "resolve_order",
]
