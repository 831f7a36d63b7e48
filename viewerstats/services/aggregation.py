"""Per-viewer aggregation and rank-based percentile estimation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, TypeVar

from ..models import STATUS_FINISHED

PERCENTILES: tuple[int, ...] = (10, 25, 50, 75, 90)

T = TypeVar("T")


def nearest_rank_position(percent: int, count: int) -> int:
    """1-based ordinal ``ceil(percent / 100 * count)`` clamped to ``[1, count]``.

    Integer arithmetic keeps exact multiples exact (10% of 30 is 3, not 4).
    """

    if count <= 0:
        raise ValueError("count must be positive")
    position = -(-percent * count // 100)
    return min(count, max(1, position))


def percentile(sorted_values: Sequence[T], percent: int) -> Optional[T]:
    """Nearest-rank percentile of an ascending sequence; ``None`` when empty."""

    if not sorted_values:
        return None
    return sorted_values[nearest_rank_position(percent, len(sorted_values)) - 1]


@dataclass
class ViewerStatistics:
    viewer_user_id: str
    viewer_login: Optional[str] = None
    viewer_display_name: Optional[str] = None
    viewer_profile_image_url: Optional[str] = None

    competitions: int = 0
    finished_count: int = 0
    firsts: int = 0
    seconds: int = 0
    thirds: int = 0

    best_finish_pos: Optional[int] = None
    worst_finish_pos: Optional[int] = None
    avg_finish_pos: Optional[float] = None
    p10_finish_pos: Optional[int] = None
    p25_finish_pos: Optional[int] = None
    median_finish_pos: Optional[int] = None
    p75_finish_pos: Optional[int] = None
    p90_finish_pos: Optional[int] = None

    best_time_ms: Optional[int] = None
    worst_time_ms: Optional[int] = None
    avg_time_ms: Optional[float] = None
    p10_time_ms: Optional[int] = None
    p25_time_ms: Optional[int] = None
    median_time_ms: Optional[int] = None
    p75_time_ms: Optional[int] = None
    p90_time_ms: Optional[int] = None

    @property
    def wins(self) -> int:
        return self.firsts

    @property
    def dnf_count(self) -> int:
        return self.competitions - self.finished_count

    @property
    def sort_name(self) -> str:
        return (
            self.viewer_display_name or self.viewer_login or self.viewer_user_id or ""
        ).lower()

    @property
    def sort_identity(self) -> str:
        return (self.viewer_login or self.viewer_user_id or "").lower()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "viewerUserId": self.viewer_user_id,
            "viewerLogin": self.viewer_login,
            "viewerDisplayName": self.viewer_display_name,
            "viewerProfileImageUrl": self.viewer_profile_image_url,
            "competitions": self.competitions,
            "wins": self.wins,
            "firsts": self.firsts,
            "seconds": self.seconds,
            "thirds": self.thirds,
            "finishedCount": self.finished_count,
            "dnfCount": self.dnf_count,
            "bestFinishPos": self.best_finish_pos,
            "worstFinishPos": self.worst_finish_pos,
            "avgFinishPos": self.avg_finish_pos,
            "p10FinishPos": self.p10_finish_pos,
            "p25FinishPos": self.p25_finish_pos,
            "medianFinishPos": self.median_finish_pos,
            "p75FinishPos": self.p75_finish_pos,
            "p90FinishPos": self.p90_finish_pos,
            "bestTimeMs": self.best_time_ms,
            "worstTimeMs": self.worst_time_ms,
            "avgTimeMs": self.avg_time_ms,
            "p10TimeMs": self.p10_time_ms,
            "p25TimeMs": self.p25_time_ms,
            "medianTimeMs": self.median_time_ms,
            "p75TimeMs": self.p75_time_ms,
            "p90TimeMs": self.p90_time_ms,
        }


@dataclass
class _Accumulator:
    viewer_user_id: str
    logins: List[str] = field(default_factory=list)
    display_names: List[str] = field(default_factory=list)
    image_urls: List[str] = field(default_factory=list)
    competitions: int = 0
    finished: int = 0
    podium: Dict[int, int] = field(default_factory=lambda: {1: 0, 2: 0, 3: 0})
    positions: List[int] = field(default_factory=list)
    times: List[int] = field(default_factory=list)

    def add(self, row: Any) -> None:
        self.competitions += 1
        for bucket, value in (
            (self.logins, row.viewer_login),
            (self.display_names, row.viewer_display_name),
            (self.image_urls, row.viewer_profile_image_url),
        ):
            if value is not None:
                bucket.append(value)

        if row.status != STATUS_FINISHED:
            return

        self.finished += 1
        position = row.finish_position
        if position is not None:
            self.positions.append(position)
            if position in self.podium:
                self.podium[position] += 1

        time_ms = row.finish_time_ms
        if time_ms is not None and time_ms > 0:
            self.times.append(time_ms)

    def build(self) -> ViewerStatistics:
        stats = ViewerStatistics(
            viewer_user_id=self.viewer_user_id,
            viewer_login=max(self.logins) if self.logins else None,
            viewer_display_name=max(self.display_names) if self.display_names else None,
            viewer_profile_image_url=max(self.image_urls) if self.image_urls else None,
            competitions=self.competitions,
            finished_count=self.finished,
            firsts=self.podium[1],
            seconds=self.podium[2],
            thirds=self.podium[3],
        )

        if self.positions:
            positions = sorted(self.positions)
            stats.best_finish_pos = positions[0]
            stats.worst_finish_pos = positions[-1]
            stats.avg_finish_pos = sum(positions) / len(positions)
            (
                stats.p10_finish_pos,
                stats.p25_finish_pos,
                stats.median_finish_pos,
                stats.p75_finish_pos,
                stats.p90_finish_pos,
            ) = (percentile(positions, pct) for pct in PERCENTILES)

        if self.times:
            times = sorted(self.times)
            stats.best_time_ms = times[0]
            stats.worst_time_ms = times[-1]
            stats.avg_time_ms = sum(times) / len(times)
            (
                stats.p10_time_ms,
                stats.p25_time_ms,
                stats.median_time_ms,
                stats.p75_time_ms,
                stats.p90_time_ms,
            ) = (percentile(times, pct) for pct in PERCENTILES)

        return stats


def aggregate_viewers(rows: Iterable[Any]) -> List[ViewerStatistics]:
    """Group filtered result rows by viewer and compute their statistics.

    Rows need ``viewer_user_id``, ``viewer_login``, ``viewer_display_name``,
    ``viewer_profile_image_url``, ``finish_position``, ``status`` and
    ``finish_time_ms`` attributes. Output order follows first appearance.
    """

    groups: Dict[str, _Accumulator] = {}
    for row in rows:
        acc = groups.get(row.viewer_user_id)
        if acc is None:
            acc = groups[row.viewer_user_id] = _Accumulator(row.viewer_user_id)
        acc.add(row)
    return [acc.build() for acc in groups.values()]


__all__ = [
    "PERCENTILES",
    "ViewerStatistics",
    "aggregate_viewers",
    "nearest_rank_position",
    "percentile",
]
