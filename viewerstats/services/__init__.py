"""Service layer helpers."""

from .aggregation import ViewerStatistics, aggregate_viewers, percentile
from .cache import ResponseCache
from .capabilities import SchemaCapabilities
from .filters import LeaderboardFilters, build_predicates
from .leaderboard import LeaderboardQuery, build_leaderboard, build_metadata
from .map_baseline import recompute_map_baseline
from .ordering import resolve_order
from .pagination import paginate
from .seasons import SeasonDirectory
from .submissions import CompetitionSubmission, store_submission

__all__ = [
    "CompetitionSubmission",
    "LeaderboardFilters",
    "LeaderboardQuery",
    "ResponseCache",
    "SchemaCapabilities",
    "SeasonDirectory",
    "ViewerStatistics",
    "aggregate_viewers",
    "build_leaderboard",
    "build_metadata",
    "build_predicates",
    "paginate",
    "percentile",
    "recompute_map_baseline",
    "resolve_order",
    "store_submission",
]
