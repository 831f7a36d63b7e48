"""Database model exports."""

from .competition import Competition
from .game_map import GameMap
from .result import STATUS_DNF, STATUS_FINISHED, CompetitionResult
from .season import Season

__all__ = [
    "Competition",
    "CompetitionResult",
    "GameMap",
    "STATUS_DNF",
    "STATUS_FINISHED",
    "Season",
]
