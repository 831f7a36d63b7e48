"""Season lookup with a short-lived in-process cache."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from cachetools import TTLCache
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..core import SEASON_CACHE_TTL_SECONDS, iso_from_ms
from ..models import Season

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeasonWindow:
    season_id: str
    name: str
    description: str
    start_at_ms: int
    end_at_ms: int

    def contains(self, moment_ms: int) -> bool:
        return self.start_at_ms <= moment_ms <= self.end_at_ms

    def to_dict(self) -> Dict[str, str]:
        return {
            "seasonId": self.season_id,
            "name": self.name,
            "description": self.description,
            "startAt": iso_from_ms(self.start_at_ms),
            "endAt": iso_from_ms(self.end_at_ms),
        }


def resolve_season_id(seasons: List[SeasonWindow], started_at_ms: int) -> Optional[str]:
    """First season whose inclusive ``[start, end]`` range holds the start time."""

    if started_at_ms <= 0:
        return None
    for season in seasons:
        if season.contains(started_at_ms):
            return season.season_id
    return None


class SeasonDirectory:
    def __init__(
        self,
        ttl_seconds: int = SEASON_CACHE_TTL_SECONDS,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache = TTLCache(maxsize=1, ttl=ttl_seconds, timer=timer)
        self._lock = threading.Lock()

    def load(self, session: Session) -> List[SeasonWindow]:
        """All valid seasons, newest first. An unreadable table yields ``[]``."""

        with self._lock:
            cached = self._cache.get("seasons")
        if cached is not None:
            return cached

        try:
            rows = session.exec(select(Season)).all()
        except SQLAlchemyError:
            logger.warning("Season table unavailable; no seasons resolved", exc_info=True)
            session.rollback()
            rows = []

        seasons = [
            SeasonWindow(
                season_id=row.season_id.strip().lower(),
                name=(row.name or row.season_id).strip(),
                description=(row.description or "").strip(),
                start_at_ms=row.start_at_ms,
                end_at_ms=row.end_at_ms,
            )
            for row in rows
            if row.season_id and row.start_at_ms and row.end_at_ms
        ]
        seasons.sort(key=lambda season: season.start_at_ms, reverse=True)

        with self._lock:
            self._cache["seasons"] = seasons
        return seasons

    def active(self, session: Session, moment_ms: int) -> Optional[SeasonWindow]:
        """The season running at ``moment_ms``; the latest start wins on overlap."""

        for season in self.load(session):
            if season.contains(moment_ms):
                return season
        return None

    def resolve(self, session: Session, started_at_ms: int) -> Optional[str]:
        return resolve_season_id(self.load(session), started_at_ms)

    def invalidate(self) -> None:
        with self._lock:
            self._cache.clear()


_seasons = SeasonDirectory()


def get_season_directory() -> SeasonDirectory:
    return _seasons


__all__ = [
    "SeasonDirectory",
    "SeasonWindow",
    "get_season_directory",
    "resolve_season_id",
]
