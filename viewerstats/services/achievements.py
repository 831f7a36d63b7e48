"""Boundary to the achievement evaluator."""

from __future__ import annotations

import logging
from typing import Any, List, Protocol, Sequence

from sqlmodel import Session

logger = logging.getLogger(__name__)


class AchievementAwarder(Protocol):
    def award(
        self,
        session: Session,
        viewer_ids: Sequence[str],
        *,
        source: str,
        source_ref: str,
    ) -> List[Any]:
        """Evaluate achievements for ``viewer_ids`` and return newly unlocked ones."""


class NoAchievements:
    """Default awarder for deployments without an achievement evaluator."""

    def award(
        self,
        session: Session,
        viewer_ids: Sequence[str],
        *,
        source: str,
        source_ref: str,
    ) -> List[Any]:
        logger.debug(
            "No achievement evaluator; skipped %d viewers for %s %s",
            len(viewer_ids),
            source,
            source_ref,
        )
        return []


_awarder: AchievementAwarder = NoAchievements()


def get_achievement_awarder() -> AchievementAwarder:
    return _awarder


__all__ = ["AchievementAwarder", "NoAchievements", "get_achievement_awarder"]
