"""Competition submission endpoint."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List

from fastapi import APIRouter, Body, Depends
from sqlmodel import Session

from ...core import get_session, store_errors
from ...services.achievements import AchievementAwarder, get_achievement_awarder
from ...services.capabilities import SchemaCapabilities, get_capabilities
from ...services.map_baseline import recompute_map_baseline
from ...services.seasons import SeasonDirectory, get_season_directory
from ...services.submissions import CompetitionSubmission, store_submission
from ...services.twitch import TwitchUser, require_streamer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/competitions", tags=["competitions"])


def _best_effort(label: str, session: Session, fallback: Any, action: Callable[[], Any]) -> Any:
    """Run a side effect after the primary write; failures are logged and dropped."""

    try:
        return action()
    except Exception:
        logger.warning("%s failed; submission kept", label, exc_info=True)
        session.rollback()
        return fallback


@router.post("/submit")
def submit_competition(
    body: Any = Body(None),
    streamer: TwitchUser = Depends(require_streamer),
    session: Session = Depends(get_session),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    seasons: SeasonDirectory = Depends(get_season_directory),
    awarder: AchievementAwarder = Depends(get_achievement_awarder),
) -> Dict[str, Any]:
    """Store one finished competition and its per-viewer results."""

    submission = CompetitionSubmission.parse(body)

    with store_errors("Failed to store competition."):
        season_id = seasons.resolve(session, submission.started_at_ms)
        stored = store_submission(
            session,
            submission,
            streamer,
            season_id=season_id,
            has_bot_flag=capabilities.has_bot_flag(session),
        )

    unlocked: List[Any] = _best_effort(
        "Achievement evaluation",
        session,
        [],
        lambda: awarder.award(
            session,
            submission.human_viewer_ids,
            source="competition",
            source_ref=str(stored.competition_id),
        ),
    )

    baseline = None
    if submission.map_id:
        outcome = _best_effort(
            "Map baseline recompute",
            session,
            None,
            lambda: recompute_map_baseline(session, submission.map_id, capabilities),
        )
        baseline = outcome.to_dict() if outcome is not None else None

    return {
        "ok": True,
        "competitionUuid": submission.competition_uuid,
        "seasonId": stored.season_id,
        "competitionId": stored.competition_id,
        "resultsReceived": submission.results_received,
        "resultsWritten": stored.results_written,
        "achievementsUnlocked": unlocked,
        "mapBaseline": baseline,
    }


__all__ = ["router"]
