"""Season listing endpoint."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ...core import get_session, iso_from_ms, now_ms
from ...services.seasons import SeasonDirectory, get_season_directory

router = APIRouter(prefix="/api/v1", tags=["seasons"])


@router.get("/seasons")
def list_seasons(
    session: Session = Depends(get_session),
    seasons: SeasonDirectory = Depends(get_season_directory),
) -> Dict[str, Any]:
    """All seasons, newest first."""

    return {
        "ok": True,
        "now": iso_from_ms(now_ms()),
        "seasons": [season.to_dict() for season in seasons.load(session)],
    }


@router.get("/seasons/active")
def active_season(
    session: Session = Depends(get_session),
    seasons: SeasonDirectory = Depends(get_season_directory),
) -> Dict[str, Any]:
    """The season running right now, or ``null`` between seasons."""

    moment_ms = now_ms()
    season = seasons.active(session, moment_ms)
    return {
        "ok": True,
        "now": iso_from_ms(moment_ms),
        "season": season.to_dict() if season is not None else None,
    }


__all__ = ["router"]
