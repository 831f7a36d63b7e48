"""Public leaderboard and filter metadata endpoints."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response
from sqlmodel import Session

from ...core import get_session
from ...services.cache import ResponseCache, get_leaderboard_cache, get_meta_cache
from ...services.capabilities import SchemaCapabilities, get_capabilities
from ...services.leaderboard import LeaderboardQuery, build_leaderboard, build_metadata

router = APIRouter(prefix="/api/v1/stats", tags=["stats"])


@router.get("/leaderboard")
def get_leaderboard(
    request: Request,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    capabilities: SchemaCapabilities = Depends(get_capabilities),
    cache: ResponseCache = Depends(get_leaderboard_cache),
) -> Response:
    """Per-viewer statistics, filtered, sorted and paginated."""

    key = cache.key_for(request)
    cached = cache.get(key)
    if cached is not None:
        return cached.to_response()

    query = LeaderboardQuery.from_params(request.query_params)
    entry = cache.render(build_leaderboard(session, query, capabilities))
    background_tasks.add_task(cache.store, key, entry)
    return entry.to_response()


@router.get("/meta")
def get_meta(
    request: Request,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    cache: ResponseCache = Depends(get_meta_cache),
) -> Response:
    """Distinct streamers and maps currently present in the stats store."""

    key = cache.key_for(request)
    cached = cache.get(key)
    if cached is not None:
        return cached.to_response()

    entry = cache.render(build_metadata(session))
    background_tasks.add_task(cache.store, key, entry)
    return entry.to_response()


__all__ = ["router"]
