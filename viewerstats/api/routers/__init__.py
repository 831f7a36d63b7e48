"""Aggregate API routers."""

from fastapi import APIRouter

from .competitions import router as competitions_router
from .seasons import router as seasons_router
from .stats import router as stats_router
from .system import router as system_router

ALL_ROUTERS: tuple[APIRouter, ...] = (
    system_router,
    stats_router,
    seasons_router,
    competitions_router,
)

__all__ = ["ALL_ROUTERS"]
