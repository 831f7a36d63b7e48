"""System-level API endpoints."""

from __future__ import annotations

from typing import Dict

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...core import database
from ...services.capabilities import SchemaCapabilities, get_capabilities

router = APIRouter(tags=["system"])


@router.get("/health")
def health() -> Dict[str, bool]:
    """Liveness check; never touches the store."""

    return {"ok": True}


@router.get("/healthz")
def healthz(capabilities: SchemaCapabilities = Depends(get_capabilities)) -> JSONResponse:
    """Readiness: whether a store is bound and which optional columns it has."""

    engine = database.engine
    if engine is None:
        return JSONResponse({"ok": False, "store": "unbound"}, status_code=503)

    return JSONResponse(
        {
            "ok": True,
            "store": "bound",
            "botFlag": capabilities.has_bot_flag(engine),
            "mapBaseline": capabilities.has_map_baseline(engine),
        }
    )


__all__ = ["router"]
