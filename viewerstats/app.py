"""FastAPI application factory and configuration."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlmodel import SQLModel

from . import models  # noqa: F401 - ensure models are registered with SQLModel
from .api import register_routes
from .core import (
    ALLOWED_CORS_ORIGINS,
    DB_AUTO_CREATE,
    DB_AUTO_UPGRADE,
    DB_RESET,
    LOG_LEVEL,
    ApiError,
    api_error_handler,
    validation_error_handler,
)
from .core import database

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    engine = database.engine
    if engine is None:
        logger.warning("STATS_DATABASE_URL is empty; store-backed endpoints will fail")
    else:
        if DB_RESET:
            SQLModel.metadata.drop_all(engine)
        if DB_AUTO_CREATE:
            SQLModel.metadata.create_all(engine)
        if DB_AUTO_UPGRADE:
            database.upgrade_schema(engine)
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Viewer Stats API", version="0.3.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_CORS_ORIGINS,
        allow_credentials=False,
        allow_methods=["GET", "PUT", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
        max_age=86400,
    )
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    register_routes(app)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("viewerstats.app:app", host="127.0.0.1", port=3000, reload=True)
