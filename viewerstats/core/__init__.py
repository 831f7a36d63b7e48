"""Core configuration and infrastructure helpers."""

from .config import (
    ALLOWED_CORS_ORIGINS,
    DB_AUTO_CREATE,
    DB_AUTO_UPGRADE,
    DB_RESET,
    FRONTEND_ORIGIN,
    LEADERBOARD_CACHE_TTL_SECONDS,
    LOG_LEVEL,
    META_CACHE_TTL_SECONDS,
    SCHEMA_PROBE_TTL_SECONDS,
    SEASON_CACHE_TTL_SECONDS,
    TWITCH_BROADCASTER_LOGIN,
    TWITCH_VALIDATE_URL,
)
from .database import OPTIONAL_COLUMNS, engine, get_session, store_errors, upgrade_schema
from .errors import (
    ApiError,
    AuthenticationError,
    BadRequestError,
    ConfigurationError,
    ForbiddenError,
    QueryFailedError,
    StoreNotConfiguredError,
    StoreNotInitializedError,
    UpstreamError,
    api_error_handler,
    is_no_such_table_error,
    validation_error_handler,
)
from .time import iso_from_ms, now_ms

__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "ApiError",
    "AuthenticationError",
    "BadRequestError",
    "ConfigurationError",
    "DB_AUTO_CREATE",
    "DB_AUTO_UPGRADE",
    "DB_RESET",
    "FRONTEND_ORIGIN",
    "ForbiddenError",
    "LEADERBOARD_CACHE_TTL_SECONDS",
    "LOG_LEVEL",
    "META_CACHE_TTL_SECONDS",
    "OPTIONAL_COLUMNS",
    "QueryFailedError",
    "SCHEMA_PROBE_TTL_SECONDS",
    "SEASON_CACHE_TTL_SECONDS",
    "StoreNotConfiguredError",
    "StoreNotInitializedError",
    "TWITCH_BROADCASTER_LOGIN",
    "TWITCH_VALIDATE_URL",
    "UpstreamError",
    "api_error_handler",
    "engine",
    "get_session",
    "is_no_such_table_error",
    "iso_from_ms",
    "now_ms",
    "store_errors",
    "upgrade_schema",
    "validation_error_handler",
]
