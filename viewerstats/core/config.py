"""Application settings and environment helpers."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterable, List

from dotenv import load_dotenv

load_dotenv(override=False)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise RuntimeError(f"{name} must be an integer") from exc


def _split_csv(raw: str | None) -> List[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered: List[str] = []
    for value in values:
        if value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


# Data store -----------------------------------------------------------------
_PROJECT_ROOT = Path(__file__).resolve().parents[2]
DATA_DIR = _PROJECT_ROOT / "data"

# SQLite only: submissions upsert with the SQLite ON CONFLICT dialect.
# An explicitly empty URL leaves the store unbound.
STATS_DATABASE_URL = os.getenv(
    "STATS_DATABASE_URL", f"sqlite:///{DATA_DIR / 'stats.db'}"
).strip()

DB_RESET = _env_bool("DB_RESET", False)
DB_AUTO_CREATE = _env_bool("DB_AUTO_CREATE", True)
DB_AUTO_UPGRADE = _env_bool("DB_AUTO_UPGRADE", True)


# CORS -----------------------------------------------------------------------
# FRONTEND_ORIGIN can contain a comma-separated list for multi-domain deploys.
_frontend_origins = _split_csv(os.getenv("FRONTEND_ORIGIN", "https://viewerfrenzy.com"))
_additional_origins = _split_csv(os.getenv("ADDITIONAL_ALLOWED_ORIGINS"))

_local_dev_origins = [
    "http://localhost:8788",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]

ALLOWED_CORS_ORIGINS = _unique(
    [
        *_frontend_origins,
        *_additional_origins,
        *_local_dev_origins,
    ]
)

FRONTEND_ORIGIN = _frontend_origins[0] if _frontend_origins else ""


# Twitch identity ------------------------------------------------------------
TWITCH_VALIDATE_URL = os.getenv(
    "TWITCH_VALIDATE_URL", "https://id.twitch.tv/oauth2/validate"
)
TWITCH_BROADCASTER_LOGIN = (os.getenv("TWITCH_BROADCASTER_LOGIN") or "").strip().lower()


# Caching --------------------------------------------------------------------
LEADERBOARD_CACHE_TTL_SECONDS = _env_int("LEADERBOARD_CACHE_TTL_SECONDS", 30)
META_CACHE_TTL_SECONDS = _env_int("META_CACHE_TTL_SECONDS", 300)
SCHEMA_PROBE_TTL_SECONDS = _env_int("SCHEMA_PROBE_TTL_SECONDS", 60)
SEASON_CACHE_TTL_SECONDS = _env_int("SEASON_CACHE_TTL_SECONDS", 60)


# Runtime behaviour ----------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


__all__ = [
    "ALLOWED_CORS_ORIGINS",
    "DATA_DIR",
    "DB_AUTO_CREATE",
    "DB_AUTO_UPGRADE",
    "DB_RESET",
    "FRONTEND_ORIGIN",
    "LEADERBOARD_CACHE_TTL_SECONDS",
    "LOG_LEVEL",
    "META_CACHE_TTL_SECONDS",
    "SCHEMA_PROBE_TTL_SECONDS",
    "SEASON_CACHE_TTL_SECONDS",
    "STATS_DATABASE_URL",
    "TWITCH_BROADCASTER_LOGIN",
    "TWITCH_VALIDATE_URL",
]
