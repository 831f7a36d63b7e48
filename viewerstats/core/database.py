"""Database configuration and session helpers."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, create_engine

from .config import DATA_DIR, STATS_DATABASE_URL
from .errors import (
    QueryFailedError,
    StoreNotConfiguredError,
    StoreNotInitializedError,
    is_no_such_table_error,
)

logger = logging.getLogger(__name__)

# Columns added by later migrations. Older deployments run without them.
OPTIONAL_COLUMNS: Dict[Tuple[str, str], str] = {
    ("competition_results", "is_bot"): "INTEGER NOT NULL DEFAULT 0",
    ("maps", "finish_time_ms"): "INTEGER",
}


def build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        raise RuntimeError(f"STATS_DATABASE_URL must be a sqlite URL, got {url.split(':', 1)[0]!r}")
    if str(DATA_DIR) in url:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args={"check_same_thread": False})


engine: Optional[Engine] = build_engine(STATS_DATABASE_URL) if STATS_DATABASE_URL else None


def get_session() -> Iterator[Session]:
    """FastAPI dependency that yields a database session."""

    if engine is None:
        raise StoreNotConfiguredError()
    with Session(engine) as session:
        yield session


@contextmanager
def store_errors(message: str) -> Iterator[None]:
    """Translate store exceptions into API errors.

    Missing tables mean the schema was never initialized (503); anything else
    is a query failure (500).
    """

    try:
        yield
    except SQLAlchemyError as exc:
        details = str(getattr(exc, "orig", None) or exc)
        if is_no_such_table_error(exc):
            logger.error("Stats schema not initialized: %s", details)
            raise StoreNotInitializedError(details=details) from exc
        logger.error("%s %s", message, details)
        raise QueryFailedError(message, details=details) from exc


def upgrade_schema(bind: Engine) -> list[str]:
    """Add any missing optional columns. Returns the ``table.column`` names added."""

    inspector = inspect(bind)
    tables = set(inspector.get_table_names())
    missing = [
        (table, column, ddl)
        for (table, column), ddl in OPTIONAL_COLUMNS.items()
        if table in tables
        and column not in {col["name"].lower() for col in inspector.get_columns(table)}
    ]

    added: list[str] = []
    with bind.begin() as conn:
        for table, column, ddl in missing:
            conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl}"))
            added.append(f"{table}.{column}")
    if added:
        logger.info("Added optional columns: %s", ", ".join(added))
    return added


__all__ = [
    "OPTIONAL_COLUMNS",
    "build_engine",
    "engine",
    "get_session",
    "store_errors",
    "upgrade_schema",
]
