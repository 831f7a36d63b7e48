"""Runtime detection of optional schema columns."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Union

from cachetools import TTLCache
from sqlalchemy import inspect
from sqlalchemy.engine import Connection, Engine
from sqlmodel import Session

from ..core import SCHEMA_PROBE_TTL_SECONDS

logger = logging.getLogger(__name__)

Bind = Union[Session, Connection, Engine]


class SchemaCapabilities:
    """Memoised, time-bounded check for optional columns.

    Introspection failures count as "column absent" and are cached like a
    normal answer so a broken lookup is not retried on every request.
    """

    def __init__(
        self,
        ttl_seconds: float = SCHEMA_PROBE_TTL_SECONDS,
        *,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cache: TTLCache = TTLCache(maxsize=64, ttl=ttl_seconds, timer=timer)
        self._lock = threading.Lock()

    def has_optional_column(self, bind: Bind, table: str, column: str) -> bool:
        key = (table.lower(), column.lower())
        with self._lock:
            cached = self._cache.get(key)
        if cached is not None:
            return cached

        present = self._has_column(bind, *key)
        with self._lock:
            self._cache[key] = present
        return present

    def has_bot_flag(self, bind: Bind) -> bool:
        return self.has_optional_column(bind, "competition_results", "is_bot")

    def has_map_baseline(self, bind: Bind) -> bool:
        return self.has_optional_column(bind, "maps", "finish_time_ms")

    def invalidate(self) -> None:
        with self._lock:
            self._cache.clear()

    @staticmethod
    def _has_column(bind: Bind, table: str, column: str) -> bool:
        try:
            target = bind.connection() if isinstance(bind, Session) else bind
            columns = inspect(target).get_columns(table)
        except Exception:
            logger.warning(
                "Schema inspection failed for %s.%s; treating column as absent",
                table,
                column,
                exc_info=True,
            )
            return False
        return any(str(col.get("name", "")).lower() == column for col in columns)


_capabilities = SchemaCapabilities()


def get_capabilities() -> SchemaCapabilities:
    """FastAPI dependency returning the process-wide schema capabilities."""

    return _capabilities


__all__ = ["SchemaCapabilities", "get_capabilities"]
