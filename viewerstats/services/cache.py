"""Short-lived response cache keyed by request URL and Origin."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

from cachetools import TTLCache
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from ..core import LEADERBOARD_CACHE_TTL_SECONDS, META_CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, str]


@dataclass(frozen=True)
class CachedResponse:
    body: bytes
    status_code: int = 200
    headers: Dict[str, str] = field(default_factory=dict)

    def to_response(self) -> Response:
        return Response(
            content=self.body,
            status_code=self.status_code,
            headers=dict(self.headers),
            media_type="application/json",
        )


class ResponseCache:
    """TTL cache of rendered JSON responses.

    The Origin header is part of the key so a response is never replayed to
    a caller from a different origin.
    """

    def __init__(
        self,
        ttl_seconds: int,
        *,
        maxsize: int = 512,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl_seconds, timer=timer)
        self._lock = threading.Lock()

    @staticmethod
    def key_for(request: Request) -> CacheKey:
        return str(request.url), request.headers.get("origin") or ""

    def get(self, key: CacheKey) -> Optional[CachedResponse]:
        with self._lock:
            return self._cache.get(key)

    def put(self, key: CacheKey, entry: CachedResponse) -> None:
        with self._lock:
            self._cache[key] = entry

    def store(self, key: CacheKey, entry: CachedResponse) -> None:
        """Write-back used after the response is sent; never raises."""

        try:
            self.put(key, entry)
        except Exception:
            logger.warning("Response cache write failed for %s", key[0], exc_info=True)

    def render(self, payload: Any) -> CachedResponse:
        rendered = JSONResponse(payload)
        return CachedResponse(
            body=bytes(rendered.body),
            headers={"Cache-Control": f"public, max-age={self.ttl_seconds}"},
        )

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


_leaderboard_cache = ResponseCache(LEADERBOARD_CACHE_TTL_SECONDS)
_meta_cache = ResponseCache(META_CACHE_TTL_SECONDS)


def get_leaderboard_cache() -> ResponseCache:
    return _leaderboard_cache


def get_meta_cache() -> ResponseCache:
    return _meta_cache


__all__ = [
    "CachedResponse",
    "ResponseCache",
    "get_leaderboard_cache",
    "get_meta_cache",
]
