"""Time helpers. Stored timestamps are UTC milliseconds since epoch."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_from_ms(value: Any) -> str:
    try:
        ms = int(value)
    except (TypeError, ValueError):
        return ""
    if ms <= 0:
        return ""
    moment = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


__all__ = ["iso_from_ms", "now_ms"]
