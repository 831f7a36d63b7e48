"""Page window arithmetic for the leaderboard."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..utils import clamp_int

DEFAULT_PAGE_SIZE = 25
MIN_PAGE_SIZE = 5
MAX_PAGE_SIZE = 200
MAX_PAGE = 1_000_000


def parse_page(value: Any) -> int:
    return clamp_int(value, 1, 1, MAX_PAGE)


def parse_page_size(value: Any) -> int:
    return clamp_int(value, DEFAULT_PAGE_SIZE, MIN_PAGE_SIZE, MAX_PAGE_SIZE)


@dataclass(frozen=True)
class PageWindow:
    page: int
    page_size: int
    total_items: int
    total_pages: int
    offset: int

    def slice(self, items: list) -> list:
        return items[self.offset : self.offset + self.page_size]


def paginate(total_items: int, page: int, page_size: int) -> PageWindow:
    """Clamp ``page`` into ``[1, total_pages]``; an empty result still has one page."""

    total_items = max(0, int(total_items))
    total_pages = max(1, -(-total_items // page_size))
    safe_page = min(max(1, page), total_pages)
    return PageWindow(
        page=safe_page,
        page_size=page_size,
        total_items=total_items,
        total_pages=total_pages,
        offset=(safe_page - 1) * page_size,
    )


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "MIN_PAGE_SIZE",
    "PageWindow",
    "paginate",
    "parse_page",
    "parse_page_size",
]
