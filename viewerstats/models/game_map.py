"""Database model for published race maps."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field as ORMField, SQLModel


class GameMap(SQLModel, table=True):
    """Map definition metadata.

    The derived ``finish_time_ms`` baseline is an optional column and is
    written by ``services.map_baseline`` only.
    """

    __tablename__ = "maps"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    name: str = ORMField(unique=True)
    map_version: Optional[int] = None
    map_hash_sha256: Optional[str] = None
    vehicle_type: Optional[str] = None
    game_mode: Optional[str] = None
    created_by_user_id: Optional[str] = None
    created_at_ms: int
    updated_at_ms: int


__all__ = ["GameMap"]
