"""Database model for completed competitions."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field as ORMField, SQLModel


class Competition(SQLModel, table=True):
    """One finished race organised by a streamer.

    ``competition_uuid`` is generated by the game client and makes
    resubmission idempotent.
    """

    __tablename__ = "competitions"

    id: Optional[int] = ORMField(default=None, primary_key=True)
    competition_uuid: str = ORMField(unique=True)

    streamer_user_id: str = ORMField(index=True)
    streamer_login: Optional[str] = None

    season_id: Optional[str] = ORMField(default=None, index=True)

    map_id: Optional[int] = ORMField(default=None, index=True)
    map_key: Optional[str] = None
    map_name: Optional[str] = None
    map_version: Optional[int] = None
    map_hash_sha256: Optional[str] = None

    vehicle_type: Optional[str] = None
    game_mode: Optional[str] = None
    race_seed: Optional[int] = None
    track_length_m: Optional[float] = None

    started_at_ms: int
    ended_at_ms: int

    winner_user_id: Optional[str] = None

    client_version: Optional[str] = None
    engine_version: Optional[str] = None

    created_at_ms: int
    updated_at_ms: int


__all__ = ["Competition"]
