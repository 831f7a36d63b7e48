"""Database model for competitive seasons."""

from __future__ import annotations

from typing import Optional

from sqlmodel import Field as ORMField, SQLModel


class Season(SQLModel, table=True):
    """Named time window; competitions started inside it belong to it."""

    __tablename__ = "seasons"

    season_id: str = ORMField(primary_key=True)
    name: Optional[str] = None
    description: Optional[str] = None
    start_at_ms: int
    end_at_ms: int


__all__ = ["Season"]
