"""Database model for per-viewer competition results."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field as ORMField, SQLModel

STATUS_FINISHED = "FINISHED"
STATUS_DNF = "DNF"


class CompetitionResult(SQLModel, table=True):
    """A viewer's outcome within one competition.

    The ``is_bot`` flag lives in an optional column that older databases do
    not have, so it is not mapped here; see ``core.database.OPTIONAL_COLUMNS``.
    """

    __tablename__ = "competition_results"
    __table_args__ = (UniqueConstraint("competition_id", "viewer_user_id"),)

    id: Optional[int] = ORMField(default=None, primary_key=True)
    competition_id: int = ORMField(
        foreign_key="competitions.id", index=True, ondelete="CASCADE"
    )
    viewer_user_id: str = ORMField(index=True)

    viewer_login: Optional[str] = None
    viewer_display_name: Optional[str] = None
    viewer_profile_image_url: Optional[str] = None

    finish_position: Optional[int] = None
    status: str = STATUS_DNF
    finish_time_ms: Optional[int] = None

    vehicle_id: Optional[str] = None
    distance_m: Optional[float] = None
    progress01: Optional[float] = None

    created_at_ms: int
    updated_at_ms: int


__all__ = ["CompetitionResult", "STATUS_DNF", "STATUS_FINISHED"]
