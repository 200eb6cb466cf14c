"""
models/meeting_date.py — Per-group meeting timestamps.

A meeting date is a value, not an entity with its own lifecycle: the rows
form a set per group (UNIQUE(group_id, meeting_at)) and are owned by the
group (ON DELETE CASCADE, delete-orphan on Group.meeting_dates).

meeting_at is always written in UTC. SQLite drops the offset on read, so
readers go through meeting_service.as_utc before comparing.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


class MeetingDate(db.Model):
    __tablename__ = "group_meeting_dates"

    __table_args__ = (
        UniqueConstraint("group_id", "meeting_at", name="uq_meeting_dates_group_instant"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    group_id: Mapped[int] = mapped_column(
        ForeignKey("groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    meeting_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    group: Mapped["Group"] = relationship(  # noqa: F821
        "Group",
        back_populates="meeting_dates",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<MeetingDate group_id={self.group_id} meeting_at={self.meeting_at.isoformat()}>"
