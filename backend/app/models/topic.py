"""
models/topic.py — Topic table definition.

No business logic. No imports from services or routes.

`name` holds the normalized (stripped, lower-cased) topic name. The UNIQUE
constraint on it is what makes "Databases" and "databases" the same topic at
the storage level; topic_service normalizes before every lookup.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db
from backend.app.models.group import group_topics


class Topic(db.Model):
    __tablename__ = "topics"

    __table_args__ = (
        CheckConstraint(
            "name = LOWER(name)",
            name="ck_topics_name_lowercase",
        ),
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_topics_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        unique=True,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    groups: Mapped[list["Group"]] = relationship(  # noqa: F821
        "Group",
        secondary=group_topics,
        back_populates="topics",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Topic id={self.id} name={self.name!r}>"
