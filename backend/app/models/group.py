"""
models/group.py — Group table and the group_topics association table.

No business logic. No imports from services or routes.

Group is the aggregate root: memberships, meeting dates and topic links are
only changed by the services, which load the Group first and write it back
through GroupStore.save (or GroupStore.touch), stamping updated_at on every
mutation. `version` is the mapper's version_id_col, so two transactions
racing on the same group cannot both commit; the loser gets a StaleDataError.

FK policy: admin_user_id ON DELETE RESTRICT — a user who administers a group
cannot be deleted until adminship is handed over or the group is removed.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backend.app.extensions import db


group_topics = Table(
    "group_topics",
    db.metadata,
    Column(
        "group_id",
        Integer,
        ForeignKey("groups.id", ondelete="RESTRICT"),
        primary_key=True,
    ),
    Column(
        "topic_id",
        Integer,
        ForeignKey("topics.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    ),
)


class Group(db.Model):
    # 'groups' is a reserved word in some SQL dialects; SQLAlchemy handles quoting.
    __tablename__ = "groups"

    __table_args__ = (
        # Also enforced by the marshmallow GroupSchema.
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        server_default="",
    )

    # Location is either free text (name only) or a structured place
    # (name plus coordinates).
    location_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    admin_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    # ── Relationships ──────────────────────────────────────────────────────
    # The admin is referenced by id only; admin ∈ members, so the admin's
    # User row is reachable through memberships.

    # Insertion order — the membership id is monotonically increasing.
    memberships: Mapped[list["Membership"]] = relationship(  # noqa: F821
        "Membership",
        back_populates="group",
        order_by="Membership.id",
        cascade="all, delete-orphan",
    )

    # Presented newest first. See meeting_service.merge_meeting_dates.
    meeting_dates: Mapped[list["MeetingDate"]] = relationship(  # noqa: F821
        "MeetingDate",
        back_populates="group",
        order_by="desc(MeetingDate.meeting_at)",
        cascade="all, delete-orphan",
    )

    topics: Mapped[list["Topic"]] = relationship(  # noqa: F821
        "Topic",
        secondary=group_topics,
        back_populates="groups",
        order_by="Topic.name",
    )

    @property
    def member_ids(self) -> list[int]:
        """User ids of all members, in insertion order."""
        return [m.user_id for m in self.memberships]

    @property
    def location(self) -> dict | None:
        if self.location_name is None:
            return None
        return {
            "name": self.location_name,
            "latitude": self.latitude,
            "longitude": self.longitude,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Group id={self.id} name={self.name!r} admin={self.admin_user_id}>"
