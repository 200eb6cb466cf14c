"""Initial schema — users, groups, memberships, topics, meeting dates.

Revision: 001_initial_schema
Created:  2026-10-19

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order (FK dependency order):
  users → groups → memberships, topics → group_topics, group_meeting_dates

ON DELETE policies:
  groups.admin_user_id          → RESTRICT  (hand over adminship first)
  memberships.*                 → RESTRICT  (group deletion detaches members first)
  group_topics.*                → RESTRICT  (topic / group deletion detaches links first)
  group_meeting_dates.group_id  → CASCADE   (dates are owned by the group)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    """Apply the full initial schema."""

    # ── Step 1: users ──────────────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("username", sa.String(50), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=True),
        sa.Column(
            "role",
            sa.String(32),
            nullable=False,
            server_default="ROLE_USER",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("email", name="uq_users_email"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_users_username_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_users_email_format",
        ),
        sa.CheckConstraint(
            "role IN ('ROLE_USER', 'ROLE_SUPER_ADMIN')",
            name="ck_users_role_known",
        ),
    )

    # ── Step 2: groups ─────────────────────────────────────────────────────
    # version backs SQLAlchemy's version_id_col (optimistic locking).

    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("location_name", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column(
            "admin_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_groups_admin"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_groups"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_groups_name_nonempty",
        ),
    )

    # ── Step 3: memberships ────────────────────────────────────────────────
    # Both FKs ON DELETE RESTRICT. UNIQUE(user_id, group_id).

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="RESTRICT", name="fk_memberships_user"),
            nullable=False,
        ),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_memberships_group"),
            nullable=False,
        ),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_memberships"),
        sa.UniqueConstraint("user_id", "group_id", name="uq_memberships_user_group"),
    )

    # ── Step 4: topics ─────────────────────────────────────────────────────
    # name is stored normalized (trimmed, lower-case).

    op.create_table(
        "topics",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.PrimaryKeyConstraint("id", name="pk_topics"),
        sa.UniqueConstraint("name", name="uq_topics_name"),
        sa.CheckConstraint("name = LOWER(name)", name="ck_topics_name_lowercase"),
        sa.CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_topics_name_nonempty",
        ),
    )

    # ── Step 5: group_topics ───────────────────────────────────────────────

    op.create_table(
        "group_topics",
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="RESTRICT", name="fk_group_topics_group"),
            nullable=False,
        ),
        sa.Column(
            "topic_id",
            sa.Integer(),
            sa.ForeignKey("topics.id", ondelete="RESTRICT", name="fk_group_topics_topic"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("group_id", "topic_id", name="pk_group_topics"),
    )

    # ── Step 6: group_meeting_dates ────────────────────────────────────────

    op.create_table(
        "group_meeting_dates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "group_id",
            sa.Integer(),
            sa.ForeignKey("groups.id", ondelete="CASCADE", name="fk_meeting_dates_group"),
            nullable=False,
        ),
        sa.Column("meeting_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_group_meeting_dates"),
        sa.UniqueConstraint(
            "group_id",
            "meeting_at",
            name="uq_meeting_dates_group_instant",
        ),
    )

    # ── Step 7: Indexes ────────────────────────────────────────────────────

    # groups: "groups where admin" lookup.
    op.create_index("idx_groups_admin", "groups", ["admin_user_id"])

    # memberships: list members (by group) and "groups where member" (by user).
    op.create_index("idx_memberships_group", "memberships", ["group_id"])
    op.create_index("idx_memberships_user", "memberships", ["user_id"])

    # group_topics: detaching a topic from every group on topic deletion.
    op.create_index("idx_group_topics_topic", "group_topics", ["topic_id"])

    op.create_index("idx_meeting_dates_group", "group_meeting_dates", ["group_id"])


def downgrade() -> None:
    """
    Drop all objects created in upgrade(), in reverse dependency order.

    Provided for local development reset. In production, prefer a corrective
    migration over a rollback.
    """

    op.drop_index("idx_meeting_dates_group", table_name="group_meeting_dates")
    op.drop_index("idx_group_topics_topic",  table_name="group_topics")
    op.drop_index("idx_memberships_user",    table_name="memberships")
    op.drop_index("idx_memberships_group",   table_name="memberships")
    op.drop_index("idx_groups_admin",        table_name="groups")

    op.drop_table("group_meeting_dates")
    op.drop_table("group_topics")
    op.drop_table("topics")
    op.drop_table("memberships")
    op.drop_table("groups")
    op.drop_table("users")
