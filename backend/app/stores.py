"""
stores.py — Narrow persistence interfaces consumed by the services.

Each store wraps the request's SQLAlchemy session and is focused on one
aggregate. Stores flush but never commit; committing is the route's job, so
a whole service call lands in one transaction.

  Directory   — user lookups (by id, username, email, all users)
  GroupStore  — the Group aggregate plus its secondary lookups by admin and
                by member (the inverse "groups where admin/member" views).
                save() touches the group, so every mutation bumps its version.
  TopicStore  — topics keyed by normalized name
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.models.group import Group
from backend.app.models.membership import Membership
from backend.app.models.topic import Topic
from backend.app.models.user import User


class Directory:
    """User lookups."""

    def __init__(self, session: Session):
        self.session = session

    def find_user_by_id(self, user_id: int) -> User | None:
        return self.session.get(User, user_id)

    def find_user_by_username(self, username: str) -> User | None:
        return self.session.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()

    def find_user_by_email(self, email: str) -> User | None:
        return self.session.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()

    def find_all_users(self) -> list[User]:
        stmt = select(User).order_by(User.created_at.asc(), User.id.asc())
        return list(self.session.execute(stmt).scalars().all())


class GroupStore:
    """Persistence for the Group aggregate."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, group_id: int) -> Group | None:
        return self.session.get(Group, group_id)

    def find_by_admin(self, user_id: int) -> list[Group]:
        """Groups administered by `user_id`, oldest first."""
        stmt = (
            select(Group)
            .where(Group.admin_user_id == user_id)
            .order_by(Group.created_at.asc(), Group.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def find_by_member(self, user_id: int) -> list[Group]:
        """Groups `user_id` belongs to (admin included), oldest first."""
        stmt = (
            select(Group)
            .join(Membership, Group.id == Membership.group_id)
            .where(Membership.user_id == user_id)
            .order_by(Group.created_at.asc(), Group.id.asc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def find_all_ordered_by_creation(self) -> list[Group]:
        stmt = select(Group).order_by(Group.created_at.asc(), Group.id.asc())
        return list(self.session.execute(stmt).scalars().all())

    def touch(self, group: Group) -> None:
        """
        Stamps updated_at so the group row is part of the next flush. The
        mapper then checks and bumps Group.version, which is what makes a
        concurrent writer on the same group fail with StaleDataError.
        """
        group.updated_at = datetime.now(timezone.utc)

    def save(self, group: Group) -> Group:
        """Touches and flushes the aggregate. Every group mutation ends here."""
        self.touch(group)
        self.session.add(group)
        self.session.flush()
        return group

    def delete(self, group: Group) -> None:
        self.session.delete(group)
        self.session.flush()


class TopicStore:
    """Persistence for topics. Names passed in must already be normalized."""

    def __init__(self, session: Session):
        self.session = session

    def find_by_id(self, topic_id: int) -> Topic | None:
        return self.session.get(Topic, topic_id)

    def find_by_normalized_name(self, name: str) -> Topic | None:
        return self.session.execute(
            select(Topic).where(Topic.name == name)
        ).scalar_one_or_none()

    def find_all_ordered_by_creation(self) -> list[Topic]:
        stmt = select(Topic).order_by(Topic.created_at.asc(), Topic.id.asc())
        return list(self.session.execute(stmt).scalars().all())

    def save(self, topic: Topic) -> Topic:
        self.session.add(topic)
        self.session.flush()
        return topic

    def delete(self, topic: Topic) -> None:
        self.session.delete(topic)
        self.session.flush()
