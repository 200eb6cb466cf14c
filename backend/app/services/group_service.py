"""
services/group_service.py — Group lifecycle and membership business logic.

Invariants enforced here:
  - Every group has exactly one admin, and the admin is a member.
  - A group is never left without members: when its last member (the admin)
    leaves, the group is deleted.
  - Deleting a group detaches every member, topic and meeting date before the
    group row itself is removed.

Authorization rules:
  - Every operation rejects anonymous callers first (ANONYMOUS_CALLER, 401).
  - Update / delete / kick / promote: caller must be the group admin
    (NOT_GROUP_ADMIN, 403).
  - Join / leave: any logged-in user acting on themselves.

Admin succession on leave: the member who joined right after the admin takes
over; if the admin joined last, the earliest member does. This is an
arbitrary but deterministic tie-break.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.group import Group
from backend.app.models.membership import Membership
from backend.app.models.user import User
from backend.app.services import meeting_service, topic_service
from backend.app.services.authorization import (
    Caller,
    require_authenticated,
    require_group_admin,
    resolve_caller_user,
)
from backend.app.stores import Directory, GroupStore

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_group_or_404(group_id: int, store: GroupStore) -> Group:
    """Returns the Group or raises GROUP_NOT_FOUND (404)."""
    group = store.find_by_id(group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
        )
    return group


def _get_target_member(group: Group, target_user_id: int, session: Session) -> User:
    """
    Returns the target User when it exists and belongs to the group.

    Raises:
      AppError(TARGET_NOT_FOUND)     — no such user
      AppError(TARGET_NOT_A_MEMBER)  — user exists but is not in the group
    """
    target = Directory(session).find_user_by_id(target_user_id)
    if target is None:
        raise AppError(
            ErrorCode.TARGET_NOT_FOUND,
            f"User {target_user_id} does not exist.",
        )
    if target.id not in group.member_ids:
        raise AppError(
            ErrorCode.TARGET_NOT_A_MEMBER,
            f"User {target_user_id} is not a member of group {group.id}.",
        )
    return target


def _remove_membership(group: Group, user_id: int) -> None:
    for membership in group.memberships:
        if membership.user_id == user_id:
            # delete-orphan on Group.memberships deletes the row on flush.
            group.memberships.remove(membership)
            return


def _apply_location(group: Group, location: dict | None) -> None:
    if location is None:
        group.location_name = None
        group.latitude = None
        group.longitude = None
        return
    group.location_name = location["name"]
    group.latitude = location.get("latitude")
    group.longitude = location.get("longitude")


def _delete_cascade(group: Group, store: GroupStore) -> None:
    """
    Detaches members, topics and meeting dates, flushes, and only then
    deletes the group row. memberships and group_topics reference the group
    with ON DELETE RESTRICT.
    """
    for membership in list(group.memberships):
        group.memberships.remove(membership)
    group.topics.clear()
    group.meeting_dates.clear()
    store.session.flush()

    store.delete(group)


def pick_successor(member_ids: list[int], admin_id: int) -> int | None:
    """
    Returns the member who takes over when `admin_id` leaves: the next member
    after the admin in insertion order, wrapping around to the start. None
    when the admin is the only member.
    """
    if admin_id not in member_ids:
        return member_ids[0] if member_ids else None
    idx = member_ids.index(admin_id)
    candidates = member_ids[idx + 1:] + member_ids[:idx]
    return candidates[0] if candidates else None


def build_user_dict(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "first_name": user.first_name,
        "last_name": user.last_name,
    }


def build_group_summary(group: Group, now: datetime | None = None) -> dict:
    """Serialises a Group for list views, with its next upcoming meeting."""
    next_meeting = meeting_service.next_upcoming_meeting(group, now)
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "location": group.location,
        "admin_user_id": group.admin_user_id,
        "created_at": group.created_at.isoformat(),
        "next_meeting_at": next_meeting.isoformat() if next_meeting else None,
        "topics": [topic_service.build_topic_dict(t) for t in group.topics],
    }


def build_group_details(group: Group) -> dict:
    """Serialises a Group with admin, members, meeting dates and topics."""
    members = [m.user for m in group.memberships]
    admin = next((u for u in members if u.id == group.admin_user_id), None)
    meeting_dates = sorted(
        (meeting_service.as_utc(m.meeting_at) for m in group.meeting_dates),
        reverse=True,
    )
    return {
        "id": group.id,
        "name": group.name,
        "description": group.description,
        "location": group.location,
        "created_at": group.created_at.isoformat(),
        "admin": build_user_dict(admin) if admin else None,
        "members": [build_user_dict(u) for u in members],
        "meeting_dates": [d.isoformat() for d in meeting_dates],
        "topics": [topic_service.build_topic_dict(t) for t in group.topics],
    }


# ── Public service functions: lifecycle ────────────────────────────────────

def create_group(data: dict, caller: Caller, session: Session) -> dict:
    """
    Creates a new group. The caller becomes its admin and only member.

    Args:
        data: validated GroupSchema payload — name, description, location,
              topics (list of {"name", "description"?}).

    Raises:
      AppError(ANONYMOUS_CALLER) — caller not logged in
      AppError(USER_NOT_FOUND)   — caller's account no longer exists

    Returns: group details dict (includes the new id).
    """
    admin = resolve_caller_user(caller, session)
    store = GroupStore(session)

    group = Group(
        name=data["name"],
        description=data.get("description") or "",
        admin_user_id=admin.id,
    )
    _apply_location(group, data.get("location"))
    group.memberships.append(Membership(user_id=admin.id))
    store.save(group)  # populate group.id before attaching topics

    group.topics = topic_service.resolve_topics(data.get("topics"), session)
    store.save(group)

    return build_group_details(group)


def update_group(group_id: int, data: dict, caller: Caller, session: Session) -> dict:
    """
    Replaces name, description and location, and re-resolves the topic set
    with the same duplicate rule as create_group.

    Raises:
      AppError(ANONYMOUS_CALLER) — caller not logged in
      AppError(GROUP_NOT_FOUND)  — group does not exist
      AppError(NOT_GROUP_ADMIN)  — caller is not the admin
    """
    user_id = require_authenticated(caller)
    store = GroupStore(session)
    group = _get_group_or_404(group_id, store)
    require_group_admin(group, user_id, "update the group")

    group.name = data["name"]
    group.description = data.get("description") or ""
    _apply_location(group, data.get("location"))
    group.topics = topic_service.resolve_topics(data.get("topics"), session)
    store.save(group)

    return build_group_details(group)


def delete_group(group_id: int, caller: Caller, session: Session) -> None:
    """
    Deletes a group after detaching all members, topics and meeting dates.

    Raises:
      AppError(ANONYMOUS_CALLER) — caller not logged in
      AppError(GROUP_NOT_FOUND)  — group does not exist
      AppError(NOT_GROUP_ADMIN)  — caller is not the admin
    """
    user_id = require_authenticated(caller)
    store = GroupStore(session)
    group = _get_group_or_404(group_id, store)
    require_group_admin(group, user_id, "delete the group")

    _delete_cascade(group, store)


# ── Public service functions: membership ───────────────────────────────────

def join_group(group_id: int, caller: Caller, session: Session) -> dict:
    """
    Adds the caller to the group's members.

    Raises:
      AppError(ANONYMOUS_CALLER) — caller not logged in
      AppError(USER_NOT_FOUND)   — caller's account no longer exists
      AppError(GROUP_NOT_FOUND)  — group does not exist
      AppError(ALREADY_MEMBER)   — caller is already a member
    """
    user = resolve_caller_user(caller, session)
    store = GroupStore(session)
    group = _get_group_or_404(group_id, store)

    if user.id in group.member_ids:
        raise AppError(
            ErrorCode.ALREADY_MEMBER,
            f"User {user.id} is already a member of group {group_id}.",
        )

    membership = Membership(user_id=user.id)
    group.memberships.append(membership)
    store.save(group)

    return {
        "group_id": group.id,
        "user_id": user.id,
        "username": user.username,
        "joined_at": membership.joined_at.isoformat() if membership.joined_at else None,
    }


def leave_group(group_id: int, caller: Caller, session: Session) -> dict:
    """
    Removes the caller from the group.

      - A regular member simply leaves.
      - The admin hands adminship to the successor (see pick_successor),
        then leaves.
      - The admin who is the last member deletes the group.

    Raises:
      AppError(ANONYMOUS_CALLER) — caller not logged in
      AppError(GROUP_NOT_FOUND)  — group does not exist
      AppError(NOT_A_MEMBER)     — caller is not a member

    Returns: {"group_id", "deleted", "new_admin_user_id"}
    """
    user_id = require_authenticated(caller)
    store = GroupStore(session)
    group = _get_group_or_404(group_id, store)

    member_ids = group.member_ids
    if user_id not in member_ids:
        raise AppError(
            ErrorCode.NOT_A_MEMBER,
            f"You are not a member of group {group_id}.",
        )

    result = {"group_id": group_id, "deleted": False, "new_admin_user_id": None}

    if group.admin_user_id == user_id:
        successor = pick_successor(member_ids, user_id)
        if successor is None:
            _delete_cascade(group, store)
            logger.info("Group %s deleted: last member %s left", group_id, user_id)
            return {**result, "deleted": True}

        group.admin_user_id = successor
        result["new_admin_user_id"] = successor
        logger.info("Group %s admin handed from %s to %s", group_id, user_id, successor)

    _remove_membership(group, user_id)
    store.save(group)

    return result


def kick_member(
        group_id: int,
        target_user_id: int,
        caller: Caller,
        session: Session,
) -> dict:
    """
    Removes another member from the group. Admin only.

    Raises:
      AppError(ANONYMOUS_CALLER)     — caller not logged in
      AppError(GROUP_NOT_FOUND)      — group does not exist
      AppError(NOT_GROUP_ADMIN)      — caller is not the admin
      AppError(TARGET_NOT_FOUND)     — target user does not exist
      AppError(TARGET_NOT_A_MEMBER)  — target is not in the group
      AppError(CANNOT_KICK_ADMIN)    — target is the admin (including self)
    """
    user_id = require_authenticated(caller)
    store = GroupStore(session)
    group = _get_group_or_404(group_id, store)
    require_group_admin(group, user_id, "kick members from the group")

    target = _get_target_member(group, target_user_id, session)
    if target.id == group.admin_user_id:
        raise AppError(
            ErrorCode.CANNOT_KICK_ADMIN,
            "The admin cannot be kicked from the group.",
        )

    _remove_membership(group, target.id)
    store.save(group)

    return {"group_id": group.id, "user_id": target.id, "removed": True}


def promote_member(
        group_id: int,
        target_user_id: int,
        caller: Caller,
        session: Session,
) -> dict:
    """
    Makes another member the group admin. The former admin stays a member.

    Raises:
      AppError(ANONYMOUS_CALLER)     — caller not logged in
      AppError(GROUP_NOT_FOUND)      — group does not exist
      AppError(NOT_GROUP_ADMIN)      — caller is not the admin
      AppError(TARGET_NOT_FOUND)     — target user does not exist
      AppError(TARGET_NOT_A_MEMBER)  — target is not in the group
      AppError(ALREADY_ADMIN)        — target already is the admin
    """
    user_id = require_authenticated(caller)
    store = GroupStore(session)
    group = _get_group_or_404(group_id, store)
    require_group_admin(group, user_id, "promote members of the group")

    target = _get_target_member(group, target_user_id, session)
    if target.id == group.admin_user_id:
        raise AppError(
            ErrorCode.ALREADY_ADMIN,
            f"User {target.id} is already the admin of group {group_id}.",
        )

    previous_admin_id = group.admin_user_id
    group.admin_user_id = target.id
    store.save(group)

    return {
        "group_id": group.id,
        "admin_user_id": target.id,
        "previous_admin_user_id": previous_admin_id,
    }


# ── Public service functions: queries ──────────────────────────────────────

def list_groups(session: Session) -> list[dict]:
    """All groups ordered by creation date, each with its next meeting."""
    now = meeting_service.utcnow()
    return [
        build_group_summary(g, now)
        for g in GroupStore(session).find_all_ordered_by_creation()
    ]


def get_group(group_id: int, session: Session) -> dict:
    """Full group details. Raises GROUP_NOT_FOUND (404)."""
    group = _get_group_or_404(group_id, GroupStore(session))
    return build_group_details(group)


def list_members(group_id: int, session: Session) -> list[dict]:
    """Members of a group in insertion order. Raises GROUP_NOT_FOUND (404)."""
    group = _get_group_or_404(group_id, GroupStore(session))
    return [build_user_dict(m.user) for m in group.memberships]
