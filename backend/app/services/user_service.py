"""
services/user_service.py — User management and per-user views over groups
and meetings.

The "groups where admin" and "groups where member" collections of a user are
not stored on the user row; they are read through GroupStore.find_by_admin /
find_by_member, which query the same columns the group mutations write.

Authorization rules:
  - List / get:  user:read capability
  - Create:      user:create capability (may choose the new account's role)
  - Update:      user:update capability, or the user updating themselves
  - Delete:      user:delete capability
  - Per-user group / meeting views: any logged-in caller (public for
    /users/:id/groups)

Invariants enforced here:
  - USERNAME_TAKEN / EMAIL_TAKEN (409): a rename onto another account's
    username or email is rejected.
  - USER_ADMINISTERS_GROUP (409): a user who administers a group cannot be
    deleted; adminship must be handed over (promote) or the group deleted
    first. Every other membership of the user is removed with the account.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.group import Group
from backend.app.models.user import User
from backend.app.services import auth_service, meeting_service
from backend.app.services.authorization import (
    Caller,
    Capability,
    require_capability,
    resolve_caller_user,
)
from backend.app.services.group_service import build_group_summary
from backend.app.stores import Directory, GroupStore

logger = logging.getLogger(__name__)

ROLE_MEMBER = "member"
ROLE_ADMIN = "admin"


def _groups_for(user_id: int, role: str, session: Session) -> list[Group]:
    store = GroupStore(session)
    if role == ROLE_ADMIN:
        return store.find_by_admin(user_id)
    return store.find_by_member(user_id)


def _get_user_or_404(user_id: int, session: Session) -> User:
    """Returns the User or raises USER_NOT_FOUND (404)."""
    user = Directory(session).find_user_by_id(user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
        )
    return user


# ── Public service functions: user management ──────────────────────────────

def list_users(caller: Caller, session: Session) -> list[dict]:
    """All users, oldest first."""
    require_capability(caller, Capability.USER_READ)
    return [auth_service.build_user_dict(u) for u in Directory(session).find_all_users()]


def get_user(user_id: int, caller: Caller, session: Session) -> dict:
    """
    Raises:
      AppError(FORBIDDEN)      — caller lacks user:read
      AppError(USER_NOT_FOUND) — no user with this id
    """
    require_capability(caller, Capability.USER_READ)
    return auth_service.build_user_dict(_get_user_or_404(user_id, session))


def create_user(data: dict, caller: Caller, session: Session) -> dict:
    """
    Creates an account on behalf of a user manager. Unlike registration,
    the role comes from the payload and no token is issued.

    Raises:
      AppError(FORBIDDEN)      — caller lacks user:create
      AppError(USERNAME_TAKEN) — username already registered
      AppError(EMAIL_TAKEN)    — email already registered
    """
    require_capability(caller, Capability.USER_CREATE)
    user = auth_service.create_account(
        data["username"],
        data["email"],
        data["password"],
        data["role"],
        session,
        first_name=data.get("first_name"),
        last_name=data.get("last_name"),
    )
    logger.info("User %s created by %s with role %s", user.id, caller.user_id, user.role)
    return auth_service.build_user_dict(user)


def update_user(user_id: int, data: dict, caller: Caller, session: Session) -> dict:
    """
    Replaces username, email, first and last name. Password and role are
    left unchanged.

    Raises:
      AppError(ANONYMOUS_CALLER) — caller not logged in
      AppError(FORBIDDEN)        — caller is someone else and lacks user:update
      AppError(USER_NOT_FOUND)   — no user with this id
      AppError(USERNAME_TAKEN)   — another account uses the new username
      AppError(EMAIL_TAKEN)      — another account uses the new email
    """
    if resolve_caller_user(caller, session).id != user_id:
        require_capability(caller, Capability.USER_UPDATE)

    user = _get_user_or_404(user_id, session)
    auth_service.ensure_username_and_email_free(
        data["username"],
        data["email"],
        session,
        current_user_id=user.id,
    )

    user.username = data["username"]
    user.email = data["email"]
    user.first_name = data.get("first_name")
    user.last_name = data.get("last_name")
    session.flush()

    return auth_service.build_user_dict(user)


def delete_user(user_id: int, caller: Caller, session: Session) -> None:
    """
    Deletes an account after removing it from every group it belongs to.

    Raises:
      AppError(FORBIDDEN)              — caller lacks user:delete
      AppError(USER_NOT_FOUND)         — no user with this id
      AppError(USER_ADMINISTERS_GROUP) — the user still administers a group
    """
    require_capability(caller, Capability.USER_DELETE)
    user = _get_user_or_404(user_id, session)

    store = GroupStore(session)
    administered = store.find_by_admin(user.id)
    if administered:
        raise AppError(
            ErrorCode.USER_ADMINISTERS_GROUP,
            f"User {user.id} administers group {administered[0].id}. "
            "Promote another member or delete the group first.",
        )

    for group in store.find_by_member(user.id):
        for membership in list(group.memberships):
            if membership.user_id == user.id:
                group.memberships.remove(membership)
        store.save(group)

    # The removed rows are still held by the user's loaded collection.
    session.expire(user, ["memberships"])
    session.delete(user)
    session.flush()
    logger.info("User %s deleted by %s", user_id, caller.user_id)


# ── Public service functions: per-user views ───────────────────────────────

def list_groups_where_admin(caller: Caller, session: Session) -> list[dict]:
    """Groups the caller administers, oldest first."""
    user = resolve_caller_user(caller, session)
    now = meeting_service.utcnow()
    return [build_group_summary(g, now) for g in _groups_for(user.id, ROLE_ADMIN, session)]


def list_groups_where_member(user_id: int, session: Session) -> list[dict]:
    """
    Groups a given user belongs to, oldest first.

    Raises:
      AppError(USER_NOT_FOUND) — no user with this id
    """
    _get_user_or_404(user_id, session)
    now = meeting_service.utcnow()
    return [build_group_summary(g, now) for g in _groups_for(user_id, ROLE_MEMBER, session)]


def list_meetings(caller: Caller, role: str, session: Session) -> list[dict]:
    """
    Every stored meeting date of the caller's groups (as member or as admin),
    one entry per (group, date), with the group's location.
    """
    user = resolve_caller_user(caller, session)
    meetings = []
    for group in _groups_for(user.id, role, session):
        for meeting in group.meeting_dates:
            meetings.append({
                "group_id": group.id,
                "group_name": group.name,
                "meeting_at": meeting_service.as_utc(meeting.meeting_at).isoformat(),
                "location": group.location,
            })
    return meetings


def list_meeting_locations(caller: Caller, role: str, session: Session) -> list[dict]:
    """Locations of the caller's groups (as member or as admin). Groups without a location are skipped."""
    user = resolve_caller_user(caller, session)
    return [
        {"group_id": group.id, **group.location}
        for group in _groups_for(user.id, role, session)
        if group.location is not None
    ]
