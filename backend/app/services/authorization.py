"""
services/authorization.py — Caller identity and explicit authorization checks.

Every public service function receives a Caller and calls one of the checks
below before touching any data:

  require_authenticated(caller)            → ANONYMOUS_CALLER (401)
  require_capability(caller, capability)   → ANONYMOUS_CALLER / FORBIDDEN (403)
  require_group_admin(group, user_id, ...) → NOT_GROUP_ADMIN (403)
  resolve_caller_user(caller, session)     → ANONYMOUS_CALLER / USER_NOT_FOUND (404)

The Caller is built by middleware/auth_middleware.py from the request's
Bearer token. Services never read flask.g or request headers.

Layer rules:
  - No Flask imports.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import ROLE_SUPER_ADMIN, ROLE_USER, User
from backend.app.stores import Directory


class Capability:
    USER_READ    = "user:read"
    USER_CREATE  = "user:create"
    USER_UPDATE  = "user:update"
    USER_DELETE  = "user:delete"
    TOPIC_READ   = "topic:read"
    TOPIC_CREATE = "topic:create"
    TOPIC_UPDATE = "topic:update"
    TOPIC_DELETE = "topic:delete"


ROLE_CAPABILITIES: dict[str, frozenset[str]] = {
    ROLE_USER: frozenset({
        Capability.USER_READ,
        Capability.TOPIC_READ,
        Capability.TOPIC_CREATE,
    }),
    ROLE_SUPER_ADMIN: frozenset({
        Capability.USER_READ,
        Capability.USER_CREATE,
        Capability.USER_UPDATE,
        Capability.USER_DELETE,
        Capability.TOPIC_READ,
        Capability.TOPIC_CREATE,
        Capability.TOPIC_UPDATE,
        Capability.TOPIC_DELETE,
    }),
}


@dataclass(frozen=True)
class Caller:
    """The principal an operation runs on behalf of."""

    user_id: int | None
    role: str | None = ROLE_USER
    is_anonymous: bool = False

    @classmethod
    def anonymous(cls) -> "Caller":
        return cls(user_id=None, role=None, is_anonymous=True)


def require_authenticated(caller: Caller | None) -> int:
    """Returns the caller's user id or raises ANONYMOUS_CALLER."""
    if caller is None or caller.is_anonymous or caller.user_id is None:
        raise AppError(
            ErrorCode.ANONYMOUS_CALLER,
            "You must be logged in to perform this action.",
        )
    return caller.user_id


def require_capability(caller: Caller | None, capability: str) -> int:
    """
    Raises ANONYMOUS_CALLER for anonymous callers, FORBIDDEN when the
    caller's role does not grant `capability`. Returns the caller's user id.
    """
    user_id = require_authenticated(caller)
    if capability not in ROLE_CAPABILITIES.get(caller.role, frozenset()):
        raise AppError(
            ErrorCode.FORBIDDEN,
            f"You do not have the '{capability}' permission.",
        )
    return user_id


def require_group_admin(group, user_id: int, action: str) -> None:
    """Raises NOT_GROUP_ADMIN unless `user_id` administers `group`."""
    if group.admin_user_id != user_id:
        raise AppError(
            ErrorCode.NOT_GROUP_ADMIN,
            f"Only the admin of the group can {action}.",
        )


def resolve_caller_user(caller: Caller | None, session: Session) -> User:
    """
    Rejects anonymous callers, then loads the caller's User.

    A token can outlive its user; that case is USER_NOT_FOUND rather than
    a 500.
    """
    user_id = require_authenticated(caller)
    user = Directory(session).find_user_by_id(user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
        )
    return user
