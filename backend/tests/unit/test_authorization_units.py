"""
Unit tests for the explicit authorization checks.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import ROLE_SUPER_ADMIN
from backend.app.services.authorization import (
    Caller,
    Capability,
    require_authenticated,
    require_capability,
    require_group_admin,
    resolve_caller_user,
)


@pytest.mark.parametrize("caller", [None, Caller.anonymous()])
def test_require_authenticated_rejects_anonymous(caller):
    with pytest.raises(AppError) as exc_info:
        require_authenticated(caller)

    assert exc_info.value.code == ErrorCode.ANONYMOUS_CALLER
    assert exc_info.value.http_status == 401


def test_require_authenticated_returns_user_id():
    assert require_authenticated(Caller(user_id=5)) == 5


def test_regular_user_can_create_topics():
    assert require_capability(Caller(user_id=5), Capability.TOPIC_CREATE) == 5


def test_regular_user_cannot_delete_topics():
    with pytest.raises(AppError) as exc_info:
        require_capability(Caller(user_id=5), Capability.TOPIC_DELETE)

    assert exc_info.value.code == ErrorCode.FORBIDDEN


def test_super_admin_has_every_capability():
    caller = Caller(user_id=1, role=ROLE_SUPER_ADMIN)
    for capability in (Capability.TOPIC_UPDATE, Capability.TOPIC_DELETE, Capability.USER_DELETE):
        assert require_capability(caller, capability) == 1


def test_unknown_role_has_no_capabilities():
    with pytest.raises(AppError) as exc_info:
        require_capability(Caller(user_id=5, role="ROLE_GUEST"), Capability.TOPIC_READ)

    assert exc_info.value.code == ErrorCode.FORBIDDEN


def test_require_group_admin():
    group = SimpleNamespace(admin_user_id=7)
    require_group_admin(group, 7, "delete the group")

    with pytest.raises(AppError) as exc_info:
        require_group_admin(group, 8, "delete the group")

    assert exc_info.value.code == ErrorCode.NOT_GROUP_ADMIN
    assert exc_info.value.message == "Only the admin of the group can delete the group."


def test_resolve_caller_user_raises_user_not_found():
    session = MagicMock()
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        resolve_caller_user(Caller(user_id=99), session)

    assert exc_info.value.code == ErrorCode.USER_NOT_FOUND
    assert exc_info.value.http_status == 404
