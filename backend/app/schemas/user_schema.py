"""
schemas/user_schema.py — User management payloads and the query-string
schema for the per-user meeting views.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from backend.app.models.user import ROLE_SUPER_ADMIN, ROLE_USER
from backend.app.schemas.auth_schema import ProfileSchema, RegisterSchema
from backend.app.services.user_service import ROLE_ADMIN, ROLE_MEMBER


class UserCreateSchema(RegisterSchema):
    """POST /users — registration fields plus the account role (defaults to ROLE_USER)."""

    role = fields.Str(
        load_default=ROLE_USER,
        validate=validate.OneOf(
            [ROLE_USER, ROLE_SUPER_ADMIN],
            error=f"role must be '{ROLE_USER}' or '{ROLE_SUPER_ADMIN}'.",
        ),
    )


class UserUpdateSchema(ProfileSchema):
    """PUT /users/:id — replaces username, email, first and last name."""


class MembershipRoleQuerySchema(Schema):
    """?role=member|admin (defaults to member)"""

    role = fields.Str(
        load_default=ROLE_MEMBER,
        validate=validate.OneOf(
            [ROLE_MEMBER, ROLE_ADMIN],
            error="role must be 'member' or 'admin'.",
        ),
    )
