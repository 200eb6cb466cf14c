"""
schemas/auth_schema.py — Marshmallow schemas for authentication endpoints.

Validation responsibility:
  - This file: field types, lengths, formats, regex patterns.
  - services/auth_service.py: USERNAME_TAKEN / EMAIL_TAKEN checks
    (require a DB lookup — not a schema concern).

IMPORTANT: All schemas inherit from marshmallow.Schema directly so unit
           tests can load them without a Flask app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate


def _validate_password_strength(value: str) -> None:
    """Min 8 chars, at least one letter and one digit."""
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if not any(c.isalpha() for c in value):
        raise ValidationError("Password must contain at least one letter.")
    if not any(c.isdigit() for c in value):
        raise ValidationError("Password must contain at least one digit.")


class ProfileSchema(Schema):
    """
    Account fields shared by registration and PUT /users/:id.

    Field rules:
      username   : 3–50 chars, alphanumeric + underscore only
      email      : valid email format
      first_name : optional, max 100 chars
      last_name  : optional, max 100 chars
    """

    username = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=3,
                max=50,
                error="Username must be between 3 and 50 characters.",
            ),
            validate.Regexp(
                r"^[a-zA-Z0-9_]+$",
                error="Username may only contain letters, numbers, and underscores.",
            ),
        ],
    )

    email = fields.Email(
        required=True,
        validate=validate.Length(max=255),
    )

    first_name = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))
    last_name = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=100))


class RegisterSchema(ProfileSchema):
    """
    POST /auth/register

    Adds password: min 8 chars, at least one letter and one digit.
    """

    password = fields.Str(
        required=True,
        load_only=True,
        validate=_validate_password_strength,
    )


class LoginSchema(Schema):
    """
    POST /auth/login

    Accepts username (not email) + password. Credential correctness
    is checked in auth_service.py (INVALID_CREDENTIALS, 401).
    """

    username = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)
