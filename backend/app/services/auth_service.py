"""
services/auth_service.py — Account registration and login.

Responsibilities:
  - User registration (USERNAME_TAKEN / EMAIL_TAKEN checks)
  - Credential validation and JWT access token creation (HS256)
  - Password hashing (bcrypt) and verification

This is the thin identity layer that produces the Caller the group core
consumes. Token verification lives in middleware/auth_middleware.py.

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes
  - current_app.config is read ONLY for JWT_SECRET_KEY, JWT expiry,
    BCRYPT_LOG_ROUNDS and SUPER_ADMIN_USERNAMES.

Token design:
  - Access token: JWT, HS256, sub = user_id (str), role = user's role
  - No refresh tokens; clients log in again when the token expires.

Password storage:
  - Hashed with bcrypt (cost factor from config BCRYPT_LOG_ROUNDS, default 12)
  - Raw password is never stored, never logged
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import ROLE_SUPER_ADMIN, ROLE_USER, User
from backend.app.services.authorization import Caller, resolve_caller_user
from backend.app.stores import Directory


# ── Private helpers ────────────────────────────────────────────────────────

def _create_access_token(user: User) -> str:
    """
    Creates a signed JWT access token.
    Payload: sub (user_id as str), role, iat, exp, jti.
    """
    now = datetime.now(timezone.utc)
    expiry = now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    payload = {
        "sub": str(user.id),
        "role": user.role,
        "iat": now,
        "exp": expiry,
        # Guarantees each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. No business logic."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "role": user.role,
        "created_at": user.created_at.isoformat(),
    }


# ── Account helpers (shared with user_service) ─────────────────────────────

def ensure_username_and_email_free(
        username: str,
        email: str,
        session: Session,
        current_user_id: int | None = None,
) -> None:
    """
    Raises USERNAME_TAKEN / EMAIL_TAKEN when another account already uses
    `username` or `email`. The account `current_user_id` may keep its own.
    """
    directory = Directory(session)

    owner = directory.find_user_by_username(username)
    if owner is not None and owner.id != current_user_id:
        raise AppError(
            ErrorCode.USERNAME_TAKEN,
            f"The username '{username}' is already taken.",
            field="username",
        )

    owner = directory.find_user_by_email(email)
    if owner is not None and owner.id != current_user_id:
        raise AppError(
            ErrorCode.EMAIL_TAKEN,
            f"The email address '{email}' is already registered.",
            field="email",
        )


def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def create_account(
        username: str,
        email: str,
        password: str,
        role: str,
        session: Session,
        first_name: str | None = None,
        last_name: str | None = None,
) -> User:
    """Checks uniqueness, hashes the password and flushes a new User."""
    ensure_username_and_email_free(username, email, session)

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        role=role,
    )
    session.add(user)
    session.flush()  # populate user.id
    return user


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        username: str,
        email: str,
        password: str,
        session: Session,
        first_name: str | None = None,
        last_name: str | None = None,
) -> dict:
    """
    Creates a new user account and issues an access token.

    The account gets ROLE_SUPER_ADMIN when its username is listed in the
    SUPER_ADMIN_USERNAMES config, ROLE_USER otherwise.

    Raises:
      AppError(USERNAME_TAKEN) — username already registered
      AppError(EMAIL_TAKEN)    — email already registered

    Returns: {"user": {...}, "access_token": "..."}
    """
    if username in current_app.config.get("SUPER_ADMIN_USERNAMES", ()):
        role = ROLE_SUPER_ADMIN
    else:
        role = ROLE_USER

    user = create_account(
        username,
        email,
        password,
        role,
        session,
        first_name=first_name,
        last_name=last_name,
    )

    return {
        "user": build_user_dict(user),
        "access_token": _create_access_token(user),
    }


def login_user(
        username: str,
        password: str,
        session: Session,
) -> dict:
    """
    Validates credentials and issues a new access token.

    Raises:
      AppError(INVALID_CREDENTIALS) — username not found or password wrong.
      Uses the same error for both to avoid username enumeration.

    Returns: {"user": {...}, "access_token": "..."}
    """
    user = Directory(session).find_user_by_username(username)

    if user is None or not bcrypt.checkpw(
            password.encode("utf-8"),
            user.password_hash.encode("utf-8"),
    ):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The username or password is incorrect.",
        )

    return {
        "user": build_user_dict(user),
        "access_token": _create_access_token(user),
    }


def get_current_user(caller: Caller, session: Session) -> dict:
    """
    Returns the profile of the calling user.

    Raises:
      AppError(ANONYMOUS_CALLER) — no token on the request
      AppError(USER_NOT_FOUND)   — user deleted between token issue and request
    """
    return build_user_dict(resolve_caller_user(caller, session))
