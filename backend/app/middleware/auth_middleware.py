"""
middleware/auth_middleware.py — Resolves the request's Caller from its JWT.

The @with_caller decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. No header at all → flask.g.caller = Caller.anonymous()
  3. Otherwise decodes and verifies the JWT signature and expiry
  4. Attaches Caller(user_id, role) to flask.g.caller
  5. Raises the appropriate 401 error if a PRESENT token is unusable

Responsibility boundary:
  - This middleware only establishes WHO is calling. It never rejects an
    anonymous request; every service decides that for itself with
    require_authenticated() / require_capability().
  - Services receive the Caller as a plain argument, with no knowledge of
    JWT or HTTP headers.

Error codes:
  TOKEN_INVALID  (401) — malformed header, invalid signature, or bad payload
  TOKEN_EXPIRED  (401) — valid token but exp claim is in the past
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from backend.app.errors import AppError, ErrorCode
from backend.app.models.user import ROLE_USER
from backend.app.services.authorization import Caller


def with_caller(f: Callable) -> Callable:
    """
    Route decorator that resolves the caller and stores it on flask.g.caller.

    Usage:
        @groups_bp.route("/<int:group_id>/join", methods=["POST"])
        @with_caller
        def join_group(group_id):
            group_service.join_group(group_id, g.caller, db.session)
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        g.caller = resolve_request_caller()
        return f(*args, **kwargs)

    return decorated


def resolve_request_caller() -> Caller:
    """
    Builds the Caller for the current request.

    Separated from the decorator wrapper so it can be called directly in
    tests inside a test_request_context().
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        return Caller.anonymous()

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
        )

    try:
        payload = jwt.decode(
            parts[1],
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.ExpiredSignatureError:
        raise AppError(
            ErrorCode.TOKEN_EXPIRED,
            "The access token has expired. Log in again to obtain a new one.",
        )
    except jwt.InvalidTokenError:
        # Covers: bad signature, malformed token, invalid claims, etc.
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has been tampered with.",
        )

    sub = payload.get("sub")
    if sub is None:
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is missing the required 'sub' claim.",
        )

    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The 'sub' claim in the access token is not a valid user ID.",
        )

    return Caller(user_id=user_id, role=payload.get("role", ROLE_USER))
