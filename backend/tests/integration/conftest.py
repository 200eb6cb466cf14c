"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against the TestingConfig database: in-memory SQLite by default,
    or whatever TEST_DATABASE_URL points at (e.g. a studybuddy_test Postgres).
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)      → dict with user + access_token
  - login(client, ...)         → dict with user + access_token
  - auth_headers(token)        → {"Authorization": "Bearer <token>"}
  - make_group(client, ...)    → group details dict
  - join(client, ...)          → HTTP response
  - make_super_admin(client)   → access token carrying ROLE_SUPER_ADMIN

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from backend.app import create_app
from backend.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.

    Steps:
      1. Create app with TestingConfig.
      2. Run db.create_all() to create all tables.
      3. Yield the app for the test session.
      4. Drop all tables at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows between tests in FK-safe order.

    Delete order respects FK RESTRICT constraints:
      group_topics, group_meeting_dates, memberships before groups;
      groups and memberships before users; group_topics before topics.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM group_topics"))
            conn.execute(text("DELETE FROM group_meeting_dates"))
            conn.execute(text("DELETE FROM memberships"))
            conn.execute(text("DELETE FROM groups"))
            conn.execute(text("DELETE FROM topics"))
            conn.execute(text("DELETE FROM users"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

FUTURE_1 = "2099-01-10T18:00:00+00:00"
FUTURE_2 = "2099-02-10T18:00:00+00:00"
FUTURE_3 = "2099-03-10T18:00:00+00:00"
PAST = "2001-01-01T10:00:00+00:00"


def register(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
    **extra,
) -> dict:
    """
    Registers a new user and returns the full response data dict.
    Returns: {"user": {...}, "access_token": "..."}
    """
    if email is None:
        email = f"{username}@test.com"
    resp = client.post(
        "/api/v1/auth/register",
        json={"username": username, "email": email, "password": password, **extra},
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, username: str, password: str = "Password1") -> dict:
    """
    Logs in a user and returns the response data dict.
    Returns: {"user": {...}, "access_token": "..."}
    """
    resp = client.post(
        "/api/v1/auth/login",
        json={"username": username, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_group(client, token: str, name: str = "Test Group", **fields) -> dict:
    """
    Creates a group and returns the group details dict.
    The caller (token owner) becomes the group admin and first member.
    """
    resp = client.post(
        "/api/v1/groups/",
        json={"name": name, **fields},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"make_group failed: {resp.get_json()}"
    return resp.get_json()["data"]


def join(client, token: str, group_id: int):
    """Joins a group as the token owner. Returns the HTTP response."""
    return client.post(
        f"/api/v1/groups/{group_id}/join",
        headers=auth_headers(token),
    )


def make_super_admin(client, username: str = "superadmin") -> str:
    """
    Registers a username listed in TestingConfig.SUPER_ADMIN_USERNAMES, so the
    account gets ROLE_SUPER_ADMIN. Returns its access token.
    """
    return register(client, username)["access_token"]
