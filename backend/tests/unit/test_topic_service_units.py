"""
Unit tests for topic name handling and topic resolution.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from backend.app.errors import AppError, ErrorCode
from backend.app.models import meeting_date  # noqa: F401  mapper target of Group.meeting_dates
from backend.app.services import topic_service
from backend.app.services.authorization import Caller


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("AI", "ai"),
        ("  Machine Learning ", "machine learning"),
        ("databases", "databases"),
    ],
)
def test_normalize_topic_name(raw, expected):
    assert topic_service.normalize_topic_name(raw) == expected


def test_capitalize_only_touches_first_character():
    assert topic_service.capitalize("machine LEARNING") == "Machine LEARNING"
    assert topic_service.capitalize("") == ""


def test_default_description():
    assert topic_service.default_description("graph theory") == (
        "This is the default description for the topic Graph theory."
    )


@patch("backend.app.services.topic_service.resolve_or_create")
def test_resolve_topics_keeps_first_occurrence(mock_resolve_or_create):
    mock_resolve_or_create.side_effect = lambda name, description, session, group=None: (
        SimpleNamespace(name=name.strip().lower())
    )
    session = MagicMock()

    topics = topic_service.resolve_topics(
        [
            {"name": "AI", "description": "first"},
            {"name": "ai", "description": "second"},
            {"name": "ML"},
        ],
        session,
    )

    assert [t.name for t in topics] == ["ai", "ml"]
    first_call = mock_resolve_or_create.call_args_list[0]
    assert first_call.args[:2] == ("AI", "first")


def test_resolve_topics_accepts_none():
    assert topic_service.resolve_topics(None, MagicMock()) == []


def test_resolve_or_create_reuses_existing_topic():
    existing = SimpleNamespace(id=3, name="ai", description="Kept.", groups=[])
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = existing

    topic = topic_service.resolve_or_create("  AI ", "Ignored.", session)

    assert topic is existing
    assert topic.description == "Kept."
    session.add.assert_not_called()


def test_resolve_or_create_creates_with_default_description():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None

    topic = topic_service.resolve_or_create("Statistics", None, session)

    assert topic.name == "statistics"
    assert topic.description == "This is the default description for the topic Statistics."
    session.add.assert_called_once_with(topic)
    session.flush.assert_called_once()


def test_create_topic_rejects_existing_name():
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = SimpleNamespace(id=1)

    with pytest.raises(AppError) as exc_info:
        topic_service.create_topic("AI", None, Caller(user_id=1), session)

    assert exc_info.value.code == ErrorCode.TOPIC_ALREADY_EXISTS
    assert exc_info.value.field == "name"


def test_delete_topic_requires_capability():
    with pytest.raises(AppError) as exc_info:
        topic_service.delete_topic(1, Caller(user_id=1), MagicMock())

    assert exc_info.value.code == ErrorCode.FORBIDDEN
    assert exc_info.value.http_status == 403
