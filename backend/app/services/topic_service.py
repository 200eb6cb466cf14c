"""
services/topic_service.py — Topic resolution and topic management.

Invariants enforced here:
  - Topic names are stored normalized (stripped, lower-case); no two topics
    differ only by case.
  - Attaching a topic by name while creating/updating a group reuses the
    existing topic instead of creating a new one. Duplicate names inside
    one request are collapsed to the first occurrence — not an error.
  - The standalone management surface (create_topic) treats an existing
    name as TOPIC_ALREADY_EXISTS (409).
  - delete_topic detaches the topic from every group before deleting it.

Authorization rules:
  - Create: topic:create capability
  - Update: topic:update capability
  - Delete: topic:delete capability
  - List:   public

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.group import Group
from backend.app.models.topic import Topic
from backend.app.services.authorization import Caller, Capability, require_capability
from backend.app.stores import GroupStore, TopicStore

logger = logging.getLogger(__name__)


# ── Name helpers ───────────────────────────────────────────────────────────

def normalize_topic_name(name: str) -> str:
    return name.strip().lower()


def capitalize(name: str) -> str:
    """Upper-cases the first character only: "machine learning" → "Machine learning"."""
    return name[:1].upper() + name[1:]


def default_description(name: str) -> str:
    return f"This is the default description for the topic {capitalize(name.strip())}."


def build_topic_dict(topic: Topic) -> dict:
    return {
        "id": topic.id,
        "name": topic.name,
        "description": topic.description,
    }


def _get_topic_or_404(topic_id: int, store: TopicStore) -> Topic:
    """Returns the Topic or raises TOPIC_NOT_FOUND (404)."""
    topic = store.find_by_id(topic_id)
    if topic is None:
        raise AppError(
            ErrorCode.TOPIC_NOT_FOUND,
            f"Topic {topic_id} does not exist.",
        )
    return topic


# ── Resolution (used while creating / updating groups) ─────────────────────

def resolve_or_create(
        name: str,
        description: str | None,
        session: Session,
        group: Group | None = None,
) -> Topic:
    """
    Returns the topic whose normalized name matches `name`, creating it when
    absent. A new topic gets `description`, or the default description when
    none is supplied. An existing topic keeps its own description.

    When `group` is given, the topic is attached to it.
    """
    store = TopicStore(session)
    normalized = normalize_topic_name(name)

    topic = store.find_by_normalized_name(normalized)
    if topic is None:
        topic = Topic(
            name=normalized,
            description=description if description else default_description(name),
        )
        store.save(topic)

    if group is not None and group not in topic.groups:
        topic.groups.append(group)
        GroupStore(session).touch(group)

    return topic


def resolve_topics(
        topic_inputs: list[dict] | None,
        session: Session,
        group: Group | None = None,
) -> list[Topic]:
    """
    Resolves a list of {"name", "description"?} dicts to Topic rows.

    Names are compared case-insensitively; only the first occurrence of each
    name is resolved and later duplicates are skipped. Order of first
    occurrence is preserved.
    """
    topics: list[Topic] = []
    seen: set[str] = set()

    for topic_input in topic_inputs or []:
        normalized = normalize_topic_name(topic_input["name"])
        if normalized in seen:
            logger.debug("Skipping duplicate topic %r", normalized)
            continue
        seen.add(normalized)
        topics.append(
            resolve_or_create(
                topic_input["name"],
                topic_input.get("description"),
                session,
                group=group,
            )
        )

    return topics


# ── Topic management surface ───────────────────────────────────────────────

def create_topic(
        name: str,
        description: str | None,
        caller: Caller,
        session: Session,
) -> dict:
    """
    Creates a standalone topic.

    Raises:
      AppError(ANONYMOUS_CALLER)      — caller not logged in
      AppError(FORBIDDEN)             — caller lacks topic:create
      AppError(TOPIC_ALREADY_EXISTS)  — a topic with this name (any case) exists
    """
    require_capability(caller, Capability.TOPIC_CREATE)

    store = TopicStore(session)
    normalized = normalize_topic_name(name)
    if store.find_by_normalized_name(normalized) is not None:
        raise AppError(
            ErrorCode.TOPIC_ALREADY_EXISTS,
            f"Topic '{normalized}' already exists.",
            field="name",
        )

    topic = Topic(
        name=normalized,
        description=description if description else default_description(normalized),
    )
    store.save(topic)
    return build_topic_dict(topic)


def update_topic(
        topic_id: int,
        name: str,
        description: str | None,
        caller: Caller,
        session: Session,
) -> dict:
    """
    Renames a topic and/or replaces its description. An empty description
    regenerates the default one for the (new) name.

    Raises:
      AppError(TOPIC_NOT_FOUND)       — no topic with this id
      AppError(TOPIC_ALREADY_EXISTS)  — renaming onto another topic's name
    """
    require_capability(caller, Capability.TOPIC_UPDATE)

    store = TopicStore(session)
    topic = _get_topic_or_404(topic_id, store)

    normalized = normalize_topic_name(name)
    clash = store.find_by_normalized_name(normalized)
    if clash is not None and clash.id != topic.id:
        raise AppError(
            ErrorCode.TOPIC_ALREADY_EXISTS,
            f"Topic '{normalized}' already exists.",
            field="name",
        )

    topic.name = normalized
    topic.description = description if description else default_description(normalized)
    store.save(topic)
    return build_topic_dict(topic)


def delete_topic(topic_id: int, caller: Caller, session: Session) -> None:
    """
    Detaches the topic from every group that references it, then deletes it.

    Raises:
      AppError(TOPIC_NOT_FOUND) — no topic with this id
    """
    require_capability(caller, Capability.TOPIC_DELETE)

    store = TopicStore(session)
    topic = _get_topic_or_404(topic_id, store)

    group_store = GroupStore(session)
    for group in list(topic.groups):
        group.topics.remove(topic)
        group_store.touch(group)
    session.flush()

    store.delete(topic)


def list_topics(session: Session) -> list[dict]:
    """All topics, oldest first, with display-capitalized names."""
    return [
        {**build_topic_dict(topic), "name": capitalize(topic.name)}
        for topic in TopicStore(session).find_all_ordered_by_creation()
    ]
