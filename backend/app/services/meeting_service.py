"""
services/meeting_service.py — Meeting-date scheduling for a group.

Invariants enforced here:
  MEETING_DATE_IN_PAST (422) — every NEWLY added date must be strictly after
                               the current instant. One bad date rejects the
                               whole batch; nothing is applied.
  - A group's meeting dates form a set: adding an instant that is already
    stored (in any UTC offset) does not create a second row.
  - Stored dates are never re-validated; a meeting that has passed stays.

Authorization rules:
  - Add / remove: caller must be the group admin (NOT_GROUP_ADMIN, 403)

Ordering: the merged set is kept newest first (Group.meeting_dates is
ordered descending). next_upcoming_meeting() does not rely on that order.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from backend.app.errors import AppError, ErrorCode
from backend.app.models.group import Group
from backend.app.models.meeting_date import MeetingDate
from backend.app.services.authorization import (
    Caller,
    require_authenticated,
    require_group_admin,
)
from backend.app.stores import GroupStore


def utcnow() -> datetime:
    """Current instant. Patched in tests."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """
    Normalizes a datetime to an aware UTC value. Naive values are taken to
    already be UTC (that is how they are written, and how SQLite returns them).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def merge_meeting_dates(
        existing: Iterable[datetime],
        new: Iterable[datetime],
) -> list[datetime]:
    """Set union of two batches of instants, sorted descending."""
    merged = {as_utc(d) for d in existing} | {as_utc(d) for d in new}
    return sorted(merged, reverse=True)


def next_upcoming_meeting(group: Group, now: datetime | None = None) -> datetime | None:
    """Earliest stored meeting strictly after `now`, or None."""
    now = as_utc(now) if now is not None else utcnow()
    upcoming = [
        as_utc(m.meeting_at)
        for m in group.meeting_dates
        if as_utc(m.meeting_at) > now
    ]
    return min(upcoming) if upcoming else None


def _validate_future(dates: list[datetime], now: datetime) -> None:
    """Raises MEETING_DATE_IN_PAST for the first date at or before `now`."""
    for date in dates:
        if as_utc(date) <= now:
            raise AppError(
                ErrorCode.MEETING_DATE_IN_PAST,
                f"Meeting date {date.isoformat()} is not in the future.",
                field="meeting_dates",
            )


def _load_group_as_admin(
        group_id: int,
        caller: Caller,
        action: str,
        session: Session,
) -> Group:
    user_id = require_authenticated(caller)
    group = GroupStore(session).find_by_id(group_id)
    if group is None:
        raise AppError(
            ErrorCode.GROUP_NOT_FOUND,
            f"Group {group_id} does not exist.",
        )
    require_group_admin(group, user_id, action)
    return group


def _serialize_dates(group: Group) -> list[str]:
    return [
        d.isoformat()
        for d in sorted((as_utc(m.meeting_at) for m in group.meeting_dates), reverse=True)
    ]


# ── Public service functions ───────────────────────────────────────────────

def add_meeting_dates(
        group_id: int,
        dates: list[datetime],
        caller: Caller,
        session: Session,
) -> dict:
    """
    Merges `dates` into the group's meeting dates.

    Raises:
      AppError(ANONYMOUS_CALLER)      — caller not logged in
      AppError(GROUP_NOT_FOUND)       — group does not exist
      AppError(NOT_GROUP_ADMIN)       — caller is not the group admin
      AppError(MEETING_DATE_IN_PAST)  — any date is at or before now

    Returns: {"group_id", "meeting_dates": [iso strings, newest first]}
    """
    group = _load_group_as_admin(group_id, caller, "add meeting dates", session)

    # Validate the whole batch before applying any of it.
    _validate_future(dates, utcnow())

    stored = {as_utc(m.meeting_at) for m in group.meeting_dates}
    for instant in merge_meeting_dates(stored, dates):
        if instant not in stored:
            group.meeting_dates.append(MeetingDate(meeting_at=instant))

    GroupStore(session).save(group)

    return {"group_id": group.id, "meeting_dates": _serialize_dates(group)}


def remove_meeting_dates(
        group_id: int,
        dates: list[datetime],
        caller: Caller,
        session: Session,
) -> dict:
    """
    Removes the listed instants from the group's meeting dates. Instants
    that are not stored are ignored.

    Raises:
      AppError(ANONYMOUS_CALLER) — caller not logged in
      AppError(GROUP_NOT_FOUND)  — group does not exist
      AppError(NOT_GROUP_ADMIN)  — caller is not the group admin
    """
    group = _load_group_as_admin(group_id, caller, "remove meeting dates", session)

    to_remove = {as_utc(d) for d in dates}
    for meeting in list(group.meeting_dates):
        if as_utc(meeting.meeting_at) in to_remove:
            group.meeting_dates.remove(meeting)

    GroupStore(session).save(group)

    return {"group_id": group.id, "meeting_dates": _serialize_dates(group)}
