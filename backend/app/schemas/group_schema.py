"""
schemas/group_schema.py — Marshmallow schemas for group endpoints.

Validation responsibility:
  - This file: field types, string lengths, non-empty checks (including trim),
    location shape, coordinate ranges.
  - services/group_service.py:
      - GROUP_NOT_FOUND / NOT_GROUP_ADMIN (require a DB lookup)
      - ALREADY_MEMBER / NOT_A_MEMBER / TARGET_* (require a DB lookup)
  - services/topic_service.py: duplicate topic names (collapsed, not rejected)

IMPORTANT: Inherits from marshmallow.Schema directly so unit tests can load
           schemas without a Flask app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, pre_load, validate


def _validate_non_empty_after_trim(value: str) -> None:
    """
    Raises ValidationError if the string is blank or contains only whitespace.
    Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer.
    """
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


class LocationSchema(Schema):
    """A place: a display name with optional coordinates."""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=255),
            _validate_non_empty_after_trim,
        ],
    )
    latitude = fields.Float(
        load_default=None,
        allow_none=True,
        validate=validate.Range(min=-90, max=90),
    )
    longitude = fields.Float(
        load_default=None,
        allow_none=True,
        validate=validate.Range(min=-180, max=180),
    )


class TopicInputSchema(Schema):
    """
    A topic reference inside a group payload. Only the name is required;
    the description is used only when the topic does not exist yet.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=100),
            _validate_non_empty_after_trim,
        ],
    )
    description = fields.Str(load_default=None, allow_none=True)


class GroupSchema(Schema):
    """
    POST /groups and PUT /groups/:id

    location accepts either free text ("Library, room 2") or an object
    {"name", "latitude"?, "longitude"?}.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Group name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )
    description = fields.Str(load_default="")
    location = fields.Nested(LocationSchema, load_default=None, allow_none=True)
    topics = fields.List(fields.Nested(TopicInputSchema), load_default=list)

    @pre_load
    def wrap_text_location(self, data, **kwargs):
        """Free-text location → {"name": text}."""
        if isinstance(data, dict) and isinstance(data.get("location"), str):
            data = {**data, "location": {"name": data["location"]}}
        return data


class MeetingDatesSchema(Schema):
    """
    POST /groups/:id/meeting-dates and DELETE /groups/:id/meeting-dates

    Dates must be ISO-8601 with a UTC offset; naive timestamps are rejected
    because "now" comparisons would be ambiguous.
    """

    meeting_dates = fields.List(
        fields.AwareDateTime(format="iso"),
        required=True,
        validate=validate.Length(min=1, error="At least one meeting date is required."),
    )
