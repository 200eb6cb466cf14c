"""
schemas/topic_schema.py — Marshmallow schema for the topic management endpoints.

Uniqueness (TOPIC_ALREADY_EXISTS) needs a DB lookup and is checked in
services/topic_service.py, not here.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

from backend.app.schemas.group_schema import _validate_non_empty_after_trim


class TopicSchema(Schema):
    """POST /topics and PUT /topics/:id"""

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(
                min=1,
                max=100,
                error="Topic name must be between 1 and 100 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )
    # Empty or missing → default description generated by the service.
    description = fields.Str(load_default=None, allow_none=True)
