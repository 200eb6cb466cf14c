"""
routes/topics.py — Topic management route handlers.

Endpoints (base url_prefix=/api/v1/topics):
  GET    /topics         → 200  list topics (public)
  POST   /topics         → 201  create topic (topic:create)
  PUT    /topics/:id     → 200  rename / re-describe (topic:update)
  DELETE /topics/:id     → 200  delete and detach from groups (topic:delete)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import with_caller
from backend.app.schemas.topic_schema import TopicSchema
from backend.app.services import topic_service

topics_bp = Blueprint("topics", __name__)


@topics_bp.route("/", methods=["GET"])
def list_topics():
    result = topic_service.list_topics(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@topics_bp.route("/", methods=["POST"])
@with_caller
def create_topic():
    data = TopicSchema().load(request.get_json(force=True) or {})
    result = topic_service.create_topic(
        name=data["name"],
        description=data["description"],
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@topics_bp.route("/<int:topic_id>", methods=["PUT"])
@with_caller
def update_topic(topic_id: int):
    data = TopicSchema().load(request.get_json(force=True) or {})
    result = topic_service.update_topic(
        topic_id,
        name=data["name"],
        description=data["description"],
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@topics_bp.route("/<int:topic_id>", methods=["DELETE"])
@with_caller
def delete_topic(topic_id: int):
    topic_service.delete_topic(topic_id, caller=g.caller, session=db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "topic_id": topic_id},
        "warnings": [],
    }), 200
