"""
routes/groups.py — Group, membership and meeting-date route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - Every handler runs under @with_caller; the service decides whether an
    anonymous caller is acceptable.

Endpoints (base url_prefix=/api/v1/groups):
  GET    /groups                              → 200  list all groups
  POST   /groups                              → 201  create group
  GET    /groups/:id                          → 200  group details
  PUT    /groups/:id                          → 200  update group (admin)
  DELETE /groups/:id                          → 200  delete group (admin)
  GET    /groups/:id/members                  → 200  list members
  POST   /groups/:id/join                     → 201  join group
  POST   /groups/:id/leave                    → 200  leave group
  DELETE /groups/:id/members/:uid             → 200  kick member (admin)
  POST   /groups/:id/members/:uid/promote     → 200  promote member (admin)
  POST   /groups/:id/meeting-dates            → 200  add meeting dates (admin)
  DELETE /groups/:id/meeting-dates            → 200  remove meeting dates (admin)
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import with_caller
from backend.app.schemas.group_schema import GroupSchema, MeetingDatesSchema
from backend.app.services import group_service, meeting_service

groups_bp = Blueprint("groups", __name__)


@groups_bp.route("/", methods=["GET"])
def list_groups():
    """GET /groups — All groups, oldest first. Public."""
    result = group_service.list_groups(session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/", methods=["POST"])
@with_caller
def create_group():
    """POST /groups — Create a group. Caller becomes admin and first member."""
    data = GroupSchema().load(request.get_json(force=True) or {})
    result = group_service.create_group(data, caller=g.caller, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int:group_id>", methods=["GET"])
def get_group(group_id: int):
    """GET /groups/:id — Group details with members, meeting dates and topics. Public."""
    result = group_service.get_group(group_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["PUT"])
@with_caller
def update_group(group_id: int):
    """PUT /groups/:id — Replace name, description, location and topics. Admin only."""
    data = GroupSchema().load(request.get_json(force=True) or {})
    result = group_service.update_group(
        group_id,
        data,
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>", methods=["DELETE"])
@with_caller
def delete_group(group_id: int):
    """DELETE /groups/:id — Delete the group and detach everything it references. Admin only."""
    group_service.delete_group(group_id, caller=g.caller, session=db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "group_id": group_id},
        "warnings": [],
    }), 200


@groups_bp.route("/<int:group_id>/members", methods=["GET"])
def list_members(group_id: int):
    """GET /groups/:id/members — Members in the order they joined. Public."""
    result = group_service.list_members(group_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/join", methods=["POST"])
@with_caller
def join_group(group_id: int):
    """POST /groups/:id/join — Add the caller to the group."""
    result = group_service.join_group(group_id, caller=g.caller, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@groups_bp.route("/<int:group_id>/leave", methods=["POST"])
@with_caller
def leave_group(group_id: int):
    """POST /groups/:id/leave — Remove the caller; hands off or deletes when the admin leaves."""
    result = group_service.leave_group(group_id, caller=g.caller, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/members/<int:target_uid>", methods=["DELETE"])
@with_caller
def kick_member(group_id: int, target_uid: int):
    """DELETE /groups/:id/members/:uid — Kick a member. Admin only."""
    result = group_service.kick_member(
        group_id,
        target_uid,
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/members/<int:target_uid>/promote", methods=["POST"])
@with_caller
def promote_member(group_id: int, target_uid: int):
    """POST /groups/:id/members/:uid/promote — Hand adminship to a member. Admin only."""
    result = group_service.promote_member(
        group_id,
        target_uid,
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/meeting-dates", methods=["POST"])
@with_caller
def add_meeting_dates(group_id: int):
    """POST /groups/:id/meeting-dates — Merge future dates into the group's schedule."""
    data = MeetingDatesSchema().load(request.get_json(force=True) or {})
    result = meeting_service.add_meeting_dates(
        group_id,
        data["meeting_dates"],
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@groups_bp.route("/<int:group_id>/meeting-dates", methods=["DELETE"])
@with_caller
def remove_meeting_dates(group_id: int):
    """DELETE /groups/:id/meeting-dates — Drop the listed dates; unknown dates are ignored."""
    data = MeetingDatesSchema().load(request.get_json(force=True) or {})
    result = meeting_service.remove_meeting_dates(
        group_id,
        data["meeting_dates"],
        caller=g.caller,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
