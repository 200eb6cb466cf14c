"""
routes/users.py — User management and per-user views: group lists,
meetings, meeting locations.

Endpoints (base url_prefix=/api/v1/users):
  GET    /users/                                  → 200  all users (user:read)
  POST   /users/                                  → 201  create a user (user:create)
  GET    /users/:id                               → 200  one user (user:read)
  PUT    /users/:id                               → 200  update a user (self or user:update)
  DELETE /users/:id                               → 200  delete a user (user:delete)
  GET    /users/:id/groups                        → 200  groups the user belongs to (public)
  GET    /users/me/groups/admin                   → 200  groups the caller administers
  GET    /users/me/meetings?role=member|admin     → 200  caller's meeting dates
  GET    /users/me/meeting-locations?role=...     → 200  caller's group locations
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from backend.app.extensions import db
from backend.app.middleware.auth_middleware import with_caller
from backend.app.schemas.user_schema import (
    MembershipRoleQuerySchema,
    UserCreateSchema,
    UserUpdateSchema,
)
from backend.app.services import user_service

users_bp = Blueprint("users", __name__)


@users_bp.route("/", methods=["GET"])
@with_caller
def list_users():
    result = user_service.list_users(g.caller, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/", methods=["POST"])
@with_caller
def create_user():
    data = UserCreateSchema().load(request.get_json(force=True) or {})
    result = user_service.create_user(data, g.caller, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@users_bp.route("/<int:user_id>", methods=["GET"])
@with_caller
def get_user(user_id: int):
    result = user_service.get_user(user_id, g.caller, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/<int:user_id>", methods=["PUT"])
@with_caller
def update_user(user_id: int):
    data = UserUpdateSchema().load(request.get_json(force=True) or {})
    result = user_service.update_user(user_id, data, g.caller, session=db.session)
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/<int:user_id>", methods=["DELETE"])
@with_caller
def delete_user(user_id: int):
    user_service.delete_user(user_id, g.caller, session=db.session)
    db.session.commit()
    return jsonify({
        "data": {"deleted": True, "user_id": user_id},
        "warnings": [],
    }), 200


@users_bp.route("/<int:user_id>/groups", methods=["GET"])
def list_user_groups(user_id: int):
    result = user_service.list_groups_where_member(user_id, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/me/groups/admin", methods=["GET"])
@with_caller
def list_my_admin_groups():
    result = user_service.list_groups_where_admin(g.caller, session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/me/meetings", methods=["GET"])
@with_caller
def list_my_meetings():
    query = MembershipRoleQuerySchema().load(request.args.to_dict())
    result = user_service.list_meetings(g.caller, query["role"], session=db.session)
    return jsonify({"data": result, "warnings": []}), 200


@users_bp.route("/me/meeting-locations", methods=["GET"])
@with_caller
def list_my_meeting_locations():
    query = MembershipRoleQuerySchema().load(request.args.to_dict())
    result = user_service.list_meeting_locations(g.caller, query["role"], session=db.session)
    return jsonify({"data": result, "warnings": []}), 200
