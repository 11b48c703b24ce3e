from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, abort, current_app

from models.schemas.user import RoleUpdateSchema, StatusUpdateSchema
from services.users import MAX_LIMIT
from utils.decorators import owner_or_roles_required, roles_required
from utils.rbac import ADMIN_ONLY

bp = Blueprint("users", __name__)

role_update_schema = RoleUpdateSchema()
status_update_schema = StatusUpdateSchema()


def user_admin():
    return current_app.extensions["user_admin"]


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


@bp.get("/users")
@roles_required(ADMIN_ONLY)
def list_users(identity):
    """
    List all users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
      - in: query
        name: limit
        type: integer
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    page, limit = parse_pagination()
    rows, total = user_admin().list_users(page, limit)
    return jsonify(
        {
            "data": rows,
            "meta": {"page": page, "limit": limit, "total": total}
        }
    ), 200


@bp.get("/users/<user_id>")
@owner_or_roles_required("user_id", ADMIN_ONLY)
def get_user(user_id: str, identity):
    """
    Get one user - the user themself or an admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    return jsonify({"data": current_app.extensions["sessions"].get_profile(user_id)}), 200


@bp.put("/users/<user_id>/role")
@roles_required(ADMIN_ONLY)
def set_role(user_id: str, identity):
    """
    Admin-only: set the role of a user.
    Body: { "role": "admin" | "planner" | "vendor" }
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             role: { type: string }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    data = role_update_schema.load(request.get_json(silent=True) or {})
    return jsonify({"data": user_admin().set_role(user_id, data["role"])}), 200


@bp.put("/users/<user_id>/status")
@roles_required(ADMIN_ONLY)
def set_status(user_id: str, identity):
    """
    Admin-only: activate or deactivate a user. Deactivation ends all sessions.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             is_active: { type: boolean }
    responses:
      200: { description: OK }
      404: { description: Not found }
    """
    data = status_update_schema.load(request.get_json(silent=True) or {})
    return jsonify({"data": user_admin().set_active(user_id, data["is_active"])}), 200
