"""
Authentication blueprint:
- POST /auth/signup
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/logout-all
- GET  /auth/me
- PUT  /auth/profile
- PUT  /auth/change-password

Request bodies are validated with marshmallow here; the session rules live
in services.sessions.SessionService.
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, current_app

from models.schemas.user import (
    SignupSchema,
    LoginSchema,
    RefreshSchema,
    LogoutSchema,
    ChangePasswordSchema,
    ProfileUpdateSchema,
)
from utils.decorators import jwt_required

bp = Blueprint("auth", __name__)

signup_schema = SignupSchema()
login_schema = LoginSchema()
refresh_schema = RefreshSchema()
logout_schema = LogoutSchema()
change_password_schema = ChangePasswordSchema()
profile_update_schema = ProfileUpdateSchema()


def sessions():
    return current_app.extensions["sessions"]


def _json_body() -> dict:
    return request.get_json(silent=True) or {}


@bp.post("/signup")
def signup():
    """
    Register a new user and start a session.
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          required: [email, password, full_name]
          properties:
            email: { type: string }
            password: { type: string }
            full_name: { type: string }
            role: { type: string, enum: [admin, planner, vendor] }
            phone_number: { type: string }
    responses:
      201:
        description: Created (returns user and tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    data = signup_schema.load(_json_body())
    result = sessions().signup(
        email=data["email"],
        password=data["password"],
        full_name=data["full_name"],
        role=data.get("role"),
        phone_number=data.get("phone_number"),
    )
    return jsonify({"message": "User registered successfully", "data": result.to_dict()}), 201


@bp.post("/login")
def login():
    """
    Login: return the user profile, access_token and refresh_token
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid email or password
    """
    data = login_schema.load(_json_body())
    result = sessions().login(email=data["email"], password=data["password"])
    return jsonify({"message": "Login successful", "data": result.to_dict()}), 200


@bp.post("/refresh")
def refresh():
    """
    Exchange a refresh token for a new token pair (rotation)
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns new tokens, the presented one is revoked)
      401:
        description: Invalid, expired or already used refresh token
    """
    data = refresh_schema.load(_json_body())
    tokens = sessions().refresh(data["refresh_token"])
    return jsonify({"message": "Token refreshed successfully", "data": tokens.to_dict()}), 200


@bp.post("/logout")
@jwt_required()
def logout(identity):
    """
    Logout: revokes the given refresh token (if any)
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    data = logout_schema.load(_json_body())
    sessions().logout(data.get("refresh_token"), user_id=identity.user_id)
    return jsonify({"message": "Logged out successfully"}), 200


@bp.post("/logout-all")
@jwt_required()
def logout_all(identity):
    """
    Logout from all devices: revokes every refresh token of the caller
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out everywhere
      401:
        description: Unauthorized
    """
    revoked = sessions().logout_all(identity.user_id)
    return jsonify({"message": "Logged out from all devices successfully", "data": {"revoked": revoked}}), 200


@bp.get("/me")
@jwt_required()
def me(identity):
    """
    Get current user profile
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
      404:
        description: User no longer exists
    """
    return jsonify({"data": sessions().get_profile(identity.user_id)}), 200


@bp.put("/profile")
@jwt_required()
def update_profile(identity):
    """
    Update full_name and/or phone_number of the current user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             full_name: { type: string }
             phone_number: { type: string }
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    data = profile_update_schema.load(_json_body())
    profile = sessions().update_profile(
        identity.user_id,
        full_name=data.get("full_name"),
        phone_number=data.get("phone_number"),
    )
    return jsonify({"message": "Profile updated successfully", "data": profile}), 200


@bp.put("/change-password")
@jwt_required()
def change_password(identity):
    """
    Change password; every session of the user is revoked
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             current_password: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password changed, login again
      401:
        description: Current password is incorrect
    """
    data = change_password_schema.load(_json_body())
    sessions().change_password(identity.user_id, data["current_password"], data["new_password"])
    return jsonify({"message": "Password changed successfully. Please login again."}), 200
