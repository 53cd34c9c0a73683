"""
Authentication blueprint:
- POST /auth/register
- POST /auth/login
- POST /auth/refresh
- POST /auth/logout
- POST /auth/logout-all
- GET  /auth/profile

The implementation:
- Uses argon2 for password hashing (via utils.security)
- Issues 1h access tokens and 7d refresh tokens (JWTs signed with separate secrets)
- Stores refresh tokens in DB (RefreshToken model) so we can revoke / rotate them
- Which routes are public lives in api.capabilities, enforced by the AuthorizationGate
"""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from models.schemas.auth import LoginSchema, RefreshTokenSchema, RegisterSchema, TokenPairSchema
from models.schemas.user import UserOutSchema
from utils.authz import current_principal

bp = Blueprint("auth", __name__)

login_schema = LoginSchema()
register_schema = RegisterSchema()
refresh_schema = RefreshTokenSchema()
token_pair_schema = TokenPairSchema()
user_out_schema = UserOutSchema()


def sessions():
    return current_app.extensions["session_lifecycle"]


@bp.post("/register")
def register():
    """
    Register a new (student) user and return a token pair.
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
          required: [email, password, firstName, lastName]
          properties:
            email: { type: string }
            password: { type: string, minLength: 6 }
            firstName: { type: string }
            lastName: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      409:
        description: Email already registered
      422:
        description: Validation error
    """
    data = register_schema.load(request.get_json(silent=True) or {})
    pair = sessions().register(
        email=data["email"],
        password=data["password"],
        first_name=data["first_name"],
        last_name=data["last_name"],
    )
    return jsonify(token_pair_schema.dump(pair)), 200


@bp.post("/login")
def login():
    """
    Login: return accessToken and refreshToken
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
        description: Invalid credentials
    """
    data = login_schema.load(request.get_json(silent=True) or {})
    pair = sessions().login(data["email"], data["password"])
    return jsonify(token_pair_schema.dump(pair)), 200


@bp.post("/refresh")
def refresh():
    """
    Use a refresh token to obtain a new access and refresh token (rotation).
    The presented refresh token is revoked and cannot be used again.
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
             refreshToken: { type: string }
    responses:
      200:
        description: OK (returns new tokens)
      401:
        description: Invalid, expired or revoked refresh token
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    pair = sessions().refresh(data["refresh_token"])
    return jsonify(token_pair_schema.dump(pair)), 200


@bp.post("/logout")
def logout():
    """
    Logout: revokes the given refresh token (no-op if unknown or already revoked)
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
             refreshToken: { type: string }
    responses:
      200:
        description: Logged out
      401:
        description: Unauthorized
    """
    data = refresh_schema.load(request.get_json(silent=True) or {})
    sessions().logout(data["refresh_token"], principal_id=current_principal().id)
    return jsonify({"message": "Logged out successfully"}), 200


@bp.post("/logout-all")
def logout_all():
    """
    Logout everywhere: revokes every refresh token of the current user
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: Logged out from all devices
      401:
        description: Unauthorized
    """
    sessions().logout_all(current_principal().id)
    return jsonify({"message": "Logged out from all devices successfully"}), 200


@bp.get("/profile")
def profile():
    """
    Get current user info.
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
    user = sessions().get_profile(current_principal().id)
    return jsonify(user_out_schema.dump(user)), 200
