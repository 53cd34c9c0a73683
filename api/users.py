from __future__ import annotations

import logging
from typing import Tuple

from flask import Blueprint, abort, current_app, jsonify, request

from models import storage
from models.user import Role, User
from models.schemas.user import UserCreateSchema, UserOutSchema, UserUpdateSchema
from utils.authz import current_principal, ensure_owner_or_admin, has_role
from utils.exceptions import Conflict, Forbidden, NotFound
from utils.security import hash_password

logger = logging.getLogger(__name__)

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

user_create_schema = UserCreateSchema()
user_update_schema = UserUpdateSchema()
user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


def parse_sort(default="name"):
    sort = request.args.get("sort", default)
    desc = sort.startswith("-")
    key = sort[1:] if desc else sort
    columns = {"name": (User.last_name, User.first_name), "email": (User.email,), "createdAt": (User.created_at,)}
    if key not in columns:
        abort(400, description="Unsupported sort field. Allowed: name, email, createdAt")
    return tuple(c.desc() if desc else c.asc() for c in columns[key])


def _get_user_or_404(user_id: str) -> User:
    user = storage.get(User, user_id)
    if not user:
        raise NotFound("User not found")
    return user


@bp.post("/users")
def create_user():
    """
    Create a user with any role - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
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
            role: { type: string, enum: [admin, teacher, student] }
    responses:
      201: { description: Created }
      403: { description: Forbidden }
      409: { description: Email already registered }
    """
    data = user_create_schema.load(request.get_json(silent=True) or {})
    sessions = current_app.extensions["session_lifecycle"]
    try:
        user = sessions.create_user(
            email=data["email"],
            password=data["password"],
            first_name=data["first_name"],
            last_name=data["last_name"],
            role=data["role"],
        )
    except Conflict:
        storage.rollback()
        raise
    storage.save()
    logger.info("user %s created by admin %s", user.id, current_principal().id)
    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.get("/users")
def list_users():
    """
    List all Users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
      - in: query
        name: sort
        type: string
        default: name
        description: "Allowed: name, email, createdAt (prefix with - for descending)"
      - in: query
        name: role
        type: string
    responses:
      200: { description: OK }
      403: { description: Forbidden }
    """
    session = storage.get_session()
    page, limit = parse_pagination()
    order_by = parse_sort()

    query = session.query(User)
    role = request.args.get("role")
    if role:
        try:
            query = query.filter(User.role == Role(role))
        except ValueError:
            abort(400, description="Unknown role")

    total = query.count()
    rows = query.order_by(*order_by).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "data": user_list_out_schema.dump(rows),
            "meta": {"page": page, "limit": limit, "total": total}
        }
    )


@bp.get("/users/<user_id>")
def get_user(user_id: str):
    """
    Get a user by id
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
      404: { description: Not found }
    """
    user = _get_user_or_404(user_id)
    return jsonify({"data": user_out_schema.dump(user)})


@bp.patch("/users/<user_id>")
def update_user(user_id: str):
    """
    Update a user (partial) - the user themself or an admin.
    Only admins may change roles. Changing the password ends every session of the user.
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
      - in: body
        name: body
        required: true
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string, minLength: 6 }
            firstName: { type: string }
            lastName: { type: string }
            role: { type: string, enum: [admin, teacher, student] }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: Not found }
      409: { description: Email already registered }
    """
    principal = ensure_owner_or_admin(user_id)
    user = _get_user_or_404(user_id)
    data = user_update_schema.load(request.get_json(silent=True) or {})

    if "role" in data and data["role"] != user.role and not has_role(principal, [Role.ADMIN]):
        raise Forbidden("Only admins can change roles")
    if "email" in data and data["email"] != user.email:
        if storage.find_by(User, email=data["email"]) is not None:
            raise Conflict()
        user.email = data["email"]
    for key in ("first_name", "last_name", "role"):
        if key in data:
            setattr(user, key, data[key])
    if "password" in data:
        user.password_hash = hash_password(data["password"])
        current_app.extensions["session_lifecycle"].tokens.revoke_all_for_owner(user.id)
        logger.info("password changed for user=%s, sessions revoked", user.id)

    storage.new(user)
    storage.save()
    return jsonify({"data": user_out_schema.dump(user)})


@bp.delete("/users/<user_id>")
def delete_user(user_id: str):
    """
    Delete a user and, by cascade, their refresh tokens - admin
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
      200: { description: Deleted }
      403: { description: Forbidden }
      404: { description: Not found }
    """
    user = _get_user_or_404(user_id)
    storage.delete(user)
    storage.save()
    logger.info("user %s deleted by admin %s", user_id, current_principal().id)
    return jsonify({"message": "User deleted successfully"}), 200
