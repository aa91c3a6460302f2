"""
Authentication service route handlers.

Provides routes for:
- User registration
- User login

Credential checks live in `auth_service.service`; JWT logic in `auth_service.utils`.
"""

import logging
from typing import Tuple

from flask import Blueprint, request, jsonify, Response
from eventboard.database.db_connection import get_db
from eventboard.auth_service import service

auth_bp = Blueprint("auth", __name__)


# --- REQUEST LOGGING ---
@auth_bp.before_request
def before_request() -> None:
    """
    Log every incoming request method and path to the authentication service.
    """
    logging.info(f"[Auth] Incoming {request.method} {request.path}")


@auth_bp.after_request
def after_request(response: Response) -> Response:
    """
    Log the response status code for every request.

    Args:
        response (Response): The Flask response object.

    Returns:
        Response: The passed-through response object.
    """
    logging.info(f"[Auth] Response {response.status}")
    return response


# --- REGISTER ---
@auth_bp.route("/register", methods=["POST"])
def register() -> Tuple[Response, int]:
    """
    Register a new user in the system.

    Expects a JSON body with:
    - name (str)
    - email (str): Unique email address.
    - password (str)

    Returns:
        201: JSON with id, name, email, and a new JWT token.
        400: Missing fields or email already exists.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    with get_db() as conn:
        identity = service.register(
            conn,
            data.get("name"),
            data.get("email"),
            data.get("password"),
        )

    return jsonify(identity), 201


# --- LOGIN ---
@auth_bp.route("/login", methods=["POST"])
def login() -> Tuple[Response, int]:
    """
    Authenticate a user and return a JWT.

    Expects a JSON body with:
    - email (str)
    - password (str)

    Returns:
        200: JSON with id, name, email, and JWT token.
        400: Missing credentials.
        401: Invalid credentials (wrong password or email).
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    with get_db() as conn:
        identity = service.authenticate(conn, data.get("email"), data.get("password"))

    return jsonify(identity), 200
