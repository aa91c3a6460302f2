"""
User profile routes for the authenticated caller.
"""

import logging
from typing import Tuple, Dict, Any

from flask import Blueprint, request, jsonify, Response

from eventboard.database.db_connection import get_db
from eventboard.auth_service.service import ph
from eventboard.auth_service.utils import create_token, verify_token_from_request
from eventboard.errors import ValidationError
from eventboard.users_service import store

users_bp = Blueprint("users", __name__)


@users_bp.before_request
def before_request() -> None:
    logging.info(f"[Users] Incoming {request.method} {request.path}")


@users_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Users] Response {response.status}")
    return response


# --- GET CURRENT USER ---
@users_bp.route("/profile", methods=["GET"])
def get_profile() -> Tuple[Response, int]:
    """
    Retrieve the caller's profile, including the ids of events they created.

    Requires Authorization header: Bearer <token>

    Returns:
        200: Profile object.
        401: Authentication failure.
        404: User not found in DB (edge case).
    """
    user_id = verify_token_from_request()

    with get_db() as conn:
        profile = store.get_user_profile(conn, user_id)

    return jsonify(store.serialize_profile(profile)), 200


# --- UPDATE CURRENT USER ---
@users_bp.route("/profile", methods=["PUT"])
def update_profile() -> Tuple[Response, int]:
    """
    Update the caller's name, email or password.

    Absent or empty fields keep their stored value. A fresh token is
    returned alongside the profile.

    Returns:
        200: Updated profile plus token.
        400: Email already used by another account, or a field is not a
             string or is too long.
        401: Authentication failure.
    """
    user_id = verify_token_from_request()

    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        data = {}

    for key in ("name", "email", "password"):
        if data.get(key) is not None and not isinstance(data[key], str):
            raise ValidationError(f"Invalid value for {key}")

    changes: Dict[str, Any] = {}
    for key in ("name", "email"):
        value = data.get(key)
        if value and value.strip():
            changes[key] = value.strip()

    password = data.get("password")
    if password:
        changes["password_hash"] = ph.hash(password)

    with get_db() as conn:
        profile = store.update_user(conn, user_id, changes)

    body = store.serialize_profile(profile)
    body["token"] = create_token(user_id)
    return jsonify(body), 200
