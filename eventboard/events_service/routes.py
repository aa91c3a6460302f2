"""
Events service routes: create, read, update, delete events, and RSVP.
Handles event lifecycle management and participation.
"""

import logging
from typing import Tuple, Dict, Any

from flask import Blueprint, request, jsonify, Response

from eventboard.database.db_connection import get_db
from eventboard.auth_service.utils import verify_token_from_request
from eventboard.events_service import store

events_bp = Blueprint("events", __name__)


def _request_data() -> Dict[str, Any]:
    """
    Event fields from either a JSON body or a multipart form.
    """
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


# --- REQUEST LOGGING ---
@events_bp.before_request
def before_request() -> None:
    logging.info(f"[Events] Incoming {request.method} {request.path}")


@events_bp.after_request
def after_request(response: Response) -> Response:
    logging.info(f"[Events] Response {response.status}")
    return response


@events_bp.route("", methods=["GET"])
def list_events() -> Tuple[Response, int]:
    """
    Return all events, optionally filtered.

    Query parameters:
    - date (YYYY-MM-DD): events on that day.
    - location (str): case-insensitive substring match.
    - eventType (str): accepted, currently has no effect.

    Returns:
        200: List of event objects with the creator's name and email.
        400: Malformed date filter.
    """
    with get_db() as conn:
        rows = store.list_events(conn, request.args)

    return jsonify([store.serialize_event(r) for r in rows]), 200


@events_bp.route("/rsvps/user", methods=["GET"])
def list_my_rsvps() -> Tuple[Response, int]:
    """
    Events the caller has RSVP'd to.

    Requires Authorization header: Bearer <token>
    """
    user_id = verify_token_from_request()

    with get_db() as conn:
        rows = store.list_events_by_attendee(conn, user_id)

    return jsonify([store.serialize_event(r) for r in rows]), 200


@events_bp.route("/<int:event_id>", methods=["GET"])
def get_event(event_id: int) -> Tuple[Response, int]:
    """
    Get a single event by ID.

    Returns:
        200: Event object.
        404: Event not found.
    """
    with get_db() as conn:
        event = store.get_event(conn, event_id)

    return jsonify(store.serialize_event(event)), 200


@events_bp.route("", methods=["POST"])
def create_event() -> Tuple[Response, int]:
    """
    Create an event owned by the caller.

    Accepts multipart form data (with an optional "image" file) or JSON:
    title, description, date, location, maxAttendees.

    Returns:
        201: The created event.
        400: Missing or invalid fields.
        401: Missing or invalid token.
    """
    user_id = verify_token_from_request()

    data = _request_data()

    with get_db() as conn:
        event = store.create_event(conn, user_id, data, image=request.files.get("image"))

    return jsonify(store.serialize_event(event)), 201


@events_bp.route("/<int:event_id>", methods=["PUT"])
def update_event(event_id: int) -> Tuple[Response, int]:
    """
    Update an event. Only its creator may do this.

    Fields that are absent or empty keep their stored value.

    Returns:
        200: The updated event.
        400: Invalid field value.
        401: Missing token, or caller is not the creator.
        404: Event not found.
    """
    user_id = verify_token_from_request()

    data = _request_data()

    with get_db() as conn:
        event = store.update_event(conn, event_id, user_id, data, image=request.files.get("image"))

    return jsonify(store.serialize_event(event)), 200


@events_bp.route("/<int:event_id>", methods=["DELETE"])
def delete_event(event_id: int) -> Tuple[Response, int]:
    """
    Delete an event if the caller is its creator.
    """
    user_id = verify_token_from_request()

    with get_db() as conn:
        store.delete_event(conn, event_id, user_id)

    return jsonify({"message": "Event removed"}), 200


@events_bp.route("/<int:event_id>/rsvp", methods=["POST"])
def rsvp(event_id: int) -> Tuple[Response, int]:
    """
    RSVP the caller to an event.

    Returns:
        200: Confirmation with the updated event.
        400: Already RSVP'd, or the event is full.
        401: Missing or invalid token.
        404: Event not found.
    """
    user_id = verify_token_from_request()

    with get_db() as conn:
        event = store.rsvp_event(conn, event_id, user_id)

    return jsonify({"message": "RSVP successful", "event": store.serialize_event(event)}), 200
