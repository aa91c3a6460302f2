"""
Event store: event records, attendee lists, capacity and ownership rules.

Every function takes an open connection as its first argument and leaves
committing to the caller (see `database.db_connection.get_db`).

Writes that depend on a check (update, delete, RSVP) lock the event row
with SELECT ... FOR UPDATE first, so concurrent requests for the same event
run one after another and the capacity check cannot be raced.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from werkzeug.datastructures import FileStorage

from eventboard.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from eventboard.events_service.uploads import discard_image, save_image
from eventboard.events_service.validation import parse_day_range, parse_event_fields

EVENT_SELECT = """
    SELECT
        e.event_id, e.title, e.description, e.event_date, e.location,
        e.max_attendees, e.image, e.created_by, e.created_at, e.updated_at,
        u.name AS creator_name, u.email AS creator_email,
        ARRAY(
            SELECT a.user_id FROM event_attendees a
            WHERE a.event_id = e.event_id
            ORDER BY a.attendee_id
        ) AS attendees
    FROM events e
    JOIN users u ON e.created_by = u.user_id
"""


def _escape_like(val: str) -> str:
    return val.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _lock_event(cur, event_id: int) -> Dict[str, Any]:
    cur.execute(
        "SELECT event_id, created_by, max_attendees FROM events WHERE event_id = %s FOR UPDATE;",
        (event_id,),
    )
    row = cur.fetchone()
    if not row:
        raise NotFoundError("Event not found")
    return dict(row)


def _attendee_count(cur, event_id: int) -> int:
    cur.execute(
        "SELECT COUNT(*) AS attendee_count FROM event_attendees WHERE event_id = %s;",
        (event_id,),
    )
    return cur.fetchone()["attendee_count"]


def create_event(
    conn,
    creator_id: int,
    data: Mapping[str, Any],
    image: Optional[FileStorage] = None,
) -> Dict[str, Any]:
    """
    Create an event owned by `creator_id`.

    The creator's createdEvents list is derived from created_by, so this is
    a single insert. The image, if any, is written only after the fields
    have been validated.

    Raises:
        ValidationError: If a required field is missing or malformed, or the
            image is not an allowed type.
    """
    fields = parse_event_fields(data)
    image_path = save_image(image)

    sql = """
        INSERT INTO events (title, description, event_date, location, max_attendees, image, created_by)
        VALUES (%s, %s, %s, %s, %s, %s, %s)
        RETURNING event_id;
    """

    try:
        with conn.cursor() as cur:
            cur.execute(sql, (
                fields["title"],
                fields["description"],
                fields["event_date"],
                fields["location"],
                fields["max_attendees"],
                image_path,
                creator_id,
            ))
            event_id = cur.fetchone()["event_id"]
    except Exception:
        discard_image(image_path)
        raise

    logging.info(f"[Events] User {creator_id} created event {event_id}")
    return get_event(conn, event_id)


def list_events(conn, filters: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """
    Return events matching the filters, with creator name/email joined in.

    Recognised filters:
    - date: YYYY-MM-DD, matches events within [day, day + 1).
    - location: case-insensitive substring.
    - eventType: accepted but imposes no constraint yet.

    Anything else is ignored.

    Raises:
        ValidationError: If the date or location filter is malformed.
    """
    clauses = []
    params: List[Any] = []

    date = filters.get("date")
    if date:
        start, end = parse_day_range(date)
        clauses.append("e.event_date >= %s AND e.event_date < %s")
        params.extend([start, end])

    location = filters.get("location")
    if location:
        if "\x00" in location:
            raise ValidationError("Invalid location filter")
        clauses.append("e.location ILIKE %s")
        params.append(f"%{_escape_like(location)}%")

    sql = EVENT_SELECT
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += " ORDER BY e.event_id;"

    with conn.cursor() as cur:
        cur.execute(sql, params)
        return [dict(row) for row in cur.fetchall()]


def get_event(conn, event_id: int) -> Dict[str, Any]:
    """
    Raises:
        NotFoundError: If no event has this id.
    """
    with conn.cursor() as cur:
        cur.execute(EVENT_SELECT + " WHERE e.event_id = %s;", (event_id,))
        row = cur.fetchone()

    if not row:
        raise NotFoundError("Event not found")
    return dict(row)


def update_event(
    conn,
    event_id: int,
    requester_id: int,
    data: Mapping[str, Any],
    image: Optional[FileStorage] = None,
) -> Dict[str, Any]:
    """
    Partially update an event. Only the creator may do this.

    Present, non-empty fields overwrite the stored value; absent or empty
    fields are left alone. A new image replaces the stored one; it is
    checked and written only once the event exists and the requester owns it.

    Raises:
        NotFoundError: If the event does not exist.
        AuthorizationError: If the requester is not the creator.
        ValidationError: If a supplied value is malformed, the image is not
            an allowed type, or maxAttendees would drop below the current
            number of attendees.
    """
    with conn.cursor() as cur:
        event = _lock_event(cur, event_id)

        if event["created_by"] != requester_id:
            raise AuthorizationError("Not authorized to update this event")

        fields = parse_event_fields(data, partial=True)

        if "max_attendees" in fields and fields["max_attendees"] < _attendee_count(cur, event_id):
            raise ValidationError("maxAttendees cannot be lower than the current number of attendees")

        image_path = save_image(image)
        if image_path:
            fields["image"] = image_path

        if fields:
            set_clause = ", ".join(f"{k} = %s" for k in fields)
            set_clause += ", updated_at = CURRENT_TIMESTAMP"
            values = list(fields.values()) + [event_id]
            try:
                cur.execute(f"UPDATE events SET {set_clause} WHERE event_id = %s;", values)
            except Exception:
                discard_image(image_path)
                raise

    return get_event(conn, event_id)


def delete_event(conn, event_id: int, requester_id: int) -> None:
    """
    Delete an event and its attendee list. Only the creator may do this.

    Raises:
        NotFoundError: If the event does not exist.
        AuthorizationError: If the requester is not the creator.
    """
    with conn.cursor() as cur:
        event = _lock_event(cur, event_id)

        if event["created_by"] != requester_id:
            raise AuthorizationError("Not authorized to delete this event")

        cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))

    logging.info(f"[Events] User {requester_id} deleted event {event_id}")


def rsvp_event(conn, event_id: int, user_id: int) -> Dict[str, Any]:
    """
    Add `user_id` to the event's attendees.

    Checks run in this order and the first failure wins: the event exists,
    the user has not already RSVP'd, the event is not full.

    Raises:
        NotFoundError: If the event does not exist.
        ConflictError: If the user is already attending.
        CapacityError: If attendees already reach maxAttendees.
    """
    with conn.cursor() as cur:
        event = _lock_event(cur, event_id)

        cur.execute(
            "SELECT 1 FROM event_attendees WHERE event_id = %s AND user_id = %s;",
            (event_id, user_id),
        )
        if cur.fetchone():
            raise ConflictError("You have already RSVP'd to this event")

        if _attendee_count(cur, event_id) >= event["max_attendees"]:
            logging.info(f"[Events] RSVP by user {user_id} rejected, event {event_id} is full")
            raise CapacityError("Event is full")

        cur.execute(
            "INSERT INTO event_attendees (event_id, user_id) VALUES (%s, %s);",
            (event_id, user_id),
        )

    logging.info(f"[Events] User {user_id} RSVP'd to event {event_id}")
    return get_event(conn, event_id)


def list_events_by_attendee(conn, user_id: int) -> List[Dict[str, Any]]:
    """Return every event the user has RSVP'd to."""
    sql = EVENT_SELECT + """
        WHERE EXISTS (
            SELECT 1 FROM event_attendees a
            WHERE a.event_id = e.event_id AND a.user_id = %s
        )
        ORDER BY e.event_id;
    """

    with conn.cursor() as cur:
        cur.execute(sql, (user_id,))
        return [dict(row) for row in cur.fetchall()]


def serialize_event(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Shape an event row for JSON (camelCase keys, ISO-8601 datetimes)."""

    def iso(val):
        return val.isoformat() if val else None

    return {
        "id": row["event_id"],
        "title": row["title"],
        "description": row["description"],
        "date": iso(row["event_date"]),
        "location": row["location"],
        "maxAttendees": row["max_attendees"],
        "image": row.get("image"),
        "createdBy": {
            "id": row["created_by"],
            "name": row.get("creator_name"),
            "email": row.get("creator_email"),
        },
        "attendees": list(row.get("attendees") or []),
        "createdAt": iso(row.get("created_at")),
        "updatedAt": iso(row.get("updated_at")),
    }
