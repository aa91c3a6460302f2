"""
User store: persistence for user identities and profiles.

`created_events` is computed from events.created_by on every read, so it
cannot drift from the authoritative owner column.
"""

from typing import Any, Dict, Optional

import psycopg2.errors

from eventboard.errors import ConflictError, NotFoundError, ValidationError

PROFILE_COLUMNS = ["name", "email", "password_hash"]

# Column sizes from schema.sql
NAME_MAX_LENGTH = 120
EMAIL_MAX_LENGTH = 255

PROFILE_SQL = """
    SELECT
        u.user_id, u.name, u.email, u.created_at,
        ARRAY(
            SELECT e.event_id FROM events e
            WHERE e.created_by = u.user_id
            ORDER BY e.created_at, e.event_id
        ) AS created_events
    FROM users u
    WHERE u.user_id = %s;
"""


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def check_profile_fields(name: Optional[str] = None, email: Optional[str] = None) -> None:
    """
    Reject a name or email the users table cannot store.

    Raises:
        ValidationError: If a value contains a NUL character or is longer
            than its column allows.
    """
    for label, value, limit in (("Name", name, NAME_MAX_LENGTH), ("Email", email, EMAIL_MAX_LENGTH)):
        if value is None:
            continue
        if "\x00" in value:
            raise ValidationError(f"{label} contains an invalid character")
        if len(value) > limit:
            raise ValidationError(f"{label} must be {limit} characters or less.")


def find_user_by_email(conn, email: str) -> Optional[Dict[str, Any]]:
    """Return the user row including its password hash, or None."""
    sql = "SELECT user_id, name, email, password_hash FROM users WHERE email = %s;"

    with conn.cursor() as cur:
        cur.execute(sql, (normalize_email(email),))
        row = cur.fetchone()

    return dict(row) if row else None


def create_user(conn, name: str, email: str, password_hash: str) -> Dict[str, Any]:
    """
    Insert a new user.

    Raises:
        ConflictError: If the email is already registered.
    """
    sql = """
        INSERT INTO users (name, email, password_hash)
        VALUES (%s, %s, %s)
        RETURNING user_id, name, email, created_at;
    """

    try:
        with conn.cursor() as cur:
            cur.execute(sql, (name, normalize_email(email), password_hash))
            user = cur.fetchone()
    except psycopg2.errors.UniqueViolation:
        raise ConflictError("User already exists")

    return dict(user)


def get_user_profile(conn, user_id: int) -> Dict[str, Any]:
    """
    Fetch a user's public profile with the ids of the events they created.

    Raises:
        NotFoundError: If the user does not exist.
    """
    with conn.cursor() as cur:
        cur.execute(PROFILE_SQL, (user_id,))
        row = cur.fetchone()

    if not row:
        raise NotFoundError("User not found")

    return dict(row)


def update_user(conn, user_id: int, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Overwrite the given profile columns and return the refreshed profile.

    Only keys listed in PROFILE_COLUMNS are written; an empty mapping is a no-op.

    Raises:
        NotFoundError: If the user does not exist.
        ConflictError: If the new email belongs to another user.
        ValidationError: If the new name or email is too long or malformed.
    """
    fields = {k: v for k, v in changes.items() if k in PROFILE_COLUMNS}
    if "email" in fields:
        fields["email"] = normalize_email(fields["email"])
    check_profile_fields(name=fields.get("name"), email=fields.get("email"))

    if fields:
        set_clause = ", ".join(f"{k} = %s" for k in fields)
        set_clause += ", updated_at = CURRENT_TIMESTAMP"
        values = list(fields.values()) + [user_id]

        sql = f"UPDATE users SET {set_clause} WHERE user_id = %s RETURNING user_id;"

        try:
            with conn.cursor() as cur:
                cur.execute(sql, values)
                updated = cur.fetchone()
        except psycopg2.errors.UniqueViolation:
            raise ConflictError("Email is already in use")

        if not updated:
            raise NotFoundError("User not found")

    return get_user_profile(conn, user_id)


def serialize_profile(row: Dict[str, Any]) -> Dict[str, Any]:
    """Shape a profile row for JSON. Never includes the password hash."""
    created_at = row.get("created_at")
    return {
        "id": row["user_id"],
        "name": row["name"],
        "email": row["email"],
        "createdEvents": list(row.get("created_events") or []),
        "createdAt": created_at.isoformat() if created_at else None,
    }
