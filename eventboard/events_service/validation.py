"""
Input parsing for event create/update requests and list filters.

Request bodies arrive either as JSON or as multipart form fields (strings),
so every parser accepts both representations.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Mapping, Optional, Tuple

from eventboard.errors import ValidationError

# --- CONSTANTS FOR VALIDATION ---
TITLE_MAX_LENGTH = 200
LOCATION_MAX_LENGTH = 255
# Largest value of the INTEGER max_attendees column
MAX_ATTENDEES_LIMIT = 2147483647

TEXT_MAX_LENGTHS = {
    "title": TITLE_MAX_LENGTH,
    "location": LOCATION_MAX_LENGTH,
}

# Request field -> events column
EVENT_FIELDS = {
    "title": "title",
    "description": "description",
    "date": "event_date",
    "location": "location",
    "maxAttendees": "max_attendees",
}


def parse_dt(val: Optional[str]) -> Optional[datetime]:
    """
    Safely parse an ISO-8601 date or datetime string to a naive UTC datetime.

    Args:
        val (str): The date string to parse.

    Returns:
        datetime: The parsed datetime, or None if invalid.
    """
    if not val or not isinstance(val, str):
        return None
    val = val.strip()
    try:
        # Handles 'YYYY-MM-DD', 'YYYY-MM-DDTHH:MM' and '...Z' or '...+00:00'
        if val.endswith('Z'):
            val = val[:-1] + '+00:00'
        parsed = datetime.fromisoformat(val)
    except (ValueError, TypeError):
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_day_range(val: str) -> Tuple[datetime, datetime]:
    """
    Turn a YYYY-MM-DD string into the half-open interval [day, day + 1).

    Raises:
        ValidationError: If the value is not a calendar date.
    """
    try:
        start = datetime.strptime(val.strip(), "%Y-%m-%d")
    except (ValueError, AttributeError):
        raise ValidationError("Invalid date filter. Use YYYY-MM-DD.")
    return start, start + timedelta(days=1)


def parse_max_attendees(val: Any) -> int:
    """
    Raises:
        ValidationError: If the value is not a whole number between 1 and
            MAX_ATTENDEES_LIMIT.
    """
    if isinstance(val, bool):
        raise ValidationError("maxAttendees must be a whole number")
    try:
        number = int(str(val).strip())
    except (TypeError, ValueError):
        raise ValidationError("maxAttendees must be a whole number")
    if number < 1:
        raise ValidationError("There must be at least one attendee")
    if number > MAX_ATTENDEES_LIMIT:
        raise ValidationError(f"maxAttendees must be {MAX_ATTENDEES_LIMIT} or less")
    return number


def _is_blank(val: Any) -> bool:
    return val is None or (isinstance(val, str) and not val.strip())


def _clean(field: str, val: Any) -> Any:
    if field == "date":
        parsed = parse_dt(val)
        if not parsed:
            raise ValidationError("Invalid date format. Use YYYY-MM-DD or ISO-8601.")
        return parsed

    if field == "maxAttendees":
        return parse_max_attendees(val)

    if not isinstance(val, str):
        raise ValidationError(f"{field} must be text")

    text = val.strip()
    if "\x00" in text:
        raise ValidationError(f"{field} contains an invalid character")

    limit = TEXT_MAX_LENGTHS.get(field)
    if limit and len(text) > limit:
        raise ValidationError(f"{field.capitalize()} must be {limit} characters or less.")
    return text


def parse_event_fields(data: Mapping[str, Any], partial: bool = False) -> Dict[str, Any]:
    """
    Validate event fields and map them to column names.

    Args:
        data: JSON body or form fields.
        partial: When True (updates) absent or blank fields are skipped;
            when False (creation) every field is required.

    Returns:
        dict: Column name -> cleaned value.

    Raises:
        ValidationError: On a missing required field or a malformed value.
    """
    if not partial and any(_is_blank(data.get(field)) for field in EVENT_FIELDS):
        raise ValidationError("Please include all fields")

    columns: Dict[str, Any] = {}
    for field, column in EVENT_FIELDS.items():
        val = data.get(field)
        if _is_blank(val):
            continue
        columns[column] = _clean(field, val)

    return columns
