import pytest
from datetime import datetime

from eventboard.events_service import store
from eventboard.errors import (
    AuthorizationError,
    CapacityError,
    ConflictError,
    NotFoundError,
    ValidationError,
)


@pytest.fixture
def conn(mocker):
    conn = mocker.MagicMock()
    cur = mocker.MagicMock()
    cur.__enter__.return_value = cur
    cur.__exit__.return_value = None
    conn.cursor.return_value = cur
    return conn


def executed_sql(conn):
    cur = conn.cursor.return_value
    return [c[0][0] for c in cur.execute.call_args_list]


def locked_row(created_by=1, max_attendees=10):
    return {"event_id": 1, "created_by": created_by, "max_attendees": max_attendees}


# --- CREATE ---

def test_create_event_inserts_single_row(conn, event_row, mocker):
    mocker.patch("eventboard.events_service.store.save_image", return_value="uploads/abc-poster.png")
    upload = mocker.MagicMock()
    cur = conn.cursor.return_value
    cur.fetchone.side_effect = [{"event_id": 1}, event_row()]

    data = {
        "title": "Summer Meetup",
        "description": "Drinks and talks",
        "date": "2024-06-01T18:00:00",
        "location": "Hall A",
        "maxAttendees": "10",
    }
    event = store.create_event(conn, 1, data, image=upload)

    insert_sql, insert_params = cur.execute.call_args_list[0][0]
    assert "INSERT INTO events" in insert_sql
    assert insert_params == (
        "Summer Meetup",
        "Drinks and talks",
        datetime(2024, 6, 1, 18, 0, 0),
        "Hall A",
        10,
        "uploads/abc-poster.png",
        1,
    )
    # No separate write to the user row
    assert not any("UPDATE users" in sql for sql in executed_sql(conn))
    assert event["event_id"] == 1


def test_create_event_missing_field(conn):
    data = {"title": "Summer Meetup", "description": "x", "date": "2024-06-01", "location": "Hall A"}

    with pytest.raises(ValidationError) as exc:
        store.create_event(conn, 1, data)

    assert exc.value.message == "Please include all fields"
    conn.cursor.return_value.execute.assert_not_called()


def test_create_event_rejects_zero_capacity(conn):
    data = {"title": "t", "description": "d", "date": "2024-06-01", "location": "l", "maxAttendees": 0}

    with pytest.raises(ValidationError):
        store.create_event(conn, 1, data)


# --- LIST / GET ---

def test_list_events_date_filter_is_half_open_day(conn):
    conn.cursor.return_value.fetchall.return_value = []

    store.list_events(conn, {"date": "2024-06-01"})

    sql, params = conn.cursor.return_value.execute.call_args[0]
    assert "e.event_date >= %s AND e.event_date < %s" in sql
    assert params == [datetime(2024, 6, 1), datetime(2024, 6, 2)]


def test_list_events_location_is_escaped_substring(conn):
    conn.cursor.return_value.fetchall.return_value = []

    store.list_events(conn, {"location": "50%_off"})

    sql, params = conn.cursor.return_value.execute.call_args[0]
    assert "e.location ILIKE %s" in sql
    assert params == ["%50\\%\\_off%"]


def test_list_events_event_type_is_inert(conn, event_row):
    conn.cursor.return_value.fetchall.return_value = [event_row()]

    rows = store.list_events(conn, {"eventType": "concert", "unknown": "x"})

    sql, params = conn.cursor.return_value.execute.call_args[0]
    assert params == []
    assert len(rows) == 1


def test_list_events_bad_date(conn):
    with pytest.raises(ValidationError):
        store.list_events(conn, {"date": "01/06/2024"})


def test_get_event_not_found(conn):
    conn.cursor.return_value.fetchone.return_value = None

    with pytest.raises(NotFoundError) as exc:
        store.get_event(conn, 99)
    assert exc.value.message == "Event not found"


# --- UPDATE ---

def test_update_only_location(conn, event_row):
    cur = conn.cursor.return_value
    cur.fetchone.side_effect = [locked_row(created_by=5), event_row(location="Hall B")]

    store.update_event(conn, 1, 5, {"location": "Hall B", "title": "", "description": None})

    update_calls = [c[0] for c in cur.execute.call_args_list if c[0][0].startswith("UPDATE events")]
    assert len(update_calls) == 1
    sql, values = update_calls[0]
    assert sql == "UPDATE events SET location = %s, updated_at = CURRENT_TIMESTAMP WHERE event_id = %s;"
    assert values == ["Hall B", 1]


def test_update_by_non_creator(conn):
    conn.cursor.return_value.fetchone.side_effect = [locked_row(created_by=5)]

    with pytest.raises(AuthorizationError) as exc:
        store.update_event(conn, 1, 6, {"title": "Hijacked"})

    assert exc.value.message == "Not authorized to update this event"
    assert not any(sql.startswith("UPDATE") for sql in executed_sql(conn))


def test_update_not_found(conn):
    conn.cursor.return_value.fetchone.return_value = None

    with pytest.raises(NotFoundError):
        store.update_event(conn, 1, 5, {"title": "x"})


def test_update_replaces_image(conn, event_row, mocker):
    save = mocker.patch("eventboard.events_service.store.save_image", return_value="uploads/new.png")
    upload = mocker.MagicMock()
    cur = conn.cursor.return_value
    cur.fetchone.side_effect = [locked_row(created_by=5), event_row(image="uploads/new.png")]

    store.update_event(conn, 1, 5, {}, image=upload)
    save.assert_called_once_with(upload)

    sql, values = [c[0] for c in cur.execute.call_args_list if c[0][0].startswith("UPDATE events")][0]
    assert "image = %s" in sql
    assert values == ["uploads/new.png", 1]


def test_update_capacity_below_attendee_count(conn):
    conn.cursor.return_value.fetchone.side_effect = [locked_row(created_by=5), {"attendee_count": 3}]

    with pytest.raises(ValidationError):
        store.update_event(conn, 1, 5, {"maxAttendees": "2"})

    assert not any(sql.startswith("UPDATE") for sql in executed_sql(conn))


def test_update_validation_runs_after_ownership(conn):
    conn.cursor.return_value.fetchone.side_effect = [locked_row(created_by=5)]

    # A non-owner learns nothing about field validity
    with pytest.raises(AuthorizationError):
        store.update_event(conn, 1, 6, {"date": "not-a-date"})


def test_update_image_not_saved_for_missing_event(conn, mocker):
    save = mocker.patch("eventboard.events_service.store.save_image")
    conn.cursor.return_value.fetchone.return_value = None

    with pytest.raises(NotFoundError):
        store.update_event(conn, 1, 5, {}, image=mocker.MagicMock())

    save.assert_not_called()


def test_update_image_not_saved_for_non_creator(conn, mocker):
    save = mocker.patch("eventboard.events_service.store.save_image")
    conn.cursor.return_value.fetchone.side_effect = [locked_row(created_by=5)]

    with pytest.raises(AuthorizationError):
        store.update_event(conn, 1, 6, {}, image=mocker.MagicMock())

    save.assert_not_called()


def test_update_discards_image_when_write_fails(conn, mocker):
    mocker.patch("eventboard.events_service.store.save_image", return_value="uploads/new.png")
    discard = mocker.patch("eventboard.events_service.store.discard_image")
    cur = conn.cursor.return_value
    cur.fetchone.side_effect = [locked_row(created_by=5)]
    cur.execute.side_effect = [None, RuntimeError("connection lost")]

    with pytest.raises(RuntimeError):
        store.update_event(conn, 1, 5, {}, image=mocker.MagicMock())

    discard.assert_called_once_with("uploads/new.png")


# --- DELETE ---

def test_delete_event(conn):
    conn.cursor.return_value.fetchone.side_effect = [locked_row(created_by=5)]

    store.delete_event(conn, 1, 5)

    assert "DELETE FROM events WHERE event_id = %s;" in executed_sql(conn)


def test_delete_by_non_creator(conn):
    conn.cursor.return_value.fetchone.side_effect = [locked_row(created_by=5)]

    with pytest.raises(AuthorizationError) as exc:
        store.delete_event(conn, 1, 6)

    assert exc.value.message == "Not authorized to delete this event"
    assert not any(sql.startswith("DELETE") for sql in executed_sql(conn))


def test_delete_not_found(conn):
    conn.cursor.return_value.fetchone.return_value = None

    with pytest.raises(NotFoundError):
        store.delete_event(conn, 1, 5)


# --- RSVP ---

def test_rsvp_locks_event_row(conn, event_row):
    cur = conn.cursor.return_value
    cur.fetchone.side_effect = [locked_row(), None, {"attendee_count": 0}, event_row(attendees=[2])]

    event = store.rsvp_event(conn, 1, 2)

    assert "FOR UPDATE" in executed_sql(conn)[0]
    cur.execute.assert_any_call(
        "INSERT INTO event_attendees (event_id, user_id) VALUES (%s, %s);", (1, 2)
    )
    assert event["attendees"] == [2]


def test_rsvp_not_found(conn):
    conn.cursor.return_value.fetchone.return_value = None

    with pytest.raises(NotFoundError):
        store.rsvp_event(conn, 1, 2)


def test_rsvp_duplicate_checked_before_capacity(conn):
    cur = conn.cursor.return_value
    # Event is full AND the user is already attending: duplicate wins
    cur.fetchone.side_effect = [locked_row(max_attendees=1), {"?column?": 1}, {"attendee_count": 1}]

    with pytest.raises(ConflictError) as exc:
        store.rsvp_event(conn, 1, 2)

    assert exc.value.message == "You have already RSVP'd to this event"
    assert cur.execute.call_count == 2


def test_capacity_one_second_user_rejected(conn, event_row):
    cur = conn.cursor.return_value

    # User A takes the only place
    cur.fetchone.side_effect = [locked_row(max_attendees=1), None, {"attendee_count": 0}, event_row(attendees=[10])]
    event = store.rsvp_event(conn, 1, 10)
    assert event["attendees"] == [10]

    # User B finds it full and nothing is written
    cur.reset_mock()
    cur.fetchone.side_effect = [locked_row(max_attendees=1), None, {"attendee_count": 1}]
    with pytest.raises(CapacityError) as exc:
        store.rsvp_event(conn, 1, 11)

    assert exc.value.message == "Event is full"
    assert not any(sql.startswith("INSERT") for sql in executed_sql(conn))


# --- ATTENDEE LISTING / SERIALIZATION ---

def test_list_events_by_attendee(conn, event_row):
    conn.cursor.return_value.fetchall.return_value = [event_row(attendees=[3])]

    rows = store.list_events_by_attendee(conn, 3)

    sql, params = conn.cursor.return_value.execute.call_args[0]
    assert "a.user_id = %s" in sql
    assert params == (3,)
    assert rows[0]["attendees"] == [3]


def test_serialize_event(event_row):
    body = store.serialize_event(event_row(attendees=[4, 2]))

    assert body["id"] == 1
    assert body["date"] == "2024-06-01T18:00:00"
    assert body["maxAttendees"] == 10
    assert body["createdBy"] == {"id": 1, "name": "Ada", "email": "ada@example.com"}
    assert body["attendees"] == [4, 2]
    assert "password_hash" not in body["createdBy"]
