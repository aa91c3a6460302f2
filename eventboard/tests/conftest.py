import os
from datetime import datetime

import pytest

# Ensure JWT_SECRET is set before any eventboard module is imported
os.environ["JWT_SECRET"] = "test_secret"

from eventboard.gateway.server import create_app
from eventboard.auth_service.utils import create_token


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "UPLOAD_FOLDER": str(tmp_path / "uploads"),
    })
    return app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def mock_db(mocker):
    """
    Mocks the database connection and cursor for every service.
    """
    mock_conn = mocker.MagicMock()
    mock_cursor = mocker.MagicMock()

    # Setup the context manager for connection
    mock_conn.__enter__.return_value = mock_conn
    mock_conn.__exit__.return_value = None

    # Setup the context manager for cursor
    mock_cursor.__enter__.return_value = mock_cursor
    mock_cursor.__exit__.return_value = None

    # Connect cursor to connection
    mock_conn.cursor.return_value = mock_cursor

    for module in ("auth_service", "events_service", "users_service"):
        mocker.patch(f"eventboard.{module}.routes.get_db", return_value=mock_conn)

    return mock_conn, mock_cursor


@pytest.fixture
def auth_header():
    """
    Authorization header for user 1 (or any other id).
    """
    def make(user_id=1):
        return {"Authorization": f"Bearer {create_token(user_id)}"}
    return make


@pytest.fixture
def event_row():
    """
    Factory for rows shaped like the event store's SELECT.
    """
    def make(**overrides):
        row = {
            "event_id": 1,
            "title": "Summer Meetup",
            "description": "Drinks and talks",
            "event_date": datetime(2024, 6, 1, 18, 0, 0),
            "location": "Hall A",
            "max_attendees": 10,
            "image": None,
            "created_by": 1,
            "creator_name": "Ada",
            "creator_email": "ada@example.com",
            "attendees": [],
            "created_at": datetime(2024, 5, 1, 9, 0, 0),
            "updated_at": datetime(2024, 5, 1, 9, 0, 0),
        }
        row.update(overrides)
        return row
    return make
