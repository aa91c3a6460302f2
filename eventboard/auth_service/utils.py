"""
Shared authentication helpers.
Provides token creation, verification, and bearer-token extraction.
"""

import os
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional
from flask import request
from dotenv import load_dotenv

from eventboard.errors import AuthenticationError

# Load .env only once here
load_dotenv()

# Load secrets & configs
JWT_SECRET = os.getenv("JWT_SECRET")
if not JWT_SECRET:
    raise RuntimeError("JWT_SECRET is missing. Set it in .env")

TOKEN_EXPIRATION_MINUTES = int(os.getenv("TOKEN_EXPIRATION_MINUTES", 1440))  # Default 24 hours


# --- JWT CREATION ---
def create_token(user_id: int) -> str:
    """
    Generates a new JWT for a given user.

    Args:
        user_id (int): The unique ID of the user.

    Returns:
        str: Encoded JWT string.
    """
    now = datetime.now(timezone.utc)

    payload = {
        # PyJWT requires a string subject
        "sub": str(user_id),
        "exp": now + timedelta(minutes=TOKEN_EXPIRATION_MINUTES),
        "iat": now
    }

    return jwt.encode(payload, JWT_SECRET, algorithm="HS256")


# --- JWT VALIDATION ---
def resolve_token(token: Optional[str]) -> int:
    """
    Resolve a bearer token to the user id it was issued for.

    Args:
        token (str): JWT string.

    Returns:
        int: The user id.

    Raises:
        AuthenticationError: If the token is missing, malformed, badly signed or expired.
    """
    if not token:
        raise AuthenticationError("Not authorized, no token")

    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=["HS256"])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Not authorized, token expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError("Not authorized, token failed")

    try:
        return int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthenticationError("Not authorized, token failed")


def verify_token_from_request() -> int:
    """
    Verify the JWT in the Authorization header of the current request.

    Protected handlers call this before touching the database, so an
    unauthenticated request never reaches a store operation.

    Returns:
        int: The authenticated user id.

    Raises:
        AuthenticationError: If the header is absent, not a Bearer token, or the token is invalid.
    """
    auth = request.headers.get("Authorization", "")

    if not auth.startswith("Bearer "):
        raise AuthenticationError("Not authorized, no token")

    token = auth.split(" ", 1)[1].strip()
    return resolve_token(token)
