"""
Credential service: registration and password login.

Passwords are stored only as Argon2 hashes. Both operations return the
caller's identity together with a freshly issued bearer token.
"""

import logging
from typing import Any, Dict

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from eventboard.auth_service.utils import create_token
from eventboard.errors import AuthenticationError, ConflictError, ValidationError
from eventboard.users_service import store as users_store

ph = PasswordHasher()


def _all_text(*values: Any) -> bool:
    return all(isinstance(v, str) for v in values)


def _identity(user: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "id": user["user_id"],
        "name": user["name"],
        "email": user["email"],
        "token": create_token(user["user_id"]),
    }


def register(conn, name: str, email: str, password: str) -> Dict[str, Any]:
    """
    Create an account and log it in.

    Raises:
        ValidationError: If name, email or password is missing or not a
            string, or name/email will not fit the users table.
        ConflictError: If the email is already registered.
    """
    if not _all_text(name, email, password):
        raise ValidationError("Please include all fields")

    name = name.strip()
    email = users_store.normalize_email(email)

    if not name or not email or not password:
        raise ValidationError("Please include all fields")

    users_store.check_profile_fields(name=name, email=email)

    if users_store.find_user_by_email(conn, email):
        raise ConflictError("User already exists")

    user = users_store.create_user(conn, name, email, ph.hash(password))
    logging.info(f"[Auth] Registered user {user['user_id']}")
    return _identity(user)


def authenticate(conn, email: str, password: str) -> Dict[str, Any]:
    """
    Check an email/password pair.

    Unknown email and wrong password produce the same error so the response
    does not reveal which accounts exist.

    Raises:
        ValidationError: If email or password is missing, not a string, or
            the email could never have been registered.
        AuthenticationError: If the credentials do not match.
    """
    if not _all_text(email, password):
        raise ValidationError("Please include all fields")

    email = users_store.normalize_email(email)

    if not email or not password:
        raise ValidationError("Please include all fields")

    users_store.check_profile_fields(email=email)

    user = users_store.find_user_by_email(conn, email)
    if not user:
        raise AuthenticationError("Invalid credentials")

    try:
        ph.verify(user["password_hash"], password)
    except (VerificationError, InvalidHashError):
        raise AuthenticationError("Invalid credentials")

    return _identity(user)
