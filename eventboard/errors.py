"""
Domain error taxonomy and the Flask handlers that turn it into JSON.

Stores and services raise these; route handlers let them propagate and
`install_error_handlers` maps each one to a status code and a
`{"message": ...}` body.
"""

import logging
from typing import Tuple

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException


class ApiError(Exception):
    """Base class for errors that are safe to show to the caller."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ApiError):
    """Missing or malformed required input."""

    status_code = 400


class ConflictError(ApiError):
    """Duplicate email or duplicate RSVP."""

    status_code = 400


class CapacityError(ApiError):
    """The event has no free places left."""

    status_code = 400


class AuthenticationError(ApiError):
    """Missing or invalid credentials or token."""

    status_code = 401


class AuthorizationError(ApiError):
    """Authenticated, but not the owner of the resource."""

    status_code = 401


class NotFoundError(ApiError):
    """The requested user or event does not exist."""

    status_code = 404


def install_error_handlers(app: Flask) -> None:
    """
    Register JSON error handlers on the application.

    Args:
        app (Flask): The Flask application instance.
    """

    @app.errorhandler(ApiError)
    def handle_api_error(error: ApiError) -> Tuple[Response, int]:
        logging.info(f"[Error] {request.method} {request.path} -> {error.status_code}: {error.message}")
        return jsonify({"message": error.message}), error.status_code

    @app.errorhandler(404)
    def not_found(error: HTTPException) -> Tuple[Response, int]:
        return jsonify({"message": f"Not Found - {request.path}"}), 404

    @app.errorhandler(HTTPException)
    def handle_http_error(error: HTTPException) -> Tuple[Response, int]:
        return jsonify({"message": error.name}), error.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(error: Exception) -> Tuple[Response, int]:
        # Full traceback goes to the log only
        logging.exception(f"Unhandled exception on {request.method} {request.path}")
        return jsonify({"message": "Internal Server Error"}), 500
