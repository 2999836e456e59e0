from __future__ import annotations

import logging
import uuid
from functools import wraps
from typing import Any

from flask import Flask, current_app, jsonify, request, session

from ..core.constants import DEFAULT_REQUEST_TIMEOUT_SECONDS
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    NotFoundError,
    OperationCancelledError,
    StorageError,
    ValidationError,
)
from .deadline import Deadline
from .validators import parse_uuid

logger = logging.getLogger(__name__)


def json_ok(data: Any = None, status: int = 200, message: str | None = None):
    body: dict[str, Any] = {"success": True, "data": data}
    if message:
        body["message"] = message
    return jsonify(body), status


def json_error(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return json_error("Login required", 401)
        return view(*args, **kwargs)

    return wrapper


def current_user_id() -> uuid.UUID:
    try:
        return parse_uuid(session["user_id"], "session user id")
    except (KeyError, ValidationError):
        session.clear()
        raise AuthenticationError("Login required")


def json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def request_deadline() -> Deadline:
    """Time budget applied to every store call made while serving the request."""
    seconds = current_app.config.get("REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS)
    if not seconds:
        return Deadline.none()
    return Deadline.after(float(seconds))


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validation(e: ValidationError):
        return json_error(str(e), 400)

    @app.errorhandler(AuthenticationError)
    def _authentication(e: AuthenticationError):
        return json_error(str(e), 401)

    @app.errorhandler(AuthorizationError)
    def _authorization(e: AuthorizationError):
        return json_error(str(e), 403)

    @app.errorhandler(NotFoundError)
    def _not_found(e: NotFoundError):
        return json_error(str(e), 404)

    @app.errorhandler(OperationCancelledError)
    def _cancelled(e: OperationCancelledError):
        logger.warning("Request %s %s ran out of time: %s", request.method, request.path, e)
        return json_error("The request timed out, please retry", 503)

    @app.errorhandler(StorageError)
    def _storage(e: StorageError):
        logger.exception("Storage failure on %s %s", request.method, request.path)
        if bool(app.config.get("DEBUG", False)):
            return json_error(f"Internal error: {e}", 500)
        return json_error("Internal error", 500)
