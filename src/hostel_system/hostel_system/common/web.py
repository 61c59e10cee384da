"""Shared helpers for the JSON controllers."""
from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any

from flask import Flask, current_app, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DomainError,
    NotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from ..core.identity import Identity
from .pagination import Page, PageRequest

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationError, 401),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def to_json(value: Any) -> Any:
    """Turn domain dataclasses into JSON-friendly structures."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def ok(data: Any = None, *, message: str | None = None, status: int = 200):
    body: dict[str, Any] = {"success": True}
    if message:
        body["message"] = message
    if data is not None:
        body["data"] = to_json(data)
    return jsonify(body), status


def ok_page(page: Page, key: str):
    return ok({key: page.items, "pagination": page.pagination()})


def page_request() -> PageRequest:
    return PageRequest.of(
        request.args.get("page"),
        request.args.get("limit"),
        default_limit=int(current_app.config.get("DEFAULT_PAGE_LIMIT", 10)),
    )


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def current_identity() -> Identity:
    if "user_id" not in session:
        raise AuthenticationError("Authentication required")
    return Identity(user_id=int(session["user_id"]), role=Role(session["role"]))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return jsonify({"success": False, "message": "Authentication required"}), 401
        return view(*args, **kwargs)

    return wrapper


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def handle_domain_error(exc: DomainError):
        status = 400
        for error_cls, code in _STATUS_BY_ERROR:
            if isinstance(exc, error_cls):
                status = code
                break
        if status == 409:
            logger.info("Conflict on %s %s: %s", request.method, request.path, exc)
        return jsonify({"success": False, "message": str(exc)}), status

    @app.errorhandler(StorageUnavailableError)
    def handle_storage_unavailable(exc: StorageUnavailableError):
        logger.error("Database unavailable on %s %s", request.method, request.path, exc_info=exc)
        return jsonify({"success": False, "message": "Service temporarily unavailable"}), 503
