"""Domain error taxonomy shared by services and blueprints."""

from __future__ import annotations

from http import HTTPStatus


class LifecycleError(Exception):
    status = HTTPStatus.BAD_REQUEST

    def __init__(self, code: str, message: str | None = None, payload: dict | None = None):
        super().__init__(message or code)
        self.code = code
        self.message = message or code
        self.payload = payload or {}

    def to_dict(self) -> dict:
        return {"error": self.code, "message": self.message, **self.payload}


class InvalidArgument(LifecycleError):
    status = HTTPStatus.BAD_REQUEST


class AuthError(LifecycleError):
    status = HTTPStatus.UNAUTHORIZED


class SubscriptionRequired(LifecycleError):
    status = HTTPStatus.PAYMENT_REQUIRED


class NotFound(LifecycleError):
    status = HTTPStatus.NOT_FOUND


class Conflict(LifecycleError):
    status = HTTPStatus.CONFLICT


class StorageError(LifecycleError):
    status = HTTPStatus.SERVICE_UNAVAILABLE


def error_response(err: LifecycleError):
    """Shape a LifecycleError into the (body, status) pair blueprints return."""

    from flask import jsonify

    return jsonify(err.to_dict()), err.status
