"""Service-layer error taxonomy mapped onto HTTP status codes in main.py."""

from __future__ import annotations

from typing import Any


class ServiceError(Exception):
    """Base for errors raised by services and surfaced to API callers."""

    status_code = 500

    def __init__(self, detail: Any = "Internal server error"):
        super().__init__(str(detail))
        self.detail = detail


class ValidationError(ServiceError):
    status_code = 400


class AuthError(ServiceError):
    status_code = 401


class ForbiddenError(ServiceError):
    status_code = 403


class NotFoundError(ServiceError, LookupError):
    status_code = 404


class ConflictError(ValidationError):
    """Uniqueness violation (slug, room code, duplicate vote or invitation)."""

    status_code = 409


class CreationFailure(ServiceError):
    status_code = 500


class PayloadTooLargeError(ServiceError):
    status_code = 413
