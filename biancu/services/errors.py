"""Exceptions raised by the service layer and mapped to HTTP codes by the API."""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for service-level failures."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ServiceError):
    """Request data that passes schema checks but breaks a business rule."""

    status_code = 400
    code = "VALIDATION_ERROR"


class LifecycleError(ValidationError):
    """Invalid status transition or selection payload."""


class NotFoundError(ServiceError):
    status_code = 404
    code = "NOT_FOUND"


class PermissionDeniedError(ServiceError):
    status_code = 403
    code = "FORBIDDEN"


class ConflictError(ServiceError):
    status_code = 409
    code = "CONFLICT"


class AIServiceError(ServiceError):
    """The language model call failed or returned an unusable reply."""

    status_code = 502
    code = "AI_SERVICE_ERROR"


__all__ = [
    "AIServiceError",
    "ConflictError",
    "LifecycleError",
    "NotFoundError",
    "PermissionDeniedError",
    "ServiceError",
    "ValidationError",
]
