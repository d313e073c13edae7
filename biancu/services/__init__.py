"""Shared service exports."""

from .errors import (
    AIServiceError,
    ConflictError,
    LifecycleError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)
from .lifecycle import LifecycleAction, UseCaseStatus, apply_action

__all__ = [
    "AIServiceError",
    "ConflictError",
    "LifecycleAction",
    "LifecycleError",
    "NotFoundError",
    "PermissionDeniedError",
    "ServiceError",
    "UseCaseStatus",
    "ValidationError",
    "apply_action",
]
