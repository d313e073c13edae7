"""Python client for the BIAN-CU platform API."""

from .client import (
    ApiError,
    AuthenticationError,
    BianCuClient,
    NotFoundError,
    ServerError,
    ValidationError,
)

__all__ = [
    "ApiError",
    "AuthenticationError",
    "BianCuClient",
    "NotFoundError",
    "ServerError",
    "ValidationError",
]
