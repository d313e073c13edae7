"""FastAPI dependencies shared across the public API."""

from __future__ import annotations

from fastapi import Depends, Header, HTTPException, status

from ..auth import UserContext, require_auth
from ..db import DatabaseClient, get_database_client
from ..services.companies import load_user_context


def get_database() -> DatabaseClient:
    """Return the shared database client instance."""

    return get_database_client()


def get_current_user(
    authorization: str = Header(None),
    db: DatabaseClient = Depends(get_database),
) -> UserContext:
    """
    Resolve the caller from the bearer token.

    Tokens for users that no longer exist or were deactivated are rejected even
    while the JWT itself is still valid. The development bypass token maps to a
    fixed admin context without a database lookup.
    """

    user_info = require_auth(authorization)

    if user_info.get("dev"):
        return UserContext(
            user_id=str(user_info["id"]),
            company_id=str(user_info.get("company_id") or ""),
            email=user_info.get("email"),
            name=user_info.get("name"),
            role=str(user_info.get("role") or "admin"),
        )

    context = load_user_context(db, str(user_info["id"]))
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return context


def get_admin_user(user: UserContext = Depends(get_current_user)) -> UserContext:
    if not user.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Administrator role required")
    return user
