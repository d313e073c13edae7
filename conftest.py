"""Repository-wide pytest fixtures."""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest

from biancu.auth import UserContext, reset_auth_manager
from biancu.config import reload_config
from biancu.db import reset_database_client
from biancu.services.bian import reset_bian_catalogue


@pytest.fixture(autouse=True)
def _set_default_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Run every test against the in-memory backend with a known JWT secret."""

    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("DATABASE_BACKEND", "memory")
    monkeypatch.setenv("JWT_SECRET", "test-secret-key-with-enough-length")
    monkeypatch.delenv("DEV_AUTH_TOKEN", raising=False)
    monkeypatch.delenv("DATA_SOURCE_SECRET_KEY", raising=False)
    monkeypatch.setenv("OPENAI_CLIENT", "openai")
    monkeypatch.setenv("OPENAI_API_KEY", os.getenv("OPENAI_API_KEY", "test-key"))
    reload_config()
    reset_database_client()
    reset_auth_manager()
    reset_bian_catalogue()
    yield
    reset_database_client()
    reset_auth_manager()
    reset_bian_catalogue()


@pytest.fixture
def user_context() -> UserContext:
    """Reusable user context fixture."""

    return UserContext(
        user_id="user-123",
        company_id="company-1",
        email="test@example.com",
        name="Test User",
        role="admin",
    )
