"""Tests for shared FastAPI dependency helpers."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from biancu.api import dependencies
from biancu.db.memory import InMemoryDatabaseClient


def test_get_current_user_requires_header() -> None:
    with pytest.raises(HTTPException) as exc:
        dependencies.get_current_user(authorization=None, db=InMemoryDatabaseClient())

    assert exc.value.status_code == 401


def test_dev_claims_skip_the_database(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        dependencies,
        "require_auth",
        lambda header: {"id": "dev-user", "company_id": "dev-company", "role": "admin", "dev": True},
    )

    user = dependencies.get_current_user("Bearer letmein", db=InMemoryDatabaseClient())

    assert user.user_id == "dev-user"
    assert user.is_admin


def test_inactive_user_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    db = InMemoryDatabaseClient()
    record = db.create_user({"email": "ana@acme.com", "name": "Ana", "company_id": "c-1", "is_active": False})
    monkeypatch.setattr(dependencies, "require_auth", lambda header: {"id": record["id"], "dev": False})

    with pytest.raises(HTTPException) as exc:
        dependencies.get_current_user("Bearer abc", db=db)

    assert exc.value.status_code == 401


def test_active_user_context_comes_from_the_database(monkeypatch: pytest.MonkeyPatch) -> None:
    db = InMemoryDatabaseClient()
    record = db.create_user({"email": "ana@acme.com", "name": "Ana", "company_id": "c-1", "role": "admin"})
    # Role in the token is ignored in favour of the stored role.
    monkeypatch.setattr(dependencies, "require_auth", lambda header: {"id": record["id"], "role": "user"})

    user = dependencies.get_current_user("Bearer abc", db=db)

    assert user.company_id == "c-1"
    assert user.role == "admin"


def test_get_admin_user_requires_admin_role(user_context) -> None:
    user_context.role = "user"

    with pytest.raises(HTTPException) as exc:
        dependencies.get_admin_user(user_context)

    assert exc.value.status_code == 403
