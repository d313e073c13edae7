"""BIAN catalogue and company administration over HTTP."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from biancu.api.main import app
from biancu.auth import get_auth_manager
from biancu.db import get_database_client


def _headers(record: dict) -> dict:
    token = get_auth_manager().issue_token(
        user_id=record["id"],
        email=record["email"],
        company_id=record["company_id"],
        role=record["role"],
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def team() -> dict:
    db = get_database_client()
    company = db.create_company({"name": "Acme", "domain": "acme.com", "is_active": True, "settings": {}})
    admin = db.create_user({"email": "ana@acme.com", "name": "Ana", "company_id": company["id"], "role": "admin"})
    member = db.create_user({"email": "luis@acme.com", "name": "Luis", "company_id": company["id"], "role": "user"})
    return {"admin": admin, "member": member}


def test_domain_search_and_lookup(client: TestClient, team: dict) -> None:
    headers = _headers(team["member"])

    found = client.get("/api/v1/bian/domains", params={"search": "fraud"}, headers=headers).json()
    assert found["count"] == 1
    assert found["data"][0]["name"] == "Fraud Detection"

    missing = client.get("/api/v1/bian/domains/Nowhere", headers=headers)
    assert missing.status_code == 404
    assert missing.json() == {
        "success": False,
        "message": "BIAN domain not found",
        "error": {"code": "NOT_FOUND", "message": "BIAN domain not found"},
    }


def test_apis_for_domains_requires_a_domain(client: TestClient, team: dict) -> None:
    headers = _headers(team["member"])

    assert client.post("/api/v1/bian/apis", json={"domains": []}, headers=headers).status_code == 400

    response = client.post("/api/v1/bian/apis", json={"domains": ["Credit Management"]}, headers=headers).json()
    assert [api["name"] for api in response["data"]] == ["Credit Assessment - Evaluate", "Credit Assessment - Retrieve"]


def test_created_api_is_retrievable(client: TestClient, team: dict) -> None:
    headers = _headers(team["member"])

    created = client.post(
        "/api/v1/bian/apis/create",
        json={"apis": [{"name": "Open Banking Consent", "domain": "Open Banking"}]},
        headers=headers,
    )
    assert created.status_code == 201

    fetched = client.get("/api/v1/bian/apis/Open Banking Consent", headers=headers).json()["data"]
    assert fetched["endpoints"][0]["path"] == "/open-banking-consent/initiate"


def test_company_administration_requires_admin(client: TestClient, team: dict) -> None:
    member_headers = _headers(team["member"])
    admin_headers = _headers(team["admin"])

    assert client.get("/api/v1/companies/current", headers=member_headers).json()["data"]["name"] == "Acme"
    denied = client.get("/api/v1/companies/current/users", headers=member_headers)
    assert denied.status_code == 403
    assert denied.json()["error"]["code"] == "FORBIDDEN"

    users = client.get("/api/v1/companies/current/users", headers=admin_headers).json()
    assert users["count"] == 2

    promoted = client.put(
        f"/api/v1/companies/current/users/{team['member']['id']}/role",
        json={"role": "admin"},
        headers=admin_headers,
    ).json()["data"]
    assert promoted == {
        "user_id": team["member"]["id"],
        "name": "Luis",
        "email": "luis@acme.com",
        "role": "admin",
        "is_active": True,
    }


def test_only_admin_cannot_deactivate_self(client: TestClient, team: dict) -> None:
    response = client.put(
        f"/api/v1/companies/current/users/{team['admin']['id']}/status",
        json={"isActive": False},
        headers=_headers(team["admin"]),
    )

    assert response.status_code == 400


def test_me_returns_user_and_company(client: TestClient, team: dict) -> None:
    data = client.get("/api/v1/auth/me", headers=_headers(team["admin"])).json()["data"]

    assert data["user"]["email"] == "ana@acme.com"
    assert data["company"]["domain"] == "acme.com"

    refreshed = client.post("/api/v1/auth/refresh", headers=_headers(team["admin"])).json()["data"]
    assert get_auth_manager().get_user_from_token(refreshed["token"])["id"] == team["admin"]["id"]
