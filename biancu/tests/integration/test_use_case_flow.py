"""End-to-end use case flow through the HTTP API on the in-memory backend."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from biancu.api.main import app
from biancu.auth import get_auth_manager
from biancu.db import get_database_client
from biancu.services import ai

ORIGINAL_TEXT = (
    "El cliente inicia una transferencia inmediata desde la banca móvil. "
    "El banco valida el saldo disponible y ejecuta el pago al beneficiario."
)
ANALYSIS = {
    "business_objectives": ["Pagos inmediatos"],
    "actors": ["Cliente", "Banco"],
    "events": ["Solicitud de transferencia"],
    "flows": ["Validar saldo", "Ejecutar pago"],
    "suggested_domains": ["Payment Order"],
    "confidence": 0.9,
}


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def member() -> dict:
    db = get_database_client()
    company = db.create_company(
        {
            "name": "Acme",
            "domain": "acme.com",
            "is_active": True,
            "settings": {"features": ["use-cases"], "max_users": 10, "max_use_cases": 2},
        }
    )
    return db.create_user(
        {"email": "ana@acme.com", "name": "Ana", "company_id": company["id"], "role": "admin", "is_active": True}
    )


@pytest.fixture
def headers(member: dict) -> dict:
    token = get_auth_manager().issue_token(
        user_id=member["id"],
        email=member["email"],
        company_id=member["company_id"],
        role=member["role"],
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def fake_model(monkeypatch: pytest.MonkeyPatch):
    """Answer every prompt with the canned analysis; refinement keeps the catalogue list."""

    def fake(**kwargs):
        if "refine the suggestions" in kwargs["user_prompt"]:
            return json.dumps({"recommended_apis": []}), {}
        return json.dumps(ANALYSIS), {}

    monkeypatch.setattr(ai, "call_response_with_metrics", fake)


def _create(client: TestClient, headers: dict, title: str = "Transferencias inmediatas") -> dict:
    response = client.post(
        "/api/v1/use-cases",
        json={"title": title, "description": "Pagos entre cuentas en tiempo real", "originalText": ORIGINAL_TEXT},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


def test_health(client: TestClient) -> None:
    body = client.get("/health").json()

    assert body["status"] == "ok"


def test_requests_without_token_are_rejected(client: TestClient) -> None:
    response = client.get("/api/v1/use-cases")

    assert response.status_code == 401
    assert response.json()["success"] is False
    assert response.json()["error"]["code"] == "UNAUTHORIZED"


def test_create_fetch_and_delete(client: TestClient, headers: dict) -> None:
    created = _create(client, headers)
    assert created["status"] == "draft"

    fetched = client.get(f"/api/v1/use-cases/{created['id']}", headers=headers).json()
    assert fetched["success"] is True
    assert fetched["data"]["title"] == "Transferencias inmediatas"
    assert fetched["data"]["description"] == "Pagos entre cuentas en tiempo real"

    listed = client.get("/api/v1/use-cases", headers=headers).json()
    assert listed["count"] == 1

    assert client.delete(f"/api/v1/use-cases/{created['id']}", headers=headers).status_code == 200
    missing = client.get(f"/api/v1/use-cases/{created['id']}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["code"] == "NOT_FOUND"


def test_invalid_payload_uses_error_envelope(client: TestClient, headers: dict) -> None:
    response = client.post("/api/v1/use-cases", json={"title": "ab"}, headers=headers)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"


def test_full_lifecycle_reaches_completed(client: TestClient, headers: dict, fake_model) -> None:
    use_case_id = _create(client, headers)["id"]

    analysed = client.post(f"/api/v1/use-cases/{use_case_id}/analyze", headers=headers).json()["data"]
    assert analysed["status"] == "analyzed"
    assert analysed["ai_analysis"]["confidence"] == 0.9

    recommended = client.get(f"/api/v1/use-cases/{use_case_id}/domain-recommendations", headers=headers).json()
    assert recommended["data"]["recommendations"][0]["domain"] == "Payment Order"

    selected = client.post(
        f"/api/v1/use-cases/{use_case_id}/domains", json={"domains": ["Payment Order"]}, headers=headers
    ).json()["data"]
    assert selected["status"] == "domains_selected"
    assert selected["suggested_apis"][0]["name"] == "Payment Order - Initiate"

    spec = client.get(f"/api/v1/use-cases/{use_case_id}/openapi-spec", headers=headers).json()["data"]
    assert spec["validation"]["valid"] is True

    chosen = client.post(
        f"/api/v1/use-cases/{use_case_id}/apis", json={"apis": ["Payment Order - Initiate"]}, headers=headers
    ).json()["data"]
    assert chosen["status"] == "apis_selected"

    schema = client.post(
        f"/api/v1/schemas/use-case/{use_case_id}",
        json={"name": "TransferRequest", "schema": {"type": "object"}},
        headers=headers,
    )
    assert schema.status_code == 201

    source = client.post(
        f"/api/v1/data-sources/use-case/{use_case_id}",
        json={
            "name": "Core accounts",
            "systemName": "core",
            "apiUrl": "https://core.example/accounts",
            "method": "POST",
            "associatedApi": "Payment Order - Initiate",
        },
        headers=headers,
    )
    assert source.status_code == 201

    final = client.get(f"/api/v1/use-cases/{use_case_id}", headers=headers).json()["data"]
    assert final["status"] == "completed"


def test_failed_analysis_restores_status(client: TestClient, headers: dict, monkeypatch) -> None:
    use_case_id = _create(client, headers)["id"]

    def boom(**kwargs):
        raise RuntimeError("model offline")

    monkeypatch.setattr(ai, "call_response_with_metrics", boom)

    response = client.post(f"/api/v1/use-cases/{use_case_id}/analyze", headers=headers)

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "AI_SERVICE_ERROR"
    assert client.get(f"/api/v1/use-cases/{use_case_id}", headers=headers).json()["data"]["status"] == "draft"


def test_empty_domain_selection_is_rejected(client: TestClient, headers: dict) -> None:
    use_case_id = _create(client, headers)["id"]

    response = client.post(f"/api/v1/use-cases/{use_case_id}/domains", json={"domains": []}, headers=headers)

    assert response.status_code == 400
    assert client.get(f"/api/v1/use-cases/{use_case_id}", headers=headers).json()["data"]["status"] == "draft"


def test_use_case_limit_is_enforced(client: TestClient, headers: dict) -> None:
    _create(client, headers, "Primer caso")
    _create(client, headers, "Segundo caso")

    response = client.post(
        "/api/v1/use-cases",
        json={"title": "Tercer caso", "description": "Pagos entre cuentas", "originalText": ORIGINAL_TEXT},
        headers=headers,
    )

    assert response.status_code == 403


def test_deactivated_user_token_is_rejected(client: TestClient, headers: dict, member: dict) -> None:
    get_database_client().update_user(member["id"], {"is_active": False})

    assert client.get("/api/v1/auth/me", headers=headers).status_code == 401
