"""Per-user API customizations and single API views over HTTP."""

from __future__ import annotations

import json
from urllib.parse import quote

import pytest
from fastapi.testclient import TestClient

from biancu.api.main import app
from biancu.auth import get_auth_manager
from biancu.db import get_database_client
from biancu.services import ai, http_probe

API = "Payment Order - Initiate"
API_PATH = quote(API)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def company() -> dict:
    return get_database_client().create_company(
        {"name": "Acme", "domain": "acme.com", "is_active": True, "settings": {"max_users": 10, "max_use_cases": 5}}
    )


def _headers_for(company: dict, email: str) -> dict:
    user = get_database_client().create_user(
        {"email": email, "name": email.split("@")[0], "company_id": company["id"], "role": "user", "is_active": True}
    )
    token = get_auth_manager().issue_token(
        user_id=user["id"], email=user["email"], company_id=user["company_id"], role=user["role"]
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def headers(company: dict) -> dict:
    return _headers_for(company, "ana@acme.com")


@pytest.fixture
def use_case_id(client: TestClient, headers: dict, monkeypatch: pytest.MonkeyPatch) -> str:
    monkeypatch.setattr(ai, "call_response_with_metrics", lambda **kwargs: (json.dumps({"recommended_apis": []}), {}))
    created = client.post(
        "/api/v1/use-cases",
        json={
            "title": "Transferencias",
            "description": "Pagos entre cuentas propias",
            "originalText": "El cliente ordena un pago inmediato a otra cuenta del banco.",
        },
        headers=headers,
    ).json()["data"]
    selected = client.post(
        f"/api/v1/use-cases/{created['id']}/domains", json={"domains": ["Payment Order"]}, headers=headers
    )
    assert selected.status_code == 200, selected.text
    return created["id"]


def _save(client: TestClient, headers: dict, use_case_id: str, **body) -> dict:
    response = client.post(
        "/api/v1/api-customizations", json={"useCaseId": use_case_id, "apiName": API, **body}, headers=headers
    )
    assert response.status_code == 200, response.text
    return response.json()


def test_customization_lifecycle(client: TestClient, headers: dict, use_case_id: str) -> None:
    missing = client.get(f"/api/v1/api-customizations/{use_case_id}/{API_PATH}", headers=headers).json()
    assert missing["success"] is True
    assert "data" not in missing
    assert missing["message"] == "No customization found for this API"

    created = _save(client, headers, use_case_id, customPayload={"amount": 10}, notes="SEPA")
    assert created["message"] == "Customization created successfully"
    assert created["data"]["version"] == 1

    updated = _save(client, headers, use_case_id, customPayload={"amount": 20}, testingConfig={"timeout": 3000})
    assert updated["message"] == "Customization updated successfully"
    assert updated["data"]["version"] == 2
    assert updated["data"]["testing_config"] == {"timeout": 3000, "retries": 1}

    listed = client.get(f"/api/v1/api-customizations/{use_case_id}", headers=headers).json()
    assert listed["count"] == 1

    reset = client.post(f"/api/v1/api-customizations/{use_case_id}/{API_PATH}/reset", headers=headers).json()
    assert "custom_payload" not in reset["data"] or reset["data"]["custom_payload"] is None

    assert client.delete(f"/api/v1/api-customizations/{use_case_id}/{API_PATH}", headers=headers).status_code == 200
    again = client.delete(f"/api/v1/api-customizations/{use_case_id}/{API_PATH}", headers=headers)
    assert again.status_code == 404
    assert client.post(f"/api/v1/api-customizations/{use_case_id}/{API_PATH}/reset", headers=headers).status_code == 404


@pytest.mark.parametrize(
    "body",
    [{"notes": "x" * 2001}, {"testingConfig": {"timeout": 100}}, {"testingConfig": {"retries": 9}}, {"apiName": ""}],
)
def test_invalid_customization_is_rejected(client: TestClient, headers: dict, use_case_id: str, body: dict) -> None:
    response = client.post(
        "/api/v1/api-customizations", json={"useCaseId": use_case_id, "apiName": API, **body}, headers=headers
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_customized_call_is_recorded(client: TestClient, headers: dict, use_case_id: str, monkeypatch) -> None:
    _save(client, headers, use_case_id, customPayload={"amount": 10}, customHeaders={"X-Channel": "web"},
          testingConfig={"baseUrl": "https://staging.bank.example", "retries": 0})
    seen = []

    def fake_probe(method, url, *, headers=None, payload=None, timeout=None):
        seen.append((method, url, headers, payload))
        return http_probe.ProbeResult(success=True, request={"url": url}, status=202, response_time_ms=8)

    monkeypatch.setattr(http_probe, "probe", fake_probe)

    result = client.post(
        f"/api/v1/api-customizations/{use_case_id}/{API_PATH}/test",
        json={"method": "post", "endpoint": "/payment-order/initiate"},
        headers=headers,
    )

    assert result.status_code == 200, result.text
    assert result.json()["data"]["status"] == 202
    assert seen == [("POST", "https://staging.bank.example/payment-order/initiate", {"X-Channel": "web"}, {"amount": 10})]
    stored = client.get(f"/api/v1/api-customizations/{use_case_id}/{API_PATH}", headers=headers).json()["data"]
    assert stored["test_history"][0]["status"] == 202


def test_colleague_sees_only_own_customizations(client: TestClient, company: dict, headers: dict,
                                                use_case_id: str) -> None:
    _save(client, headers, use_case_id, notes="mine")
    colleague = _headers_for(company, "luis@acme.com")

    listed = client.get(f"/api/v1/api-customizations/{use_case_id}", headers=colleague).json()

    assert listed["count"] == 0


def test_single_api_views(client: TestClient, headers: dict, use_case_id: str) -> None:
    _save(client, headers, use_case_id, customPayload={"amount": 42})

    detail = client.get(f"/api/v1/single-api/{use_case_id}/{API_PATH}", headers=headers).json()["data"]
    assert detail["has_customization"] is True
    assert detail["api"]["name"] == API

    spec = client.get(f"/api/v1/single-api/{use_case_id}/{API_PATH}/openapi-spec", headers=headers).json()["data"]
    example = spec["spec"]["paths"]["/payment-order/initiate"]["post"]["requestBody"]["content"]["application/json"]
    assert example["example"] == {"amount": 42}
    assert spec["validation"]["valid"] is True

    plain = client.get(
        f"/api/v1/single-api/{use_case_id}/{API_PATH}/openapi-spec?includeCustomizations=false", headers=headers
    ).json()["data"]
    assert plain["included_customizations"] is False

    related = client.get(f"/api/v1/single-api/{use_case_id}/{API_PATH}/related-apis", headers=headers).json()
    assert related["count"] == len(related["data"]["related_apis"]) > 0
    assert all(api["domain"] == "Payment Order" for api in related["data"]["related_apis"])


def test_single_api_unknown_name_is_not_found(client: TestClient, headers: dict, use_case_id: str) -> None:
    response = client.get(f"/api/v1/single-api/{use_case_id}/{quote('Card Authorization')}", headers=headers)

    assert response.status_code == 404
