from __future__ import annotations

import pytest

from biancu.auth import UserContext
from biancu.db.memory import InMemoryDatabaseClient
from biancu.services import api_customizations as customizations
from biancu.services import http_probe
from biancu.services.errors import NotFoundError, ValidationError
from biancu.services.use_cases import create_use_case

API = "Payment Order - Initiate"


@pytest.fixture
def db() -> InMemoryDatabaseClient:
    return InMemoryDatabaseClient()


@pytest.fixture
def use_case(db, user_context):
    return create_use_case(
        db,
        user_context,
        {"title": "Pagos", "description": "Pagos inmediatos", "original_text": "texto " * 20},
    )


@pytest.fixture
def calls(monkeypatch: pytest.MonkeyPatch):
    """Record outgoing test calls and answer each with a 201."""

    recorded = []

    def fake_probe(method, url, *, headers=None, payload=None, timeout=None):
        recorded.append({"method": method, "url": url, "headers": dict(headers or {}), "payload": payload,
                         "timeout": timeout})
        return http_probe.ProbeResult(success=True, request={"url": url}, status=201, response_time_ms=12)

    monkeypatch.setattr(http_probe, "probe", fake_probe)
    return recorded


def _save(db, user, use_case, **data):
    return customizations.save_customization(db, user, use_case.id, API, data)


def test_first_save_creates_and_second_replaces(db, user_context, use_case) -> None:
    created, is_new = _save(db, user_context, use_case, custom_payload={"amount": 10}, notes="  primera  ")

    assert is_new is True
    assert created.version == 1
    assert created.notes == "primera"
    assert created.testing_config == {"timeout": 10000, "retries": 1}

    updated, is_new = _save(db, user_context, use_case, custom_headers={"X-Channel": "web"})

    assert is_new is False
    assert updated.id == created.id
    assert updated.version == 2
    assert updated.custom_payload is None
    assert updated.custom_headers == {"X-Channel": "web"}


@pytest.mark.parametrize(
    "data",
    [
        {"notes": "x" * 2001},
        {"testing_config": {"timeout": 500}},
        {"testing_config": {"retries": 6}},
        {"custom_payload": ["not", "an", "object"]},
    ],
)
def test_invalid_customization_is_rejected(db, user_context, use_case, data) -> None:
    with pytest.raises(ValidationError):
        _save(db, user_context, use_case, **data)


def test_customizations_are_private_to_each_user(db, user_context, use_case) -> None:
    _save(db, user_context, use_case, notes="mine")
    colleague = UserContext(user_id="user-456", company_id="company-1", role="user")

    assert customizations.get_customization(db, colleague, use_case.id, API) is None
    assert customizations.list_customizations(db, colleague, use_case.id) == []
    assert [item.api_name for item in customizations.list_customizations(db, user_context, use_case.id)] == [API]


def test_other_company_cannot_reach_use_case(db, user_context, use_case) -> None:
    outsider = UserContext(user_id="user-999", company_id="company-2", role="admin")

    with pytest.raises(NotFoundError):
        customizations.list_customizations(db, outsider, use_case.id)


def test_reset_clears_content_but_keeps_testing_config(db, user_context, use_case) -> None:
    _save(db, user_context, use_case, custom_payload={"amount": 10}, notes="n",
          testing_config={"timeout": 2000, "retries": 0})

    reset = customizations.reset_customization(db, user_context, use_case.id, API)

    assert reset.custom_payload is None
    assert reset.notes == ""
    assert reset.custom_headers == {}
    assert reset.testing_config == {"timeout": 2000, "retries": 0}
    assert reset.version == 2


def test_delete_is_soft_and_saving_again_reactivates(db, user_context, use_case) -> None:
    created, _ = _save(db, user_context, use_case, notes="v1")

    customizations.delete_customization(db, user_context, use_case.id, API)

    assert customizations.get_customization(db, user_context, use_case.id, API) is None
    assert db.get_api_customization(use_case.id, API, user_context.user_id)["is_active"] is False
    with pytest.raises(NotFoundError):
        customizations.delete_customization(db, user_context, use_case.id, API)
    with pytest.raises(NotFoundError):
        customizations.reset_customization(db, user_context, use_case.id, API)

    again, is_new = _save(db, user_context, use_case, notes="v2")
    assert is_new is False
    assert again.id == created.id
    assert again.is_active is True


def test_test_call_applies_customization_and_records_history(db, user_context, use_case, calls) -> None:
    _save(
        db,
        user_context,
        use_case,
        custom_payload={"amount": 10},
        custom_headers={"X-Channel": "web", "X-Trace": "stored"},
        testing_config={"base_url": "https://staging.bank.example", "timeout": 2500, "retries": 0},
    )

    result = customizations.test_customized_api(
        db,
        user_context,
        use_case.id,
        API,
        method="post",
        endpoint="/payment-order/initiate",
        override_headers={"X-Trace": "override"},
    )

    assert result["status"] == 201
    assert calls == [
        {
            "method": "POST",
            "url": "https://staging.bank.example/payment-order/initiate",
            "headers": {"X-Channel": "web", "X-Trace": "override"},
            "payload": {"amount": 10},
            "timeout": 2.5,
        }
    ]
    stored = customizations.get_customization(db, user_context, use_case.id, API)
    assert stored.version == 1
    assert [(item.method, item.status, item.response_time_ms) for item in stored.test_history] == [("POST", 201, 12)]


def test_override_payload_and_plain_mode(db, user_context, use_case, calls) -> None:
    _save(db, user_context, use_case, custom_payload={"amount": 10}, custom_headers={"X-Channel": "web"})

    customizations.test_customized_api(db, user_context, use_case.id, API, method="PUT", endpoint="/x",
                                       override_payload={"amount": 99})
    customizations.test_customized_api(db, user_context, use_case.id, API, method="PUT", endpoint="/x",
                                       use_custom_data=False)

    assert calls[0]["payload"] == {"amount": 99}
    assert calls[1]["payload"] is None
    assert calls[1]["headers"] == {}


def test_history_keeps_the_latest_ten(db, user_context, use_case, calls) -> None:
    _save(db, user_context, use_case)

    for index in range(12):
        customizations.test_customized_api(db, user_context, use_case.id, API, method="GET",
                                           endpoint=f"/orders/{index}")

    history = customizations.get_customization(db, user_context, use_case.id, API).test_history
    assert len(history) == customizations.HISTORY_LIMIT
    assert history[0].endpoint == "/orders/11"
    assert history[-1].endpoint == "/orders/2"


def test_network_failures_are_retried(db, user_context, use_case, monkeypatch: pytest.MonkeyPatch) -> None:
    _save(db, user_context, use_case, testing_config={"retries": 2})
    outcomes = [
        http_probe.ProbeResult(success=False, request={}, error={"message": "refused"}),
        http_probe.ProbeResult(success=False, request={}, error={"message": "refused"}),
        http_probe.ProbeResult(success=True, request={}, status=200),
    ]
    monkeypatch.setattr(http_probe, "probe", lambda *args, **kwargs: outcomes.pop(0))

    result = customizations.test_customized_api(db, user_context, use_case.id, API, method="GET", endpoint="/x")

    assert result["status"] == 200
    assert outcomes == []


def test_without_customization_uses_sandbox_defaults(db, user_context, use_case, calls) -> None:
    customizations.test_customized_api(db, user_context, use_case.id, API, method="GET", endpoint="orders")

    assert calls[0]["url"] == http_probe.build_url("/orders")
    assert calls[0]["timeout"] == 10.0
    assert len(calls) == 1


def test_unsupported_method_is_rejected(db, user_context, use_case, calls) -> None:
    with pytest.raises(ValidationError):
        customizations.test_customized_api(db, user_context, use_case.id, API, method="PATCH", endpoint="/x")
    assert calls == []
