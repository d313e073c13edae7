from __future__ import annotations

import pytest

from biancu.auth import UserContext
from biancu.db.memory import InMemoryDatabaseClient
from biancu.services import api_customizations, single_api
from biancu.services.bian import BianCatalogue
from biancu.services.errors import NotFoundError
from biancu.services.use_cases import create_use_case, save_use_case


@pytest.fixture
def db() -> InMemoryDatabaseClient:
    return InMemoryDatabaseClient()


@pytest.fixture
def use_case(db, user_context):
    created = create_use_case(
        db,
        user_context,
        {"title": "Pagos", "description": "Pagos inmediatos", "original_text": "texto " * 20},
    )
    apis = BianCatalogue().apis_for_domains(["Payment Order", "Credit Management"])
    return save_use_case(db, created.id, {"suggested_apis": apis})


def test_find_api_prefers_exact_name_then_prefix(use_case) -> None:
    assert single_api.find_api(use_case, "Payment Order - Update")["endpoint"] == "/payment-order/{payment-order-id}/update"
    assert single_api.find_api(use_case, "Payment Order - Cancel")["name"] == "Payment Order - Initiate"

    with pytest.raises(NotFoundError):
        single_api.find_api(use_case, "Card Authorization")


def test_detail_without_customization(db, user_context, use_case) -> None:
    detail = single_api.api_detail(db, user_context, use_case.id, "Payment Order - Initiate")

    assert detail["use_case"] == {"id": use_case.id, "title": "Pagos", "description": "Pagos inmediatos"}
    assert detail["api"]["method"] == "POST"
    assert detail["customization"] is None
    assert detail["has_customization"] is False
    assert detail["available_operations"] == ["view", "edit", "test", "download"]
    assert "/payment-order/initiate" in detail["openapi_spec"]["paths"]


def test_spec_includes_customization_only_when_asked(db, user_context, use_case) -> None:
    api_customizations.save_customization(
        db, user_context, use_case.id, "Payment Order - Initiate", {"custom_payload": {"amount": 1}}
    )

    with_custom = single_api.api_openapi_spec(db, user_context, use_case.id, "Payment Order - Initiate")
    plain = single_api.api_openapi_spec(
        db, user_context, use_case.id, "Payment Order - Initiate", include_customizations=False
    )

    body = with_custom["spec"]["paths"]["/payment-order/initiate"]["post"]["requestBody"]
    assert body["content"]["application/json"]["example"] == {"amount": 1}
    assert with_custom["included_customizations"] is True
    assert with_custom["validation"] == {"valid": True, "errors": []}
    assert plain["included_customizations"] is False


def test_related_apis_share_domain_or_keyword(db, user_context, use_case) -> None:
    api_customizations.save_customization(db, user_context, use_case.id, "Credit Assessment - Evaluate", {})

    result = single_api.related_apis(db, user_context, use_case.id, "Credit Assessment - Retrieve")

    names = {api["name"]: api["has_customization"] for api in result["related_apis"]}
    assert names == {"Credit Assessment - Evaluate": True, "Payment Order - Retrieve": False}
    assert result["count"] == 2
    assert set(result["grouped_by_domain"]) == {"Credit Management", "Payment Order"}
    assert result["current_api"] == {"name": "Credit Assessment - Retrieve", "domain": "Credit Management"}


def test_outsider_cannot_view_api(db, use_case) -> None:
    outsider = UserContext(user_id="user-999", company_id="company-2", role="admin")

    with pytest.raises(NotFoundError):
        single_api.api_detail(db, outsider, use_case.id, "Payment Order - Initiate")
