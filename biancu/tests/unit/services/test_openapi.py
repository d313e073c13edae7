from __future__ import annotations

from biancu.db.models import ApiCustomization, UseCase
from biancu.services.bian import BianCatalogue
from biancu.services.openapi import (
    example_payload,
    generate_single_api_spec,
    generate_use_case_spec,
    schema_from_example,
    validate_spec,
)


def _use_case(suggested_apis):
    return UseCase(
        id="uc-1",
        title="Transferencias inmediatas",
        description="Pagos entre cuentas propias",
        original_text="",
        company_id="company-1",
        created_by="user-123",
        suggested_apis=suggested_apis,
    )


def test_spec_for_flattened_catalogue_entries() -> None:
    apis = BianCatalogue().apis_for_domains(["Payment Order"])

    spec = generate_use_case_spec(_use_case(apis))

    assert spec["openapi"] == "3.0.0"
    assert spec["info"]["title"] == "APIs for: Transferencias inmediatas"
    assert spec["info"]["x-bian-version"] == "13.0.0"
    assert [tag["name"] for tag in spec["tags"]] == ["Payment Order"]

    initiate = spec["paths"]["/payment-order/initiate"]["post"]
    assert initiate["requestBody"]["content"]["application/json"]["schema"] == {
        "$ref": "#/components/schemas/PaymentOrderRequest"
    }
    assert set(initiate["responses"]) == {"200", "400", "401", "404", "500"}

    retrieve = spec["paths"]["/payment-order/{payment-order-id}/retrieve"]["get"]
    assert "requestBody" not in retrieve
    assert retrieve["parameters"][0]["name"] == "payment-order-id"
    assert retrieve["parameters"][0]["in"] == "path"
    assert "PaymentOrderResponse" in spec["components"]["schemas"]
    assert validate_spec(spec) == {"valid": True, "errors": []}


def test_entry_without_endpoint_gets_a_derived_path() -> None:
    spec = generate_use_case_spec(_use_case([{"name": "Account Lookup", "domain": "Deposit"}]))

    assert list(spec["paths"]) == ["/deposit-account-lookup"]
    assert "get" in spec["paths"]["/deposit-account-lookup"]


def test_example_payloads_follow_domain() -> None:
    assert "customerReference" in example_payload("Customer Management", "request")
    assert example_payload("Payment Order", "request")["currency"] == "USD"
    assert example_payload("Deposit", "response")["accountStatus"] == "Active"
    assert example_payload("Loan", "request")["status"] == "Success"


def test_validate_spec_lists_missing_parts() -> None:
    result = validate_spec({"info": {}})

    assert result["valid"] is False
    assert "openapi field is required" in result["errors"]
    assert "at least one path is required" in result["errors"]


def test_validate_spec_requires_responses_per_operation() -> None:
    spec = {"openapi": "3.0.0", "info": {"title": "T", "version": "1"}, "paths": {"/x": {"get": {"summary": "x"}}}}

    assert validate_spec(spec) == {"valid": False, "errors": ["GET /x must declare responses"]}


def _initiate_api():
    apis = BianCatalogue().apis_for_domains(["Payment Order"])
    return next(api for api in apis if api["method"] == "POST")


def test_single_api_spec_without_customization_uses_domain_example() -> None:
    api = _initiate_api()

    spec = generate_single_api_spec(api)

    assert spec["info"]["title"] == f"{api['name']} API"
    assert "**Service Domain:** Payment Order" in spec["info"]["description"]
    operation = spec["paths"][api["endpoint"]]["post"]
    assert operation["requestBody"]["content"]["application/json"]["example"] == example_payload("Payment Order", "request")
    assert spec["components"]["schemas"]["PaymentOrderRequest"]["properties"]["amount"]["type"] == "number"
    assert validate_spec(spec)["valid"] is True


def test_single_api_spec_applies_customization() -> None:
    api = _initiate_api()
    customization = ApiCustomization(
        id="custom-1",
        use_case_id="uc-1",
        api_name=api["name"],
        user_id="user-123",
        company_id="company-1",
        custom_payload={"amount": 25, "currency": "EUR"},
        custom_headers={"X-Channel": "mobile"},
        custom_parameters={"limit": 5},
        notes="Solo pagos SEPA",
        testing_config={"base_url": "https://staging.bank.example", "timeout": 5000, "retries": 0},
    )

    spec = generate_single_api_spec(api, customization)

    operation = spec["paths"][api["endpoint"]]["post"]
    assert operation["requestBody"]["content"]["application/json"]["example"] == {"amount": 25, "currency": "EUR"}
    params = {(item["name"], item["in"]): item for item in operation["parameters"]}
    assert params[("X-Channel", "header")]["example"] == "mobile"
    assert params[("limit", "query")]["example"] == 5
    assert [item["name"] for item in operation["parameters"]].count("limit") == 1
    assert spec["info"]["description"].endswith("**Notes:** Solo pagos SEPA")
    assert spec["servers"][0]["url"] == "https://staging.bank.example"


def test_schema_from_example_describes_nested_values() -> None:
    schema = schema_from_example({"flag": True, "count": 2, "tags": ["a"], "owner": {"name": "Ana"}, "rate": 1.5})

    props = schema["properties"]
    assert props["flag"]["type"] == "boolean"
    assert props["count"]["type"] == "integer"
    assert props["rate"]["type"] == "number"
    assert props["tags"] == {"type": "array", "items": {"type": "string", "example": "a"}, "example": ["a"]}
    assert props["owner"]["properties"]["name"]["example"] == "Ana"
