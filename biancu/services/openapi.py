"""OpenAPI 3.0 document generation for a use case's suggested BIAN APIs and for a single API."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Optional

from biancu.config import CONFIG
from biancu.db.models import ApiCustomization, UseCase
from biancu.services.bian import BIAN_VERSION, path_parameters

OPENAPI_VERSION = "3.0.0"
PRODUCTION_SERVER = "https://api.bian.org/v13"

_NON_ALNUM = re.compile(r"[^a-zA-Z0-9]")
_WHITESPACE = re.compile(r"\s+")

_ERROR_RESPONSES = {
    "400": "Invalid request",
    "401": "Unauthorized",
    "404": "Resource not found",
    "500": "Internal server error",
}


def _endpoints(api: Mapping[str, Any]) -> List[Dict[str, Any]]:
    """Endpoints of an API entry, either nested or flattened into the entry itself."""

    nested = api.get("endpoints")
    if isinstance(nested, list) and nested:
        return [dict(item) for item in nested if isinstance(item, Mapping)]
    path = api.get("endpoint") or api.get("path")
    if not path:
        slug = _WHITESPACE.sub("-", str(api.get("name") or "api").lower())
        path = f"/{str(api.get('domain') or 'bian').lower().replace(' ', '-')}-{slug}"
    return [
        {
            "path": path,
            "method": api.get("method") or "GET",
            "operation": str(api.get("name") or "").rsplit(" - ", 1)[-1] or None,
            "description": api.get("description"),
        }
    ]


def _schema_base(api: Mapping[str, Any]) -> str:
    base = str(api.get("name") or "Api").split(" - ", 1)[0]
    return _NON_ALNUM.sub("", base) or "Api"


def example_payload(domain: str, kind: str) -> Dict[str, Any]:
    domain = (domain or "").lower()
    if kind == "request":
        if "customer" in domain:
            return {
                "customerReference": "CR123456",
                "customerData": {
                    "name": "Jane Doe",
                    "email": "jane.doe@example.com",
                    "phone": "+1234567890",
                    "address": {"street": "123 Main St", "city": "City", "country": "Country", "postalCode": "12345"},
                },
            }
        if "account" in domain or "deposit" in domain:
            return {"accountReference": "AC789012", "accountType": "Savings", "currency": "USD", "balance": 1000.0}
        if "transaction" in domain or "payment" in domain:
            return {
                "transactionReference": "TX345678",
                "amount": 500.0,
                "currency": "USD",
                "fromAccount": "AC789012",
                "toAccount": "AC789013",
                "description": "Transfer",
            }
    else:
        if "customer" in domain:
            return {
                "customerReference": "CR123456",
                "status": "Active",
                "customerData": {"name": "Jane Doe", "email": "jane.doe@example.com", "lastUpdated": "2024-01-15T10:30:00Z"},
                "metadata": {"createdAt": "2024-01-01T00:00:00Z", "updatedAt": "2024-01-15T10:30:00Z"},
            }
        if "account" in domain or "deposit" in domain:
            return {
                "accountReference": "AC789012",
                "accountStatus": "Active",
                "balance": 1000.0,
                "currency": "USD",
                "lastTransaction": "2024-01-15T10:30:00Z",
            }
    return {"id": "REF123456", "status": "Success", "data": {}, "timestamp": "2024-01-15T10:30:00Z"}


def _parameters(path: str) -> List[Dict[str, Any]]:
    parameters = [
        {
            "name": param["name"],
            "in": "path",
            "required": True,
            "schema": {"type": "string"},
            "description": param["description"],
        }
        for param in path_parameters(path)
    ]
    parameters.extend(
        [
            {
                "name": "page",
                "in": "query",
                "required": False,
                "schema": {"type": "integer", "minimum": 1, "default": 1},
                "description": "Page number",
            },
            {
                "name": "limit",
                "in": "query",
                "required": False,
                "schema": {"type": "integer", "minimum": 1, "maximum": 100, "default": 20},
                "description": "Items per page",
            },
        ]
    )
    return parameters


def _responses(api: Mapping[str, Any], schema_base: str) -> Dict[str, Any]:
    responses: Dict[str, Any] = {
        "200": {
            "description": "Successful operation",
            "content": {
                "application/json": {
                    "schema": {"$ref": f"#/components/schemas/{schema_base}Response"},
                    "example": example_payload(str(api.get("domain") or ""), "response"),
                }
            },
        }
    }
    for code, description in _ERROR_RESPONSES.items():
        responses[code] = {
            "description": description,
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/ErrorResponse"}}},
        }
    return responses


def common_schemas() -> Dict[str, Any]:
    return {
        "ErrorResponse": {
            "type": "object",
            "properties": {
                "error": {
                    "type": "object",
                    "properties": {
                        "code": {"type": "string"},
                        "message": {"type": "string"},
                        "details": {"type": "string"},
                    },
                },
                "timestamp": {"type": "string", "format": "date-time"},
                "path": {"type": "string"},
            },
        },
        "SuccessResponse": {
            "type": "object",
            "properties": {
                "success": {"type": "boolean"},
                "data": {"type": "object"},
                "timestamp": {"type": "string", "format": "date-time"},
            },
        },
    }


def generate_use_case_spec(use_case: UseCase) -> Dict[str, Any]:
    """Build the OpenAPI document for the use case's suggested APIs."""

    spec: Dict[str, Any] = {
        "openapi": OPENAPI_VERSION,
        "info": {
            "title": f"APIs for: {use_case.title}",
            "description": f"API documentation for the use case: {use_case.description}",
            "version": "1.0.0",
            "x-bian-version": BIAN_VERSION,
        },
        "servers": [
            {"url": PRODUCTION_SERVER, "description": "BIAN v13 (production)"},
            {"url": CONFIG.bian_sandbox_url, "description": "BIAN v13 (sandbox)"},
        ],
        "paths": {},
        "components": {
            "schemas": common_schemas(),
            "securitySchemes": {
                "BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"},
                "ApiKeyAuth": {"type": "apiKey", "in": "header", "name": "X-API-Key"},
            },
        },
        "tags": [],
    }

    domains: List[str] = []
    for api in use_case.suggested_apis:
        domain = str(api.get("domain") or "BIAN")
        if domain not in domains:
            domains.append(domain)
    spec["tags"] = [{"name": domain, "description": f"APIs of the {domain} domain"} for domain in domains]

    schemas = spec["components"]["schemas"]
    for api in use_case.suggested_apis:
        domain = str(api.get("domain") or "BIAN")
        schema_base = _schema_base(api)
        schemas.setdefault(
            f"{schema_base}Request",
            {"type": "object", "example": example_payload(domain, "request")},
        )
        schemas.setdefault(
            f"{schema_base}Response",
            {"type": "object", "example": example_payload(domain, "response")},
        )

        for endpoint in _endpoints(api):
            path = str(endpoint.get("path"))
            method = str(endpoint.get("method") or "GET").lower()
            operation: Dict[str, Any] = {
                "tags": [domain],
                "summary": endpoint.get("description") or api.get("name"),
                "description": (
                    f"{api.get('description') or ''}\n\n"
                    f"**Operation:** {endpoint.get('operation') or 'N/A'}\n**Domain:** {domain}"
                ),
                "operationId": f"{method}{_NON_ALNUM.sub('', path)}",
                "security": [{"BearerAuth": []}, {"ApiKeyAuth": []}],
                "parameters": _parameters(path),
                "responses": _responses(api, schema_base),
            }
            if method != "get":
                operation["requestBody"] = {
                    "required": True,
                    "content": {
                        "application/json": {
                            "schema": {"$ref": f"#/components/schemas/{schema_base}Request"},
                            "example": example_payload(domain, "request"),
                        }
                    },
                }
            spec["paths"].setdefault(path, {})[method] = operation

    return spec


def schema_from_example(value: Any) -> Dict[str, Any]:
    """JSON schema describing ``value``, with the value itself as the example."""

    if isinstance(value, bool):
        return {"type": "boolean", "example": value}
    if isinstance(value, int):
        return {"type": "integer", "example": value}
    if isinstance(value, float):
        return {"type": "number", "example": value}
    if isinstance(value, str):
        return {"type": "string", "example": value}
    if isinstance(value, list):
        items = schema_from_example(value[0]) if value else {"type": "string"}
        return {"type": "array", "items": items, "example": value}
    if isinstance(value, Mapping):
        return {
            "type": "object",
            "properties": {str(key): schema_from_example(item) for key, item in value.items()},
            "example": dict(value),
        }
    return {"type": "string"}


def _custom_parameters(customization: ApiCustomization) -> List[Dict[str, Any]]:
    parameters = [
        {
            "name": name,
            "in": "header",
            "required": False,
            "schema": {"type": "string"},
            "example": value,
        }
        for name, value in customization.custom_headers.items()
    ]
    for name, value in (customization.custom_parameters or {}).items():
        schema = schema_from_example(value)
        parameters.append(
            {"name": name, "in": "query", "required": False, "schema": schema, "example": schema.get("example")}
        )
    return parameters


def generate_single_api_spec(
    api: Mapping[str, Any],
    customization: Optional[ApiCustomization] = None,
) -> Dict[str, Any]:
    """
    OpenAPI document for one API of a use case.

    With a customization, its payload becomes the request example, its
    headers and parameters are documented as optional parameters, its notes
    are appended to the description and its testing base URL is listed as the
    first server.
    """

    name = str(api.get("name") or "API")
    domain = str(api.get("domain") or "BIAN")
    schema_base = _schema_base(api)
    request_example = example_payload(domain, "request")
    if customization is not None and customization.custom_payload:
        request_example = customization.custom_payload

    description = (
        f"API documentation for {name}\n\n"
        f"**Service Domain:** {domain}\n**Description:** {api.get('description') or 'N/A'}"
    )
    if customization is not None and customization.notes:
        description += f"\n\n**Notes:** {customization.notes}"

    servers = [
        {"url": CONFIG.bian_sandbox_url, "description": "BIAN v13 (sandbox)"},
        {"url": PRODUCTION_SERVER, "description": "BIAN v13 (production)"},
    ]
    base_url = (customization.testing_config.get("base_url") if customization is not None else None) or ""
    if base_url and base_url not in (server["url"] for server in servers):
        servers.insert(0, {"url": base_url, "description": "Custom testing server"})

    schemas = common_schemas()
    schemas[f"{schema_base}Request"] = schema_from_example(request_example)
    schemas[f"{schema_base}Response"] = schema_from_example(example_payload(domain, "response"))

    paths: Dict[str, Any] = {}
    for endpoint in _endpoints(api):
        path = str(endpoint.get("path"))
        method = str(endpoint.get("method") or "GET").lower()
        parameters = _parameters(path)
        if customization is not None:
            custom = _custom_parameters(customization)
            overridden = {(item["name"], item["in"]) for item in custom}
            parameters = [item for item in parameters if (item["name"], item["in"]) not in overridden] + custom

        operation: Dict[str, Any] = {
            "tags": [domain],
            "summary": endpoint.get("description") or name,
            "description": f"{api.get('description') or ''}\n\n**Operation:** {endpoint.get('operation') or 'N/A'}",
            "operationId": f"{method}{_NON_ALNUM.sub('', path)}",
            "security": [{"BearerAuth": []}],
            "parameters": parameters,
            "responses": _responses(api, schema_base),
        }
        if method in ("post", "put", "patch"):
            operation["requestBody"] = {
                "required": True,
                "content": {
                    "application/json": {
                        "schema": {"$ref": f"#/components/schemas/{schema_base}Request"},
                        "example": request_example,
                    }
                },
            }
        paths.setdefault(path, {})[method] = operation

    return {
        "openapi": OPENAPI_VERSION,
        "info": {
            "title": f"{name} API",
            "description": description,
            "version": "1.0.0",
            "x-bian-version": BIAN_VERSION,
        },
        "servers": servers,
        "paths": paths,
        "components": {
            "schemas": schemas,
            "securitySchemes": {"BearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}},
        },
        "tags": [{"name": domain, "description": f"APIs of the {domain} domain"}],
    }


def validate_spec(spec: Mapping[str, Any]) -> Dict[str, Any]:
    errors: List[str] = []
    info = spec.get("info") or {}
    if not spec.get("openapi"):
        errors.append("openapi field is required")
    if not info.get("title"):
        errors.append("info.title is required")
    if not info.get("version"):
        errors.append("info.version is required")
    paths = spec.get("paths") or {}
    if not paths:
        errors.append("at least one path is required")
    for path, operations in paths.items():
        for method, operation in (operations or {}).items():
            if not isinstance(operation, Mapping) or not operation.get("responses"):
                errors.append(f"{method.upper()} {path} must declare responses")
    return {"valid": not errors, "errors": errors}


__all__ = [
    "common_schemas",
    "example_payload",
    "generate_single_api_spec",
    "generate_use_case_spec",
    "schema_from_example",
    "validate_spec",
]
