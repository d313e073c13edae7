"""
Per-user API customizations for a use case.

A customization stores a user's example payload, extra headers, query
parameters, notes and testing settings for one API of a use case, plus the
outcome of the last ``HISTORY_LIMIT`` test calls made with it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from biancu.auth.user_context import UserContext
from biancu.db.client import DatabaseClient
from biancu.db.models import ApiCustomization, ApiTestRecord, utcnow
from biancu.services import http_probe
from biancu.services.errors import NotFoundError, ServiceError, ValidationError
from biancu.services.use_cases import get_use_case

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
NOTES_MAX_LENGTH = 2000
API_NAME_MAX_LENGTH = 200
TEST_METHODS = ("GET", "POST", "PUT", "DELETE")
DEFAULT_TIMEOUT_MS = 10000
TIMEOUT_RANGE_MS = (1000, 60000)
DEFAULT_RETRIES = 1
RETRIES_RANGE = (0, 5)


def _optional_object(data: Mapping[str, Any], key: str) -> Optional[Dict[str, Any]]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise ValidationError(f"{key} must be a JSON object")
    return dict(value)


def _in_range(value: Any, bounds: Tuple[int, int], label: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{label} must be an integer") from exc
    low, high = bounds
    if not low <= number <= high:
        raise ValidationError(f"{label} must be between {low} and {high}")
    return number


def normalize_testing_config(value: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Fill in defaults and check the ``timeout`` (ms) and ``retries`` bounds."""

    config = dict(value or {})
    result: Dict[str, Any] = {
        "timeout": _in_range(config.get("timeout", DEFAULT_TIMEOUT_MS), TIMEOUT_RANGE_MS, "timeout"),
        "retries": _in_range(config.get("retries", DEFAULT_RETRIES), RETRIES_RANGE, "retries"),
    }
    base_url = str(config.get("base_url") or "").strip()
    if base_url:
        result["base_url"] = base_url
    return result


def _customizable_fields(data: Mapping[str, Any]) -> Dict[str, Any]:
    notes = str(data.get("notes") or "").strip()
    if len(notes) > NOTES_MAX_LENGTH:
        raise ValidationError(f"notes must be at most {NOTES_MAX_LENGTH} characters")
    headers = _optional_object(data, "custom_headers") or {}
    return {
        "custom_payload": _optional_object(data, "custom_payload"),
        "custom_headers": {str(key): str(value) for key, value in headers.items()},
        "custom_parameters": _optional_object(data, "custom_parameters"),
        "notes": notes,
        "testing_config": normalize_testing_config(_optional_object(data, "testing_config")),
    }


def _clean_api_name(api_name: str) -> str:
    name = (api_name or "").strip()
    if not name or len(name) > API_NAME_MAX_LENGTH:
        raise ValidationError(f"api_name must be between 1 and {API_NAME_MAX_LENGTH} characters")
    return name


def find_customization(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    api_name: str,
) -> Optional[ApiCustomization]:
    """The user's active customization for an API, without an access check on the use case."""

    record = db.get_api_customization(use_case_id, api_name.strip(), user.user_id)
    if not record:
        return None
    customization = ApiCustomization.from_record(record)
    return customization if customization.is_active else None


def _require(db: DatabaseClient, user: UserContext, use_case_id: str, api_name: str) -> ApiCustomization:
    get_use_case(db, user, use_case_id)
    customization = find_customization(db, user, use_case_id, api_name)
    if customization is None:
        raise NotFoundError("Customization not found")
    return customization


def _save(db: DatabaseClient, customization_id: str, updates: Dict[str, Any]) -> ApiCustomization:
    record = db.update_api_customization(customization_id, updates)
    if not record:
        raise ServiceError("Could not save the customization")
    return ApiCustomization.from_record(record)


def list_customizations(db: DatabaseClient, user: UserContext, use_case_id: str) -> List[ApiCustomization]:
    use_case = get_use_case(db, user, use_case_id)
    return [ApiCustomization.from_record(row) for row in db.list_api_customizations(use_case.id, user.user_id)]


def get_customization(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    api_name: str,
) -> Optional[ApiCustomization]:
    use_case = get_use_case(db, user, use_case_id)
    return find_customization(db, user, use_case.id, api_name)


def save_customization(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    api_name: str,
    data: Mapping[str, Any],
) -> Tuple[ApiCustomization, bool]:
    """
    Create or replace the user's customization for an API.

    Returns the customization and whether it was newly created. Saving over
    an existing row, including a deleted one, replaces every customizable
    field and bumps ``version``; the test history is kept.
    """

    use_case = get_use_case(db, user, use_case_id)
    api_name = _clean_api_name(api_name)
    fields = _customizable_fields(data)
    now = utcnow().isoformat()

    existing = db.get_api_customization(use_case.id, api_name, user.user_id)
    if existing:
        updates = {
            **fields,
            "is_active": True,
            "version": int(existing.get("version") or 1) + 1,
            "last_modified": now,
        }
        customization = _save(db, str(existing["id"]), updates)
        logger.info("API customization updated: %s for use case %s", api_name, use_case.id)
        return customization, False

    record = db.create_api_customization(
        {
            **fields,
            "use_case_id": use_case.id,
            "api_name": api_name,
            "user_id": user.user_id,
            "company_id": user.company_id,
            "test_history": [],
            "is_active": True,
            "version": 1,
            "last_modified": now,
        }
    )
    if not record:
        raise ServiceError("Could not save the customization")
    logger.info("API customization created: %s for use case %s", api_name, use_case.id)
    return ApiCustomization.from_record(record), True


def reset_customization(db: DatabaseClient, user: UserContext, use_case_id: str, api_name: str) -> ApiCustomization:
    """Clear payload, headers, parameters and notes; testing settings and history stay."""

    customization = _require(db, user, use_case_id, api_name)
    return _save(
        db,
        customization.id,
        {
            "custom_payload": None,
            "custom_headers": {},
            "custom_parameters": None,
            "notes": "",
            "version": customization.version + 1,
            "last_modified": utcnow().isoformat(),
        },
    )


def delete_customization(db: DatabaseClient, user: UserContext, use_case_id: str, api_name: str) -> None:
    customization = _require(db, user, use_case_id, api_name)
    _save(db, customization.id, {"is_active": False, "last_modified": utcnow().isoformat()})
    logger.info("API customization deleted: %s for use case %s", customization.api_name, use_case_id)


def _history_entry(method: str, endpoint: str, result: http_probe.ProbeResult) -> ApiTestRecord:
    return ApiTestRecord(
        method=method,
        endpoint=endpoint,
        success=result.success,
        status=result.status,
        response_time_ms=result.response_time_ms,
        error_message=(result.error or {}).get("message"),
        timestamp=utcnow(),
    )


def test_customized_api(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    api_name: str,
    *,
    method: str,
    endpoint: str,
    use_custom_data: bool = True,
    override_payload: Any = None,
    override_headers: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    """
    Call an endpoint with the user's customization applied.

    The customization's payload is used when no override payload is given,
    and explicit override headers win over its stored headers. Network
    failures are retried ``testing_config.retries`` times and, like any HTTP
    status, are reported in the result rather than raised. The outcome is
    recorded in the customization's test history.
    """

    get_use_case(db, user, use_case_id)
    method = (method or "GET").upper()
    if method not in TEST_METHODS:
        raise ValidationError(f"method must be one of: {', '.join(TEST_METHODS)}")
    if not (endpoint or "").strip():
        raise ValidationError("endpoint is required")

    customization = find_customization(db, user, use_case_id, api_name)
    payload = override_payload
    headers: Dict[str, str] = {}
    if use_custom_data and customization is not None:
        if payload is None and customization.custom_payload:
            payload = customization.custom_payload
        headers.update(customization.custom_headers)
    headers.update(dict(override_headers or {}))

    config = normalize_testing_config(customization.testing_config if customization else None)
    url = http_probe.build_url(endpoint, config.get("base_url"))
    logger.info("Testing customized API %s: %s %s for user %s", api_name, method, url, user.user_id)

    result = http_probe.probe(method, url, headers=headers, payload=payload, timeout=config["timeout"] / 1000)
    for _ in range(config["retries"]):
        if result.error is None:
            break
        result = http_probe.probe(method, url, headers=headers, payload=payload, timeout=config["timeout"] / 1000)

    if customization is not None:
        history = [_history_entry(method, endpoint, result)] + customization.test_history
        _save(db, customization.id, {"test_history": [item.to_record() for item in history[:HISTORY_LIMIT]]})

    return result.to_dict()


# Not a test function; keep pytest from collecting it when imported into test modules.
test_customized_api.__test__ = False


__all__ = [
    "HISTORY_LIMIT",
    "delete_customization",
    "find_customization",
    "get_customization",
    "list_customizations",
    "normalize_testing_config",
    "reset_customization",
    "save_customization",
    "test_customized_api",
]
