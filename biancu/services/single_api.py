"""Views over one suggested API of a use case: detail, OpenAPI document and related APIs."""

from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Set

from biancu.auth.user_context import UserContext
from biancu.db.client import DatabaseClient
from biancu.db.models import UseCase
from biancu.services import openapi
from biancu.services.api_customizations import find_customization
from biancu.services.errors import NotFoundError
from biancu.services.use_cases import get_use_case

AVAILABLE_OPERATIONS = ["view", "edit", "test", "download"]
_WORD = re.compile(r"\s+")


def find_api(use_case: UseCase, api_name: str) -> Dict[str, Any]:
    """
    The suggested API called ``api_name``.

    An exact name match wins; otherwise the first API whose name contains the
    part before ``" - "`` is used, so ``"Payment Order - Execute"`` still finds
    another operation of the Payment Order API.
    """

    name = (api_name or "").strip()
    for api in use_case.suggested_apis:
        if api.get("name") == name:
            return dict(api)
    prefix = name.split(" - ", 1)[0]
    if prefix:
        for api in use_case.suggested_apis:
            if prefix in str(api.get("name") or ""):
                return dict(api)
    raise NotFoundError("API not found in this use case")


def api_detail(db: DatabaseClient, user: UserContext, use_case_id: str, api_name: str) -> Dict[str, Any]:
    use_case = get_use_case(db, user, use_case_id)
    api = find_api(use_case, api_name)
    customization = find_customization(db, user, use_case.id, api_name)
    return {
        "use_case": {"id": use_case.id, "title": use_case.title, "description": use_case.description},
        "api": api,
        "customization": customization.to_record() if customization else None,
        "openapi_spec": openapi.generate_single_api_spec(api, customization),
        "has_customization": customization is not None,
        "available_operations": list(AVAILABLE_OPERATIONS),
    }


def api_openapi_spec(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    api_name: str,
    include_customizations: bool = True,
) -> Dict[str, Any]:
    use_case = get_use_case(db, user, use_case_id)
    api = find_api(use_case, api_name)
    customization = find_customization(db, user, use_case.id, api_name) if include_customizations else None
    spec = openapi.generate_single_api_spec(api, customization)
    return {
        "spec": spec,
        "validation": openapi.validate_spec(spec),
        "included_customizations": customization is not None,
    }


def _keywords(name: str) -> Set[str]:
    return {word for word in _WORD.split(name.lower()) if len(word) > 3}


def related_apis(db: DatabaseClient, user: UserContext, use_case_id: str, api_name: str) -> Dict[str, Any]:
    """APIs of the use case sharing the domain, or a word longer than three letters, with ``api_name``."""

    use_case = get_use_case(db, user, use_case_id)
    current = find_api(use_case, api_name)
    current_name = str(current.get("name") or "")
    keywords = _keywords(current_name)
    customized = {row.get("api_name") for row in db.list_api_customizations(use_case.id, user.user_id)}

    related: List[Dict[str, Any]] = []
    for api in use_case.suggested_apis:
        name = str(api.get("name") or "")
        if name == current_name:
            continue
        if api.get("domain") == current.get("domain") or keywords & _keywords(name):
            related.append({**dict(api), "has_customization": name in customized})

    grouped: Dict[str, List[Mapping[str, Any]]] = {}
    for api in related:
        grouped.setdefault(str(api.get("domain") or "Other"), []).append(api)

    return {
        "current_api": {"name": current_name, "domain": current.get("domain")},
        "related_apis": related,
        "count": len(related),
        "grouped_by_domain": grouped,
    }


__all__ = ["api_detail", "api_openapi_spec", "find_api", "related_apis"]
