"""
Data sources: the company catalogue and the entries attached to a use case.

Catalogue credentials (``token``, ``password``, ``api_key`` under
``connection_config.authentication``) are encrypted before they are stored and
masked when returned to clients.
"""

from __future__ import annotations

import base64
import copy
import logging
from typing import Any, Dict, List, Mapping, Optional

from biancu.auth.user_context import UserContext, decrypt_secret, encrypt_secret
from biancu.db.client import DatabaseClient
from biancu.db.models import DATA_SOURCE_TYPES, DataSource, UseCase, UseCaseDataSource
from biancu.services import http_probe
from biancu.services.errors import ConflictError, NotFoundError, PermissionDeniedError, ServiceError, ValidationError
from biancu.services.lifecycle import LifecycleAction, apply_action
from biancu.services.use_cases import get_owned_use_case, get_use_case, save_use_case

logger = logging.getLogger(__name__)

SECRET_FIELDS = ("token", "password", "api_key")
MASK = "********"


def _transform_secrets(config: Mapping[str, Any], transform) -> Dict[str, Any]:
    result = copy.deepcopy(dict(config or {}))
    auth = result.get("authentication")
    if isinstance(auth, dict):
        for key in SECRET_FIELDS:
            if auth.get(key):
                auth[key] = transform(str(auth[key]))
    return result


def encrypt_connection_config(config: Mapping[str, Any]) -> Dict[str, Any]:
    return _transform_secrets(config, encrypt_secret)


def decrypt_connection_config(config: Mapping[str, Any]) -> Dict[str, Any]:
    return _transform_secrets(config, decrypt_secret)


def merge_connection_config(incoming: Mapping[str, Any], stored: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Encrypt ``incoming`` for storage, keeping stored secrets it does not replace.

    A secret sent back as ``MASK`` or left out keeps the value already stored,
    so a config read from the API can be edited and saved without losing its
    credentials. A config without an ``authentication`` block keeps the stored
    block as is.
    """

    result = copy.deepcopy(dict(incoming or {}))
    stored_auth = (stored or {}).get("authentication")
    if "authentication" not in result and isinstance(stored_auth, dict):
        encrypted = encrypt_connection_config(result)
        encrypted["authentication"] = copy.deepcopy(stored_auth)
        return encrypted

    auth = result.get("authentication")
    if isinstance(auth, dict):
        for key in SECRET_FIELDS:
            if auth.get(key) in (None, "", MASK):
                auth.pop(key, None)
    encrypted = encrypt_connection_config(result)

    encrypted_auth = encrypted.get("authentication")
    if isinstance(stored_auth, dict) and isinstance(encrypted_auth, dict):
        for key in SECRET_FIELDS:
            if key not in encrypted_auth and stored_auth.get(key):
                encrypted_auth[key] = stored_auth[key]
    return encrypted


def masked(source: DataSource) -> DataSource:
    """Copy of ``source`` whose secrets are replaced by a fixed mask."""
    clone = copy.deepcopy(source)
    clone.connection_config = _transform_secrets(source.connection_config, lambda _: MASK)
    return clone


def _check_type(value: Optional[str]) -> None:
    if value is not None and value not in DATA_SOURCE_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(DATA_SOURCE_TYPES)}")


def _load(db: DatabaseClient, user: UserContext, data_source_id: str) -> DataSource:
    record = db.get_data_source(data_source_id)
    if not record or record.get("company_id") != user.company_id:
        raise NotFoundError("Data source not found")
    return DataSource.from_record(record)


def list_data_sources(db: DatabaseClient, user: UserContext) -> List[DataSource]:
    return [masked(DataSource.from_record(row)) for row in db.list_data_sources(user.company_id)]


def get_data_source(db: DatabaseClient, user: UserContext, data_source_id: str) -> DataSource:
    return masked(_load(db, user, data_source_id))


def create_data_source(db: DatabaseClient, user: UserContext, data: Mapping[str, Any]) -> DataSource:
    name = str(data["name"]).strip()
    _check_type(data.get("type"))
    if db.get_data_source_by_name(user.company_id, name):
        raise ConflictError("A data source with this name already exists")

    record = db.create_data_source(
        {
            "name": name,
            "description": data.get("description") or "",
            "type": data.get("type") or "REST_API",
            "connection_config": encrypt_connection_config(data.get("connection_config") or {}),
            "company_id": user.company_id,
            "created_by": user.user_id,
            "is_validated": False,
        }
    )
    if not record:
        raise ServiceError("Could not create the data source")
    source = DataSource.from_record(record)
    logger.info("Data source %s created by %s", source.id, user.user_id)
    return masked(source)


def update_data_source(
    db: DatabaseClient,
    user: UserContext,
    data_source_id: str,
    changes: Mapping[str, Any],
) -> DataSource:
    source = _load(db, user, data_source_id)
    if source.created_by != user.user_id and not user.is_admin:
        raise PermissionDeniedError("Not authorised to modify this data source")
    _check_type(changes.get("type"))

    updates: Dict[str, Any] = {}
    if changes.get("name") is not None:
        name = str(changes["name"]).strip()
        duplicate = db.get_data_source_by_name(user.company_id, name)
        if duplicate and duplicate.get("id") != source.id:
            raise ConflictError("A data source with this name already exists")
        updates["name"] = name
    for key in ("description", "type"):
        if changes.get(key) is not None:
            updates[key] = changes[key]
    if changes.get("connection_config") is not None:
        updates["connection_config"] = merge_connection_config(changes["connection_config"], source.connection_config)
        updates["is_validated"] = False

    if not updates:
        return masked(source)
    record = db.update_data_source(source.id, updates)
    if not record:
        raise ServiceError("Could not update the data source")
    return masked(DataSource.from_record(record))


def delete_data_source(db: DatabaseClient, user: UserContext, data_source_id: str) -> None:
    source = _load(db, user, data_source_id)
    if source.created_by != user.user_id and not user.is_admin:
        raise PermissionDeniedError("Not authorised to delete this data source")
    if not db.delete_data_source(source.id):
        raise ServiceError("Could not delete the data source")
    logger.info("Data source %s deleted by %s", source.id, user.user_id)


def validate_connection(
    api_url: str,
    method: str = "GET",
    headers: Optional[Mapping[str, str]] = None,
    payload: Any = None,
) -> Dict[str, Any]:
    """Probe a connection before it is saved; network failures are part of the result."""

    method = (method or "GET").upper()
    if method not in http_probe.ALLOWED_METHODS:
        raise ValidationError(f"method must be one of: {', '.join(http_probe.ALLOWED_METHODS)}")
    return http_probe.probe(method, api_url, headers=headers, payload=payload).to_dict()


def _auth_headers(auth: Mapping[str, Any]) -> Dict[str, str]:
    kind = str(auth.get("type") or "").lower()
    if kind == "bearer" and auth.get("token"):
        return {"Authorization": f"Bearer {auth['token']}"}
    if kind == "api_key" and auth.get("api_key"):
        return {"X-API-Key": str(auth["api_key"])}
    if kind == "basic" and auth.get("username"):
        raw = f"{auth['username']}:{auth.get('password') or ''}".encode("utf-8")
        return {"Authorization": f"Basic {base64.b64encode(raw).decode('ascii')}"}
    return {}


def validate_data_source(db: DatabaseClient, user: UserContext, data_source_id: str) -> Dict[str, Any]:
    """Probe a stored data source with its decrypted credentials and record the outcome."""

    source = _load(db, user, data_source_id)
    config = decrypt_connection_config(source.connection_config)
    if not config.get("api_url"):
        raise ValidationError("The data source has no api_url to validate")

    headers = dict(config.get("headers") or {})
    headers.update(_auth_headers(config.get("authentication") or {}))
    result = validate_connection(config["api_url"], config.get("method") or "GET", headers)
    db.update_data_source(source.id, {"is_validated": bool(result.get("success"))})
    result["request"]["headers"] = {key: MASK if key.lower() in ("authorization", "x-api-key") else value
                                    for key, value in result["request"]["headers"].items()}
    return result


def _store(db: DatabaseClient, use_case: UseCase, sources: List[UseCaseDataSource]) -> UseCase:
    use_case.data_sources = sources
    updates: Dict[str, Any] = {"data_sources": [item.to_record() for item in sources]}
    updates.update(apply_action(use_case, LifecycleAction.ATTACH_ARTIFACT).as_updates())
    return save_use_case(db, use_case.id, updates)


def add_use_case_data_source(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    data: Mapping[str, Any],
) -> UseCaseDataSource:
    use_case = get_owned_use_case(db, user, use_case_id)
    method = str(data.get("method") or "GET").upper()
    if method not in http_probe.ALLOWED_METHODS:
        raise ValidationError(f"method must be one of: {', '.join(http_probe.ALLOWED_METHODS)}")

    source = UseCaseDataSource.from_record({**dict(data), "method": method})
    saved = _store(db, use_case, use_case.data_sources + [source])
    logger.info("Data source '%s' attached to use case %s", source.name, use_case.id)
    return saved.data_sources[-1]


def list_use_case_data_sources(db: DatabaseClient, user: UserContext, use_case_id: str) -> List[UseCaseDataSource]:
    return get_use_case(db, user, use_case_id).data_sources


def delete_use_case_data_source(db: DatabaseClient, user: UserContext, use_case_id: str, index: int) -> None:
    use_case = get_owned_use_case(db, user, use_case_id)
    if index < 0 or index >= len(use_case.data_sources):
        raise NotFoundError("Data source not found")
    sources = list(use_case.data_sources)
    sources.pop(index)
    _store(db, use_case, sources)


__all__ = [
    "MASK",
    "add_use_case_data_source",
    "create_data_source",
    "decrypt_connection_config",
    "delete_data_source",
    "delete_use_case_data_source",
    "encrypt_connection_config",
    "get_data_source",
    "list_data_sources",
    "list_use_case_data_sources",
    "merge_connection_config",
    "update_data_source",
    "validate_connection",
    "validate_data_source",
]
