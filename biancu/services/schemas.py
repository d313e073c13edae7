"""Custom JSON schemas embedded in a use case."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from biancu.auth.user_context import UserContext
from biancu.db.client import DatabaseClient
from biancu.db.models import CustomSchema, UseCase
from biancu.services import ai
from biancu.services.errors import NotFoundError, ValidationError
from biancu.services.lifecycle import LifecycleAction, apply_action
from biancu.services.use_cases import get_owned_use_case, get_use_case, save_use_case

logger = logging.getLogger(__name__)


def generate_schema(description: str, api_context: Optional[str] = None) -> Any:
    """Ask the model for a schema; the reply is returned unmodified."""
    return ai.generate_custom_schema(description, api_context)


def _store(db: DatabaseClient, use_case: UseCase, schemas: List[CustomSchema]) -> UseCase:
    use_case.custom_schemas = schemas
    updates: Dict[str, Any] = {"custom_schemas": [item.to_record() for item in schemas]}
    updates.update(apply_action(use_case, LifecycleAction.ATTACH_ARTIFACT).as_updates())
    return save_use_case(db, use_case.id, updates)


def _check_index(use_case: UseCase, index: int) -> None:
    if index < 0 or index >= len(use_case.custom_schemas):
        raise NotFoundError("Schema not found")


def add_schema(db: DatabaseClient, user: UserContext, use_case_id: str, data: Mapping[str, Any]) -> CustomSchema:
    use_case = get_owned_use_case(db, user, use_case_id)
    if not isinstance(data.get("schema"), dict):
        raise ValidationError("schema must be a JSON object")
    schema = CustomSchema.from_record(dict(data))
    saved = _store(db, use_case, use_case.custom_schemas + [schema])
    logger.info("Schema '%s' added to use case %s", schema.name, use_case.id)
    return saved.custom_schemas[-1]


def list_schemas(db: DatabaseClient, user: UserContext, use_case_id: str) -> List[CustomSchema]:
    return get_use_case(db, user, use_case_id).custom_schemas


def update_schema(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    index: int,
    changes: Mapping[str, Any],
) -> CustomSchema:
    use_case = get_owned_use_case(db, user, use_case_id)
    _check_index(use_case, index)
    if "schema" in changes and changes["schema"] is not None and not isinstance(changes["schema"], dict):
        raise ValidationError("schema must be a JSON object")

    record = use_case.custom_schemas[index].to_record()
    record.update({key: value for key, value in changes.items() if value is not None})
    schemas = list(use_case.custom_schemas)
    schemas[index] = CustomSchema.from_record(record)
    saved = _store(db, use_case, schemas)
    return saved.custom_schemas[index]


def delete_schema(db: DatabaseClient, user: UserContext, use_case_id: str, index: int) -> None:
    use_case = get_owned_use_case(db, user, use_case_id)
    _check_index(use_case, index)
    schemas = list(use_case.custom_schemas)
    removed = schemas.pop(index)
    _store(db, use_case, schemas)
    logger.info("Schema '%s' removed from use case %s", removed.name, use_case.id)


__all__ = ["add_schema", "delete_schema", "generate_schema", "list_schemas", "update_schema"]
