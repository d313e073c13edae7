"""Custom schema endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from biancu.api.dependencies import get_current_user, get_database
from biancu.api.schemas import (
    Envelope,
    SchemaCreateRequest,
    SchemaGenerationRequest,
    SchemaUpdateRequest,
    envelope,
)
from biancu.auth import UserContext
from biancu.db import DatabaseClient
from biancu.services import schemas as service

router = APIRouter(prefix="/schemas")


@router.post("/generate", response_model=Envelope, response_model_exclude_none=True)
def generate_schema(request: SchemaGenerationRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    return envelope(service.generate_schema(request.description, request.api_context))


@router.post(
    "/use-case/{use_case_id}",
    response_model=Envelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def add_schema(
    use_case_id: str,
    request: SchemaCreateRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    schema = service.add_schema(db, user, use_case_id, request.to_record())
    return envelope(schema.to_record(), message="Schema added")


@router.get("/use-case/{use_case_id}", response_model=Envelope, response_model_exclude_none=True)
def list_schemas(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    schemas = [item.to_record() for item in service.list_schemas(db, user, use_case_id)]
    return envelope(schemas, count=len(schemas))


@router.put("/use-case/{use_case_id}/{index}", response_model=Envelope, response_model_exclude_none=True)
def update_schema(
    use_case_id: str,
    index: int,
    request: SchemaUpdateRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    schema = service.update_schema(db, user, use_case_id, index, request.to_changes())
    return envelope(schema.to_record(), message="Schema updated")


@router.delete("/use-case/{use_case_id}/{index}", response_model=Envelope, response_model_exclude_none=True)
def delete_schema(
    use_case_id: str,
    index: int,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    service.delete_schema(db, user, use_case_id, index)
    return envelope(message="Schema deleted")
