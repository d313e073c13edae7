"""Data source endpoints: company catalogue and per use case entries."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from biancu.api.dependencies import get_current_user, get_database
from biancu.api.schemas import (
    ConnectionValidationRequest,
    DataSourceCreateRequest,
    DataSourceUpdateRequest,
    Envelope,
    UseCaseDataSourceRequest,
    envelope,
)
from biancu.auth import UserContext
from biancu.db import DatabaseClient
from biancu.services import data_sources as service

router = APIRouter(prefix="/data-sources")


@router.get("", response_model=Envelope, response_model_exclude_none=True)
def list_data_sources(
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    sources = [item.to_record() for item in service.list_data_sources(db, user)]
    return envelope(sources, count=len(sources))


@router.post("/validate-connection", response_model=Envelope, response_model_exclude_none=True)
def validate_connection(
    request: ConnectionValidationRequest,
    user: UserContext = Depends(get_current_user),
) -> Envelope:
    """Probe a connection; an unreachable endpoint is reported in ``data``, not as an error."""

    return envelope(service.validate_connection(request.api_url, request.method, request.headers, request.payload))


@router.get("/use-case/{use_case_id}", response_model=Envelope, response_model_exclude_none=True)
def list_use_case_data_sources(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    sources = [item.to_record() for item in service.list_use_case_data_sources(db, user, use_case_id)]
    return envelope(sources, count=len(sources))


@router.post(
    "/use-case/{use_case_id}",
    response_model=Envelope,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
def add_use_case_data_source(
    use_case_id: str,
    request: UseCaseDataSourceRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    source = service.add_use_case_data_source(db, user, use_case_id, request.model_dump())
    return envelope(source.to_record(), message="Data source added to the use case")


@router.delete("/use-case/{use_case_id}/{index}", response_model=Envelope, response_model_exclude_none=True)
def delete_use_case_data_source(
    use_case_id: str,
    index: int,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    service.delete_use_case_data_source(db, user, use_case_id, index)
    return envelope(message="Data source removed from the use case")


@router.get("/{data_source_id}", response_model=Envelope, response_model_exclude_none=True)
def get_data_source(
    data_source_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.get_data_source(db, user, data_source_id).to_record())


@router.post("", response_model=Envelope, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def create_data_source(
    request: DataSourceCreateRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    source = service.create_data_source(db, user, request.model_dump(exclude_none=True))
    return envelope(source.to_record(), message="Data source created")


@router.put("/{data_source_id}", response_model=Envelope, response_model_exclude_none=True)
def update_data_source(
    data_source_id: str,
    request: DataSourceUpdateRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    source = service.update_data_source(db, user, data_source_id, request.model_dump(exclude_none=True))
    return envelope(source.to_record(), message="Data source updated")


@router.delete("/{data_source_id}", response_model=Envelope, response_model_exclude_none=True)
def delete_data_source(
    data_source_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    service.delete_data_source(db, user, data_source_id)
    return envelope(message="Data source deleted")


@router.post("/{data_source_id}/validate", response_model=Envelope, response_model_exclude_none=True)
def validate_data_source(
    data_source_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.validate_data_source(db, user, data_source_id))
