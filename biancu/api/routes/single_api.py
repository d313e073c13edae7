"""Endpoints focused on one API of a use case."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from biancu.api.dependencies import get_current_user, get_database
from biancu.api.schemas import Envelope, envelope
from biancu.auth import UserContext
from biancu.db import DatabaseClient
from biancu.services import single_api as service

router = APIRouter(prefix="/single-api")


@router.get("/{use_case_id}/{api_name}", response_model=Envelope, response_model_exclude_none=True)
def api_detail(
    use_case_id: str,
    api_name: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.api_detail(db, user, use_case_id, api_name))


@router.get("/{use_case_id}/{api_name}/openapi-spec", response_model=Envelope, response_model_exclude_none=True)
def api_openapi_spec(
    use_case_id: str,
    api_name: str,
    include_customizations: bool = Query(default=True, alias="includeCustomizations"),
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.api_openapi_spec(db, user, use_case_id, api_name, include_customizations))


@router.get("/{use_case_id}/{api_name}/related-apis", response_model=Envelope, response_model_exclude_none=True)
def related_apis(
    use_case_id: str,
    api_name: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    result = service.related_apis(db, user, use_case_id, api_name)
    return envelope(result, count=result["count"])
