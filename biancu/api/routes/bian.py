"""BIAN catalogue endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from biancu.api.dependencies import get_current_user
from biancu.api.schemas import (
    BianApiCreateRequest,
    BianApisForDomainsRequest,
    BianDomainCreateRequest,
    DomainValidationRequest,
    Envelope,
    envelope,
)
from biancu.auth import UserContext
from biancu.services import ai
from biancu.services.bian import get_bian_catalogue

router = APIRouter(prefix="/bian")


@router.get("/domains", response_model=Envelope, response_model_exclude_none=True)
def list_domains(
    search: Optional[str] = Query(default=None),
    user: UserContext = Depends(get_current_user),
) -> Envelope:
    domains = [domain.to_dict() for domain in get_bian_catalogue().search_domains(search or "")]
    return envelope(domains, count=len(domains))


@router.get("/domains/{name}", response_model=Envelope, response_model_exclude_none=True)
def get_domain(name: str, user: UserContext = Depends(get_current_user)) -> Envelope:
    domain = get_bian_catalogue().get_domain(name)
    if domain is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="BIAN domain not found")
    return envelope(domain.to_dict())


@router.post("/domains", response_model=Envelope, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def create_domains(request: BianDomainCreateRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    """Add AI-suggested domains to the catalogue; known names are returned unchanged."""

    created = get_bian_catalogue().create_domains(item.model_dump() for item in request.domains)
    return envelope([domain.to_dict() for domain in created], message="Domains processed", count=len(created))


@router.post("/apis", response_model=Envelope, response_model_exclude_none=True)
def apis_for_domains(request: BianApisForDomainsRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    """Flattened endpoint list for the given domains, refined by the model when a context is sent."""

    apis = get_bian_catalogue().apis_for_domains(request.domains, request.context)
    return envelope(apis, count=len(apis))


@router.post("/apis/create", response_model=Envelope, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def create_apis(request: BianApiCreateRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    created = get_bian_catalogue().create_apis(item.model_dump() for item in request.apis)
    return envelope([api.to_dict() for api in created], message="APIs processed", count=len(created))


@router.get("/apis/{name}", response_model=Envelope, response_model_exclude_none=True)
def get_api(name: str, user: UserContext = Depends(get_current_user)) -> Envelope:
    api = get_bian_catalogue().get_api(name)
    if api is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="BIAN API not found")
    return envelope(api.to_dict())


@router.post("/validate-domains", response_model=Envelope, response_model_exclude_none=True)
def validate_domains(request: DomainValidationRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    catalogue = get_bian_catalogue().domain_names()
    return envelope(ai.validate_domain_selection(request.domains, request.use_case_text, catalogue))
