"""Use case endpoints: CRUD, AI assistance and the domain/API selection flow."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from biancu.api.dependencies import get_current_user, get_database
from biancu.api.schemas import (
    ApiSelectionRequest,
    ApiSuggestionRequest,
    ApiTestRequest,
    ContentSuggestionRequest,
    DomainRecommendationRequest,
    DomainSelectionRequest,
    DraftAnalysisRequest,
    Envelope,
    UseCaseCreateRequest,
    UseCaseUpdateRequest,
    envelope,
)
from biancu.auth import UserContext
from biancu.db import DatabaseClient
from biancu.services import ai
from biancu.services import use_cases as service

router = APIRouter(prefix="/use-cases")


@router.get("", response_model=Envelope, response_model_exclude_none=True)
def list_use_cases(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    """Return the company's use cases, newest first."""

    records = [item.to_record() for item in service.list_use_cases(db, user, status_filter)]
    return envelope(records, count=len(records))


@router.post("/analyze-ai", response_model=Envelope, response_model_exclude_none=True)
def analyze_draft(request: DraftAnalysisRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    """Review a drafted use case before it is saved."""

    text = service.build_structured_text(request.model_dump(exclude_none=True))
    return envelope(ai.analyze_case_for_suggestions(text))


@router.post("/ai-suggest-content", response_model=Envelope, response_model_exclude_none=True)
def suggest_content(request: ContentSuggestionRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    context = service.build_content_context(request.title, request.description, request.objective)
    return envelope(ai.suggest_use_case_content(context))


@router.post("/ai-suggest-apis", response_model=Envelope, response_model_exclude_none=True)
def suggest_apis(request: ApiSuggestionRequest, user: UserContext = Depends(get_current_user)) -> Envelope:
    return envelope(ai.suggest_apis_by_domain(request.domains, request.use_case_context))


@router.post("/recommend-domains", response_model=Envelope, response_model_exclude_none=True)
def recommend_domains(
    request: DomainRecommendationRequest,
    user: UserContext = Depends(get_current_user),
) -> Envelope:
    return envelope(service.domain_recommendations_for_text(request.use_case_text))


@router.get("/{use_case_id}", response_model=Envelope, response_model_exclude_none=True)
def get_use_case(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.get_use_case(db, user, use_case_id).to_record())


@router.post("", response_model=Envelope, response_model_exclude_none=True, status_code=status.HTTP_201_CREATED)
def create_use_case(
    request: UseCaseCreateRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    use_case = service.create_use_case(db, user, request.model_dump(exclude_none=True))
    return envelope(use_case.to_record(), message="Use case created")


@router.put("/{use_case_id}", response_model=Envelope, response_model_exclude_none=True)
def update_use_case(
    use_case_id: str,
    request: UseCaseUpdateRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    use_case = service.update_use_case(db, user, use_case_id, request.model_dump(exclude_none=True))
    return envelope(use_case.to_record(), message="Use case updated")


@router.delete("/{use_case_id}", response_model=Envelope, response_model_exclude_none=True)
def delete_use_case(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    service.delete_use_case(db, user, use_case_id)
    return envelope(message="Use case deleted")


@router.post("/{use_case_id}/analyze", response_model=Envelope, response_model_exclude_none=True)
def analyze_use_case(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    use_case = service.analyze(db, user, use_case_id)
    return envelope(use_case.to_record(), message="Analysis completed")


@router.get("/{use_case_id}/domain-recommendations", response_model=Envelope, response_model_exclude_none=True)
def domain_recommendations(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.domain_recommendations(db, user, use_case_id))


@router.get("/{use_case_id}/api-recommendations", response_model=Envelope, response_model_exclude_none=True)
def api_recommendations(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.api_recommendations(db, user, use_case_id))


@router.post("/{use_case_id}/domains", response_model=Envelope, response_model_exclude_none=True)
def select_domains(
    use_case_id: str,
    request: DomainSelectionRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    use_case = service.select_domains(db, user, use_case_id, request.domains)
    return envelope(
        {
            "selected_domains": use_case.selected_domains,
            "suggested_apis": use_case.suggested_apis,
            "status": use_case.status,
        },
        message="Domains selected",
    )


@router.post("/{use_case_id}/apis", response_model=Envelope, response_model_exclude_none=True)
def select_apis(
    use_case_id: str,
    request: ApiSelectionRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    use_case = service.select_apis(db, user, use_case_id, request.apis)
    return envelope({"selected_apis": use_case.selected_apis, "status": use_case.status}, message="APIs selected")


@router.get("/{use_case_id}/openapi-spec", response_model=Envelope, response_model_exclude_none=True)
def openapi_spec(
    use_case_id: str,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    return envelope(service.openapi_spec(db, user, use_case_id))


@router.post("/{use_case_id}/test-api", response_model=Envelope, response_model_exclude_none=True)
def test_api(
    use_case_id: str,
    request: ApiTestRequest,
    user: UserContext = Depends(get_current_user),
    db: DatabaseClient = Depends(get_database),
) -> Envelope:
    """Call an endpoint of the use case; upstream failures are reported in ``data``."""

    result = service.probe_api(
        db,
        user,
        use_case_id,
        endpoint=request.endpoint,
        method=request.method,
        payload=request.payload,
        headers=request.headers,
        base_url=request.base_url,
        api_name=request.api_name,
    )
    return envelope(result)
