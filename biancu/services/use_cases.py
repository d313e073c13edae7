"""Use case persistence, access rules and lifecycle operations."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from biancu.auth.user_context import UserContext
from biancu.db.client import DatabaseClient
from biancu.db.models import Company, UseCase
from biancu.services import ai, http_probe, openapi
from biancu.services.bian import get_bian_catalogue
from biancu.services.errors import (
    AIServiceError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)
from biancu.services.lifecycle import LifecycleAction, UseCaseStatus, apply_action
from biancu.services.recommendations import (
    API_IDS,
    DOMAIN_NAMES,
    recommend_apis,
    recommend_domains,
    recommended_api_ids,
    use_case_analysis_text,
    use_case_text,
)

logger = logging.getLogger(__name__)

NOT_SPECIFIED = "Not specified"

STRUCTURED_FIELDS = (
    "objective",
    "actors",
    "prerequisites",
    "main_flow",
    "alternative_flows",
    "postconditions",
    "business_rules",
    "non_functional_requirements",
    "assumptions",
    "constraints",
    "priority",
    "complexity",
    "estimated_effort",
)
UPDATABLE_FIELDS = ("title", "description") + STRUCTURED_FIELDS


def list_use_cases(db: DatabaseClient, user: UserContext, status: Optional[str] = None) -> List[UseCase]:
    if status:
        status = UseCaseStatus.parse(status).value
    return [UseCase.from_record(row) for row in db.list_use_cases(user.company_id, status=status)]


def get_use_case(db: DatabaseClient, user: UserContext, use_case_id: str) -> UseCase:
    """Load a use case readable by ``user``: its creator or a member of its company."""

    record = db.get_use_case(use_case_id)
    if not record:
        raise NotFoundError("Use case not found")
    use_case = UseCase.from_record(record)
    if use_case.created_by != user.user_id and use_case.company_id != user.company_id:
        raise NotFoundError("Use case not found")
    return use_case


def get_owned_use_case(db: DatabaseClient, user: UserContext, use_case_id: str) -> UseCase:
    use_case = get_use_case(db, user, use_case_id)
    if use_case.created_by != user.user_id:
        raise PermissionDeniedError("Only the creator can modify this use case")
    return use_case


def save_use_case(db: DatabaseClient, use_case_id: str, updates: Dict[str, Any]) -> UseCase:
    record = db.update_use_case(use_case_id, updates)
    if not record:
        raise ServiceError("Could not save the use case")
    return UseCase.from_record(record)


def create_use_case(db: DatabaseClient, user: UserContext, data: Mapping[str, Any]) -> UseCase:
    record = db.get_company(user.company_id)
    if record:
        company = Company.from_record(record)
        if db.count_use_cases(company.id) >= company.settings.max_use_cases:
            raise PermissionDeniedError("The company has reached its maximum number of use cases")

    transition = apply_action(None, LifecycleAction.CREATE)
    payload: Dict[str, Any] = {
        "title": str(data["title"]).strip(),
        "description": str(data["description"]).strip(),
        "original_text": str(data["original_text"]),
        "company_id": user.company_id,
        "created_by": user.user_id,
    }
    for key in STRUCTURED_FIELDS:
        if data.get(key) is not None:
            payload[key] = data[key]
    payload.update(transition.as_updates())

    created = db.create_use_case(payload)
    if not created:
        raise ServiceError("Could not create the use case")
    use_case = UseCase.from_record(created)
    logger.info("Use case %s created by %s", use_case.id, user.user_id)
    return use_case


def update_use_case(db: DatabaseClient, user: UserContext, use_case_id: str, changes: Mapping[str, Any]) -> UseCase:
    use_case = get_owned_use_case(db, user, use_case_id)
    updates = {key: changes[key] for key in UPDATABLE_FIELDS if changes.get(key) is not None}
    if changes.get("status") is not None:
        updates.update(apply_action(use_case, LifecycleAction.SET_STATUS, {"status": changes["status"]}).as_updates())
    if not updates:
        return use_case
    return save_use_case(db, use_case.id, updates)


def delete_use_case(db: DatabaseClient, user: UserContext, use_case_id: str) -> None:
    use_case = get_owned_use_case(db, user, use_case_id)
    if not db.delete_use_case(use_case.id):
        raise ServiceError("Could not delete the use case")
    logger.info("Use case %s deleted by %s", use_case.id, user.user_id)


def analyze(db: DatabaseClient, user: UserContext, use_case_id: str) -> UseCase:
    """
    Run the AI analysis for a use case.

    The use case is marked ``analyzing`` while the model runs. On failure the
    status held before the call is restored and the error propagates.
    """

    use_case = get_owned_use_case(db, user, use_case_id)
    previous_status = use_case.status
    use_case = save_use_case(db, use_case.id, apply_action(use_case, LifecycleAction.START_ANALYSIS).as_updates())

    try:
        analysis = ai.analyze_use_case(use_case.original_text or use_case_analysis_text(use_case))
    except AIServiceError:
        restored = apply_action(use_case, LifecycleAction.FAIL_ANALYSIS, {"previous_status": previous_status})
        save_use_case(db, use_case.id, restored.as_updates())
        logger.warning("Analysis failed for use case %s; status restored to %s", use_case.id, restored.status.value)
        raise

    transition = apply_action(use_case, LifecycleAction.COMPLETE_ANALYSIS, {"analysis": analysis})
    use_case = save_use_case(db, use_case.id, transition.as_updates())
    logger.info("Use case %s analysed", use_case.id)
    return use_case


def select_domains(db: DatabaseClient, user: UserContext, use_case_id: str, domains: Sequence[str]) -> UseCase:
    use_case = get_owned_use_case(db, user, use_case_id)
    transition = apply_action(use_case, LifecycleAction.SELECT_DOMAINS, {"domains": domains})

    catalogue = get_bian_catalogue()
    known = set(catalogue.domain_names()) | set(DOMAIN_NAMES)
    unknown = [domain for domain in transition.updates["selected_domains"] if domain not in known]
    if unknown:
        raise ValidationError(f"Unknown BIAN domains: {', '.join(unknown)}")

    updates = transition.as_updates()
    updates["suggested_apis"] = catalogue.apis_for_domains(
        transition.updates["selected_domains"],
        use_case.original_text or use_case_text(use_case),
    )
    return save_use_case(db, use_case.id, updates)


def known_api_names(use_case: UseCase) -> List[str]:
    names = list(API_IDS) + get_bian_catalogue().api_names()
    for api in use_case.suggested_apis:
        for key in ("name", "id"):
            value = api.get(key)
            if value and value not in names:
                names.append(str(value))
    return names


def select_apis(db: DatabaseClient, user: UserContext, use_case_id: str, apis: Sequence[str]) -> UseCase:
    use_case = get_owned_use_case(db, user, use_case_id)
    transition = apply_action(use_case, LifecycleAction.SELECT_APIS, {"apis": apis})

    known = set(known_api_names(use_case))
    unknown = [api for api in transition.updates["selected_apis"] if api not in known]
    if unknown:
        raise ValidationError(f"Unknown APIs: {', '.join(unknown)}")
    return save_use_case(db, use_case.id, transition.as_updates())


def domain_recommendations_for_text(text: str) -> Dict[str, Any]:
    """Keyword recommendations, merged with the model's suggestion when it answers."""

    ai_result: Optional[Mapping[str, Any]] = None
    try:
        reply = ai.suggest_bian_domains(text)
        if isinstance(reply, Mapping):
            ai_result = reply
    except AIServiceError as exc:
        logger.warning("Domain suggestion unavailable, using keyword table only: %s", exc)

    recommendations = recommend_domains(text, ai_result)
    return {
        "recommendations": [item.to_dict() for item in recommendations],
        "selected": [item.domain for item in recommendations if item.selected],
        "ai_assisted": ai_result is not None,
    }


def domain_recommendations(db: DatabaseClient, user: UserContext, use_case_id: str) -> Dict[str, Any]:
    use_case = get_use_case(db, user, use_case_id)
    return domain_recommendations_for_text(use_case_analysis_text(use_case))


def api_recommendations(db: DatabaseClient, user: UserContext, use_case_id: str) -> Dict[str, Any]:
    use_case = get_use_case(db, user, use_case_id)
    if not use_case.selected_domains:
        raise ValidationError("Select BIAN domains before requesting API recommendations")
    groups = recommend_apis(use_case.selected_domains, use_case_text(use_case))
    return {"recommendations": groups, "selected": recommended_api_ids(groups)}


def openapi_spec(db: DatabaseClient, user: UserContext, use_case_id: str) -> Dict[str, Any]:
    use_case = get_use_case(db, user, use_case_id)
    if not use_case.suggested_apis:
        raise ValidationError("The use case has no suggested APIs to document")
    spec = openapi.generate_use_case_spec(use_case)
    return {"spec": spec, "validation": openapi.validate_spec(spec)}


def probe_api(
    db: DatabaseClient,
    user: UserContext,
    use_case_id: str,
    *,
    endpoint: str,
    method: str = "GET",
    payload: Any = None,
    headers: Optional[Mapping[str, str]] = None,
    base_url: Optional[str] = None,
    api_name: Optional[str] = None,
) -> Dict[str, Any]:
    """Call one of the use case's endpoints and report the outcome."""

    use_case = get_use_case(db, user, use_case_id)
    url = http_probe.build_url(endpoint, base_url)
    logger.info("Testing %s for use case %s", api_name or endpoint, use_case.id)
    result = http_probe.probe(method, url, headers=headers, payload=payload)
    return result.to_dict()


def _section(items: Optional[Sequence[Any]]) -> str:
    rendered = [str(item) for item in items or [] if item]
    return ", ".join(rendered) if rendered else NOT_SPECIFIED


def build_structured_text(data: Mapping[str, Any]) -> str:
    """Render a drafted use case as the labelled text the model reviews."""

    actors = data.get("actors") or {}
    steps = []
    for index, step in enumerate(data.get("main_flow") or [], start=1):
        if not isinstance(step, Mapping):
            continue
        steps.append(
            f"{step.get('step') or index}. {step.get('actor') or ''}: "
            f"{step.get('action') or ''} - {step.get('description') or ''}".strip()
        )
    lines = [
        f"TITLE: {data.get('title') or ''}",
        f"OBJECTIVE: {data.get('objective') or NOT_SPECIFIED}",
        f"DESCRIPTION: {data.get('description') or NOT_SPECIFIED}",
        f"PRIMARY ACTORS: {_section(actors.get('primary'))}",
        f"SECONDARY ACTORS: {_section(actors.get('secondary'))}",
        f"SYSTEMS: {_section(actors.get('systems'))}",
        f"PREREQUISITES: {_section(data.get('prerequisites'))}",
        "MAIN FLOW:",
        "\n".join(steps) if steps else NOT_SPECIFIED,
        f"POSTCONDITIONS: {_section(data.get('postconditions'))}",
        f"BUSINESS RULES: {_section(data.get('business_rules'))}",
    ]
    return "\n".join(lines)


def build_content_context(title: str, description: Optional[str] = None, objective: Optional[str] = None) -> str:
    lines = [f"TITLE: {title}"]
    if description:
        lines.append(f"DESCRIPTION: {description}")
    if objective:
        lines.append(f"OBJECTIVE: {objective}")
    return "\n".join(lines)


__all__ = [
    "analyze",
    "api_recommendations",
    "build_content_context",
    "build_structured_text",
    "create_use_case",
    "delete_use_case",
    "domain_recommendations",
    "domain_recommendations_for_text",
    "get_owned_use_case",
    "get_use_case",
    "known_api_names",
    "list_use_cases",
    "openapi_spec",
    "probe_api",
    "save_use_case",
    "select_apis",
    "select_domains",
    "update_use_case",
]
