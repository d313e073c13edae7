"""
Status transitions for use cases.

Every write that moves a use case through its lifecycle goes through
``apply_action``. The function is pure: it inspects the current use case,
validates the payload and returns the new status together with the field
updates to persist. Storage is the caller's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from biancu.db.models import AIAnalysis, UseCase
from biancu.services.errors import LifecycleError


class UseCaseStatus(str, Enum):
    DRAFT = "draft"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    DOMAINS_SELECTED = "domains_selected"
    APIS_SELECTED = "apis_selected"
    COMPLETED = "completed"

    @classmethod
    def values(cls) -> List[str]:
        return [member.value for member in cls]

    @classmethod
    def parse(cls, value: Any) -> "UseCaseStatus":
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise LifecycleError(
                f"Invalid status '{value}'. Expected one of: {', '.join(cls.values())}"
            ) from exc


class LifecycleAction(str, Enum):
    CREATE = "create"
    START_ANALYSIS = "start_analysis"
    COMPLETE_ANALYSIS = "complete_analysis"
    FAIL_ANALYSIS = "fail_analysis"
    SELECT_DOMAINS = "select_domains"
    SELECT_APIS = "select_apis"
    ATTACH_ARTIFACT = "attach_artifact"
    SET_STATUS = "set_status"


@dataclass
class Transition:
    status: UseCaseStatus
    updates: Dict[str, Any] = field(default_factory=dict)

    def as_updates(self) -> Dict[str, Any]:
        """Field updates including the status column."""
        payload = dict(self.updates)
        payload["status"] = self.status.value
        return payload


def _clean_selection(values: Optional[Iterable[Any]], label: str) -> List[str]:
    if values is None or isinstance(values, (str, bytes)):
        raise LifecycleError(f"{label} must be a list")
    cleaned: List[str] = []
    for value in values:
        text = str(value).strip() if value is not None else ""
        if text and text not in cleaned:
            cleaned.append(text)
    if not cleaned:
        raise LifecycleError(f"At least one {label[:-1]} must be selected")
    return cleaned


def _current_status(use_case: Optional[UseCase]) -> UseCaseStatus:
    if use_case is None:
        return UseCaseStatus.DRAFT
    try:
        return UseCaseStatus(use_case.status)
    except ValueError:
        return UseCaseStatus.DRAFT


def is_ready_for_completion(use_case: UseCase) -> bool:
    return (
        _current_status(use_case) in (UseCaseStatus.APIS_SELECTED, UseCaseStatus.COMPLETED)
        and bool(use_case.custom_schemas)
        and bool(use_case.data_sources)
    )


def apply_action(
    use_case: Optional[UseCase],
    action: LifecycleAction | str,
    payload: Optional[Mapping[str, Any]] = None,
) -> Transition:
    """Compute the status and field updates produced by ``action``."""

    try:
        action = LifecycleAction(action)
    except ValueError as exc:
        raise LifecycleError(f"Unknown lifecycle action '{action}'") from exc
    payload = payload or {}
    current = _current_status(use_case)

    if action is LifecycleAction.CREATE:
        return Transition(UseCaseStatus.DRAFT)

    if action is LifecycleAction.START_ANALYSIS:
        return Transition(UseCaseStatus.ANALYZING)

    if action is LifecycleAction.COMPLETE_ANALYSIS:
        analysis = payload.get("analysis")
        if isinstance(analysis, AIAnalysis):
            analysis = analysis.to_record()
        if not isinstance(analysis, Mapping):
            raise LifecycleError("Analysis result is required to complete the analysis")
        parsed = AIAnalysis.from_record(dict(analysis))
        return Transition(UseCaseStatus.ANALYZED, {"ai_analysis": parsed.to_record() if parsed else None})

    if action is LifecycleAction.FAIL_ANALYSIS:
        previous = payload.get("previous_status") or UseCaseStatus.DRAFT.value
        restored = UseCaseStatus.parse(previous)
        if restored is UseCaseStatus.ANALYZING:
            restored = UseCaseStatus.DRAFT
        return Transition(restored)

    if action is LifecycleAction.SELECT_DOMAINS:
        domains = _clean_selection(payload.get("domains"), "domains")
        return Transition(UseCaseStatus.DOMAINS_SELECTED, {"selected_domains": domains})

    if action is LifecycleAction.SELECT_APIS:
        apis = _clean_selection(payload.get("apis"), "apis")
        return Transition(UseCaseStatus.APIS_SELECTED, {"selected_apis": apis})

    if action is LifecycleAction.ATTACH_ARTIFACT:
        if use_case is not None and is_ready_for_completion(use_case):
            return Transition(UseCaseStatus.COMPLETED)
        if current is UseCaseStatus.COMPLETED:
            return Transition(UseCaseStatus.APIS_SELECTED)
        return Transition(current)

    # SET_STATUS
    return Transition(UseCaseStatus.parse(payload.get("status")))


__all__ = [
    "LifecycleAction",
    "Transition",
    "UseCaseStatus",
    "apply_action",
    "is_ready_for_completion",
]
