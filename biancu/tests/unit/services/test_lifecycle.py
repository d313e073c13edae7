"""Tests for use case status transitions."""

from __future__ import annotations

import pytest

from biancu.db.models import CustomSchema, UseCase, UseCaseDataSource
from biancu.services.errors import LifecycleError
from biancu.services.lifecycle import (
    LifecycleAction,
    UseCaseStatus,
    apply_action,
    is_ready_for_completion,
)


def _use_case(**overrides) -> UseCase:
    values = dict(
        id="uc-1",
        title="Transferencia",
        description="Transferencia entre cuentas propias",
        original_text="El cliente quiere realizar una transferencia entre sus cuentas.",
        company_id="company-1",
        created_by="user-1",
    )
    values.update(overrides)
    return UseCase(**values)


def _schema() -> CustomSchema:
    return CustomSchema(name="Transfer", schema={"type": "object"})


def _source() -> UseCaseDataSource:
    return UseCaseDataSource(
        name="Core",
        system_name="Core Banking",
        api_url="https://core.example.com/accounts",
        method="GET",
        associated_api="Payment Order",
    )


SAMPLE_PAYLOADS = {
    LifecycleAction.CREATE: {},
    LifecycleAction.START_ANALYSIS: {},
    LifecycleAction.COMPLETE_ANALYSIS: {"analysis": {"actors": ["cliente"], "confidence": 0.9}},
    LifecycleAction.FAIL_ANALYSIS: {"previous_status": "analyzed"},
    LifecycleAction.SELECT_DOMAINS: {"domains": ["Payment Order"]},
    LifecycleAction.SELECT_APIS: {"apis": ["payment-order-api"]},
    LifecycleAction.ATTACH_ARTIFACT: {},
    LifecycleAction.SET_STATUS: {"status": "completed"},
}


@pytest.mark.parametrize("action", list(LifecycleAction))
@pytest.mark.parametrize("status", UseCaseStatus.values())
def test_every_transition_lands_in_the_status_enum(action: LifecycleAction, status: str) -> None:
    transition = apply_action(_use_case(status=status), action, SAMPLE_PAYLOADS[action])

    assert transition.status.value in UseCaseStatus.values()
    assert transition.as_updates()["status"] == transition.status.value


def test_create_starts_as_draft() -> None:
    assert apply_action(None, LifecycleAction.CREATE).status is UseCaseStatus.DRAFT


def test_complete_analysis_stores_analysis() -> None:
    transition = apply_action(
        _use_case(status="analyzing"),
        LifecycleAction.COMPLETE_ANALYSIS,
        {"analysis": {"actors": ["cliente"], "suggested_domains": ["Payment Order"], "confidence": 3}},
    )

    assert transition.status is UseCaseStatus.ANALYZED
    assert transition.updates["ai_analysis"]["actors"] == ["cliente"]
    assert transition.updates["ai_analysis"]["confidence"] == 1.0


def test_complete_analysis_requires_result() -> None:
    with pytest.raises(LifecycleError):
        apply_action(_use_case(), LifecycleAction.COMPLETE_ANALYSIS, {})


def test_failed_analysis_restores_previous_status() -> None:
    use_case = _use_case(status="analyzing")

    assert apply_action(use_case, LifecycleAction.FAIL_ANALYSIS, {"previous_status": "domains_selected"}).status \
        is UseCaseStatus.DOMAINS_SELECTED
    assert apply_action(use_case, LifecycleAction.FAIL_ANALYSIS).status is UseCaseStatus.DRAFT
    assert apply_action(use_case, LifecycleAction.FAIL_ANALYSIS, {"previous_status": "analyzing"}).status \
        is UseCaseStatus.DRAFT


@pytest.mark.parametrize(
    "action, key",
    [(LifecycleAction.SELECT_DOMAINS, "domains"), (LifecycleAction.SELECT_APIS, "apis")],
)
@pytest.mark.parametrize("value", [[], ["", "  "], None, "Payment Order"])
def test_empty_or_malformed_selection_is_rejected(action, key, value) -> None:
    with pytest.raises(LifecycleError):
        apply_action(_use_case(status="analyzed"), action, {key: value})


def test_selection_is_cleaned_and_deduplicated() -> None:
    transition = apply_action(
        _use_case(status="analyzed"),
        LifecycleAction.SELECT_DOMAINS,
        {"domains": [" Payment Order ", "Payment Order", "Fraud Detection"]},
    )

    assert transition.status is UseCaseStatus.DOMAINS_SELECTED
    assert transition.updates["selected_domains"] == ["Payment Order", "Fraud Detection"]


def test_artifact_completes_only_when_both_kinds_exist() -> None:
    only_schema = _use_case(status="apis_selected", custom_schemas=[_schema()])
    assert apply_action(only_schema, LifecycleAction.ATTACH_ARTIFACT).status is UseCaseStatus.APIS_SELECTED

    ready = _use_case(status="apis_selected", custom_schemas=[_schema()], data_sources=[_source()])
    assert is_ready_for_completion(ready)
    assert apply_action(ready, LifecycleAction.ATTACH_ARTIFACT).status is UseCaseStatus.COMPLETED


def test_removing_last_artifact_reopens_completed_use_case() -> None:
    without_sources = _use_case(status="completed", custom_schemas=[_schema()])

    assert not is_ready_for_completion(without_sources)
    assert apply_action(without_sources, LifecycleAction.ATTACH_ARTIFACT).status is UseCaseStatus.APIS_SELECTED


def test_artifact_before_api_selection_keeps_status() -> None:
    early = _use_case(status="analyzed", custom_schemas=[_schema()], data_sources=[_source()])

    assert apply_action(early, LifecycleAction.ATTACH_ARTIFACT).status is UseCaseStatus.ANALYZED


def test_set_status_rejects_unknown_value() -> None:
    with pytest.raises(LifecycleError):
        apply_action(_use_case(), LifecycleAction.SET_STATUS, {"status": "archived"})


def test_unknown_action_is_rejected() -> None:
    with pytest.raises(LifecycleError):
        apply_action(_use_case(), "publish")
