"""Tests for the keyword recommendation tables."""

from __future__ import annotations

from biancu.db.models import UseCase
from biancu.services.recommendations import (
    API_IDS,
    DOMAIN_NAMES,
    recommend_apis,
    recommend_domains,
    recommended_api_ids,
    use_case_text,
)


def _by_domain(recommendations):
    return {item.domain: item for item in recommendations}


def test_pago_ranks_payment_order_above_fraud_detection() -> None:
    results = _by_domain(recommend_domains("El cliente necesita registrar un pago a un proveedor"))

    payment = results["Payment Order"].confidence
    fraud = results["Fraud Detection"].confidence if "Fraud Detection" in results else 0.0
    assert payment > fraud


def test_keyword_scores_follow_match_count() -> None:
    results = _by_domain(recommend_domains("pago por transferencia de una orden"))

    # three Payment Order keywords: min(0.9, 3 * 0.3 + 0.1)
    assert results["Payment Order"].confidence == 0.9
    assert results["Payment Order"].selected is True


def test_single_match_is_not_preselected() -> None:
    results = _by_domain(recommend_domains("revisar el saldo"))

    assert results["Customer Position"].confidence == 0.4
    assert results["Customer Position"].selected is False


def test_unmatched_domains_are_dropped() -> None:
    assert recommend_domains("xyz") == []


def test_results_sorted_and_capped() -> None:
    text = "cliente producto contrato pago ejecución crédito riesgo cumplimiento fraude saldo"
    results = recommend_domains(text)

    assert len(results) <= 8
    confidences = [item.confidence for item in results]
    assert confidences == sorted(confidences, reverse=True)


def test_ai_suggestion_leads_and_limits_additions() -> None:
    ai_result = {"suggested_domains": ["Card Transaction"], "confidence": 0.95, "reasoning": "card payments"}
    text = "cliente producto contrato pago crédito riesgo cumplimiento fraude saldo"

    results = recommend_domains(text, ai_result)

    assert results[0].domain == "Card Transaction"
    assert results[0].selected is True
    assert results[0].reason == "card payments"
    assert len(results) <= 5
    assert all(item.confidence <= 0.7 for item in results[1:])


def test_ai_suggestion_accepts_camel_case_key() -> None:
    results = recommend_domains("texto", {"suggestedDomains": [{"name": "Loan"}]})

    assert [item.domain for item in results] == ["Loan"]
    assert results[0].confidence == 0.8


def test_recommend_apis_flags_triggered_apis() -> None:
    groups = recommend_apis(["Payment Order", "Fraud Detection"], "Pago inmediato entre cuentas")

    # no table entries for Fraud Detection
    assert [group["domain"] for group in groups] == ["Payment Order"]
    recommended = recommended_api_ids(groups)
    assert recommended
    assert set(recommended) <= set(API_IDS)
    for group in groups:
        confidences = [api["confidence"] for api in group["apis"]]
        assert confidences == sorted(confidences, reverse=True)


def test_recommend_apis_skips_domains_without_table_entries() -> None:
    assert recommend_apis(["Investment Account"], "anything") == []


def test_use_case_text_joins_title_description_objective() -> None:
    use_case = UseCase(
        id="1",
        title="Pago",
        description="Pago de servicios",
        original_text="",
        company_id="c",
        created_by="u",
        objective="Reducir tiempos",
    )

    assert use_case_text(use_case) == "Pago Pago de servicios Reducir tiempos"


def test_domain_table_has_ten_entries() -> None:
    assert len(DOMAIN_NAMES) == 10
