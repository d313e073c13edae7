"""Tests for the language model adapter."""

from __future__ import annotations

import json

import pytest

from biancu.services import ai
from biancu.services.errors import AIServiceError


def _reply(monkeypatch: pytest.MonkeyPatch, text: str, calls: list | None = None) -> None:
    def fake(**kwargs):
        if calls is not None:
            calls.append(kwargs)
        return text, {"total_tokens": 1}

    monkeypatch.setattr(ai, "call_response_with_metrics", fake)


def test_analyze_use_case_returns_model_fields(monkeypatch: pytest.MonkeyPatch) -> None:
    payload = {
        "business_objectives": ["Agilizar pagos"],
        "actors": ["Cliente"],
        "events": ["Solicitud de pago"],
        "flows": ["Validar", "Ejecutar"],
        "suggested_domains": ["Payment Order"],
        "confidence": 0.92,
    }
    calls: list = []
    _reply(monkeypatch, json.dumps(payload), calls)

    result = ai.analyze_use_case("El cliente solicita un pago")

    assert result == payload
    assert calls[0]["response_format"] == {"type": "json_object"}
    assert "El cliente solicita un pago" in calls[0]["user_prompt"]


def test_analyze_use_case_falls_back_on_invalid_json(monkeypatch: pytest.MonkeyPatch) -> None:
    _reply(monkeypatch, "this is not json")

    result = ai.analyze_use_case("El cliente envía una solicitud de transacción")

    assert result["confidence"] == 0.3
    assert result["suggested_domains"] == ["Customer Management", "Product Management"]
    assert any("cliente" in actor for actor in result["actors"])
    assert any("solicitud" in event for event in result["events"])


def test_analyze_use_case_falls_back_on_missing_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    _reply(monkeypatch, json.dumps({"actors": ["Cliente"]}))

    assert ai.analyze_use_case("texto")["confidence"] == 0.3


def test_analyze_use_case_raises_when_service_unavailable(monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(**kwargs):
        raise RuntimeError("connection reset")

    monkeypatch.setattr(ai, "call_response_with_metrics", boom)

    with pytest.raises(AIServiceError) as exc:
        ai.analyze_use_case("texto")
    assert exc.value.status_code == 502


def test_empty_reply_is_an_error(monkeypatch: pytest.MonkeyPatch) -> None:
    _reply(monkeypatch, "")

    with pytest.raises(AIServiceError):
        ai.suggest_use_case_content("TITLE: Pago")


def test_pass_through_operations_return_reply_unmodified(monkeypatch: pytest.MonkeyPatch) -> None:
    reply = {"schema": {"type": "object"}, "example": {}, "description": "Transfer", "extra": [1, 2]}
    _reply(monkeypatch, json.dumps(reply))

    assert ai.generate_custom_schema("Schema for a transfer request", "Payment Order") == reply


def test_suggest_bian_domains_includes_previous_analysis(monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list = []
    _reply(monkeypatch, json.dumps({"suggested_domains": ["Loan"]}), calls)

    ai.suggest_bian_domains("texto", {"business_objectives": ["Reducir mora"], "actors": [], "events": []})

    assert "Reducir mora" in calls[0]["user_prompt"]
    assert calls[0]["temperature"] == 0.2


def test_validate_domain_selection_assumes_valid_on_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    _reply(monkeypatch, "{broken")

    result = ai.validate_domain_selection(["Loan"], "texto", ["Loan", "Deposit"])

    assert result["valid"] is True


def test_refine_api_suggestions_keeps_basic_list_on_empty_answer(monkeypatch: pytest.MonkeyPatch) -> None:
    basics = [{"name": "Payment Order", "endpoints": []}]
    _reply(monkeypatch, json.dumps({"recommended_apis": []}))

    assert ai.refine_api_suggestions(basics, "contexto", ["Payment Order"]) == basics


def test_extract_basic_info_without_keywords() -> None:
    result = ai.extract_basic_info("nothing relevant here")

    assert result["business_objectives"] == []
    assert result["flows"] == ["Detailed analysis requires manual review"]
