"""
Language model adapter.

Each operation builds a prompt, asks the model for a JSON object and hands the
parsed reply back to the caller as-is. Only ``analyze_use_case`` interprets the
reply: it checks the expected keys and falls back to a local keyword
extraction when the model answers with something that is not valid JSON.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from biancu.config import CONFIG
from biancu.services.errors import AIServiceError
from biancu.services.openai import JSON_RESPONSE_FORMAT, call_response_with_metrics

logger = logging.getLogger(__name__)

BIAN_EXPERT_PROMPT = (
    "You are an expert in banking process analysis and the BIAN v13 standard. "
    "Always answer with a single JSON object and nothing else."
)
SCHEMA_EXPERT_PROMPT = (
    "You are an expert in API design and JSON Schema. "
    "Generate well structured, validated schemas and answer with a single JSON object."
)

KNOWN_BIAN_DOMAINS: tuple[str, ...] = (
    "Customer Management",
    "Product Management",
    "Customer Offer",
    "Customer Agreement",
    "Customer Position",
    "Payment Order",
    "Payment Execution",
    "Card Transaction",
    "Credit Management",
    "Loan",
    "Deposit",
    "Investment Account",
    "Securities Position",
    "Market Analysis",
    "Risk Management",
    "Compliance",
    "Fraud Detection",
    "Customer Behavioral Insights",
    "Channel Activity Analysis",
)

_ANALYSIS_KEYS = ("business_objectives", "actors", "events", "flows", "suggested_domains")

_BUSINESS_KEYWORDS = ("objetivo", "meta", "propósito", "beneficio", "resultado", "goal", "objective")
_ACTOR_KEYWORDS = ("cliente", "usuario", "empleado", "sistema", "banco", "entidad", "customer", "user")
_EVENT_KEYWORDS = ("solicitud", "petición", "transacción", "proceso", "operación", "request", "transaction")


def _call_json(
    user_prompt: str,
    *,
    system_prompt: str = BIAN_EXPERT_PROMPT,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    operation: str,
) -> Any:
    """Run the prompt and parse the reply, raising ``AIServiceError`` on failure."""

    try:
        text, _metrics = call_response_with_metrics(
            model=CONFIG.openai_model,
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            temperature=CONFIG.openai_temperature if temperature is None else temperature,
            max_tokens=max_tokens or CONFIG.openai_max_output_tokens,
            response_format=JSON_RESPONSE_FORMAT,
        )
    except Exception as exc:
        logger.error("AI call failed during %s: %s", operation, exc)
        raise AIServiceError(f"AI service unavailable while running {operation}") from exc

    if not text:
        raise AIServiceError(f"Empty reply from the AI service during {operation}")

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        logger.error("AI reply for %s is not valid JSON: %s", operation, exc)
        raise AIServiceError(f"Invalid reply from the AI service during {operation}") from exc


def _bullet(items: Optional[Iterable[Any]], empty: str = "Not specified") -> str:
    rendered = [str(item) for item in items or [] if item]
    return "\n".join(f"{index}. {item}" for index, item in enumerate(rendered, start=1)) or empty


def extract_basic_info(text: str) -> Dict[str, Any]:
    """Keyword-only analysis used when the model reply cannot be parsed."""

    words = (text or "").lower().split()

    def _found(keywords: Sequence[str]) -> List[str]:
        return [keyword for keyword in keywords if any(keyword in word for word in words)]

    return {
        "business_objectives": [f"Basic analysis: {keyword} identified" for keyword in _found(_BUSINESS_KEYWORDS)],
        "actors": [f"{keyword} (detected automatically)" for keyword in _found(_ACTOR_KEYWORDS)],
        "events": [f"{keyword} (detected automatically)" for keyword in _found(_EVENT_KEYWORDS)],
        "flows": ["Detailed analysis requires manual review"],
        "suggested_domains": ["Customer Management", "Product Management"],
        "confidence": 0.3,
    }


def analyze_use_case(text: str) -> Dict[str, Any]:
    """Extract objectives, actors, events, flows and candidate BIAN domains."""

    prompt = f"""
Analyse the following banking use case and extract structured information.

USE CASE:
{text}

Extract:
1. BUSINESS OBJECTIVES: the main business goals pursued
2. ACTORS: every actor involved (customers, employees, systems, ...)
3. EVENTS: the events that trigger the process
4. FLOWS: the main process steps in order
5. SUGGESTED BIAN DOMAINS: the BIAN v13 domains most relevant to this use case

Answer with JSON using exactly this structure:
{{
  "business_objectives": ["..."],
  "actors": ["..."],
  "events": ["..."],
  "flows": ["..."],
  "suggested_domains": ["..."],
  "confidence": 0.85
}}

confidence is a number between 0 and 1 expressing how sure you are of the analysis.
""".strip()

    try:
        reply = _call_json(prompt, temperature=0.3, max_tokens=2000, operation="analyze_use_case")
    except AIServiceError as exc:
        if isinstance(exc.__cause__, json.JSONDecodeError):
            logger.warning("Falling back to keyword analysis for unparseable AI reply")
            return extract_basic_info(text)
        raise

    if not isinstance(reply, Mapping) or any(not reply.get(key) for key in _ANALYSIS_KEYS):
        logger.warning("AI analysis reply is missing expected keys; using keyword analysis")
        return extract_basic_info(text)

    try:
        confidence = float(reply.get("confidence") or 0.5)
    except (TypeError, ValueError):
        confidence = 0.5

    return {
        "business_objectives": list(reply.get("business_objectives") or []),
        "actors": list(reply.get("actors") or []),
        "events": list(reply.get("events") or []),
        "flows": list(reply.get("flows") or []),
        "suggested_domains": list(reply.get("suggested_domains") or []),
        "confidence": confidence,
    }


def suggest_bian_domains(text: str, existing_analysis: Optional[Mapping[str, Any]] = None) -> Any:
    previous = ""
    if existing_analysis:
        previous = (
            "\nPREVIOUS ANALYSIS:\n"
            f"- Objectives: {', '.join(existing_analysis.get('business_objectives') or [])}\n"
            f"- Actors: {', '.join(existing_analysis.get('actors') or [])}\n"
            f"- Events: {', '.join(existing_analysis.get('events') or [])}\n"
        )
    domains = "\n".join(f"- {name}" for name in KNOWN_BIAN_DOMAINS)
    prompt = f"""
Based on the following banking use case, suggest the most relevant BIAN v13 domains.

USE CASE:
{text}
{previous}
BIAN v13 domains include (among others):
{domains}

Answer with JSON:
{{
  "suggested_domains": ["..."],
  "reasoning": "why these domains are relevant",
  "confidence": 0.85
}}
""".strip()
    return _call_json(prompt, temperature=0.2, max_tokens=1000, operation="suggest_bian_domains")


def analyze_case_for_suggestions(structured_text: str) -> Any:
    """Review a drafted use case and propose improvements and BIAN alignment."""

    prompt = f"""
Review the following structured banking use case and suggest improvements.

{structured_text}

Answer with JSON:
{{
  "completeness_score": 0.0,
  "missing_elements": ["..."],
  "suggested_actors": ["..."],
  "suggested_prerequisites": ["..."],
  "suggested_postconditions": ["..."],
  "suggested_business_rules": ["..."],
  "suggested_domains": ["..."],
  "improvements": ["..."],
  "reasoning": "short explanation"
}}
""".strip()
    return _call_json(prompt, max_tokens=2000, operation="analyze_case_for_suggestions")


def suggest_use_case_content(context: str) -> Any:
    """Draft the remaining use case fields from a title and optional description."""

    prompt = f"""
Using the following context, draft the content of a banking use case.

{context}

Answer with JSON:
{{
  "description": "...",
  "objective": "...",
  "actors": {{"primary": ["..."], "secondary": ["..."], "systems": ["..."]}},
  "prerequisites": ["..."],
  "main_flow": [{{"step": 1, "actor": "...", "action": "...", "description": "..."}}],
  "postconditions": ["..."],
  "business_rules": ["..."],
  "non_functional_requirements": ["..."]
}}
""".strip()
    return _call_json(prompt, temperature=0.5, max_tokens=2000, operation="suggest_use_case_content")


def suggest_apis_by_domain(domains: Sequence[str], context: str) -> Any:
    prompt = f"""
For each of the following BIAN v13 domains, suggest the service domain APIs needed by the use case.

DOMAINS:
{", ".join(domains)}

USE CASE:
{context}

Answer with JSON:
{{
  "domains": [
    {{
      "domain": "...",
      "apis": [
        {{
          "name": "...",
          "description": "...",
          "endpoints": [{{"method": "POST", "path": "/...", "operation": "Initiate", "description": "..."}}],
          "relevance": 0.9,
          "reason": "..."
        }}
      ]
    }}
  ]
}}
""".strip()
    return _call_json(prompt, max_tokens=2000, operation="suggest_apis_by_domain")


def generate_custom_schema(description: str, api_context: Optional[str] = None) -> Any:
    context = f"\nAPI CONTEXT: {api_context}\n" if api_context else ""
    prompt = f"""
Generate a JSON schema for the following requirement.

DESCRIPTION:
{description}
{context}
The schema must include:
1. Relevant properties with appropriate types
2. Required validations (required, format, ...)
3. A description for each field
4. Examples where appropriate

Answer with JSON:
{{
  "schema": {{
    "type": "object",
    "properties": {{}},
    "required": [],
    "additionalProperties": false
  }},
  "example": {{}},
  "description": "description of the generated schema"
}}
""".strip()
    return _call_json(
        prompt,
        system_prompt=SCHEMA_EXPERT_PROMPT,
        temperature=0.3,
        max_tokens=1500,
        operation="generate_custom_schema",
    )


def validate_domain_selection(domains: Sequence[str], text: str, catalogue: Sequence[str]) -> Dict[str, Any]:
    """Ask the model whether ``domains`` fit the use case; assume valid when it cannot answer."""

    prompt = f"""
Check whether the following BIAN domains are appropriate for this use case.

USE CASE:
{text}

SELECTED DOMAINS:
{", ".join(domains)}

AVAILABLE DOMAINS:
{", ".join(catalogue)}

Answer with JSON:
{{
  "valid": true,
  "suggestions": ["alternative domain"],
  "reasoning": "explanation"
}}
""".strip()
    try:
        reply = _call_json(prompt, temperature=0.2, max_tokens=1000, operation="validate_domain_selection")
    except AIServiceError as exc:
        logger.warning("Domain validation unavailable: %s", exc)
        return {"valid": True, "reasoning": "Automatic validation was not possible"}
    if not isinstance(reply, dict):
        return {"valid": True, "reasoning": "Automatic validation was not possible"}
    return reply


def refine_api_suggestions(
    basic_apis: Sequence[Mapping[str, Any]],
    context: str,
    domains: Sequence[str],
) -> List[Dict[str, Any]]:
    """
    Let the model pick and extend the catalogue APIs for a use case.

    APIs the model keeps are merged with their catalogue entry (extra endpoints
    appended, coverage and limitations replaced when provided). Any failure
    returns the catalogue list untouched.
    """

    available = "\n".join(f"- {api.get('name')}: {api.get('description')}" for api in basic_apis)
    prompt = f"""
Based on the following use case and the available BIAN APIs, refine the suggestions.

USE CASE:
{context}

SELECTED DOMAINS:
{", ".join(domains)}

AVAILABLE APIS:
{available}

1. Select the APIs most relevant to this use case
2. Suggest additional endpoints that may be required
3. Identify aspects of the use case these APIs do not cover

Answer with JSON:
{{
  "recommended_apis": [
    {{
      "name": "API Name",
      "domain": "Domain Name",
      "description": "Description",
      "relevance_score": 0.9,
      "additional_endpoints": [
        {{"path": "/additional-endpoint", "method": "POST", "operation": "Execute", "description": "..."}}
      ],
      "coverage": ["..."],
      "limitations": ["..."]
    }}
  ],
  "uncovered_aspects": ["..."]
}}
""".strip()

    basics = [dict(api) for api in basic_apis]
    try:
        reply = _call_json(prompt, operation="refine_api_suggestions")
    except AIServiceError as exc:
        logger.warning("API refinement unavailable, keeping catalogue list: %s", exc)
        return basics

    suggestions = reply.get("recommended_apis") if isinstance(reply, dict) else None
    if not isinstance(suggestions, list) or not suggestions:
        return basics

    by_name = {api.get("name"): api for api in basics}
    refined: List[Dict[str, Any]] = []
    for suggestion in suggestions:
        if not isinstance(suggestion, dict):
            continue
        base = by_name.get(suggestion.get("name"))
        if base is None:
            if suggestion.get("name") and isinstance(suggestion.get("endpoints"), list):
                refined.append(suggestion)
            continue
        extra = [item for item in suggestion.get("additional_endpoints") or [] if isinstance(item, dict)]
        merged = dict(base)
        merged["endpoints"] = list(base.get("endpoints") or []) + extra
        merged["coverage"] = suggestion.get("coverage") or base.get("coverage") or []
        merged["limitations"] = suggestion.get("limitations") or base.get("limitations") or []
        refined.append(merged)
    return refined or basics


__all__ = [
    "KNOWN_BIAN_DOMAINS",
    "analyze_case_for_suggestions",
    "analyze_use_case",
    "extract_basic_info",
    "generate_custom_schema",
    "refine_api_suggestions",
    "suggest_apis_by_domain",
    "suggest_bian_domains",
    "suggest_use_case_content",
    "validate_domain_selection",
]
