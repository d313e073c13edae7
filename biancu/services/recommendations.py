"""
Keyword-driven BIAN domain and API recommendations.

Both lookups are static tables matched against the use case text with
case-insensitive substring checks. Domain scores can optionally be merged with
an AI suggestion, in which case the AI domains take precedence and the table
only contributes a handful of extra candidates.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from biancu.db.models import UseCase


@dataclass(frozen=True)
class DomainRule:
    domain: str
    keywords: tuple[str, ...]
    reason: str


@dataclass
class DomainRecommendation:
    domain: str
    reason: str
    confidence: float
    selected: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ApiMethod:
    method: str
    endpoint: str
    description: str
    parameters: tuple[Dict[str, Any], ...] = ()
    request_body: Optional[Dict[str, str]] = None


@dataclass(frozen=True)
class ApiRule:
    id: str
    name: str
    domain: str
    description: str
    confidence: float
    reason: str
    triggers: tuple[str, ...]
    methods: tuple[ApiMethod, ...]


@dataclass
class ApiRecommendation:
    id: str
    name: str
    domain: str
    description: str
    confidence: float
    reason: str
    recommended: bool
    methods: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


DOMAIN_RULES: tuple[DomainRule, ...] = (
    DomainRule("Customer Management", ("cliente", "customer", "usuario", "persona"),
               "Customer information and relationship management"),
    DomainRule("Product Management", ("producto", "product", "cuenta", "account", "servicio"),
               "Banking product catalogue management"),
    DomainRule("Customer Agreement", ("contrato", "agreement", "acuerdo", "términos", "condiciones"),
               "Customer contracts and agreements"),
    DomainRule("Payment Order", ("pago", "payment", "transferencia", "orden"),
               "Payment order processing"),
    DomainRule("Payment Execution", ("ejecución", "execution", "procesamiento", "transacción"),
               "Payment and transaction execution"),
    DomainRule("Credit Management", ("crédito", "credit", "préstamo", "loan", "financiamiento"),
               "Credit product management"),
    DomainRule("Risk Management", ("riesgo", "risk", "evaluación", "análisis"),
               "Risk assessment and management"),
    DomainRule("Compliance", ("cumplimiento", "compliance", "regulación", "normativa"),
               "Regulatory compliance"),
    DomainRule("Fraud Detection", ("fraude", "fraud", "detección", "seguridad"),
               "Fraud detection and prevention"),
    DomainRule("Customer Position", ("posición", "position", "saldo", "balance"),
               "Customer positions and balances"),
)

_ID_PARAM = {"type": "string", "required": True}

API_RULES: tuple[ApiRule, ...] = (
    ApiRule(
        id="customer-directory",
        name="Customer Directory",
        domain="Customer Management",
        description="Customer directory and basic customer data",
        confidence=0.9,
        reason="Essential to manage basic customer information",
        triggers=("cliente", "customer"),
        methods=(
            ApiMethod("GET", "/customer-directory/{customer-id}", "Retrieve customer information",
                      ({"name": "customer-id", "description": "Unique customer id", **_ID_PARAM},)),
            ApiMethod("POST", "/customer-directory", "Register a new customer",
                      request_body={"customerName": "string", "contactDetails": "object",
                                    "identificationDocuments": "array"}),
            ApiMethod("PUT", "/customer-directory/{customer-id}", "Update customer information"),
        ),
    ),
    ApiRule(
        id="customer-relationship",
        name="Customer Relationship Management",
        domain="Customer Management",
        description="Customer relationships and segmentation",
        confidence=0.7,
        reason="Useful to manage commercial relationships with customers",
        triggers=("relación", "segmento"),
        methods=(
            ApiMethod("GET", "/customer-relationship/{customer-id}/profile", "Retrieve relationship profile"),
            ApiMethod("POST", "/customer-relationship/{customer-id}/segment", "Assign a customer segment"),
        ),
    ),
    ApiRule(
        id="customer-behavioral-insights",
        name="Customer Behavioral Insights",
        domain="Customer Management",
        description="Customer behaviour and pattern analysis",
        confidence=0.6,
        reason="Provides insight into customer behaviour",
        triggers=("análisis", "comportamiento"),
        methods=(
            ApiMethod("GET", "/customer-behavioral-insights/{customer-id}/analysis",
                      "Retrieve customer behaviour analysis"),
        ),
    ),
    ApiRule(
        id="product-directory",
        name="Product Directory",
        domain="Product Management",
        description="Catalogue of banking products and services",
        confidence=0.9,
        reason="Essential to manage the product catalogue",
        triggers=("producto", "servicio"),
        methods=(
            ApiMethod("GET", "/product-directory", "List available products",
                      ({"name": "category", "type": "string", "required": False,
                        "description": "Product category"},)),
            ApiMethod("GET", "/product-directory/{product-id}", "Retrieve product details"),
        ),
    ),
    ApiRule(
        id="product-design",
        name="Product Design",
        domain="Product Management",
        description="Banking product design and configuration",
        confidence=0.7,
        reason="Needed to design and configure products",
        triggers=("diseño", "configuración"),
        methods=(
            ApiMethod("POST", "/product-design", "Create a product design"),
            ApiMethod("PUT", "/product-design/{product-id}", "Update a product design"),
        ),
    ),
    ApiRule(
        id="customer-offer",
        name="Customer Offer",
        domain="Customer Offer",
        description="Personalised customer offers",
        confidence=0.8,
        reason="Essential to build personalised offers",
        triggers=("oferta", "propuesta"),
        methods=(
            ApiMethod("POST", "/customer-offer", "Create a customer offer"),
            ApiMethod("GET", "/customer-offer/{customer-id}", "Retrieve customer offers"),
        ),
    ),
    ApiRule(
        id="customer-agreement",
        name="Customer Agreement",
        domain="Customer Agreement",
        description="Customer contracts and agreements",
        confidence=0.85,
        reason="Needed to formalise commercial agreements",
        triggers=("contrato", "acuerdo"),
        methods=(
            ApiMethod("POST", "/customer-agreement", "Create an agreement",
                      request_body={"customerId": "string", "productId": "string", "terms": "object"}),
            ApiMethod("GET", "/customer-agreement/{agreement-id}", "Retrieve agreement details"),
            ApiMethod("PUT", "/customer-agreement/{agreement-id}/status", "Update agreement status"),
        ),
    ),
    ApiRule(
        id="payment-order-initiate",
        name="Payment Order - Initiate",
        domain="Payment Order",
        description="Initiate a payment order",
        confidence=0.9,
        reason="Essential to process payment orders",
        triggers=("pago", "transferencia"),
        methods=(
            ApiMethod("POST", "/payment-order/initiate", "Create a payment order",
                      request_body={"payerAccount": "string", "payeeAccount": "string",
                                    "amount": "number", "currency": "string"}),
            ApiMethod("GET", "/payment-order/initiate", "List payment orders"),
            ApiMethod("PUT", "/payment-order/initiate/{order-id}", "Update a payment order"),
        ),
    ),
    ApiRule(
        id="payment-order-retrieve",
        name="Payment Order - Retrieve",
        domain="Payment Order",
        description="Retrieve payment order status",
        confidence=0.8,
        reason="Needed to check the status of payments",
        triggers=("consulta", "estado"),
        methods=(
            ApiMethod("GET", "/payment-order/{payment-order-id}/retrieve", "Retrieve order status",
                      ({"name": "payment-order-id", "description": "Payment order id", **_ID_PARAM},)),
        ),
    ),
    ApiRule(
        id="payment-order-update",
        name="Payment Order - Update",
        domain="Payment Order",
        description="Update a payment order",
        confidence=0.7,
        reason="Useful to modify existing payment orders",
        triggers=("actualizar", "modificar"),
        methods=(
            ApiMethod("PUT", "/payment-order/{payment-order-id}/update", "Update a payment order"),
        ),
    ),
    ApiRule(
        id="payment-execution",
        name="Payment Execution",
        domain="Payment Execution",
        description="Payment execution and settlement",
        confidence=0.8,
        reason="Needed to execute payments",
        triggers=("ejecución", "liquidación"),
        methods=(
            ApiMethod("POST", "/payment-execution", "Execute a payment"),
            ApiMethod("GET", "/payment-execution/{execution-id}", "Retrieve execution status"),
        ),
    ),
    ApiRule(
        id="credit-facility",
        name="Credit Facility",
        domain="Credit Management",
        description="Credit facility management",
        confidence=0.8,
        reason="Needed to manage credit products",
        triggers=("crédito", "préstamo"),
        methods=(
            ApiMethod("POST", "/credit-facility", "Request a credit facility"),
            ApiMethod("GET", "/credit-facility/{facility-id}/terms", "Retrieve credit terms"),
        ),
    ),
    ApiRule(
        id="loan",
        name="Loan",
        domain="Loan",
        description="Loan lifecycle management",
        confidence=0.9,
        reason="Essential to manage loans",
        triggers=("préstamo", "loan"),
        methods=(
            ApiMethod("POST", "/loan", "Create a loan"),
            ApiMethod("GET", "/loan/{loan-id}", "Retrieve loan details"),
            ApiMethod("PUT", "/loan/{loan-id}/status", "Update loan status"),
        ),
    ),
    ApiRule(
        id="card-transaction",
        name="Card Transaction",
        domain="Card Transaction",
        description="Card transaction processing",
        confidence=0.8,
        reason="Needed to process card transactions",
        triggers=("tarjeta", "card"),
        methods=(
            ApiMethod("POST", "/card-transaction", "Process a card transaction"),
            ApiMethod("GET", "/card-transaction/{transaction-id}", "Retrieve a transaction"),
        ),
    ),
)

DOMAIN_NAMES: tuple[str, ...] = tuple(rule.domain for rule in DOMAIN_RULES)
API_IDS: tuple[str, ...] = tuple(rule.id for rule in API_RULES)

MAX_KEYWORD_RESULTS = 8
MAX_ADDITIONAL_AI_DOMAINS = 4
DEFAULT_AI_CONFIDENCE = 0.8


def _match_count(text_lower: str, keywords: Iterable[str]) -> int:
    return sum(1 for keyword in keywords if keyword in text_lower)


def _ai_domains(ai_result: Optional[Mapping[str, Any]]) -> List[str]:
    if not ai_result:
        return []
    raw = ai_result.get("suggested_domains")
    if raw is None:
        raw = ai_result.get("suggestedDomains")
    if not isinstance(raw, list):
        return []
    domains: List[str] = []
    for item in raw:
        name = item.get("name") if isinstance(item, Mapping) else item
        name = str(name or "").strip()
        if name and name not in domains:
            domains.append(name)
    return domains


def recommend_domains(
    text: str,
    ai_result: Optional[Mapping[str, Any]] = None,
) -> List[DomainRecommendation]:
    """
    Score the domain table against ``text``.

    Without an AI suggestion every table domain is scored on keyword hits
    alone. With one, the suggested domains lead (all pre-selected) and at most
    four table domains are added with a lower ceiling.
    """

    text_lower = (text or "").lower()
    suggested = _ai_domains(ai_result)

    if suggested:
        try:
            ai_confidence = float(ai_result.get("confidence") or DEFAULT_AI_CONFIDENCE)
        except (TypeError, ValueError):
            ai_confidence = DEFAULT_AI_CONFIDENCE
        ai_reason = str(ai_result.get("reasoning") or "Recommended by AI analysis")
        results = [
            DomainRecommendation(domain=name, reason=ai_reason, confidence=ai_confidence, selected=True)
            for name in suggested
        ]

        additional: List[DomainRecommendation] = []
        for rule in DOMAIN_RULES:
            if rule.domain in suggested:
                continue
            confidence = min(0.7, _match_count(text_lower, rule.keywords) * 0.2 + 0.1)
            if confidence > 0.2:
                additional.append(
                    DomainRecommendation(rule.domain, rule.reason, round(confidence, 2), confidence > 0.5)
                )
        results.extend(additional[:MAX_ADDITIONAL_AI_DOMAINS])
        return sorted(results, key=lambda item: item.confidence, reverse=True)

    results = []
    for rule in DOMAIN_RULES:
        confidence = min(0.9, _match_count(text_lower, rule.keywords) * 0.3 + 0.1)
        if confidence > 0.1:
            results.append(DomainRecommendation(rule.domain, rule.reason, round(confidence, 2), confidence > 0.4))
    results.sort(key=lambda item: item.confidence, reverse=True)
    return results[:MAX_KEYWORD_RESULTS]


def _method_dict(method: ApiMethod) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "method": method.method,
        "endpoint": method.endpoint,
        "description": method.description,
    }
    if method.parameters:
        payload["parameters"] = [dict(param) for param in method.parameters]
    if method.request_body:
        payload["request_body"] = dict(method.request_body)
    return payload


def recommend_apis(domains: Sequence[str], text: str) -> List[Dict[str, Any]]:
    """Group the API table by domain, flagging APIs whose triggers appear in ``text``."""

    text_lower = (text or "").lower()
    groups: List[Dict[str, Any]] = []
    for domain in domains:
        apis = [
            ApiRecommendation(
                id=rule.id,
                name=rule.name,
                domain=rule.domain,
                description=rule.description,
                confidence=rule.confidence,
                reason=rule.reason,
                recommended=_match_count(text_lower, rule.triggers) > 0,
                methods=[_method_dict(method) for method in rule.methods],
            )
            for rule in API_RULES
            if rule.domain == domain
        ]
        if apis:
            apis.sort(key=lambda item: item.confidence, reverse=True)
            groups.append({"domain": domain, "apis": [api.to_dict() for api in apis]})
    return groups


def recommended_api_ids(groups: Sequence[Mapping[str, Any]]) -> List[str]:
    return [api["id"] for group in groups for api in group.get("apis", []) if api.get("recommended")]


def use_case_text(use_case: UseCase) -> str:
    """Text the API table is matched against."""
    return f"{use_case.title} {use_case.description} {use_case.objective or ''}"


def use_case_analysis_text(use_case: UseCase) -> str:
    """Structured summary used for domain recommendations."""

    primary = ", ".join(use_case.actors.get("primary", []))
    steps = ", ".join(
        f"{step.get('step', index + 1)}. {step.get('description') or step.get('action') or ''}".strip()
        for index, step in enumerate(use_case.main_flow)
    )
    lines = [
        f"TITLE: {use_case.title}",
        f"OBJECTIVE: {use_case.objective or ''}",
        f"DESCRIPTION: {use_case.description}",
        f"ACTORS: {primary}",
        f"PREREQUISITES: {', '.join(use_case.prerequisites)}",
        f"MAIN FLOW: {steps}",
    ]
    return "\n".join(lines)


__all__ = [
    "API_IDS",
    "API_RULES",
    "ApiRecommendation",
    "DOMAIN_NAMES",
    "DOMAIN_RULES",
    "DomainRecommendation",
    "recommend_apis",
    "recommend_domains",
    "recommended_api_ids",
    "use_case_analysis_text",
    "use_case_text",
]
