"""BIAN v13 domain and API catalogue."""

from __future__ import annotations

import copy
import logging
import re
import threading
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from biancu.services import ai

logger = logging.getLogger(__name__)

BIAN_VERSION = "13.0.0"

_OPERATION_TYPES: Dict[str, str] = {
    "Register": "CR",
    "Initiate": "CR",
    "Create": "CR",
    "Update": "UP",
    "Modify": "UP",
    "Retrieve": "RQ",
    "Get": "RQ",
    "Request": "RQ",
    "Evaluate": "BQ",
    "Execute": "BQ",
    "Process": "BQ",
}
_PATH_PARAM = re.compile(r"\{([^}]+)\}")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class BianDomain:
    name: str
    description: str
    business_areas: List[str] = field(default_factory=list)
    common_apis: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class BianEndpoint:
    path: str
    method: str
    operation: str
    description: str


@dataclass
class BianApi:
    name: str
    domain: str
    description: str
    endpoints: List[BianEndpoint] = field(default_factory=list)
    coverage: List[str] = field(default_factory=list)
    limitations: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _seed_domains() -> List[BianDomain]:
    return [
        BianDomain("Customer Management", "Customer information and relationship management",
                   ["onboarding", "kyc", "customer-data", "relationship-management"],
                   ["Customer Directory", "Customer Reference Data Management", "Customer Relationship Management"]),
        BianDomain("Product Management", "Catalogue of banking products and services",
                   ["product-catalog", "pricing", "product-lifecycle"],
                   ["Product Directory", "Product Design", "Product Deployment"]),
        BianDomain("Customer Offer", "Personalised customer offers",
                   ["marketing", "cross-selling", "personalization"],
                   ["Customer Offer", "Next Best Action", "Campaign Management"]),
        BianDomain("Customer Agreement", "Customer agreements and contracts",
                   ["contracts", "terms-conditions", "legal-agreements"],
                   ["Customer Agreement", "Contract Management", "Terms and Conditions"]),
        BianDomain("Payment Order", "Payment order processing",
                   ["payments", "transfers", "payment-processing"],
                   ["Payment Order", "Payment Initiation", "Payment Tracking"]),
        BianDomain("Payment Execution", "Payment execution and settlement",
                   ["settlement", "clearing", "payment-execution"],
                   ["Payment Execution", "ACH Operations", "Wire Transfer Operations"]),
        BianDomain("Card Transaction", "Card transaction processing",
                   ["card-processing", "authorization", "settlement"],
                   ["Card Transaction", "Card Authorization", "Card Settlement"]),
        BianDomain("Credit Management", "Credit management and credit risk assessment",
                   ["credit-assessment", "loan-origination", "credit-monitoring"],
                   ["Credit Management", "Credit Assessment", "Credit Facility"]),
        BianDomain("Loan", "Loan lifecycle management",
                   ["loan-origination", "loan-servicing", "collections"],
                   ["Loan", "Mortgage Loan", "Consumer Loan"]),
        BianDomain("Deposit", "Deposit account management",
                   ["account-management", "deposits", "savings"],
                   ["Current Account", "Savings Account", "Time Deposit"]),
        BianDomain("Investment Account", "Investment account management",
                   ["investments", "portfolio-management", "trading"],
                   ["Investment Account", "Portfolio Management", "Securities Trading"]),
        BianDomain("Risk Management", "Enterprise risk management",
                   ["risk-assessment", "compliance", "monitoring"],
                   ["Market Risk Management", "Credit Risk Management", "Operational Risk Management"]),
        BianDomain("Fraud Detection", "Fraud detection and prevention",
                   ["fraud-prevention", "monitoring", "investigation"],
                   ["Fraud Detection", "Transaction Monitoring", "Fraud Investigation"]),
        BianDomain("Compliance", "Regulatory compliance management",
                   ["regulatory-compliance", "reporting", "audit"],
                   ["Regulatory Compliance", "Regulatory Reporting", "Audit Trail"]),
    ]


def _seed_apis() -> Dict[str, BianApi]:
    apis = [
        BianApi(
            name="Customer Directory",
            domain="Customer Management",
            description="Central directory of customer information",
            endpoints=[
                BianEndpoint("/customer-directory/register", "POST", "Register",
                             "Register a new customer in the directory"),
                BianEndpoint("/customer-directory/{customer-directory-entry-id}/retrieve", "GET", "Retrieve",
                             "Retrieve customer information"),
                BianEndpoint("/customer-directory/{customer-directory-entry-id}/update", "PUT", "Update",
                             "Update customer information"),
            ],
            coverage=["customer registration", "customer search", "data updates"],
            limitations=["no behavioural analysis", "limited to basic data"],
        ),
        BianApi(
            name="Payment Order",
            domain="Payment Order",
            description="Payment order management",
            endpoints=[
                BianEndpoint("/payment-order/initiate", "POST", "Initiate", "Initiate a payment order"),
                BianEndpoint("/payment-order/{payment-order-id}/retrieve", "GET", "Retrieve",
                             "Retrieve payment order status"),
                BianEndpoint("/payment-order/{payment-order-id}/update", "PUT", "Update", "Update a payment order"),
            ],
            coverage=["payment initiation", "order tracking", "funds validation"],
            limitations=["no actual execution", "requires Payment Execution integration"],
        ),
        BianApi(
            name="Credit Assessment",
            domain="Credit Management",
            description="Credit risk assessment",
            endpoints=[
                BianEndpoint("/credit-assessment/evaluate", "POST", "Evaluate", "Evaluate a credit application"),
                BianEndpoint("/credit-assessment/{assessment-id}/retrieve", "GET", "Retrieve",
                             "Retrieve the assessment result"),
            ],
            coverage=["credit scoring", "risk analysis", "recommendations"],
            limitations=["requires historical data", "subject to local regulation"],
        ),
    ]
    return {api.name: api for api in apis}


def slugify(name: str) -> str:
    return _WHITESPACE.sub("-", name.strip().lower())


def operation_type(operation: str) -> str:
    return _OPERATION_TYPES.get(operation, "RQ")


def path_parameters(path: str) -> List[Dict[str, Any]]:
    return [
        {"name": name, "type": "string", "required": True, "description": f"Path parameter: {name}"}
        for name in _PATH_PARAM.findall(path or "")
    ]


def flatten_apis(apis: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """One entry per endpoint, in the shape stored as a use case's suggested APIs."""

    flattened: List[Dict[str, Any]] = []
    for api in apis:
        endpoints = [item for item in api.get("endpoints") or [] if isinstance(item, Mapping)]
        available = [str(item.get("method") or "GET").upper() for item in endpoints]
        for endpoint in endpoints:
            operation = str(endpoint.get("operation") or "Retrieve")
            path = str(endpoint.get("path") or "")
            flattened.append(
                {
                    "name": f"{api.get('name')} - {operation}",
                    "domain": api.get("domain"),
                    "description": endpoint.get("description") or api.get("description") or "",
                    "version": BIAN_VERSION,
                    "operation_type": operation_type(operation),
                    "endpoint": path,
                    "method": str(endpoint.get("method") or "GET").upper(),
                    "available_methods": available,
                    "parameters": path_parameters(path),
                    "request_schema": {},
                    "response_schema": {},
                }
            )
    return flattened


class BianCatalogue:
    """Process-wide catalogue; AI-suggested additions live for the process lifetime."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._domains: List[BianDomain] = _seed_domains()
        self._apis: Dict[str, BianApi] = _seed_apis()

    def list_domains(self) -> List[BianDomain]:
        with self._lock:
            return list(self._domains)

    def domain_names(self) -> List[str]:
        return [domain.name for domain in self.list_domains()]

    def get_domain(self, name: str) -> Optional[BianDomain]:
        return next((domain for domain in self.list_domains() if domain.name == name), None)

    def search_domains(self, query: str) -> List[BianDomain]:
        term = (query or "").strip().lower()
        if not term:
            return self.list_domains()
        return [
            domain
            for domain in self.list_domains()
            if term in domain.name.lower()
            or term in domain.description.lower()
            or any(term in area for area in domain.business_areas)
        ]

    def get_api(self, name: str) -> Optional[BianApi]:
        with self._lock:
            return self._apis.get(name)

    def api_names(self) -> List[str]:
        with self._lock:
            return list(self._apis)

    def create_domains(self, entries: Iterable[Mapping[str, Any]]) -> List[BianDomain]:
        results: List[BianDomain] = []
        with self._lock:
            for entry in entries:
                name = str(entry.get("name") or "").strip()
                if not name:
                    continue
                existing = next((domain for domain in self._domains if domain.name == name), None)
                if existing is not None:
                    logger.info("BIAN domain already exists: %s", name)
                    results.append(existing)
                    continue
                domain = BianDomain(
                    name=name,
                    description=str(entry.get("description") or ""),
                    business_areas=[str(entry.get("business_area") or "AI-Suggested")],
                    common_apis=[f"{name} API"],
                )
                self._domains.append(domain)
                results.append(domain)
                logger.info("BIAN domain created: %s", name)
        return results

    def create_apis(self, entries: Iterable[Mapping[str, Any]]) -> List[BianApi]:
        results: List[BianApi] = []
        with self._lock:
            for entry in entries:
                name = str(entry.get("name") or "").strip()
                if not name:
                    continue
                existing = self._apis.get(name)
                if existing is not None:
                    logger.info("BIAN API already exists: %s", name)
                    results.append(existing)
                    continue
                domain = str(entry.get("domain") or "")
                slug = slugify(name)
                api = BianApi(
                    name=name,
                    domain=domain,
                    description=str(entry.get("description") or ""),
                    endpoints=[
                        BianEndpoint(f"/{slug}/initiate", "POST", "Initiate", f"Initiate a {name} operation"),
                        BianEndpoint(f"/{slug}/{{id}}/retrieve", "GET", "Retrieve", f"Retrieve {name} information"),
                        BianEndpoint(f"/{slug}/{{id}}/update", "PUT", "Update", f"Update {name}"),
                    ],
                    coverage=[f"{domain} operations", "basic management", "queries"],
                    limitations=["generated automatically from an AI suggestion", "basic functionality"],
                )
                self._apis[name] = api
                results.append(api)
                logger.info("BIAN API created: %s (%s)", name, domain)
        return results

    def apis_for_domains(self, domains: Sequence[str], context: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Collect catalogue APIs for ``domains`` and flatten them per endpoint.

        When a use case context is given the list is first refined through the
        AI adapter; refinement errors leave the catalogue list as is.
        """

        wanted = set(domains)
        with self._lock:
            selected = [domain for domain in self._domains if domain.name in wanted]
            apis: List[Dict[str, Any]] = []
            for domain in selected:
                for api_name in domain.common_apis:
                    template = self._apis.get(api_name)
                    if template is not None:
                        apis.append(copy.deepcopy(template.to_dict()))
            for template in self._apis.values():
                if template.domain in wanted and not any(api["name"] == template.name for api in apis):
                    apis.append(copy.deepcopy(template.to_dict()))

        if context and apis:
            apis = ai.refine_api_suggestions(apis, context, list(domains))

        return flatten_apis(apis)


_catalogue: Optional[BianCatalogue] = None


def get_bian_catalogue() -> BianCatalogue:
    global _catalogue
    if _catalogue is None:
        _catalogue = BianCatalogue()
    return _catalogue


def reset_bian_catalogue() -> None:
    global _catalogue
    _catalogue = None


__all__ = [
    "BIAN_VERSION",
    "BianApi",
    "BianCatalogue",
    "BianDomain",
    "BianEndpoint",
    "flatten_apis",
    "get_bian_catalogue",
    "reset_bian_catalogue",
    "operation_type",
    "path_parameters",
    "slugify",
]
