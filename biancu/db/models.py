"""
Record types for the persisted entities.

Rows come back from the database as plain dictionaries; these dataclasses give
the services a typed view over them and convert back with ``to_record``.
Embedded collections (custom schemas, use-case data sources) are stored as JSON
arrays on the owning use case row.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

COMPANY_FEATURES: tuple[str, ...] = (
    "use-cases",
    "bian-analysis",
    "api-generation",
    "custom-schemas",
    "data-sources",
)
USER_ROLES: tuple[str, ...] = ("admin", "user")
DATA_SOURCE_TYPES: tuple[str, ...] = ("REST_API", "DATABASE", "FILE", "SOAP", "GRAPHQL")
SCHEMA_ORIGINS: tuple[str, ...] = ("ai", "manual")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item is not None]


def _dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [dict(item) for item in value if isinstance(item, dict)]


@dataclass
class CompanySettings:
    features: List[str] = field(default_factory=list)
    allowed_domains: List[str] = field(default_factory=list)
    max_users: int = 10
    max_use_cases: int = 100

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> "CompanySettings":
        data = record or {}
        return cls(
            features=[f for f in _str_list(data.get("features")) if f in COMPANY_FEATURES],
            allowed_domains=[d.strip().lower() for d in _str_list(data.get("allowed_domains")) if d.strip()],
            max_users=int(data.get("max_users") or 10),
            max_use_cases=int(data.get("max_use_cases") or 100),
        )


@dataclass
class Company:
    id: str
    name: str
    description: Optional[str]
    domain: Optional[str]
    is_active: bool
    settings: CompanySettings
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Company":
        domain = record.get("domain")
        return cls(
            id=str(record.get("id")),
            name=str(record.get("name") or ""),
            description=record.get("description"),
            domain=domain.strip().lower() if isinstance(domain, str) and domain.strip() else None,
            is_active=bool(record.get("is_active", True)),
            settings=CompanySettings.from_record(record.get("settings")),
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "domain": self.domain,
            "is_active": self.is_active,
            "settings": asdict(self.settings),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def can_user_join(self, email: str) -> bool:
        email_domain = email.rsplit("@", 1)[-1].strip().lower()
        return self.domain == email_domain or email_domain in self.settings.allowed_domains

    def has_feature(self, feature: str) -> bool:
        return feature in self.settings.features


@dataclass
class CompanyUser:
    id: str
    email: str
    name: str
    company_id: str
    role: str = "user"
    is_active: bool = True
    google_id: Optional[str] = None
    picture: Optional[str] = None
    joined_at: Optional[datetime] = None
    last_login: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CompanyUser":
        role = str(record.get("role") or "user").lower()
        return cls(
            id=str(record.get("id")),
            email=str(record.get("email") or "").lower(),
            name=str(record.get("name") or ""),
            company_id=str(record.get("company_id") or ""),
            role=role if role in USER_ROLES else "user",
            is_active=bool(record.get("is_active", True)),
            google_id=record.get("google_id"),
            picture=record.get("picture"),
            joined_at=parse_datetime(record.get("joined_at")),
            last_login=parse_datetime(record.get("last_login")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "company_id": self.company_id,
            "role": self.role,
            "is_active": self.is_active,
            "google_id": self.google_id,
            "picture": self.picture,
            "joined_at": _iso(self.joined_at),
            "last_login": _iso(self.last_login),
        }


@dataclass
class CustomSchema:
    name: str
    schema: Dict[str, Any]
    description: Optional[str] = None
    generated_by: str = "manual"
    api_association: Optional[str] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "CustomSchema":
        origin = str(record.get("generated_by") or "manual").lower()
        schema = record.get("schema")
        return cls(
            name=str(record.get("name") or ""),
            schema=dict(schema) if isinstance(schema, dict) else {},
            description=record.get("description"),
            generated_by=origin if origin in SCHEMA_ORIGINS else "manual",
            api_association=record.get("api_association"),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UseCaseDataSource:
    """Data source attached to a single use case."""

    name: str
    system_name: str
    api_url: str
    method: str
    associated_api: str
    type: str = "REST_API"
    payload: Dict[str, Any] = field(default_factory=dict)
    connection_config: Dict[str, Any] = field(default_factory=dict)
    is_validated: bool = False

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UseCaseDataSource":
        payload = record.get("payload")
        config = record.get("connection_config")
        return cls(
            name=str(record.get("name") or ""),
            system_name=str(record.get("system_name") or ""),
            api_url=str(record.get("api_url") or ""),
            method=str(record.get("method") or "GET").upper(),
            associated_api=str(record.get("associated_api") or ""),
            type=str(record.get("type") or "REST_API"),
            payload=dict(payload) if isinstance(payload, dict) else {},
            connection_config=dict(config) if isinstance(config, dict) else {},
            is_validated=bool(record.get("is_validated", False)),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class DataSource:
    """Company-level data source catalogue entry."""

    id: str
    name: str
    description: str
    type: str
    connection_config: Dict[str, Any]
    company_id: str
    created_by: str
    is_validated: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "DataSource":
        config = record.get("connection_config")
        return cls(
            id=str(record.get("id")),
            name=str(record.get("name") or ""),
            description=str(record.get("description") or ""),
            type=str(record.get("type") or "REST_API"),
            connection_config=dict(config) if isinstance(config, dict) else {},
            company_id=str(record.get("company_id") or ""),
            created_by=str(record.get("created_by") or ""),
            is_validated=bool(record.get("is_validated", False)),
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "type": self.type,
            "connection_config": self.connection_config,
            "company_id": self.company_id,
            "created_by": self.created_by,
            "is_validated": self.is_validated,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


@dataclass
class AIAnalysis:
    business_objectives: List[str] = field(default_factory=list)
    actors: List[str] = field(default_factory=list)
    events: List[str] = field(default_factory=list)
    flows: List[str] = field(default_factory=list)
    suggested_domains: List[str] = field(default_factory=list)
    confidence: float = 0.0

    @classmethod
    def from_record(cls, record: Optional[Dict[str, Any]]) -> Optional["AIAnalysis"]:
        if not isinstance(record, dict):
            return None
        try:
            confidence = float(record.get("confidence") or 0.0)
        except (TypeError, ValueError):
            confidence = 0.0
        return cls(
            business_objectives=_str_list(record.get("business_objectives")),
            actors=_str_list(record.get("actors")),
            events=_str_list(record.get("events")),
            flows=_str_list(record.get("flows")),
            suggested_domains=_str_list(record.get("suggested_domains")),
            confidence=min(1.0, max(0.0, confidence)),
        )

    def to_record(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class UseCase:
    id: str
    title: str
    description: str
    original_text: str
    company_id: str
    created_by: str
    status: str = "draft"
    objective: Optional[str] = None
    actors: Dict[str, List[str]] = field(default_factory=dict)
    prerequisites: List[str] = field(default_factory=list)
    main_flow: List[Dict[str, Any]] = field(default_factory=list)
    alternative_flows: List[Dict[str, Any]] = field(default_factory=list)
    postconditions: List[str] = field(default_factory=list)
    business_rules: List[str] = field(default_factory=list)
    non_functional_requirements: List[str] = field(default_factory=list)
    assumptions: List[str] = field(default_factory=list)
    constraints: List[str] = field(default_factory=list)
    priority: Optional[str] = None
    complexity: Optional[str] = None
    estimated_effort: Optional[str] = None
    ai_analysis: Optional[AIAnalysis] = None
    selected_domains: List[str] = field(default_factory=list)
    suggested_apis: List[Dict[str, Any]] = field(default_factory=list)
    selected_apis: List[str] = field(default_factory=list)
    custom_schemas: List[CustomSchema] = field(default_factory=list)
    data_sources: List[UseCaseDataSource] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "UseCase":
        actors_raw = record.get("actors")
        actors: Dict[str, List[str]] = {}
        if isinstance(actors_raw, dict):
            actors = {str(key): _str_list(value) for key, value in actors_raw.items()}
        return cls(
            id=str(record.get("id")),
            title=str(record.get("title") or ""),
            description=str(record.get("description") or ""),
            original_text=str(record.get("original_text") or ""),
            company_id=str(record.get("company_id") or ""),
            created_by=str(record.get("created_by") or ""),
            status=str(record.get("status") or "draft"),
            objective=record.get("objective"),
            actors=actors,
            prerequisites=_str_list(record.get("prerequisites")),
            main_flow=_dict_list(record.get("main_flow")),
            alternative_flows=_dict_list(record.get("alternative_flows")),
            postconditions=_str_list(record.get("postconditions")),
            business_rules=_str_list(record.get("business_rules")),
            non_functional_requirements=_str_list(record.get("non_functional_requirements")),
            assumptions=_str_list(record.get("assumptions")),
            constraints=_str_list(record.get("constraints")),
            priority=record.get("priority"),
            complexity=record.get("complexity"),
            estimated_effort=record.get("estimated_effort"),
            ai_analysis=AIAnalysis.from_record(record.get("ai_analysis")),
            selected_domains=_str_list(record.get("selected_domains")),
            suggested_apis=_dict_list(record.get("suggested_apis")),
            selected_apis=_str_list(record.get("selected_apis")),
            custom_schemas=[CustomSchema.from_record(item) for item in _dict_list(record.get("custom_schemas"))],
            data_sources=[UseCaseDataSource.from_record(item) for item in _dict_list(record.get("data_sources"))],
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["ai_analysis"] = self.ai_analysis.to_record() if self.ai_analysis else None
        record["custom_schemas"] = [item.to_record() for item in self.custom_schemas]
        record["data_sources"] = [item.to_record() for item in self.data_sources]
        record["created_at"] = _iso(self.created_at)
        record["updated_at"] = _iso(self.updated_at)
        return record


@dataclass
class ApiTestRecord:
    """One entry of a customization's test history."""

    method: str
    endpoint: str
    success: bool
    status: Optional[int] = None
    response_time_ms: Optional[int] = None
    error_message: Optional[str] = None
    timestamp: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ApiTestRecord":
        status = record.get("status")
        elapsed = record.get("response_time_ms")
        return cls(
            method=str(record.get("method") or "GET").upper(),
            endpoint=str(record.get("endpoint") or ""),
            success=bool(record.get("success", False)),
            status=int(status) if status is not None else None,
            response_time_ms=int(elapsed) if elapsed is not None else None,
            error_message=record.get("error_message"),
            timestamp=parse_datetime(record.get("timestamp")),
        )

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["timestamp"] = _iso(self.timestamp)
        return record


@dataclass
class ApiCustomization:
    """
    A user's overrides for one API of a use case.

    There is at most one row per (use case, API name, user). Deleting only
    clears ``is_active``; saving again reactivates the same row.
    """

    id: str
    use_case_id: str
    api_name: str
    user_id: str
    company_id: str
    custom_payload: Optional[Dict[str, Any]] = None
    custom_headers: Dict[str, str] = field(default_factory=dict)
    custom_parameters: Optional[Dict[str, Any]] = None
    notes: str = ""
    testing_config: Dict[str, Any] = field(default_factory=dict)
    test_history: List[ApiTestRecord] = field(default_factory=list)
    is_active: bool = True
    version: int = 1
    last_modified: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ApiCustomization":
        payload = record.get("custom_payload")
        headers = record.get("custom_headers")
        parameters = record.get("custom_parameters")
        testing = record.get("testing_config")
        return cls(
            id=str(record.get("id")),
            use_case_id=str(record.get("use_case_id") or ""),
            api_name=str(record.get("api_name") or ""),
            user_id=str(record.get("user_id") or ""),
            company_id=str(record.get("company_id") or ""),
            custom_payload=dict(payload) if isinstance(payload, dict) else None,
            custom_headers={str(k): str(v) for k, v in headers.items()} if isinstance(headers, dict) else {},
            custom_parameters=dict(parameters) if isinstance(parameters, dict) else None,
            notes=str(record.get("notes") or ""),
            testing_config=dict(testing) if isinstance(testing, dict) else {},
            test_history=[ApiTestRecord.from_record(item) for item in _dict_list(record.get("test_history"))],
            is_active=bool(record.get("is_active", True)),
            version=int(record.get("version") or 1),
            last_modified=parse_datetime(record.get("last_modified")),
            created_at=parse_datetime(record.get("created_at")),
            updated_at=parse_datetime(record.get("updated_at")),
        )

    def to_record(self) -> Dict[str, Any]:
        record = asdict(self)
        record["test_history"] = [item.to_record() for item in self.test_history]
        record["last_modified"] = _iso(self.last_modified)
        record["created_at"] = _iso(self.created_at)
        record["updated_at"] = _iso(self.updated_at)
        return record


__all__ = [
    "AIAnalysis",
    "ApiCustomization",
    "ApiTestRecord",
    "COMPANY_FEATURES",
    "Company",
    "CompanySettings",
    "CompanyUser",
    "CustomSchema",
    "DATA_SOURCE_TYPES",
    "DataSource",
    "SCHEMA_ORIGINS",
    "USER_ROLES",
    "UseCase",
    "UseCaseDataSource",
    "parse_datetime",
    "utcnow",
]
