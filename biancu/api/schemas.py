"""Pydantic schemas for the public API."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RequestModel(BaseModel):
    """Request bodies accept both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(BaseModel):
    success: bool = True
    data: Any = None
    message: Optional[str] = None
    count: Optional[int] = None


def envelope(data: Any = None, message: Optional[str] = None, count: Optional[int] = None) -> Envelope:
    return Envelope(success=True, data=data, message=message, count=count)


# Use cases


class Actors(RequestModel):
    primary: List[str] = Field(default_factory=list)
    secondary: List[str] = Field(default_factory=list)
    systems: List[str] = Field(default_factory=list)


class FlowStep(RequestModel):
    step: Optional[int] = None
    actor: Optional[str] = None
    action: Optional[str] = None
    description: Optional[str] = None


Priority = Literal["low", "medium", "high", "critical"]
Complexity = Literal["low", "medium", "high"]


class UseCaseFields(RequestModel):
    objective: Optional[str] = None
    actors: Optional[Actors] = None
    prerequisites: Optional[List[str]] = None
    main_flow: Optional[List[FlowStep]] = None
    alternative_flows: Optional[List[Dict[str, Any]]] = None
    postconditions: Optional[List[str]] = None
    business_rules: Optional[List[str]] = None
    non_functional_requirements: Optional[List[str]] = None
    assumptions: Optional[List[str]] = None
    constraints: Optional[List[str]] = None
    priority: Optional[Priority] = None
    complexity: Optional[Complexity] = None
    estimated_effort: Optional[str] = None


class UseCaseCreateRequest(UseCaseFields):
    title: str = Field(..., min_length=3, max_length=200)
    description: str = Field(..., min_length=10, max_length=1000)
    original_text: str = Field(..., min_length=50)


class UseCaseUpdateRequest(UseCaseFields):
    title: Optional[str] = Field(default=None, min_length=3, max_length=200)
    description: Optional[str] = Field(default=None, min_length=10, max_length=1000)
    status: Optional[str] = None


class DraftAnalysisRequest(RequestModel):
    title: str = Field(..., min_length=3)
    description: str = Field(..., min_length=10)
    objective: str = Field(..., min_length=10)
    actors: Optional[Actors] = None
    prerequisites: Optional[List[str]] = None
    main_flow: Optional[List[FlowStep]] = None
    postconditions: Optional[List[str]] = None
    business_rules: Optional[List[str]] = None


class ContentSuggestionRequest(RequestModel):
    title: str = Field(..., min_length=3)
    description: Optional[str] = None
    objective: Optional[str] = None


class ApiSuggestionRequest(RequestModel):
    domains: List[str] = Field(..., min_length=1)
    use_case_context: str = Field(..., min_length=10)


class DomainRecommendationRequest(RequestModel):
    use_case_text: str = Field(..., min_length=10)


class DomainSelectionRequest(RequestModel):
    domains: List[str]


class ApiSelectionRequest(RequestModel):
    apis: List[str]


class ApiTestRequest(RequestModel):
    api_name: Optional[str] = None
    endpoint: str = Field(..., min_length=1)
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    payload: Optional[Any] = None
    headers: Optional[Dict[str, str]] = None
    base_url: Optional[str] = None

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


# BIAN catalogue


class BianDomainInput(RequestModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    business_area: Optional[str] = None


class BianDomainCreateRequest(RequestModel):
    domains: List[BianDomainInput] = Field(..., min_length=1)


class BianApiInput(RequestModel):
    name: str = Field(..., min_length=1)
    domain: str = Field(..., min_length=1)
    description: Optional[str] = None


class BianApiCreateRequest(RequestModel):
    apis: List[BianApiInput] = Field(..., min_length=1)


class BianApisForDomainsRequest(RequestModel):
    domains: List[str] = Field(..., min_length=1)
    context: Optional[str] = None


class DomainValidationRequest(RequestModel):
    domains: List[str] = Field(..., min_length=1)
    use_case_text: str = Field(..., min_length=10)


# Schemas


class SchemaGenerationRequest(RequestModel):
    description: str = Field(..., min_length=10)
    api_context: Optional[str] = None


class SchemaCreateRequest(RequestModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    schema_: Dict[str, Any] = Field(..., alias="schema")
    generated_by: Literal["ai", "manual"] = "manual"
    api_association: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "schema": self.schema_,
            "generated_by": self.generated_by,
            "api_association": self.api_association,
        }


class SchemaUpdateRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    schema_: Optional[Dict[str, Any]] = Field(default=None, alias="schema")
    api_association: Optional[str] = None

    def to_changes(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "schema": self.schema_,
            "api_association": self.api_association,
        }


# Data sources

DataSourceType = Literal["REST_API", "DATABASE", "FILE", "SOAP", "GRAPHQL"]


class Authentication(RequestModel):
    type: Optional[str] = None
    token: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    api_key: Optional[str] = None


class ConnectionConfig(RequestModel):
    model_config = ConfigDict(extra="allow")

    api_url: Optional[str] = None
    method: Optional[str] = None
    headers: Optional[Dict[str, str]] = None
    authentication: Optional[Authentication] = None


class DataSourceCreateRequest(RequestModel):
    name: str = Field(..., min_length=2, max_length=100)
    description: str = Field(..., min_length=10, max_length=500)
    type: DataSourceType
    connection_config: ConnectionConfig = Field(default_factory=ConnectionConfig)


class DataSourceUpdateRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, min_length=10, max_length=500)
    type: Optional[DataSourceType] = None
    connection_config: Optional[ConnectionConfig] = None


class ConnectionValidationRequest(RequestModel):
    api_url: str = Field(..., min_length=1)
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"] = "GET"
    headers: Optional[Dict[str, str]] = None
    payload: Optional[Any] = None


class UseCaseDataSourceRequest(RequestModel):
    name: str = Field(..., min_length=2, max_length=100)
    system_name: str = Field(..., min_length=2, max_length=100)
    api_url: str = Field(..., min_length=1)
    method: Literal["GET", "POST", "PUT", "DELETE", "PATCH"] = "GET"
    payload: Dict[str, Any] = Field(default_factory=dict)
    associated_api: str = Field(..., min_length=1, max_length=100)
    type: DataSourceType = "REST_API"


# Companies


class CompanySettingsUpdate(RequestModel):
    allowed_domains: Optional[List[str]] = None
    max_users: Optional[int] = Field(default=None, ge=1, le=1000)
    max_use_cases: Optional[int] = Field(default=None, ge=1)
    features: Optional[List[str]] = None


class CompanyUpdateRequest(RequestModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    settings: Optional[CompanySettingsUpdate] = None


class RoleUpdateRequest(RequestModel):
    role: Literal["admin", "user"]


class StatusUpdateRequest(RequestModel):
    is_active: bool


# API customizations


class ApiTestingConfig(RequestModel):
    base_url: Optional[str] = None
    timeout: int = Field(default=10000, ge=1000, le=60000)
    retries: int = Field(default=1, ge=0, le=5)


class ApiCustomizationRequest(RequestModel):
    use_case_id: str = Field(..., min_length=1)
    api_name: str = Field(..., min_length=1, max_length=200)
    custom_payload: Optional[Dict[str, Any]] = None
    custom_headers: Optional[Dict[str, str]] = None
    custom_parameters: Optional[Dict[str, Any]] = None
    notes: Optional[str] = Field(default=None, max_length=2000)
    testing_config: Optional[ApiTestingConfig] = None


class CustomizedApiTestRequest(RequestModel):
    endpoint: str = Field(..., min_length=1)
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    use_custom_data: bool = True
    override_payload: Optional[Any] = None
    override_headers: Optional[Dict[str, str]] = None

    @field_validator("method", mode="before")
    @classmethod
    def upper_method(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value
