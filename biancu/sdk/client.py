"""HTTP client for the BIAN-CU platform API."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8000/api/v1"
DEFAULT_TIMEOUT = 30.0


class ApiError(Exception):
    """Base class for failed API calls."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}


class AuthenticationError(ApiError):
    """The token is missing, expired or rejected; the caller should sign in again."""


class ValidationError(ApiError):
    """The request was rejected before or by the server as invalid."""


class NotFoundError(ApiError):
    pass


class ServerError(ApiError):
    """Any other failure, including network errors and upstream AI failures."""


def _require_selection(values: Sequence[str], label: str) -> List[str]:
    if isinstance(values, (str, bytes)):
        raise ValidationError(f"The {label} selection must be a list of names, not a single string")
    cleaned = [str(value).strip() for value in values or [] if str(value).strip()]
    if not cleaned:
        raise ValidationError(f"At least one {label} must be selected")
    return cleaned


def _segment(value: str) -> str:
    return quote(str(value), safe="")


class BianCuClient:
    """
    Thin synchronous client mirroring the REST surface.

    Covers every JSON endpoint; the Google sign-in redirect is for browsers
    only. Every method returns the ``data`` member of the response envelope.
    Empty domain or API selections, and a bare string passed where a list of
    names is expected, are rejected locally without sending a request.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        token: Optional[str] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._session = session or requests.Session()

    def _build_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _request(self, method: str, path: str, *, json: Any = None, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self._session.request(
                method,
                url,
                headers=self._build_headers(),
                json=json,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            logger.error("Request %s %s failed: %s", method, url, exc)
            raise ServerError(f"Could not reach the API: {exc}") from exc

        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {"data": body}

        if response.status_code < 400:
            return body.get("data")

        message = str(body.get("message") or response.reason or "Request failed")
        if response.status_code == 401:
            self.token = None
            raise AuthenticationError(message, response.status_code, body)
        if response.status_code in (400, 422):
            raise ValidationError(message, response.status_code, body)
        if response.status_code == 404:
            raise NotFoundError(message, response.status_code, body)
        raise ServerError(message, response.status_code, body)

    # Auth

    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/me")

    def refresh_token(self) -> str:
        data = self._request("POST", "/auth/refresh")
        self.token = data["token"]
        return self.token

    def logout(self) -> None:
        self._request("POST", "/auth/logout")
        self.token = None

    # Use cases

    def list_use_cases(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._request("GET", "/use-cases", params={"status": status} if status else None)

    def get_use_case(self, use_case_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/use-cases/{use_case_id}")

    def create_use_case(self, title: str, description: str, original_text: str, **fields: Any) -> Dict[str, Any]:
        payload = {"title": title, "description": description, "original_text": original_text, **fields}
        return self._request("POST", "/use-cases", json=payload)

    def update_use_case(self, use_case_id: str, **changes: Any) -> Dict[str, Any]:
        return self._request("PUT", f"/use-cases/{use_case_id}", json=changes)

    def delete_use_case(self, use_case_id: str) -> None:
        self._request("DELETE", f"/use-cases/{use_case_id}")

    def analyze_use_case(self, use_case_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/use-cases/{use_case_id}/analyze")

    def analyze_draft(self, draft: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/use-cases/analyze-ai", json=draft)

    def suggest_content(self, title: str, description: Optional[str] = None, objective: Optional[str] = None) -> Any:
        payload = {"title": title, "description": description, "objective": objective}
        return self._request("POST", "/use-cases/ai-suggest-content", json=payload)

    def suggest_apis(self, domains: Sequence[str], use_case_context: str) -> Any:
        payload = {"domains": _require_selection(domains, "domain"), "use_case_context": use_case_context}
        return self._request("POST", "/use-cases/ai-suggest-apis", json=payload)

    def recommend_domains(self, use_case_text: str) -> Dict[str, Any]:
        return self._request("POST", "/use-cases/recommend-domains", json={"use_case_text": use_case_text})

    def domain_recommendations(self, use_case_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/use-cases/{use_case_id}/domain-recommendations")

    def api_recommendations(self, use_case_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/use-cases/{use_case_id}/api-recommendations")

    def select_domains(self, use_case_id: str, domains: Sequence[str]) -> Dict[str, Any]:
        selection = _require_selection(domains, "domain")
        return self._request("POST", f"/use-cases/{use_case_id}/domains", json={"domains": selection})

    def select_apis(self, use_case_id: str, apis: Sequence[str]) -> Dict[str, Any]:
        selection = _require_selection(apis, "API")
        return self._request("POST", f"/use-cases/{use_case_id}/apis", json={"apis": selection})

    def openapi_spec(self, use_case_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/use-cases/{use_case_id}/openapi-spec")

    def test_api(self, use_case_id: str, endpoint: str, method: str = "GET", **options: Any) -> Dict[str, Any]:
        payload = {"endpoint": endpoint, "method": method.upper(), **options}
        return self._request("POST", f"/use-cases/{use_case_id}/test-api", json=payload)

    # BIAN catalogue

    def list_domains(self, search: Optional[str] = None) -> List[Dict[str, Any]]:
        return self._request("GET", "/bian/domains", params={"search": search} if search else None)

    def get_domain(self, name: str) -> Dict[str, Any]:
        return self._request("GET", f"/bian/domains/{_segment(name)}")

    def create_domains(self, domains: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._request("POST", "/bian/domains", json={"domains": list(domains)})

    def apis_for_domains(self, domains: Sequence[str], context: Optional[str] = None) -> List[Dict[str, Any]]:
        payload = {"domains": _require_selection(domains, "domain"), "context": context}
        return self._request("POST", "/bian/apis", json=payload)

    def create_apis(self, apis: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        return self._request("POST", "/bian/apis/create", json={"apis": list(apis)})

    def get_api(self, name: str) -> Dict[str, Any]:
        return self._request("GET", f"/bian/apis/{_segment(name)}")

    def validate_domains(self, domains: Sequence[str], use_case_text: str) -> Dict[str, Any]:
        payload = {"domains": _require_selection(domains, "domain"), "use_case_text": use_case_text}
        return self._request("POST", "/bian/validate-domains", json=payload)

    # Schemas

    def generate_schema(self, description: str, api_context: Optional[str] = None) -> Any:
        return self._request("POST", "/schemas/generate", json={"description": description, "api_context": api_context})

    def add_schema(self, use_case_id: str, name: str, schema: Dict[str, Any], **fields: Any) -> Dict[str, Any]:
        return self._request("POST", f"/schemas/use-case/{use_case_id}", json={"name": name, "schema": schema, **fields})

    def list_schemas(self, use_case_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/schemas/use-case/{use_case_id}")

    def update_schema(self, use_case_id: str, index: int, **changes: Any) -> Dict[str, Any]:
        return self._request("PUT", f"/schemas/use-case/{use_case_id}/{index}", json=changes)

    def delete_schema(self, use_case_id: str, index: int) -> None:
        self._request("DELETE", f"/schemas/use-case/{use_case_id}/{index}")

    # Data sources

    def list_data_sources(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/data-sources")

    def get_data_source(self, data_source_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/data-sources/{data_source_id}")

    def create_data_source(self, name: str, description: str, type: str, **fields: Any) -> Dict[str, Any]:
        payload = {"name": name, "description": description, "type": type, **fields}
        return self._request("POST", "/data-sources", json=payload)

    def update_data_source(self, data_source_id: str, **changes: Any) -> Dict[str, Any]:
        """
        Update a catalogue entry.

        A ``connection_config`` read back from :meth:`get_data_source` can be
        sent unchanged: masked credentials keep their stored values.
        """
        return self._request("PUT", f"/data-sources/{data_source_id}", json=changes)

    def delete_data_source(self, data_source_id: str) -> None:
        self._request("DELETE", f"/data-sources/{data_source_id}")

    def validate_data_source(self, data_source_id: str) -> Dict[str, Any]:
        return self._request("POST", f"/data-sources/{data_source_id}/validate")

    def validate_connection(self, api_url: str, method: str = "GET", **options: Any) -> Dict[str, Any]:
        payload = {"api_url": api_url, "method": method.upper(), **options}
        return self._request("POST", "/data-sources/validate-connection", json=payload)

    def list_use_case_data_sources(self, use_case_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/data-sources/use-case/{use_case_id}")

    def add_use_case_data_source(self, use_case_id: str, **fields: Any) -> Dict[str, Any]:
        return self._request("POST", f"/data-sources/use-case/{use_case_id}", json=fields)

    def delete_use_case_data_source(self, use_case_id: str, index: int) -> None:
        self._request("DELETE", f"/data-sources/use-case/{use_case_id}/{index}")

    # API customizations

    def list_customizations(self, use_case_id: str) -> List[Dict[str, Any]]:
        return self._request("GET", f"/api-customizations/{use_case_id}")

    def get_customization(self, use_case_id: str, api_name: str) -> Optional[Dict[str, Any]]:
        """The caller's customization for the API, or ``None`` when there is none."""
        return self._request("GET", f"/api-customizations/{use_case_id}/{_segment(api_name)}")

    def save_customization(self, use_case_id: str, api_name: str, **fields: Any) -> Dict[str, Any]:
        payload = {"use_case_id": use_case_id, "api_name": api_name, **fields}
        return self._request("POST", "/api-customizations", json=payload)

    def test_customized_api(
        self,
        use_case_id: str,
        api_name: str,
        endpoint: str,
        method: str = "GET",
        **options: Any,
    ) -> Dict[str, Any]:
        payload = {"endpoint": endpoint, "method": method.upper(), **options}
        return self._request("POST", f"/api-customizations/{use_case_id}/{_segment(api_name)}/test", json=payload)

    def reset_customization(self, use_case_id: str, api_name: str) -> Dict[str, Any]:
        return self._request("POST", f"/api-customizations/{use_case_id}/{_segment(api_name)}/reset")

    def delete_customization(self, use_case_id: str, api_name: str) -> None:
        self._request("DELETE", f"/api-customizations/{use_case_id}/{_segment(api_name)}")

    # Single API

    def api_detail(self, use_case_id: str, api_name: str) -> Dict[str, Any]:
        return self._request("GET", f"/single-api/{use_case_id}/{_segment(api_name)}")

    def api_openapi_spec(self, use_case_id: str, api_name: str, include_customizations: bool = True) -> Dict[str, Any]:
        return self._request(
            "GET",
            f"/single-api/{use_case_id}/{_segment(api_name)}/openapi-spec",
            params={"includeCustomizations": "true" if include_customizations else "false"},
        )

    def related_apis(self, use_case_id: str, api_name: str) -> Dict[str, Any]:
        return self._request("GET", f"/single-api/{use_case_id}/{_segment(api_name)}/related-apis")

    # Companies

    def current_company(self) -> Dict[str, Any]:
        return self._request("GET", "/companies/current")

    def update_current_company(self, **changes: Any) -> Dict[str, Any]:
        return self._request("PUT", "/companies/current", json=changes)

    def company_users(self) -> List[Dict[str, Any]]:
        return self._request("GET", "/companies/current/users")

    def set_user_role(self, user_id: str, role: str) -> Dict[str, Any]:
        return self._request("PUT", f"/companies/current/users/{user_id}/role", json={"role": role})

    def set_user_status(self, user_id: str, is_active: bool) -> Dict[str, Any]:
        return self._request("PUT", f"/companies/current/users/{user_id}/status", json={"is_active": is_active})


__all__ = [
    "ApiError",
    "AuthenticationError",
    "BianCuClient",
    "NotFoundError",
    "ServerError",
    "ValidationError",
]
