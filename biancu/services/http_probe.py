"""Outbound HTTP calls used to try out BIAN endpoints and data source connections."""

from __future__ import annotations

import logging
import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional

import requests

from biancu import __version__
from biancu.config import CONFIG

logger = logging.getLogger(__name__)

USER_AGENT = f"BIAN-CU-Platform/{__version__}"
ALLOWED_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")


@dataclass
class ProbeResult:
    success: bool
    request: Dict[str, Any]
    status: Optional[int] = None
    status_text: Optional[str] = None
    response_time_ms: Optional[int] = None
    headers: Dict[str, str] = field(default_factory=dict)
    data: Any = None
    error: Optional[Dict[str, str]] = None
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _decode_body(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def probe(
    method: str,
    url: str,
    *,
    headers: Optional[Mapping[str, str]] = None,
    payload: Any = None,
    timeout: Optional[float] = None,
) -> ProbeResult:
    """
    Issue a single request and describe the outcome.

    Any HTTP status is a completed probe; ``success`` is true for 2xx and 3xx.
    Network failures and timeouts come back as a result carrying ``error``
    instead of raising.
    """

    method = (method or "GET").upper()
    request_headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
        **dict(headers or {}),
    }
    request_info = {
        "url": url,
        "method": method,
        "headers": request_headers,
        "payload": payload,
    }
    timeout = CONFIG.http_probe_timeout if timeout is None else timeout

    kwargs: Dict[str, Any] = {"headers": request_headers, "timeout": timeout, "allow_redirects": False}
    if method != "GET" and payload is not None:
        kwargs["json"] = payload

    logger.info("Probing %s %s", method, url)
    started = time.monotonic()
    try:
        response = requests.request(method, url, **kwargs)
    except requests.exceptions.RequestException as exc:
        logger.warning("Probe %s %s failed: %s", method, url, exc)
        return ProbeResult(
            success=False,
            request=request_info,
            response_time_ms=int((time.monotonic() - started) * 1000),
            error={
                "message": str(exc),
                "code": "TIMEOUT" if isinstance(exc, requests.exceptions.Timeout) else "CONNECTION_ERROR",
                "type": type(exc).__name__,
            },
        )

    elapsed_ms = int((time.monotonic() - started) * 1000)
    logger.info("Probe %s %s completed: %s in %sms", method, url, response.status_code, elapsed_ms)
    return ProbeResult(
        success=200 <= response.status_code < 400,
        request=request_info,
        status=response.status_code,
        status_text=response.reason,
        response_time_ms=elapsed_ms,
        headers=dict(response.headers),
        data=_decode_body(response),
    )


def build_url(endpoint: str, base_url: Optional[str] = None) -> str:
    base = (base_url or CONFIG.bian_sandbox_url).rstrip("/")
    if not endpoint.startswith("/"):
        endpoint = f"/{endpoint}"
    return f"{base}{endpoint}"


__all__ = ["ALLOWED_METHODS", "ProbeResult", "USER_AGENT", "build_url", "probe"]
