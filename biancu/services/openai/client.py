"""Chat completion access for OpenAI and Azure OpenAI deployments."""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from openai import AzureOpenAI, OpenAI

from .utils import log as _log

# USD per 1K tokens; unknown models report zero cost.
MODEL_PRICING: Dict[str, Dict[str, float]] = {
    "gpt-4o-mini": {"input": 0.00015, "output": 0.0006},
    "gpt-4o": {"input": 0.005, "output": 0.015},
    "gpt-4.1-mini": {"input": 0.0004, "output": 0.0016},
    "gpt-4-turbo": {"input": 0.01, "output": 0.03},
}

JSON_RESPONSE_FORMAT: Dict[str, Any] = {"type": "json_object"}
REQUEST_TIMEOUT_SECONDS = 60.0
DEFAULT_AZURE_API_VERSION = "2024-12-01-preview"

_client = None
_client_is_azure = False
_azure_deployment = None


@dataclass(frozen=True)
class _ProviderSettings:
    preference: str
    openai_key: Optional[str]
    azure_endpoint: Optional[str]
    azure_key: Optional[str]
    azure_version: str
    azure_deployment: Optional[str]

    @classmethod
    def from_env(cls) -> "_ProviderSettings":
        return cls(
            preference=(os.getenv("OPENAI_CLIENT") or "").strip().lower(),
            openai_key=os.getenv("OPENAI_API_KEY"),
            azure_endpoint=os.getenv("AZURE_OPENAI_ENDPOINT"),
            azure_key=os.getenv("AZURE_OPENAI_API_KEY"),
            azure_version=os.getenv("AZURE_OPENAI_API_VERSION", DEFAULT_AZURE_API_VERSION),
            azure_deployment=os.getenv("AZURE_OPENAI_DEPLOYMENT"),
        )

    @property
    def wants_azure(self) -> bool:
        if self.preference in ("azure", "openai"):
            return self.preference == "azure"
        return bool(self.azure_endpoint and self.azure_key)


def _supports_temperature(model: str) -> bool:
    """Reasoning models reject an explicit temperature."""
    lowered = (model or "").strip().lower()
    return not lowered.startswith(("gpt-5", "o1", "o3"))


def _build_azure(settings: _ProviderSettings) -> AzureOpenAI:
    if not (settings.azure_endpoint and settings.azure_key):
        raise RuntimeError("AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY must be set to use Azure OpenAI")
    _log("[openai] using Azure endpoint", settings.azure_endpoint, "| deployment:", settings.azure_deployment or "(model name)")
    return AzureOpenAI(
        azure_endpoint=settings.azure_endpoint,
        api_key=settings.azure_key,
        api_version=settings.azure_version,
        timeout=REQUEST_TIMEOUT_SECONDS,
    )


def _build_openai(settings: _ProviderSettings) -> OpenAI:
    if not settings.openai_key:
        raise RuntimeError("OPENAI_API_KEY must be set to use the OpenAI API")
    _log("[openai] using api.openai.com")
    return OpenAI(api_key=settings.openai_key, timeout=REQUEST_TIMEOUT_SECONDS)


def openai_client() -> OpenAI:
    """Return the process-wide client, creating it from the environment on first use."""
    global _client, _client_is_azure, _azure_deployment
    if _client is not None:
        return _client

    settings = _ProviderSettings.from_env()
    if settings.wants_azure:
        _client = _build_azure(settings)
        _client_is_azure = True
        _azure_deployment = settings.azure_deployment
    else:
        _client = _build_openai(settings)
        _client_is_azure = False
        _azure_deployment = None
    return _client


def _usage_metrics(resp: Any, model: str, duration_ms: int) -> Dict[str, Any]:
    usage = getattr(resp, "usage", None)
    prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
    completion_tokens = getattr(usage, "completion_tokens", 0) or 0
    pricing = MODEL_PRICING.get(model, {})
    cost = (prompt_tokens * pricing.get("input", 0) + completion_tokens * pricing.get("output", 0)) / 1000
    return {
        "duration_ms": duration_ms,
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": getattr(usage, "total_tokens", None) or (prompt_tokens + completion_tokens),
        "estimated_cost_usd": round(cost, 6),
        "model": model,
    }


def _first_message_text(resp: Any) -> str:
    choices = getattr(resp, "choices", None) or []
    if not choices:
        return ""
    message = getattr(choices[0], "message", None)
    return (getattr(message, "content", "") or "").strip()


def call_response_with_metrics(
    *,
    model: str,
    system_prompt: Optional[str],
    user_prompt: str,
    temperature: Optional[float] = 0.0,
    max_tokens: Optional[int] = None,
    response_format: Optional[Dict[str, Any]] = None,
) -> Tuple[str, Dict[str, Any]]:
    """
    Send one chat turn and return ``(reply_text, metrics)``.

    On Azure the configured deployment name replaces ``model`` in the request,
    while pricing and metrics keep using the logical model name.
    """
    messages: List[Dict[str, str]] = []
    if system_prompt:
        messages.append({"role": "system", "content": system_prompt})
    messages.append({"role": "user", "content": user_prompt})

    client = openai_client()
    provider = "azure" if _client_is_azure else "openai"
    request: Dict[str, Any] = {
        "model": _azure_deployment if (_client_is_azure and _azure_deployment) else model,
        "messages": messages,
    }
    if temperature is not None:
        if _supports_temperature(model):
            request["temperature"] = temperature
        else:
            _log("[openai] temperature omitted for", model)
    if max_tokens:
        request["max_tokens"] = max_tokens
    if response_format is not None:
        request["response_format"] = response_format

    _log(f"[openai:{provider}] request model:", request["model"], "| prompt_len:", len(user_prompt))
    started = time.time()
    resp = client.chat.completions.create(**request)
    metrics = _usage_metrics(resp, model, int((time.time() - started) * 1000))
    text = _first_message_text(resp)

    _log(
        f"[openai:{provider}] reply_len:",
        len(text),
        "| duration:",
        f"{metrics['duration_ms']}ms",
        "| tokens:",
        metrics["total_tokens"],
        "| cost:",
        f"${metrics['estimated_cost_usd']:.6f}",
    )
    return text, metrics
