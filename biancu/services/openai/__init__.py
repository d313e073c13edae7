"""
OpenAI service client and response handling.

Provides centralized OpenAI/Azure OpenAI integration with automatic
client configuration and response metrics tracking.
"""

from .client import (
    JSON_RESPONSE_FORMAT,
    MODEL_PRICING,
    call_response_with_metrics,
    openai_client,
)

__all__ = [
    "JSON_RESPONSE_FORMAT",
    "MODEL_PRICING",
    "call_response_with_metrics",
    "openai_client",
]
