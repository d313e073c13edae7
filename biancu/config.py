"""Environment-driven runtime settings for the BIAN-CU platform."""

from __future__ import annotations

import os
from types import SimpleNamespace
from typing import Optional, Sequence, Tuple


def _env_str(
    name: str,
    default: Optional[str] = None,
    *,
    alias: Optional[str] = None,
    empty_to_none: bool = True,
) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    value = raw.strip()
    if not value and empty_to_none:
        return None if default is None else default
    return value if value else default


def _env_bool(name: str, default: bool, *, alias: Optional[str] = None) -> bool:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float, *, alias: Optional[str] = None) -> float:
    raw = os.getenv(name)
    if raw is None and alias:
        raw = os.getenv(alias)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_tuple(name: str, default: Sequence[str]) -> Tuple[str, ...]:
    raw = os.getenv(name)
    if not raw:
        return tuple(default)
    items = tuple(part.strip() for part in raw.split(",") if part.strip())
    return items or tuple(default)


class Settings(SimpleNamespace):
    """Simple attribute container used throughout the codebase."""


CONFIG = Settings()


def _compute_values() -> dict[str, object]:
    # -----------------------------------------------------------------------
    # RUNTIME ENVIRONMENT
    # -----------------------------------------------------------------------
    environment = _env_str("ENV", "prod", empty_to_none=False).lower()
    if environment not in {"dev", "test", "prod"}:
        environment = "prod"
    is_development = environment == "dev"

    frontend_url = _env_str("FRONTEND_URL", "http://localhost:5173", empty_to_none=False)
    cors_origins = _env_tuple("API_CORS_ORIGINS", ())

    # -----------------------------------------------------------------------
    # TOKENS
    # -----------------------------------------------------------------------
    jwt_secret = _env_str("JWT_SECRET", None)
    jwt_issuer = _env_str("JWT_ISSUER", "bian-cu-platform", empty_to_none=False)
    jwt_audience = _env_str("JWT_AUDIENCE", "bian-cu-users", empty_to_none=False)
    jwt_expires_hours = _env_int("JWT_EXPIRES_HOURS", 24)
    # Only honoured when ENV=dev.
    dev_auth_token = _env_str("DEV_AUTH_TOKEN", None)

    # -----------------------------------------------------------------------
    # GOOGLE OAUTH
    # -----------------------------------------------------------------------
    google_client_id = _env_str("GOOGLE_CLIENT_ID", None)
    google_client_secret = _env_str("GOOGLE_CLIENT_SECRET", None)
    google_redirect_uri = _env_str("GOOGLE_OAUTH_REDIRECT_URI", None)

    # -----------------------------------------------------------------------
    # PERSISTENCE
    # -----------------------------------------------------------------------
    supabase_url = _env_str("SUPABASE_URL", None)
    supabase_anon_key = _env_str("SUPABASE_ANON_KEY", None)
    supabase_service_role_key = _env_str("SUPABASE_SERVICE_ROLE_KEY", None)
    supabase_configured = bool(supabase_url) and bool(supabase_service_role_key or supabase_anon_key)

    requested_backend = (_env_str("DATABASE_BACKEND", None) or "").lower()
    if requested_backend not in {"supabase", "memory"}:
        requested_backend = "supabase" if supabase_configured else "memory"
    database_backend = requested_backend

    # -----------------------------------------------------------------------
    # AI ADAPTER
    # -----------------------------------------------------------------------
    openai_model = _env_str("OPENAI_MODEL", "gpt-4o-mini", empty_to_none=False)
    openai_temperature = _env_float("OPENAI_TEMPERATURE", 0.3)
    openai_max_output_tokens = _env_int("OPENAI_MAX_OUTPUT_TOKENS", 2000)

    # -----------------------------------------------------------------------
    # OUTBOUND HTTP
    # -----------------------------------------------------------------------
    bian_sandbox_url = _env_str("BIAN_SANDBOX_URL", "https://sandbox.bian.org/v13", empty_to_none=False)
    http_probe_timeout = _env_float("HTTP_PROBE_TIMEOUT", 10.0)

    # -----------------------------------------------------------------------
    # SECRETS AT REST
    # -----------------------------------------------------------------------
    data_source_secret_key = _env_str("DATA_SOURCE_SECRET_KEY", None)

    # -----------------------------------------------------------------------
    # TENANT DEFAULTS
    # -----------------------------------------------------------------------
    default_max_users = _env_int("DEFAULT_MAX_USERS", 10)
    default_max_use_cases = _env_int("DEFAULT_MAX_USE_CASES", 100)
    default_features = _env_tuple(
        "DEFAULT_COMPANY_FEATURES",
        ("use-cases", "bian-analysis", "api-generation"),
    )

    return {
        "environment": environment,
        "is_development": is_development,
        "frontend_url": frontend_url.rstrip("/"),
        "cors_origins": cors_origins,
        "jwt_secret": jwt_secret,
        "jwt_issuer": jwt_issuer,
        "jwt_audience": jwt_audience,
        "jwt_expires_hours": jwt_expires_hours,
        "dev_auth_token": dev_auth_token,
        "google_client_id": google_client_id,
        "google_client_secret": google_client_secret,
        "google_redirect_uri": google_redirect_uri,
        "supabase_url": supabase_url,
        "supabase_anon_key": supabase_anon_key,
        "supabase_service_role_key": supabase_service_role_key,
        "supabase_configured": supabase_configured,
        "database_backend": database_backend,
        "openai_model": openai_model,
        "openai_temperature": openai_temperature,
        "openai_max_output_tokens": openai_max_output_tokens,
        "bian_sandbox_url": bian_sandbox_url.rstrip("/"),
        "http_probe_timeout": http_probe_timeout,
        "data_source_secret_key": data_source_secret_key,
        "default_max_users": default_max_users,
        "default_max_use_cases": default_max_use_cases,
        "default_features": default_features,
    }


def reload_config() -> None:
    CONFIG.__dict__.update(_compute_values())


# Load once on import so downstream modules can use CONFIG immediately.
reload_config()
