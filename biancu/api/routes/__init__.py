"""Route modules for the public API."""

from . import api_customizations, auth, bian, companies, data_sources, schemas, single_api, use_cases

__all__ = [
    "api_customizations",
    "auth",
    "bian",
    "companies",
    "data_sources",
    "schemas",
    "single_api",
    "use_cases",
]
