"""
Database client for the multi-tenant use case store.
Handles companies, company users, use cases, the data source catalogue and
per-user API customizations.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union

from supabase import Client, create_client

from ..config import CONFIG
from .memory import InMemoryDatabaseClient

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _first_row(result: Any) -> Optional[Dict[str, Any]]:
    data = getattr(result, "data", None)
    if isinstance(data, list):
        return data[0] if data else None
    if isinstance(data, dict):
        return data
    return None


class SupabaseDatabaseClient:
    """Database client for Supabase operations."""

    def __init__(self):
        self.supabase_url = CONFIG.supabase_url

        # Prefer service role key so server-side reads are not filtered by RLS
        if CONFIG.supabase_service_role_key:
            self.supabase_key = CONFIG.supabase_service_role_key
            self.using_service_role = True
        else:
            self.supabase_key = CONFIG.supabase_anon_key
            self.using_service_role = False

        if not self.supabase_url or not self.supabase_key:
            raise ValueError(
                "SUPABASE_URL and SUPABASE_ANON_KEY (or SUPABASE_SERVICE_ROLE_KEY) environment variables are required"
            )

        self.client: Client = create_client(self.supabase_url, self.supabase_key)

    # ------------------------------------------------------------------
    # Companies
    # ------------------------------------------------------------------

    def get_company(self, company_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table("companies").select("*").eq("id", company_id).limit(1).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching company %s: %s", company_id, exc)
            return None

    def find_company_for_domain(self, domain: str) -> Optional[Dict[str, Any]]:
        """Return the active company owning ``domain`` or listing it as allowed."""
        domain = domain.strip().lower()
        try:
            result = (
                self.client.table("companies")
                .select("*")
                .eq("domain", domain)
                .eq("is_active", True)
                .limit(1)
                .execute()
            )
            row = _first_row(result)
            if row:
                return row

            result = (
                self.client.table("companies")
                .select("*")
                .contains("settings->allowed_domains", json.dumps([domain]))
                .eq("is_active", True)
                .limit(1)
                .execute()
            )
            return _first_row(result)
        except Exception as exc:
            logger.error("Error resolving company for domain %s: %s", domain, exc)
            return None

    def create_company(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = dict(payload)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", _now_iso())
        record.setdefault("updated_at", record["created_at"])
        try:
            result = self.client.table("companies").insert(record).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error creating company %s: %s", record.get("name"), exc)
            return None

    def update_company(self, company_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(updates)
        payload["updated_at"] = _now_iso()
        try:
            result = self.client.table("companies").update(payload).eq("id", company_id).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error updating company %s: %s", company_id, exc)
            return None

    # ------------------------------------------------------------------
    # Company users
    # ------------------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table("company_users").select("*").eq("id", user_id).limit(1).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching user %s: %s", user_id, exc)
            return None

    def get_user_by_google_id(self, google_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.client.table("company_users").select("*").eq("google_id", google_id).limit(1).execute()
            )
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching user by google id: %s", exc)
            return None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.client.table("company_users").select("*").eq("email", email.lower()).limit(1).execute()
            )
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching user by email: %s", exc)
            return None

    def create_user(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = dict(payload)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("joined_at", _now_iso())
        try:
            result = self.client.table("company_users").insert(record).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error creating user %s: %s", record.get("email"), exc)
            return None

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table("company_users").update(dict(updates)).eq("id", user_id).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error updating user %s: %s", user_id, exc)
            return None

    def list_company_users(self, company_id: str) -> List[Dict[str, Any]]:
        try:
            result = (
                self.client.table("company_users")
                .select("*")
                .eq("company_id", company_id)
                .order("joined_at", desc=False)
                .execute()
            )
            return list(result.data or [])
        except Exception as exc:
            logger.error("Error listing users for company %s: %s", company_id, exc)
            return []

    # ------------------------------------------------------------------
    # Use cases
    # ------------------------------------------------------------------

    def list_use_cases(self, company_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        try:
            query = self.client.table("use_cases").select("*").eq("company_id", company_id)
            if status:
                query = query.eq("status", status)
            result = query.order("created_at", desc=True).execute()
            return list(result.data or [])
        except Exception as exc:
            logger.error("Error listing use cases for company %s: %s", company_id, exc)
            return []

    def count_use_cases(self, company_id: str) -> int:
        try:
            result = (
                self.client.table("use_cases")
                .select("id", count="exact")
                .eq("company_id", company_id)
                .execute()
            )
            if result.count is not None:
                return int(result.count)
            return len(result.data or [])
        except Exception as exc:
            logger.error("Error counting use cases for company %s: %s", company_id, exc)
            return 0

    def get_use_case(self, use_case_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table("use_cases").select("*").eq("id", use_case_id).limit(1).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching use case %s: %s", use_case_id, exc)
            return None

    def create_use_case(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = dict(payload)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", _now_iso())
        record.setdefault("updated_at", record["created_at"])
        try:
            result = self.client.table("use_cases").insert(record).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error creating use case: %s", exc)
            return None

    def update_use_case(self, use_case_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(updates)
        payload["updated_at"] = _now_iso()
        try:
            result = self.client.table("use_cases").update(payload).eq("id", use_case_id).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error updating use case %s: %s", use_case_id, exc)
            return None

    def delete_use_case(self, use_case_id: str) -> bool:
        try:
            result = self.client.table("use_cases").delete().eq("id", use_case_id).execute()
            return bool(result.data)
        except Exception as exc:
            logger.error("Error deleting use case %s: %s", use_case_id, exc)
            return False

    # ------------------------------------------------------------------
    # Data source catalogue
    # ------------------------------------------------------------------

    def list_data_sources(self, company_id: str) -> List[Dict[str, Any]]:
        try:
            result = (
                self.client.table("data_sources")
                .select("*")
                .eq("company_id", company_id)
                .order("created_at", desc=True)
                .execute()
            )
            return list(result.data or [])
        except Exception as exc:
            logger.error("Error listing data sources for company %s: %s", company_id, exc)
            return []

    def get_data_source(self, data_source_id: str) -> Optional[Dict[str, Any]]:
        try:
            result = self.client.table("data_sources").select("*").eq("id", data_source_id).limit(1).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching data source %s: %s", data_source_id, exc)
            return None

    def get_data_source_by_name(self, company_id: str, name: str) -> Optional[Dict[str, Any]]:
        try:
            result = (
                self.client.table("data_sources")
                .select("*")
                .eq("company_id", company_id)
                .eq("name", name)
                .limit(1)
                .execute()
            )
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching data source %s: %s", name, exc)
            return None

    def create_data_source(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = dict(payload)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", _now_iso())
        record.setdefault("updated_at", record["created_at"])
        try:
            result = self.client.table("data_sources").insert(record).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error creating data source %s: %s", record.get("name"), exc)
            return None

    def update_data_source(self, data_source_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(updates)
        payload["updated_at"] = _now_iso()
        try:
            result = self.client.table("data_sources").update(payload).eq("id", data_source_id).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error updating data source %s: %s", data_source_id, exc)
            return None

    def delete_data_source(self, data_source_id: str) -> bool:
        try:
            result = self.client.table("data_sources").delete().eq("id", data_source_id).execute()
            return bool(result.data)
        except Exception as exc:
            logger.error("Error deleting data source %s: %s", data_source_id, exc)
            return False

    # ------------------------------------------------------------------
    # API customizations
    # ------------------------------------------------------------------

    def list_api_customizations(self, use_case_id: str, user_id: str) -> List[Dict[str, Any]]:
        """Active customizations of ``user_id`` for a use case, most recently modified first."""
        try:
            result = (
                self.client.table("api_customizations")
                .select("*")
                .eq("use_case_id", use_case_id)
                .eq("user_id", user_id)
                .eq("is_active", True)
                .order("last_modified", desc=True)
                .execute()
            )
            return list(result.data or [])
        except Exception as exc:
            logger.error("Error listing API customizations for use case %s: %s", use_case_id, exc)
            return []

    def get_api_customization(self, use_case_id: str, api_name: str, user_id: str) -> Optional[Dict[str, Any]]:
        """Row for the (use case, API, user) triple, active or not."""
        try:
            result = (
                self.client.table("api_customizations")
                .select("*")
                .eq("use_case_id", use_case_id)
                .eq("api_name", api_name)
                .eq("user_id", user_id)
                .limit(1)
                .execute()
            )
            return _first_row(result)
        except Exception as exc:
            logger.error("Error fetching API customization %s: %s", api_name, exc)
            return None

    def create_api_customization(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = dict(payload)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault("created_at", _now_iso())
        record.setdefault("updated_at", record["created_at"])
        record.setdefault("last_modified", record["created_at"])
        try:
            result = self.client.table("api_customizations").insert(record).execute()
            return _first_row(result)
        except Exception as exc:
            logger.error("Error creating API customization %s: %s", record.get("api_name"), exc)
            return None

    def update_api_customization(self, customization_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        payload = dict(updates)
        payload["updated_at"] = _now_iso()
        try:
            result = (
                self.client.table("api_customizations").update(payload).eq("id", customization_id).execute()
            )
            return _first_row(result)
        except Exception as exc:
            logger.error("Error updating API customization %s: %s", customization_id, exc)
            return None


DatabaseClient = Union[SupabaseDatabaseClient, InMemoryDatabaseClient]

# Global database client instance
_database_client: Optional[DatabaseClient] = None


def get_database_client() -> DatabaseClient:
    """Get the global database client instance."""
    global _database_client
    if _database_client is None:
        if CONFIG.database_backend == "supabase":
            _database_client = SupabaseDatabaseClient()
        else:
            logger.info("Using in-memory database backend")
            _database_client = InMemoryDatabaseClient()
    return _database_client


def reset_database_client() -> None:
    """Drop the cached client so the next call re-reads the configuration."""
    global _database_client
    _database_client = None


def initialize_database() -> bool:
    """Initialize database connection and verify setup."""
    try:
        get_database_client()
        logger.info("Database client initialized (%s)", CONFIG.database_backend)
        return True
    except Exception as exc:
        logger.error("Failed to initialize database: %s", exc)
        return False
