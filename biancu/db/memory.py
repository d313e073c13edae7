"""In-process storage backend with the same surface as the Supabase client."""

from __future__ import annotations

import copy
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class InMemoryDatabaseClient:
    """Dictionary-backed tables for local development and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tables: Dict[str, Dict[str, Dict[str, Any]]] = {
            "companies": {},
            "company_users": {},
            "use_cases": {},
            "data_sources": {},
            "api_customizations": {},
        }

    # Generic helpers ----------------------------------------------------

    def _insert(self, table: str, payload: Dict[str, Any], *, stamp: str) -> Dict[str, Any]:
        record = copy.deepcopy(payload)
        record.setdefault("id", str(uuid.uuid4()))
        record.setdefault(stamp, _now_iso())
        if stamp == "created_at":
            record.setdefault("updated_at", record[stamp])
        with self._lock:
            self._tables[table][record["id"]] = record
            return copy.deepcopy(record)

    def _get(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._tables[table].get(record_id)
            return copy.deepcopy(record) if record is not None else None

    def _update(
        self,
        table: str,
        record_id: str,
        updates: Dict[str, Any],
        *,
        touch: bool = True,
    ) -> Optional[Dict[str, Any]]:
        with self._lock:
            record = self._tables[table].get(record_id)
            if record is None:
                return None
            record.update(copy.deepcopy(updates))
            if touch:
                record["updated_at"] = _now_iso()
            return copy.deepcopy(record)

    def _delete(self, table: str, record_id: str) -> bool:
        with self._lock:
            return self._tables[table].pop(record_id, None) is not None

    def _select(self, table: str, **filters: Any) -> List[Dict[str, Any]]:
        with self._lock:
            rows = [
                copy.deepcopy(row)
                for row in self._tables[table].values()
                if all(row.get(key) == value for key, value in filters.items())
            ]
        return rows

    # Companies ----------------------------------------------------------

    def get_company(self, company_id: str) -> Optional[Dict[str, Any]]:
        return self._get("companies", company_id)

    def find_company_for_domain(self, domain: str) -> Optional[Dict[str, Any]]:
        domain = domain.strip().lower()
        for row in self._select("companies", is_active=True):
            allowed = (row.get("settings") or {}).get("allowed_domains") or []
            if row.get("domain") == domain or domain in allowed:
                return row
        return None

    def create_company(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._insert("companies", payload, stamp="created_at")

    def update_company(self, company_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("companies", company_id, updates)

    # Company users ------------------------------------------------------

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._get("company_users", user_id)

    def get_user_by_google_id(self, google_id: str) -> Optional[Dict[str, Any]]:
        rows = self._select("company_users", google_id=google_id)
        return rows[0] if rows else None

    def get_user_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        rows = self._select("company_users", email=email.lower())
        return rows[0] if rows else None

    def create_user(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._insert("company_users", payload, stamp="joined_at")

    def update_user(self, user_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("company_users", user_id, updates, touch=False)

    def list_company_users(self, company_id: str) -> List[Dict[str, Any]]:
        rows = self._select("company_users", company_id=company_id)
        return sorted(rows, key=lambda row: row.get("joined_at") or "")

    # Use cases ----------------------------------------------------------

    def list_use_cases(self, company_id: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        filters: Dict[str, Any] = {"company_id": company_id}
        if status:
            filters["status"] = status
        rows = self._select("use_cases", **filters)
        return sorted(rows, key=lambda row: row.get("created_at") or "", reverse=True)

    def count_use_cases(self, company_id: str) -> int:
        return len(self._select("use_cases", company_id=company_id))

    def get_use_case(self, use_case_id: str) -> Optional[Dict[str, Any]]:
        return self._get("use_cases", use_case_id)

    def create_use_case(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._insert("use_cases", payload, stamp="created_at")

    def update_use_case(self, use_case_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("use_cases", use_case_id, updates)

    def delete_use_case(self, use_case_id: str) -> bool:
        return self._delete("use_cases", use_case_id)

    # Data source catalogue ----------------------------------------------

    def list_data_sources(self, company_id: str) -> List[Dict[str, Any]]:
        rows = self._select("data_sources", company_id=company_id)
        return sorted(rows, key=lambda row: row.get("created_at") or "", reverse=True)

    def get_data_source(self, data_source_id: str) -> Optional[Dict[str, Any]]:
        return self._get("data_sources", data_source_id)

    def get_data_source_by_name(self, company_id: str, name: str) -> Optional[Dict[str, Any]]:
        rows = self._select("data_sources", company_id=company_id, name=name)
        return rows[0] if rows else None

    def create_data_source(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._insert("data_sources", payload, stamp="created_at")

    def update_data_source(self, data_source_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("data_sources", data_source_id, updates)

    def delete_data_source(self, data_source_id: str) -> bool:
        return self._delete("data_sources", data_source_id)

    # API customizations -------------------------------------------------

    def list_api_customizations(self, use_case_id: str, user_id: str) -> List[Dict[str, Any]]:
        rows = self._select("api_customizations", use_case_id=use_case_id, user_id=user_id, is_active=True)
        return sorted(rows, key=lambda row: row.get("last_modified") or "", reverse=True)

    def get_api_customization(self, use_case_id: str, api_name: str, user_id: str) -> Optional[Dict[str, Any]]:
        rows = self._select("api_customizations", use_case_id=use_case_id, api_name=api_name, user_id=user_id)
        return rows[0] if rows else None

    def create_api_customization(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        record = dict(payload)
        record.setdefault("last_modified", _now_iso())
        return self._insert("api_customizations", record, stamp="created_at")

    def update_api_customization(self, customization_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        return self._update("api_customizations", customization_id, updates)


__all__ = ["InMemoryDatabaseClient"]
