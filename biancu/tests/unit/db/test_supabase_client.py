from __future__ import annotations

import json
import types

import pytest

from biancu.config import reload_config
from biancu.db import client as client_module


class RecordingQuery:
    """Chainable stand-in for a postgrest request builder."""

    def __init__(self, log, results):
        self._log = log
        self._results = results

    def __getattr__(self, name):
        def call(*args, **kwargs):
            self._log.append((name, args))
            return self

        return call

    def execute(self):
        return types.SimpleNamespace(data=self._results.pop(0))


class RecordingSupabase:
    def __init__(self, results):
        self.calls = []
        self._results = results

    def table(self, name):
        self.calls.append(("table", (name,)))
        return RecordingQuery(self.calls, self._results)


@pytest.fixture
def supabase_env(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_ROLE_KEY", "service-key")
    reload_config()


def test_allowed_domain_lookup_sends_json_array(monkeypatch: pytest.MonkeyPatch, supabase_env) -> None:
    fake = RecordingSupabase(results=[[], [{"id": "company-1", "name": "Acme"}]])
    monkeypatch.setattr(client_module, "create_client", lambda url, key: fake)

    db = client_module.SupabaseDatabaseClient()
    row = db.find_company_for_domain(" Acme.IO ")

    assert row == {"id": "company-1", "name": "Acme"}
    contains = [args for name, args in fake.calls if name == "contains"]
    assert contains == [("settings->allowed_domains", json.dumps(["acme.io"]))]
    assert isinstance(contains[0][1], str)


def test_owned_domain_match_skips_allowed_domain_query(monkeypatch: pytest.MonkeyPatch, supabase_env) -> None:
    fake = RecordingSupabase(results=[[{"id": "company-1"}]])
    monkeypatch.setattr(client_module, "create_client", lambda url, key: fake)

    db = client_module.SupabaseDatabaseClient()

    assert db.find_company_for_domain("acme.com") == {"id": "company-1"}
    assert not any(name == "contains" for name, _ in fake.calls)


def test_customization_lookup_filters_by_use_case_api_and_user(monkeypatch: pytest.MonkeyPatch, supabase_env) -> None:
    fake = RecordingSupabase(results=[[{"id": "custom-1", "is_active": False}]])
    monkeypatch.setattr(client_module, "create_client", lambda url, key: fake)

    db = client_module.SupabaseDatabaseClient()
    row = db.get_api_customization("uc-1", "Payment Order - Initiate", "user-1")

    assert row["id"] == "custom-1"
    assert ("table", ("api_customizations",)) in fake.calls
    filters = [args for name, args in fake.calls if name == "eq"]
    assert filters == [("use_case_id", "uc-1"), ("api_name", "Payment Order - Initiate"), ("user_id", "user-1")]
