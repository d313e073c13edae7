from __future__ import annotations

import pytest
import requests

from biancu.config import CONFIG
from biancu.services import http_probe


class DummyResponse:
    def __init__(self, status_code: int, body: bytes = b"", reason: str = "OK", json_body=None):
        self.status_code = status_code
        self.content = body
        self.text = body.decode()
        self.reason = reason
        self.headers = {"Content-Type": "application/json"}
        self._json = json_body

    def json(self):
        if self._json is None:
            raise ValueError("no json")
        return self._json


def test_probe_reports_successful_response(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def fake_request(method, url, **kwargs):
        captured.update(kwargs, method=method, url=url)
        return DummyResponse(201, b'{"id": 1}', reason="Created", json_body={"id": 1})

    monkeypatch.setattr(http_probe.requests, "request", fake_request)

    result = http_probe.probe("post", "https://sandbox.example/payment-order/initiate", payload={"amount": 10})

    assert result.success is True
    assert result.status == 201
    assert result.status_text == "Created"
    assert result.data == {"id": 1}
    assert captured["method"] == "POST"
    assert captured["json"] == {"amount": 10}
    assert captured["headers"]["User-Agent"] == http_probe.USER_AGENT
    assert captured["allow_redirects"] is False


def test_probe_treats_error_status_as_completed_probe(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(
        http_probe.requests,
        "request",
        lambda method, url, **kwargs: DummyResponse(500, b"boom", reason="Server Error"),
    )

    result = http_probe.probe("GET", "https://sandbox.example/x")

    assert result.success is False
    assert result.status == 500
    assert result.data == "boom"
    assert result.error is None


def test_get_requests_never_send_a_body(monkeypatch: pytest.MonkeyPatch) -> None:
    captured = {}

    def fake_request(method, url, **kwargs):
        captured.update(kwargs)
        return DummyResponse(204)

    monkeypatch.setattr(http_probe.requests, "request", fake_request)

    result = http_probe.probe("GET", "https://sandbox.example/x", payload={"ignored": True})

    assert "json" not in captured
    assert result.data is None


def test_probe_timeout_is_reported_not_raised(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_request(method, url, **kwargs):
        raise requests.exceptions.Timeout("read timed out")

    monkeypatch.setattr(http_probe.requests, "request", fake_request)

    result = http_probe.probe("GET", "https://sandbox.example/slow", timeout=0.1)

    assert result.success is False
    assert result.status is None
    assert result.error["code"] == "TIMEOUT"
    assert result.error["type"] == "Timeout"


def test_connection_error_code(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_request(method, url, **kwargs):
        raise requests.exceptions.ConnectionError("refused")

    monkeypatch.setattr(http_probe.requests, "request", fake_request)

    assert http_probe.probe("GET", "http://localhost:1").error["code"] == "CONNECTION_ERROR"


def test_build_url_joins_base_and_endpoint() -> None:
    assert http_probe.build_url("payment-order/initiate", "https://api.example/v13/") == (
        "https://api.example/v13/payment-order/initiate"
    )
    assert http_probe.build_url("/x").startswith(CONFIG.bian_sandbox_url.rstrip("/"))
