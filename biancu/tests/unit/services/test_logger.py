"""Tests for the shared logging shim."""

from __future__ import annotations

import logging

from biancu import logger


def test_log_initializes_basic_config(caplog) -> None:
    caplog.set_level(logging.INFO)

    logger.log("hello", "world", use_case="uc-1")

    assert any("hello world" in message for message in caplog.messages)
    assert any("use_case" in message for message in caplog.messages)
