"""Tests for logging setup and secret redaction."""

from __future__ import annotations

import logging

import pytest

from access_notifier.core.config import reset_settings
from access_notifier.core.logging import _redact_secrets, setup_logging


@pytest.fixture(autouse=True)
def _clean_settings() -> None:
    reset_settings()


class TestRedaction:
    def test_secret_keys_masked(self) -> None:
        event = {"event": "x", "signature": "abc123", "auth_token": "t", "to": "+1555"}
        out = _redact_secrets(None, "info", event)
        assert out["signature"] == "***"
        assert out["auth_token"] == "***"
        assert out["to"] == "+1555"

    def test_empty_values_untouched(self) -> None:
        out = _redact_secrets(None, "info", {"event": "x", "api_key": ""})
        assert out["api_key"] == ""


class TestSetupLogging:
    def test_level_override(self) -> None:
        setup_logging(level="DEBUG", fmt="console")
        assert logging.getLogger().level == logging.DEBUG

    def test_quiets_access_log(self) -> None:
        setup_logging(level="INFO", fmt="json")
        assert logging.getLogger().level == logging.INFO
        assert logging.getLogger("aiohttp.access").level == logging.WARNING
