"""
Unit tests for the Logfire monitoring module.

This test suite covers:
- Initialization short-circuits when disabled or missing a token
- Instrumentation failures degrading to warnings
- The log helpers being no-ops until Logfire is configured
"""

import logging
from unittest.mock import MagicMock

import pytest

import autopilot_ai.core.monitoring as monitoring
from autopilot_ai.core.config import LogfireConfig


@pytest.fixture
def fake_logfire(monkeypatch: pytest.MonkeyPatch) -> MagicMock:
    fake = MagicMock()
    monkeypatch.setattr(monitoring, "logfire", fake)
    monkeypatch.setattr(monitoring, "_enabled", False)
    return fake


class TestInitializeLogfire:
    def test_disabled_returns_false(self, fake_logfire: MagicMock):
        assert monitoring.initialize_logfire(LogfireConfig(enabled=False, token="t")) is False
        fake_logfire.configure.assert_not_called()
        assert monitoring.is_enabled() is False

    def test_missing_token_warns_and_returns_false(self, fake_logfire: MagicMock, caplog: pytest.LogCaptureFixture):
        with caplog.at_level(logging.WARNING, logger="autopilot_ai.core.monitoring"):
            assert monitoring.initialize_logfire(LogfireConfig(enabled=True)) is False

        assert "LOGFIRE_TOKEN is not set" in caplog.text
        fake_logfire.configure.assert_not_called()

    def test_enabled_configures_and_instruments(self, fake_logfire: MagicMock):
        cfg = LogfireConfig(enabled=True, token="t", service_name="svc", environment="test")

        assert monitoring.initialize_logfire(cfg) is True

        fake_logfire.configure.assert_called_once_with(token="t", service_name="svc", environment="test")
        fake_logfire.instrument_pydantic_ai.assert_called_once_with()
        fake_logfire.instrument_sqlalchemy.assert_called_once_with()
        fake_logfire.instrument_httpx.assert_called_once_with()
        assert monitoring.is_enabled() is True

    def test_instrumentation_failure_is_a_warning(self, fake_logfire: MagicMock, caplog: pytest.LogCaptureFixture):
        fake_logfire.instrument_sqlalchemy.side_effect = ImportError("no sqlalchemy extra")

        with caplog.at_level(logging.WARNING, logger="autopilot_ai.core.monitoring"):
            assert monitoring.initialize_logfire(LogfireConfig(enabled=True, token="t")) is True

        assert "Failed to instrument SQLAlchemy: no sqlalchemy extra" in caplog.text
        fake_logfire.instrument_httpx.assert_called_once_with()


class TestLogHelpers:
    def test_helpers_are_noops_when_disabled(self, fake_logfire: MagicMock):
        monitoring.log_task_started("u1", "1", "interactive", "hi")
        monitoring.log_task_completed("u1", "1", "done", 12.5)
        monitoring.log_reasoning_usage("u1", "m", 1, 2)
        monitoring.log_capability_call("echo", True, 1)
        monitoring.log_policy_denial("shell", "u1", "restricted")

        assert fake_logfire.method_calls == []

    def test_helpers_emit_when_enabled(self, fake_logfire: MagicMock, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr(monitoring, "_enabled", True)

        monitoring.log_task_completed("u1", "7", "deadlock", 3.0)
        monitoring.log_capability_call("echo", False, 3, failure="transient")
        monitoring.log_policy_denial("shell", "u1", "restricted")

        fake_logfire.info.assert_any_call("Task completed", owner_id="u1", task_id="7", outcome="deadlock", duration_ms=3.0)
        fake_logfire.info.assert_any_call("Capability invoked", capability="echo", ok=False, attempts=3, failure="transient")
        fake_logfire.warn.assert_called_once_with(
            "Capability denied by policy", capability="shell", owner_id="u1", reason="restricted"
        )
