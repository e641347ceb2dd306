from __future__ import annotations

import pytest
from pydantic import ValidationError

from autopilot_ai.agent_core.errors import PolicyConfigError
from autopilot_ai.agent_core.policy import PolicyConfig, PolicyEngine
from autopilot_ai.agent_core.policy.engine import DEFAULT_ALLOW_REASON
from autopilot_ai.agent_core.schemas.domain import PolicyEffect, PolicyRequest


def _req(capability: str, arguments: str = "{}") -> PolicyRequest:
    return PolicyRequest(capability=capability, arguments=arguments, owner_id="u1")


def test_default_config_allows_ordinary_invocation() -> None:
    p = PolicyEngine()
    d = p.evaluate(_req("web_search", '{"query": "weather"}'))
    assert d.allowed
    assert d.effect == PolicyEffect.allow
    assert d.reason == DEFAULT_ALLOW_REASON


@pytest.mark.parametrize(
    "arguments",
    [
        '{"command": "rm -rf /"}',
        '{"command": "rm   -rf ~/work"}',
        '{"command": "mkfs.ext4 /dev/sda1"}',
        '{"command": "sudo shutdown now"}',
        '{"command": "reboot"}',
    ],
)
def test_default_patterns_deny_destructive_commands(arguments: str) -> None:
    d = PolicyEngine().evaluate(_req("run_shell", arguments))
    assert not d.allowed
    assert d.reason.startswith("Arguments match restricted pattern: ")


def test_denied_tool_is_refused_regardless_of_arguments() -> None:
    p = PolicyEngine(PolicyConfig(denied_tools=["run_shell"]))
    d = p.evaluate(_req("run_shell", '{"command": "ls"}'))
    assert d.effect == PolicyEffect.deny
    assert d.reason == "Tool 'run_shell' is restricted by system policy"


def test_tool_rule_is_checked_before_argument_patterns() -> None:
    p = PolicyEngine(PolicyConfig(denied_tools=["run_shell"]))
    d = p.evaluate(_req("run_shell", '{"command": "rm -rf /"}'))
    assert "restricted by system policy" in d.reason


def test_first_matching_pattern_is_reported() -> None:
    cfg = PolicyConfig(denied_argument_patterns=["secret", "sec"])
    d = PolicyEngine(cfg).evaluate(_req("fetch", '{"path": "/etc/secret"}'))
    assert d.reason == "Arguments match restricted pattern: secret"


def test_evaluation_is_independent_of_previous_decisions() -> None:
    p = PolicyEngine()
    first = p.evaluate(_req("fetch", '{"url": "https://example.com"}'))
    p.evaluate(_req("run_shell", '{"command": "rm -rf /"}'))
    again = p.evaluate(_req("fetch", '{"url": "https://example.com"}'))
    assert first == again


def test_malformed_pattern_is_rejected_at_configuration_time() -> None:
    with pytest.raises(ValidationError):
        PolicyConfig(denied_argument_patterns=["(unclosed"])


def test_runtime_deny_rules_extend_the_engine() -> None:
    p = PolicyEngine(PolicyConfig(denied_argument_patterns=[]))
    assert p.evaluate(_req("fetch", '{"host": "internal.corp"}')).allowed

    p.deny_arguments(r"internal\.corp")
    p.deny_tool("delete_repo")

    assert not p.evaluate(_req("fetch", '{"host": "internal.corp"}')).allowed
    assert not p.evaluate(_req("delete_repo")).allowed
    assert p.config.denied_tools == ["delete_repo"]
    assert p.config.denied_argument_patterns == [r"internal\.corp"]


def test_runtime_malformed_pattern_raises_policy_config_error() -> None:
    p = PolicyEngine()
    with pytest.raises(PolicyConfigError):
        p.deny_arguments("[a-")
    with pytest.raises(ValueError):
        p.deny_arguments("(")


def test_engine_copies_its_configuration() -> None:
    cfg = PolicyConfig(denied_tools=[])
    p = PolicyEngine(cfg)
    cfg.denied_tools.append("run_shell")
    assert p.evaluate(_req("run_shell", '{"command": "ls"}')).allowed
