"""Error types for the orchestration engine.

Capability failures never escape the step loop as exceptions: the registry and
executor turn them into observation strings. The exceptions below are raised
at configuration time (bad policy patterns, bad arguments at the registry
boundary) and for reasoning-level failures that end a step or a task.
"""

from __future__ import annotations


class AgentCoreError(Exception):
    """Base error for all engine exceptions."""


class CapabilityError(AgentCoreError):
    """Base error for capability lookup, validation and invocation failures."""


class CapabilityNotFoundError(CapabilityError, KeyError):
    """Raised when no capability is registered under the requested name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Tool {name} not found")
        self.name = name

    def __str__(self) -> str:
        return str(self.args[0])


class CapabilityArgumentsError(CapabilityError):
    """Raised when an argument blob does not match the capability's schema."""

    def __init__(self, name: str, detail: str) -> None:
        super().__init__(f"Invalid arguments for tool {name}: {detail}")
        self.name = name
        self.detail = detail


class CapabilityExecutionError(CapabilityError):
    """Raised by capability implementations for unsuccessful invocations."""


class CapabilityTimeoutError(CapabilityError):
    """Raised when a capability call exceeds its per-call timeout."""

    def __init__(self, name: str, timeout: float) -> None:
        super().__init__(f"Tool {name} timed out after {timeout:g} seconds")
        self.name = name
        self.timeout = timeout


class PolicyConfigError(AgentCoreError, ValueError):
    """Raised when a deny pattern cannot be compiled."""

    def __init__(self, pattern: str, detail: str) -> None:
        super().__init__(f"Invalid policy pattern {pattern!r}: {detail}")
        self.pattern = pattern


class ReasoningError(AgentCoreError):
    """Base error for failures of the reasoning service or its output."""


class ReasoningTimeoutError(ReasoningError):
    """Raised when a reasoning turn exceeds its per-turn timeout."""


class ReasoningServiceError(ReasoningError):
    """Raised when the reasoning service itself fails."""


class MalformedPlanError(ReasoningError):
    """Raised when the planner's output is neither a valid plan nor a final answer."""


class ScratchpadRecursionError(ReasoningError):
    """Raised when the planner keeps reading the scratchpad instead of planning."""
