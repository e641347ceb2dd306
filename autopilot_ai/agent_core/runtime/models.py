from __future__ import annotations

"""Data models shared by the step executor and its callers."""

from dataclasses import dataclass, field
from typing import Optional

from ..capabilities.registry import CapabilityRegistry
from ..policy.engine import PolicyEngine
from ..prompts import PromptProvider
from ..reasoning.client import ReasoningClient
from ..schemas.domain import StepStatus
from ..scratchpad import Scratchpad
from ..status import StatusChannel
from .retry import RetryPolicy

MAX_WORKER_TURNS = 10
EXHAUSTED_MESSAGE = (
    "Thinking too much... I've reached the maximum reasoning steps. Please try a simpler request."
)


@dataclass(frozen=True)
class ExecutorDeps:
    """Collaborators of the ``StepExecutor``.

    Attributes
    ----------
    capabilities:
        Registry used to build manifests and dispatch invocations.
    policy:
        Gate evaluated before every non-scratchpad invocation.
    scratchpad:
        Per-task store backing the built-in scratchpad tools.
    reasoning:
        Client for the worker's reasoning turns.
    prompts:
        Provider of the worker system prompt.
    status:
        Optional channel receiving live status updates.
    """

    capabilities: CapabilityRegistry
    policy: PolicyEngine
    scratchpad: Scratchpad
    reasoning: ReasoningClient
    prompts: PromptProvider
    status: Optional[StatusChannel] = None
    retry: RetryPolicy = field(default_factory=RetryPolicy)


@dataclass(frozen=True)
class StepOutcome:
    """Terminal state of one step: ``completed`` or ``failed`` with its result text."""

    status: StepStatus
    result: str
    turns: int

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.completed
