from __future__ import annotations

"""Planner dependency bundle, limits and LangGraph state types.

- ``PlannerDeps`` collects the collaborators the planner needs.
- ``PlannerLimits`` holds the loop bounds and thresholds.
- ``PlanRun`` is what a finished planner run reports to its caller.
- ``_PlanState`` is the mutable state passed between LangGraph nodes.
"""

from dataclasses import dataclass
from typing import List, Optional, TypedDict

from pydantic_ai.messages import ModelMessage, ToolReturnPart

from ..capabilities.registry import CapabilityRegistry
from ..prompts import PromptProvider
from ..reasoning.client import ReasoningClient
from ..repos.interfaces import HistoryRepository, PlanRepository
from ..schemas.domain import AbortReason, Plan
from ..scratchpad import Scratchpad
from ..status import StatusChannel
from .steps import PlanGuard


@dataclass(frozen=True)
class PlannerDeps:
    """Dependency bundle for ``Planner``.

    ``capabilities`` is only used to describe the available tools in the
    planner's system prompt; the planner itself never invokes them.
    """

    reasoning: ReasoningClient
    prompts: PromptProvider
    scratchpad: Scratchpad
    capabilities: CapabilityRegistry
    history: HistoryRepository
    plans: PlanRepository
    status: Optional[StatusChannel] = None


@dataclass(frozen=True)
class PlannerLimits:
    max_iterations: int = 15
    max_recent_messages: int = 14
    deadlock_threshold: int = 4
    consolidation_limit: int = 3
    max_scratchpad_depth: int = 3
    summary_limit: int = 500
    history_limit: int = 10


@dataclass(frozen=True)
class PlanRun:
    """Result of one planner run.

    ``answer`` is always a user-facing message: the final answer when
    ``abort`` is ``None``, otherwise a diagnostic.
    """

    answer: str
    plan_id: int
    iterations: int
    plan: Optional[Plan] = None
    abort: Optional[AbortReason] = None

    @property
    def ok(self) -> bool:
        return self.abort is None


class _PlanState(TypedDict):
    """Mutable LangGraph state for a single planner run.

    - ``transcript``: the orchestration transcript, trimmed every iteration.
    - ``pending_returns``: tool returns owed to the planner's last response,
      sent together with the next user-side message.
    - ``iteration``: completed top-level iterations.
    - ``last_completed`` / ``stuck_turns``: deadlock detection.
    - ``consolidation_turns``: forced final-answer turns in a row.
    - ``current_step``: id of the step selected for execution, if any.
    - ``answer`` / ``abort`` / ``done``: terminal outcome.
    """

    owner_id: str
    task_id: str
    plan_id: int
    request: str
    transcript: List[ModelMessage]
    pending_returns: List[ToolReturnPart]
    guard: PlanGuard
    plan: Optional[Plan]
    iteration: int
    last_completed: int
    stuck_turns: int
    consolidation_turns: int
    current_step: Optional[int]
    answer: Optional[str]
    abort: Optional[AbortReason]
    done: bool
