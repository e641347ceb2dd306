from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import pytest
from pydantic_ai.messages import ModelMessage, ModelResponse, TextPart, ToolCallPart
from pydantic_ai.tools import ToolDefinition

from autopilot_ai.agent_core.capabilities import CapabilityContext, CapabilityRegistry, FunctionCapability
from autopilot_ai.agent_core.factory import AgentRuntime, RepoSet, build_runtime
from autopilot_ai.agent_core.planning import PlannerLimits
from autopilot_ai.agent_core.policy import PolicyEngine
from autopilot_ai.agent_core.prompts import BuiltinPromptProvider
from autopilot_ai.agent_core.runtime import RetryPolicy
from autopilot_ai.agent_core.schemas.base import BaseSchema
from autopilot_ai.agent_core.schemas.domain import (
    CostEntry,
    HistoryMessage,
    MessageRole,
    PlanStep,
    ScheduledTask,
)
from autopilot_ai.agent_core.scratchpad import InMemoryScratchpad
from autopilot_ai.agent_core.transport import LoggingMessenger

Turn = Union[ModelResponse, BaseException, Callable[[Sequence[ModelMessage], Sequence[ToolDefinition]], ModelResponse]]


class ScriptedReasoningService:
    """Reasoning service replaying scripted turns.

    Each turn is a ``ModelResponse``, an exception to raise, or a callable
    computing the response from the transcript and manifest.
    """

    def __init__(self, turns: Sequence[Turn]) -> None:
        self._turns: List[Turn] = list(turns)
        self.calls: List[tuple[List[ModelMessage], List[str]]] = []

    @property
    def remaining(self) -> int:
        return len(self._turns)

    async def respond(self, transcript: Sequence[ModelMessage], manifest: Sequence[ToolDefinition]) -> ModelResponse:
        self.calls.append((list(transcript), [t.name for t in manifest]))
        if not self._turns:
            raise AssertionError("reasoning service called more often than scripted")
        turn = self._turns.pop(0)
        if isinstance(turn, BaseException):
            raise turn
        if callable(turn):
            return turn(transcript, manifest)
        return turn


class Replies:
    """Shorthand constructors for scripted model responses."""

    @staticmethod
    def text(content: str) -> ModelResponse:
        return ModelResponse(parts=[TextPart(content=content)])

    @staticmethod
    def call(name: str, args: Optional[Union[str, Dict[str, Any]]] = None, call_id: Optional[str] = None) -> ModelResponse:
        return Replies.calls((name, args, call_id))

    @staticmethod
    def calls(*items: tuple) -> ModelResponse:
        parts = []
        for i, (name, args, call_id) in enumerate(items):
            parts.append(ToolCallPart(tool_name=name, args=args if args is not None else {}, tool_call_id=call_id or f"call_{name}_{i}"))
        return ModelResponse(parts=parts)

    @staticmethod
    def plan(*steps: Dict[str, Any]) -> ModelResponse:
        return Replies.call("propose_plan", {"steps": list(steps)})


class InMemoryHistoryRepository:
    def __init__(self) -> None:
        self.messages: List[HistoryMessage] = []

    async def add_message(self, owner_id: str, role: MessageRole, content: str) -> None:
        self.messages.append(HistoryMessage(owner_id=owner_id, role=role, content=content))

    async def get_history(self, owner_id: str, *, limit: int) -> List[HistoryMessage]:
        mine = [m for m in self.messages if m.owner_id == owner_id]
        return mine[-limit:] if limit > 0 else []


class InMemoryTaskRepository:
    def __init__(self) -> None:
        self.tasks: Dict[int, ScheduledTask] = {}
        self._next_id = 1

    async def add(self, task: ScheduledTask) -> ScheduledTask:
        stored = task.model_copy(update={"id": self._next_id})
        self.tasks[self._next_id] = stored
        self._next_id += 1
        return stored

    async def list(self, owner_id: str) -> List[ScheduledTask]:
        return [t for _, t in sorted(self.tasks.items()) if t.owner_id == owner_id]

    async def delete(self, owner_id: str, task_id: int) -> bool:
        task = self.tasks.get(task_id)
        if task is None or task.owner_id != owner_id:
            return False
        del self.tasks[task_id]
        return True

    async def clear(self, owner_id: str) -> int:
        doomed = [i for i, t in self.tasks.items() if t.owner_id == owner_id]
        for i in doomed:
            del self.tasks[i]
        return len(doomed)

    async def due(self, now: datetime) -> List[ScheduledTask]:
        return [t for _, t in sorted(self.tasks.items()) if t.is_due(now)]

    async def mark_run(self, task_id: int, at: datetime) -> None:
        if task_id in self.tasks:
            self.tasks[task_id] = self.tasks[task_id].model_copy(update={"last_run_at": at})

    async def remove(self, task_id: int) -> None:
        self.tasks.pop(task_id, None)


class InMemoryPlanRepository:
    def __init__(self) -> None:
        self.requests: Dict[int, str] = {}
        self.steps: Dict[int, List[PlanStep]] = {}
        self.syncs = 0

    async def create(self, owner_id: str, request: str) -> int:
        plan_id = len(self.requests) + 1
        self.requests[plan_id] = request
        return plan_id

    async def sync_steps(self, plan_id: int, steps: Sequence[PlanStep]) -> None:
        self.syncs += 1
        self.steps[plan_id] = [s.model_copy(deep=True) for s in steps]

    async def get_steps(self, plan_id: int) -> List[PlanStep]:
        return list(self.steps.get(plan_id, []))


class InMemoryCostRepository:
    def __init__(self) -> None:
        self.entries: List[CostEntry] = []

    async def record(self, entry: CostEntry) -> None:
        self.entries.append(entry)

    async def list(self, owner_id: Optional[str] = None) -> List[CostEntry]:
        return [e for e in self.entries if owner_id is None or e.owner_id == owner_id]


class EchoArgs(BaseSchema):
    text: str


async def _echo(ctx: CapabilityContext, args: EchoArgs) -> str:
    return f"echo: {args.text}"


@pytest.fixture
def scripted() -> type[ScriptedReasoningService]:
    return ScriptedReasoningService


@pytest.fixture
def reply() -> type[Replies]:
    return Replies


@pytest.fixture
def repos() -> RepoSet:
    return RepoSet(
        history=InMemoryHistoryRepository(),
        tasks=InMemoryTaskRepository(),
        plans=InMemoryPlanRepository(),
        costs=InMemoryCostRepository(),
    )


@pytest.fixture
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture
def echo_capability() -> FunctionCapability:
    return FunctionCapability("echo", "Echo the given text back", EchoArgs, _echo)


@pytest.fixture
def registry(echo_capability: FunctionCapability) -> CapabilityRegistry:
    reg = CapabilityRegistry()
    reg.register(echo_capability)
    return reg


@pytest.fixture
def messenger() -> LoggingMessenger:
    return LoggingMessenger()


@pytest.fixture
def make_runtime(repos: RepoSet, registry: CapabilityRegistry, messenger: LoggingMessenger):
    """Build an ``AgentRuntime`` on in-memory collaborators around a scripted service."""

    def _make(
        service: ScriptedReasoningService,
        *,
        policy: Optional[PolicyEngine] = None,
        limits: PlannerLimits = PlannerLimits(),
        capabilities: Optional[CapabilityRegistry] = None,
    ) -> AgentRuntime:
        return build_runtime(
            reasoning=service,
            repos=repos,
            messenger=messenger,
            capabilities=capabilities or registry,
            policy=policy or PolicyEngine(),
            scratchpad=InMemoryScratchpad(),
            prompts=BuiltinPromptProvider(),
            limits=limits,
            retry=RetryPolicy(initial_backoff=0.0),
        )

    return _make
