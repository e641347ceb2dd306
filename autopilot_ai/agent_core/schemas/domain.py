from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional

from pydantic import Field, model_validator

from .base import BaseSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive values are assumed UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class StepStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"


class PolicyEffect(str, Enum):
    allow = "allow"
    deny = "deny"


class TriggerSource(str, Enum):
    interactive = "interactive"
    scheduler = "scheduler"


class AgentRole(str, Enum):
    idle = "idle"
    planner = "planner"
    worker = "worker"


class MessageRole(str, Enum):
    human = "human"
    ai = "ai"


class AbortReason(str, Enum):
    deadlock = "deadlock"
    consolidation_exhausted = "consolidation_exhausted"
    budget_exhausted = "budget_exhausted"
    planning_error = "planning_error"


class PlanStep(BaseSchema):
    """
    One unit of work inside a ``Plan``.

    ``tools`` is the whitelist of capability names the step executor may call
    while running this step; the scratchpad built-ins are always available.
    """

    id: int
    description: str
    status: StepStatus = StepStatus.pending
    result: str = ""
    tools: List[str] = Field(default_factory=list)

    @property
    def runnable(self) -> bool:
        return self.status in (StepStatus.pending, StepStatus.failed)


class Plan(BaseSchema):
    """Ordered sequence of steps with ids unique within the plan."""

    steps: List[PlanStep] = Field(default_factory=list)

    @model_validator(mode="after")
    def _unique_ids(self) -> "Plan":
        seen: set[int] = set()
        for step in self.steps:
            if step.id in seen:
                raise ValueError(f"duplicate step id {step.id}")
            seen.add(step.id)
        return self

    def completed_count(self) -> int:
        return sum(1 for s in self.steps if s.status == StepStatus.completed)

    def next_step(self) -> Optional[PlanStep]:
        """First step, in plan order, that is pending or failed."""
        for step in self.steps:
            if step.runnable:
                return step
        return None

    def get(self, step_id: int) -> Optional[PlanStep]:
        for step in self.steps:
            if step.id == step_id:
                return step
        return None


class PolicyRequest(BaseSchema):
    capability: str
    arguments: str = ""
    owner_id: str = ""


class PolicyResult(BaseSchema):
    effect: PolicyEffect
    reason: str

    @property
    def allowed(self) -> bool:
        return self.effect == PolicyEffect.allow


class ScheduledTask(BaseSchema):
    """
    A recurring (``interval_seconds > 0``) or one-shot (``interval_seconds == 0``) task.

    ``run_after`` delays the first run of a task; it is how a one-shot
    ``delay_seconds`` is honoured.
    """

    id: Optional[int] = None
    owner_id: str
    description: str
    interval_seconds: int = Field(default=0, ge=0)
    last_run_at: Optional[datetime] = None
    run_after: Optional[datetime] = None
    status: str = "active"
    created_at: datetime = Field(default_factory=_utc_now)

    @property
    def is_one_shot(self) -> bool:
        return self.interval_seconds == 0

    def is_due(self, now: datetime) -> bool:
        if self.status != "active":
            return False
        now = as_utc(now)
        if self.run_after is not None and now < as_utc(self.run_after):
            return False
        if self.last_run_at is None:
            return True
        if self.is_one_shot:
            return False
        return now - as_utc(self.last_run_at) >= timedelta(seconds=self.interval_seconds)


class HistoryMessage(BaseSchema):
    owner_id: str
    role: MessageRole
    content: str
    created_at: datetime = Field(default_factory=_utc_now)


class CostEntry(BaseSchema):
    owner_id: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    created_at: datetime = Field(default_factory=_utc_now)


class AgentStatus(BaseSchema):
    owner_id: str
    role: AgentRole = AgentRole.idle
    detail: str = ""
    updated_at: datetime = Field(default_factory=_utc_now)
