"""Pydantic domain schemas shared across the engine."""

from .base import BaseSchema
from .domain import (
    AbortReason,
    AgentRole,
    AgentStatus,
    CostEntry,
    HistoryMessage,
    MessageRole,
    Plan,
    PlanStep,
    PolicyEffect,
    PolicyRequest,
    PolicyResult,
    ScheduledTask,
    StepStatus,
    TriggerSource,
)

__all__ = [
    "AbortReason",
    "AgentRole",
    "AgentStatus",
    "BaseSchema",
    "CostEntry",
    "HistoryMessage",
    "MessageRole",
    "Plan",
    "PlanStep",
    "PolicyEffect",
    "PolicyRequest",
    "PolicyResult",
    "ScheduledTask",
    "StepStatus",
    "TriggerSource",
]
