"""Core orchestration engine: planning, step execution, policy and persistence.

Design overview
---------------

A top-level task is driven by ``planning.Planner``, a LangGraph state
machine that repeatedly asks the reasoning service for an updated plan or the
final answer. Each selected step is handed to ``runtime.StepExecutor``,
which runs a bounded reasoning loop restricted to the step's capability
whitelist:

- every capability invocation passes the ``policy.PolicyEngine`` gate first;
- transient capability failures are retried with exponential backoff;
- failures and denials become observations the model can adapt to.

Steps exchange full results through the per-task ``scratchpad``; the
planner's transcript only carries truncated summaries and is trimmed every
iteration.

Typical usage
-------------

Most applications use ``factory.build_runtime`` (or ``build_sql_runtime``)
and then:

1. pass inbound messages to ``AgentService.on_message``;
2. run ``Scheduler.start`` in the background for scheduled tasks.
"""

from .brain import Brain
from .capabilities import (
    Capability,
    CapabilityContext,
    CapabilityRegistry,
    CapabilityResult,
    FailureKind,
    FunctionCapability,
)
from .planning import Planner, PlannerDeps, PlannerLimits, PlanRun
from .policy import PolicyConfig, PolicyEngine
from .runtime import ExecutorDeps, RetryPolicy, StepExecutor, StepOutcome
from .scheduling import Scheduler
from .schemas.domain import (
    AbortReason,
    Plan,
    PlanStep,
    PolicyRequest,
    PolicyResult,
    ScheduledTask,
    StepStatus,
    TriggerSource,
)
from .service import AgentService

__all__ = [
    "AbortReason",
    "AgentService",
    "Brain",
    "Capability",
    "CapabilityContext",
    "CapabilityRegistry",
    "CapabilityResult",
    "ExecutorDeps",
    "FailureKind",
    "FunctionCapability",
    "Plan",
    "PlanRun",
    "PlanStep",
    "Planner",
    "PlannerDeps",
    "PlannerLimits",
    "PolicyConfig",
    "PolicyEngine",
    "PolicyRequest",
    "PolicyResult",
    "RetryPolicy",
    "ScheduledTask",
    "Scheduler",
    "StepExecutor",
    "StepOutcome",
    "StepStatus",
    "TriggerSource",
]
