"""Convenience factories for wiring the agent core.

``build_runtime`` assembles registry, policy, scratchpad, prompts, executor,
planner, service and scheduler from a reasoning service and a repository set.
``build_sql_runtime`` does the same on top of the SQL repositories described
by the application settings.

Advanced deployments can pass their own registry, policy engine, scratchpad
or prompt provider; tests usually pass in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from autopilot_ai.core.config import Settings, settings as default_settings
from autopilot_ai.core.logging_config import setup_logging
from autopilot_ai.core.monitoring import initialize_logfire

from .capabilities.builtin import ScheduleTaskCapability
from .capabilities.registry import CapabilityRegistry
from .planning.models import PlannerDeps, PlannerLimits
from .planning.planner import Planner
from .policy.engine import PolicyEngine
from .policy.models import PolicyConfig
from .prompts import BuiltinPromptProvider, DirectoryPromptProvider, PromptProvider
from .reasoning.client import PydanticAIReasoningService, ReasoningClient, ReasoningService
from .repos.interfaces import CostRepository, HistoryRepository, PlanRepository, TaskRepository
from .repos.sql import build_sql_repos, create_all, create_engine, create_sessionmaker
from .runtime.executor import StepExecutor
from .runtime.models import ExecutorDeps
from .runtime.retry import RetryPolicy
from .scheduling.scheduler import Scheduler
from .scratchpad import FileScratchpad, Scratchpad
from .service import AgentService
from .status import StatusChannel
from .transport import Messenger


@dataclass(frozen=True)
class RepoSet:
    """The four repositories the engine needs."""

    history: HistoryRepository
    tasks: TaskRepository
    plans: PlanRepository
    costs: CostRepository


@dataclass(frozen=True)
class AgentRuntime:
    """Everything ``build_runtime`` wired together."""

    service: AgentService
    scheduler: Scheduler
    planner: Planner
    executor: StepExecutor
    capabilities: CapabilityRegistry
    policy: PolicyEngine
    status: StatusChannel


def build_default_registry(*, tasks: TaskRepository) -> CapabilityRegistry:
    """Build a ``CapabilityRegistry`` holding the engine's built-in capabilities."""
    reg = CapabilityRegistry()
    reg.register(ScheduleTaskCapability(tasks=tasks))
    return reg


def build_policy_engine(cfg: Settings = default_settings) -> PolicyEngine:
    """Construct a ``PolicyEngine`` from application settings.

    Raises:
        pydantic.ValidationError: If a configured deny pattern does not compile.
    """
    policy = cfg.policy
    return PolicyEngine(
        PolicyConfig(
            denied_tools=list(policy.denied_tools),
            denied_argument_patterns=list(policy.denied_argument_patterns),
        )
    )


def build_prompt_provider(cfg: Settings = default_settings) -> PromptProvider:
    if cfg.prompts_dir:
        return DirectoryPromptProvider(cfg.prompts_dir)
    return BuiltinPromptProvider()


def build_runtime(
    *,
    reasoning: ReasoningService,
    repos: RepoSet,
    messenger: Optional[Messenger] = None,
    capabilities: Optional[CapabilityRegistry] = None,
    policy: Optional[PolicyEngine] = None,
    scratchpad: Optional[Scratchpad] = None,
    prompts: Optional[PromptProvider] = None,
    status: Optional[StatusChannel] = None,
    limits: PlannerLimits = PlannerLimits(),
    retry: RetryPolicy = RetryPolicy(),
    cfg: Settings = default_settings,
) -> AgentRuntime:
    """Wire the engine around a reasoning service and a repository set."""
    registry = capabilities or build_default_registry(tasks=repos.tasks)
    policy_engine = policy or build_policy_engine(cfg)
    pad = scratchpad or FileScratchpad(cfg.scratchpad_dir)
    prompt_provider = prompts or build_prompt_provider(cfg)
    channel = status or StatusChannel()
    client = ReasoningClient(reasoning, costs=repos.costs, model_label=cfg.model)

    executor = StepExecutor(
        ExecutorDeps(
            capabilities=registry,
            policy=policy_engine,
            scratchpad=pad,
            reasoning=client,
            prompts=prompt_provider,
            status=channel,
            retry=retry,
        )
    )
    planner = Planner(
        PlannerDeps(
            reasoning=client,
            prompts=prompt_provider,
            scratchpad=pad,
            capabilities=registry,
            history=repos.history,
            plans=repos.plans,
            status=channel,
        ),
        executor,
        limits=limits,
    )
    service = AgentService(planner=planner, messenger=messenger)
    scheduler = Scheduler(service=service, tasks=repos.tasks, messenger=messenger)
    return AgentRuntime(
        service=service,
        scheduler=scheduler,
        planner=planner,
        executor=executor,
        capabilities=registry,
        policy=policy_engine,
        status=channel,
    )


async def build_sql_runtime(
    cfg: Settings = default_settings,
    *,
    reasoning: Optional[ReasoningService] = None,
    messenger: Optional[Messenger] = None,
) -> AgentRuntime:
    """
    Application entry point.

    Configures logging and Logfire from ``cfg``, creates the SQL schema if
    needed and wires the engine on top of the SQL repositories.
    """
    setup_logging(log_level=cfg.log_level, enable_file=cfg.log_to_file, log_dir=cfg.log_dir)
    initialize_logfire(cfg.logfire)
    engine = create_engine(cfg.database_url)
    await create_all(engine)
    sql = build_sql_repos(session_factory=create_sessionmaker(engine))
    repos = RepoSet(history=sql.history, tasks=sql.tasks, plans=sql.plans, costs=sql.costs)
    return build_runtime(
        reasoning=reasoning or PydanticAIReasoningService(cfg.model),
        repos=repos,
        messenger=messenger,
        cfg=cfg,
    )
