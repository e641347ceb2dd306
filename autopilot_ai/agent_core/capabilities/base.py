from __future__ import annotations

"""Capability protocol and execution data models.

A capability is a named, schema-described action the step executor may
invoke on behalf of the reasoning service: run a command, fetch a page, manage
scheduled tasks, and so on. Concrete implementations live outside the engine;
the engine only sees this descriptor.

Capabilities should:

- declare their parameters as a pydantic model (``args_model``); the registry
  validates every argument blob against it before dispatch,
- return plain text, which is handed back to the reasoning service as an
  observation,
- raise on failure and leave retries and policy decisions to the engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Optional, Protocol, Type

from pydantic import BaseModel

from ..schemas.base import BaseSchema


class FailureKind(str, Enum):
    """Why a capability invocation did not produce a normal result."""

    execution = "execution"
    timeout = "timeout"
    not_found = "not_found"
    not_permitted = "not_permitted"
    invalid_arguments = "invalid_arguments"
    policy_denied = "policy_denied"

    @property
    def retryable(self) -> bool:
        return self is FailureKind.execution


@dataclass(frozen=True)
class CapabilityContext:
    """Execution context passed to capability implementations.

    Attributes
    ----------
    owner_id:
        The conversation owner the current task runs for.
    task_id:
        Identifier of the top-level task (scopes the scratchpad).
    step_id:
        The plan step being executed, if any.
    """

    owner_id: str
    task_id: str
    step_id: Optional[int] = None


@dataclass(frozen=True)
class CapabilityResult:
    """Outcome of one invocation: the observation text plus an optional failure kind."""

    text: str
    failure: Optional[FailureKind] = None
    error: Optional[BaseException] = field(default=None, compare=False)
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def failed(cls, kind: FailureKind, text: str, *, error: Optional[BaseException] = None) -> "CapabilityResult":
        return cls(text=text, failure=kind, error=error)


class NoArgs(BaseSchema):
    """Argument model for capabilities that take no parameters."""


class Capability(Protocol):
    """Protocol for capability implementations."""

    name: str
    description: str
    args_model: Type[BaseModel]

    async def execute(self, ctx: CapabilityContext, *, args: BaseModel) -> str: ...


@dataclass(frozen=True)
class FunctionCapability:
    """Expose an async callable as a capability.

    Example::

        async def fetch(ctx, args: FetchArgs) -> str: ...

        registry.register(FunctionCapability("fetch_url", "Fetch a page", FetchArgs, fetch))
    """

    name: str
    description: str
    args_model: Type[BaseModel]
    func: Callable[[CapabilityContext, BaseModel], Awaitable[str]]

    async def execute(self, ctx: CapabilityContext, *, args: BaseModel) -> str:
        return await self.func(ctx, args)
