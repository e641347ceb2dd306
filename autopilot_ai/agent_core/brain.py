"""The invocation contract shared by the planner and the step executor."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Brain(Protocol):
    """Anything that turns an owner's input into a reply.

    ``Planner`` satisfies it by running a whole plan; ``StepExecutor`` by
    running the input as a single unrestricted step.
    """

    async def think(self, owner_id: str, text: str) -> str: ...
