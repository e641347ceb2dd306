from __future__ import annotations

"""Repository interface contracts.

The engine depends on these Protocols instead of concrete persistence
implementations.

Contract guidelines
-------------------

- All methods are async.
- Implementations must be safe to call concurrently from independent tasks;
  the engine performs no locking around them.
- Deleting or updating an unknown record is a no-op.

The interfaces mirror what the engine needs to remember between turns:

- message history seeds the planner transcript,
- scheduled tasks drive the background scheduler,
- plans and steps record what a task decided and did,
- cost entries account for reasoning-service usage.
"""

from datetime import datetime
from typing import List, Optional, Protocol, Sequence

from ..schemas.domain import CostEntry, HistoryMessage, MessageRole, PlanStep, ScheduledTask


class HistoryRepository(Protocol):
    """Append and retrieve bounded per-owner conversation history."""

    async def add_message(self, owner_id: str, role: MessageRole, content: str) -> None:
        """
        Append one message to the owner's history.

        Args:
            owner_id: The conversation owner.
            role: ``human`` for user input, ``ai`` for agent replies.
            content: Message text.
        """
        ...

    async def get_history(self, owner_id: str, *, limit: int) -> List[HistoryMessage]:
        """
        Return the most recent ``limit`` messages, oldest first.

        Args:
            owner_id: The conversation owner.
            limit: Maximum number of messages to return.
        """
        ...


class TaskRepository(Protocol):
    """Create, list, delete and poll scheduled tasks."""

    async def add(self, task: ScheduledTask) -> ScheduledTask:
        """Persist a new task and return it with its assigned id."""
        ...

    async def list(self, owner_id: str) -> List[ScheduledTask]:
        """List all tasks of an owner ordered by id."""
        ...

    async def delete(self, owner_id: str, task_id: int) -> bool:
        """Delete one task of an owner; return whether it existed."""
        ...

    async def clear(self, owner_id: str) -> int:
        """Delete every task of an owner; return how many were removed."""
        ...

    async def due(self, now: datetime) -> List[ScheduledTask]:
        """Return all tasks due at ``now`` (see ``ScheduledTask.is_due``)."""
        ...

    async def mark_run(self, task_id: int, at: datetime) -> None:
        """Record that a task ran at ``at``."""
        ...

    async def remove(self, task_id: int) -> None:
        """Delete a task regardless of owner (used after a one-shot run)."""
        ...


class PlanRepository(Protocol):
    """Persist plans and overwrite their step lists."""

    async def create(self, owner_id: str, request: str) -> int:
        """
        Create a plan record for a new task.

        Returns:
            The plan id, which also names the task's scratchpad.
        """
        ...

    async def sync_steps(self, plan_id: int, steps: Sequence[PlanStep]) -> None:
        """Replace the stored step list of a plan with ``steps``."""
        ...

    async def get_steps(self, plan_id: int) -> List[PlanStep]:
        """Return the stored steps of a plan in plan order."""
        ...


class CostRepository(Protocol):
    """Record reasoning-service usage."""

    async def record(self, entry: CostEntry) -> None:
        """Append one usage entry."""
        ...

    async def list(self, owner_id: Optional[str] = None) -> List[CostEntry]:
        """List usage entries, optionally for a single owner."""
        ...
