from __future__ import annotations

"""Timer-driven execution of scheduled tasks.

Every tick the scheduler asks the task repository for due tasks and runs each
one through the same entry point interactive messages use, with a synthetic
instruction that tells the planner not to reschedule the task. After a
successful run the task's last-run time is updated, a one-shot task is
deleted, and the answer is delivered through the messenger. A run that
ends in a planning error leaves the task untouched and delivers nothing, so
the task is retried on the next tick.

The tick interval is a module constant rather than a setting.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Callable, Optional

from ..repos.interfaces import TaskRepository
from ..schemas.domain import AbortReason, ScheduledTask, TriggerSource
from ..transport import Messenger

if TYPE_CHECKING:
    from ..service import AgentService

logger = logging.getLogger(__name__)

TICK_SECONDS = 30.0

SCHEDULED_INSTRUCTION = (
    '[SYSTEM: This is the execution of a previously scheduled task: "{description}". '
    "Please provide the output/reminder for the user. DO NOT schedule it again.]"
)
OUTPUT_HEADER = "Scheduled Task Output\n\n"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Scheduler:
    """Poll for due tasks on a fixed tick and run them."""

    def __init__(
        self,
        *,
        service: "AgentService",
        tasks: TaskRepository,
        messenger: Optional[Messenger] = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._service = service
        self._tasks = tasks
        self._messenger = messenger
        self._clock = clock

    async def start(self, stop: Optional[asyncio.Event] = None) -> None:
        """
        Run until ``stop`` is set (or the calling task is cancelled).

        The first poll happens one tick after start.
        """
        stop = stop or asyncio.Event()
        logger.info("Task scheduler started (tick %gs)", TICK_SECONDS)
        while not stop.is_set():
            try:
                await asyncio.wait_for(stop.wait(), timeout=TICK_SECONDS)
            except asyncio.TimeoutError:
                await self.poll_and_execute()
        logger.info("Task scheduler stopped")

    async def poll_and_execute(self) -> int:
        """
        Run every task due now.

        Returns:
            The number of tasks that ran successfully.
        """
        try:
            due = await self._tasks.due(self._clock())
        except Exception as e:
            logger.error("Scheduler failed to fetch due tasks: %s", e)
            return 0

        if due:
            logger.info("Scheduler found %d due task(s)", len(due))
        ran = 0
        for task in due:
            if await self._run_task(task):
                ran += 1
        return ran

    async def _run_task(self, task: ScheduledTask) -> bool:
        assert task.id is not None
        logger.info("[%s] Executing scheduled task %d: %s", task.owner_id, task.id, task.description)
        instruction = SCHEDULED_INSTRUCTION.format(description=task.description)
        try:
            run = await self._service.run(task.owner_id, instruction, source=TriggerSource.scheduler)
        except Exception as e:
            logger.error("[%s] Scheduled task %d failed: %s", task.owner_id, task.id, e, exc_info=True)
            return False
        if run.abort == AbortReason.planning_error:
            # Left untouched so the next tick retries it.
            logger.error("[%s] Scheduled task %d failed: %s", task.owner_id, task.id, run.answer)
            return False

        try:
            await self._tasks.mark_run(task.id, self._clock())
            if task.is_one_shot:
                await self._tasks.remove(task.id)
                logger.info("[%s] One-shot task %d completed and removed", task.owner_id, task.id)
        except Exception as e:
            logger.error("[%s] Failed to update scheduled task %d: %s", task.owner_id, task.id, e)

        if self._messenger is not None:
            try:
                await self._messenger.send(task.owner_id, OUTPUT_HEADER + run.answer)
            except Exception as e:
                logger.error("[%s] Failed to deliver output of task %d: %s", task.owner_id, task.id, e)
        return True
