from __future__ import annotations

"""Built-in capabilities shipped with the engine.

Only capabilities that operate on the engine's own state live here. Anything
touching the outside world (shell, browser, files, search) is provided by the
host application and registered at wiring time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal, Optional, Type

from pydantic import BaseModel, Field

from ..repos.interfaces import TaskRepository
from ..schemas.base import BaseSchema
from ..schemas.domain import ScheduledTask
from .base import CapabilityContext

MIN_INTERVAL_SECONDS = 60


class ScheduleTaskArgs(BaseSchema):
    action: Literal["schedule", "once", "clear", "list", "remove"] = Field(
        description="'schedule' recurring, 'once' one-time, 'clear' all, 'list' all, or 'remove' one."
    )
    task_description: str = Field(default="", description="What the agent should do (for 'schedule' and 'once')")
    interval_seconds: int = Field(default=0, ge=0, description="Interval in seconds (min 60s, for 'schedule')")
    delay_seconds: int = Field(default=0, ge=0, description="Delay before the one-time task runs (for 'once')")
    task_id: Optional[int] = Field(default=None, description="The ID of the task to remove (for 'remove')")


@dataclass(frozen=True)
class ScheduleTaskCapability:
    """Manage the calling owner's scheduled tasks.

    The minimum recurring interval is enforced here, at creation time; the
    scheduler itself runs whatever is due.
    """

    tasks: TaskRepository
    name: str = "schedule_task"
    description: str = (
        "Manage recurring tasks: 'schedule' (recurring), 'once' (one-time reminder), "
        "'clear' (all), 'list' active tasks, or 'remove' a specific task by ID."
    )
    args_model: Type[BaseModel] = ScheduleTaskArgs

    async def execute(self, ctx: CapabilityContext, *, args: BaseModel) -> str:
        assert isinstance(args, ScheduleTaskArgs)
        owner_id = ctx.owner_id

        if args.action == "list":
            tasks = await self.tasks.list(owner_id)
            if not tasks:
                return "You have no scheduled tasks."
            lines = ["Your scheduled tasks:"]
            for t in tasks:
                kind = "one-time" if t.is_one_shot else f"every {t.interval_seconds} seconds"
                lines.append(f"- [{t.id}] {t.description} ({kind}, status: {t.status})")
            return "\n".join(lines)

        if args.action == "remove":
            if args.task_id is None:
                return "Error: task_id is required for 'remove' action."
            if not await self.tasks.delete(owner_id, args.task_id):
                return f"Error: no scheduled task with id {args.task_id}."
            return f"Successfully removed task {args.task_id}."

        if args.action == "clear":
            await self.tasks.clear(owner_id)
            return "Successfully cleared all your scheduled tasks."

        if not args.task_description.strip():
            return "Error: task_description is required for 'schedule' and 'once' actions."

        if args.action == "once":
            run_after = None
            if args.delay_seconds:
                run_after = datetime.now(timezone.utc) + timedelta(seconds=args.delay_seconds)
            task = await self.tasks.add(
                ScheduledTask(owner_id=owner_id, description=args.task_description, run_after=run_after)
            )
            when = f"in {args.delay_seconds} seconds" if run_after else "shortly"
            return f"Successfully scheduled one-time task {task.id}: '{args.task_description}'. It will run {when}."

        if args.interval_seconds < MIN_INTERVAL_SECONDS:
            return f"Error: Minimum interval is {MIN_INTERVAL_SECONDS} seconds to prevent spamming."
        task = await self.tasks.add(
            ScheduledTask(
                owner_id=owner_id,
                description=args.task_description,
                interval_seconds=args.interval_seconds,
            )
        )
        return (
            f"Successfully scheduled task {task.id}: '{args.task_description}' "
            f"every {args.interval_seconds} seconds."
        )
