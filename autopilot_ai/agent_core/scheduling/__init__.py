"""Background scheduler re-entering the engine for due tasks."""

from .scheduler import SCHEDULED_INSTRUCTION, Scheduler

__all__ = [
    "SCHEDULED_INSTRUCTION",
    "Scheduler",
]
