from __future__ import annotations

"""Single entry point into the engine.

``AgentService.handle`` is used both for interactive messages and for
scheduler-triggered runs; the trigger source is a parameter, not a separate
code path.

Runs for the same owner are serialized with a per-owner ``asyncio.Lock``: a
scheduled run that fires while the owner's interactive request is still in
flight waits for it (and vice versa), so two planners never share the
owner's history at the same time. Runs for different owners proceed
concurrently.
"""

import asyncio
import logging
from typing import Dict, Optional

from .planning.models import PlanRun
from .planning.planner import Planner
from .schemas.domain import TriggerSource
from .transport import Messenger

logger = logging.getLogger(__name__)


class AgentService:
    """Run tasks through the planner, one at a time per owner."""

    def __init__(self, *, planner: Planner, messenger: Optional[Messenger] = None) -> None:
        self._planner = planner
        self._messenger = messenger
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    def _acquire_slot(self, owner_id: str) -> asyncio.Lock:
        lock = self._locks.get(owner_id)
        if lock is None:
            lock = self._locks[owner_id] = asyncio.Lock()
        self._holders[owner_id] = self._holders.get(owner_id, 0) + 1
        return lock

    def _release_slot(self, owner_id: str) -> None:
        # The lock is dropped once no run holds or waits for it.
        remaining = self._holders[owner_id] - 1
        if remaining:
            self._holders[owner_id] = remaining
        else:
            del self._holders[owner_id]
            del self._locks[owner_id]

    def is_busy(self, owner_id: str) -> bool:
        lock = self._locks.get(owner_id)
        return lock is not None and lock.locked()

    async def run(self, owner_id: str, text: str, *, source: TriggerSource = TriggerSource.interactive) -> PlanRun:
        """Run a task and return the full ``PlanRun``."""
        lock = self._acquire_slot(owner_id)
        try:
            if lock.locked():
                logger.info("[%s] waiting for the owner's running task before starting a %s run", owner_id, source.value)
            async with lock:
                return await self._planner.run(owner_id, text, source=source)
        finally:
            self._release_slot(owner_id)

    async def handle(self, owner_id: str, text: str, *, source: TriggerSource = TriggerSource.interactive) -> str:
        """Run a task and return the user-facing answer or diagnostic."""
        run = await self.run(owner_id, text, source=source)
        return run.answer

    async def think(self, owner_id: str, text: str) -> str:
        return await self.handle(owner_id, text)

    async def on_message(self, owner_id: str, text: str) -> str:
        """Handle an inbound chat message and deliver the reply through the messenger."""
        answer = await self.handle(owner_id, text, source=TriggerSource.interactive)
        if self._messenger is not None:
            await self._messenger.send(owner_id, answer)
        return answer
