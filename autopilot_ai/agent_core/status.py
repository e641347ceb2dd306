"""Live agent status published per owner.

Each task publishes what it is doing (planning, running a step, idle) to a
``StatusChannel`` it was given. Displays subscribe to the channel; nothing in
the engine reads status back to make decisions.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from .schemas.domain import AgentRole, AgentStatus

logger = logging.getLogger(__name__)


class StatusChannel:
    """Fan-out of ``AgentStatus`` updates with the latest value kept per owner.

    Subscribers receive updates through bounded queues. A slow subscriber
    loses its oldest pending update rather than blocking publishers.
    """

    def __init__(self) -> None:
        self._latest: Dict[str, AgentStatus] = {}
        self._subscribers: List[asyncio.Queue[AgentStatus]] = []

    def publish(self, status: AgentStatus) -> None:
        self._latest[status.owner_id] = status
        logger.debug("[%s] status=%s %s", status.owner_id, status.role.value, status.detail)
        for queue in self._subscribers:
            if queue.full():
                queue.get_nowait()
            queue.put_nowait(status)

    def update(self, owner_id: str, role: AgentRole, detail: str = "") -> None:
        self.publish(AgentStatus(owner_id=owner_id, role=role, detail=detail))

    def latest(self, owner_id: str) -> AgentStatus:
        return self._latest.get(owner_id) or AgentStatus(owner_id=owner_id)

    def subscribe(self, maxsize: int = 100) -> asyncio.Queue[AgentStatus]:
        queue: asyncio.Queue[AgentStatus] = asyncio.Queue(maxsize=maxsize)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue[AgentStatus]) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)
