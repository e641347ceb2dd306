"""Outbound side of the chat transport.

The engine never talks to a chat platform directly. Inbound messages reach
``AgentService.on_message``; replies and scheduled outputs leave through a
``Messenger``.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Protocol, Tuple

logger = logging.getLogger(__name__)


class Messenger(Protocol):
    async def send(self, owner_id: str, text: str) -> None:
        """Deliver ``text`` to ``owner_id``."""
        ...


class LoggingMessenger:
    """Messenger that only logs outbound messages.

    The most recent ``history_size`` messages are kept for inspection.
    """

    def __init__(self, history_size: int = 100) -> None:
        self._sent: Deque[Tuple[str, str]] = deque(maxlen=history_size)

    @property
    def sent(self) -> List[Tuple[str, str]]:
        return list(self._sent)

    async def send(self, owner_id: str, text: str) -> None:
        self._sent.append((owner_id, text))
        logger.info("[%s] outbound message (%d chars)", owner_id, len(text))
