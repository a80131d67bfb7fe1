"""Mailboxes connecting the isolated pipeline contexts."""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class Mailbox:
    """Inbox of one execution context.

    Senders only ever call post(); the owning context awaits get() and
    handles one message at a time. Delivery order per sender is preserved.
    """

    def __init__(self, name: str, maxsize: int = 0):
        self.name = name
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)

    def post(self, message: Any) -> bool:
        """Fire-and-forget delivery. Returns False if the mailbox is full."""
        try:
            self._queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            logger.warning(f"{self.name} mailbox full, dropping {type(message).__name__}")
            return False

    async def get(self) -> Any:
        return await self._queue.get()

    def empty(self) -> bool:
        return self._queue.empty()
