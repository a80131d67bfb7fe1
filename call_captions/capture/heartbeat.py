"""Keep-alive pings that stop the service host from reclaiming the orchestrator."""

import asyncio
import logging
from collections.abc import Callable

from shared.config import DEFAULT_HEARTBEAT_SEC

from ..messages import HeartbeatPing

logger = logging.getLogger(__name__)


class Heartbeat:
    """Sends a HeartbeatPing every interval while running.

    At most one ping loop exists per instance; start() while running and
    stop() while stopped are no-ops.
    """

    def __init__(self, send: Callable[[object], None], interval: float = DEFAULT_HEARTBEAT_SEC):
        self._send = send
        self.interval = interval
        self._task: asyncio.Task | None = None
        self.pings_sent = 0

    @property
    def running(self) -> bool:
        return self._task is not None

    def start(self):
        if self._task is not None:
            return
        self._task = asyncio.get_running_loop().create_task(self._beat())
        logger.debug(f"Heartbeat started ({self.interval}s)")

    def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        self._task = None
        logger.debug("Heartbeat stopped")

    async def _beat(self):
        while True:
            await asyncio.sleep(self.interval)
            self._send(HeartbeatPing())
            self.pings_sent += 1
