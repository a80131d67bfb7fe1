"""Transcript sink: best-effort delivery to the foreground consumer."""

import asyncio
import logging
from typing import Protocol

from shared.core import LiveTranscriptUpdate

from ..errors import ConsumerUnavailableError

logger = logging.getLogger(__name__)

DELIVERY_TIMEOUT_SEC = 2.0


class TranscriptConsumer(Protocol):
    """Anything that can display a live transcript update."""

    async def deliver(self, update: LiveTranscriptUpdate) -> None: ...


class TranscriptSink:
    """Forwards transcripts to whichever consumer is in the foreground.

    Consumers are kept in attach order; the last attached (or focused) one is
    the foreground consumer.
    """

    def __init__(self, timeout: float = DELIVERY_TIMEOUT_SEC):
        self.timeout = timeout
        self._consumers: list[TranscriptConsumer] = []

    @property
    def active(self) -> TranscriptConsumer | None:
        return self._consumers[-1] if self._consumers else None

    def attach(self, consumer: TranscriptConsumer):
        if consumer in self._consumers:
            self._consumers.remove(consumer)
        self._consumers.append(consumer)

    def focus(self, consumer: TranscriptConsumer):
        self.attach(consumer)

    def detach(self, consumer: TranscriptConsumer):
        if consumer in self._consumers:
            self._consumers.remove(consumer)

    async def deliver(self, update: LiveTranscriptUpdate):
        """Deliver to the foreground consumer.

        Raises:
            ConsumerUnavailableError: No consumer is attached
        """
        consumer = self.active
        if consumer is None:
            raise ConsumerUnavailableError()
        await asyncio.wait_for(consumer.deliver(update), timeout=self.timeout)

    async def forward(self, update: LiveTranscriptUpdate) -> bool:
        """Deliver without ever raising. Returns True when delivered."""
        try:
            await self.deliver(update)
            return True
        except ConsumerUnavailableError:
            logger.debug("No consumer for transcript update")
        except TimeoutError:
            logger.debug(f"Consumer did not accept update within {self.timeout}s")
        except Exception as e:
            logger.debug(f"Transcript delivery failed: {e}")
        return False
