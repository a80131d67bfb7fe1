"""Service host: owns the orchestrator and the capture context.

The host reclaims an orchestrator that has not handled a message for
idle_timeout_sec, dropping its in-memory session state. While a capture runs
the capture context's heartbeat keeps the orchestrator busy enough to survive.
Messages posted after a reclaim start a fresh orchestrator.
"""

import asyncio
import logging

from shared.client import TranscriptHistory
from shared.config import PipelineConfig

from .capture.context import CaptureContext
from .capture.media import AudioBackend, MediaHost
from .orchestrator import Orchestrator, StatusIndicator, TranscriptSink

logger = logging.getLogger(__name__)


class ServiceHost:
    """Wires the pipeline contexts together and supervises their tasks."""

    def __init__(
        self,
        media_host: MediaHost,
        backend: AudioBackend,
        config: PipelineConfig | None = None,
        sink: TranscriptSink | None = None,
        indicator: StatusIndicator | None = None,
        history: TranscriptHistory | None = None,
        capture_factory=CaptureContext,
        check_interval: float = 1.0,
    ):
        self.media_host = media_host
        self.backend = backend
        self.config = config or PipelineConfig()
        self.sink = sink or TranscriptSink()
        self.indicator = indicator or StatusIndicator()
        if history is None:
            history = TranscriptHistory(
                max_entries=self.config.history_size, path=self.config.history_path
            )
        self.history = history
        self._capture_factory = capture_factory
        self.check_interval = check_interval

        self.orchestrator: Orchestrator | None = None
        self.capture_context: CaptureContext | None = None
        self._orchestrator_task: asyncio.Task | None = None
        self._watchdog_task: asyncio.Task | None = None
        self.reclaims = 0

    # ============== Contexts ==============

    def ensure_orchestrator(self) -> Orchestrator:
        if self.orchestrator is None:
            self.orchestrator = Orchestrator(
                self.media_host,
                self,
                sink=self.sink,
                indicator=self.indicator,
                history=self.history,
            )
            self._orchestrator_task = asyncio.get_running_loop().create_task(
                self.orchestrator.run()
            )
            logger.debug("Orchestrator started")
        return self.orchestrator

    def ensure_capture_context(self) -> CaptureContext:
        """Create and start the capture context only if it does not exist."""
        if self.capture_context is None:
            self.capture_context = self._capture_factory(self.post, self.backend, self.config)
            logger.debug("Capture context created")
        self.capture_context.start()
        return self.capture_context

    def post(self, message) -> bool:
        """Deliver a message to the orchestrator, waking it if reclaimed."""
        return self.ensure_orchestrator().post(message)

    # ============== Idle reclaim ==============

    async def start(self):
        self.ensure_orchestrator()
        timeout = self.config.idle_timeout_sec
        if timeout and timeout > 0 and self._watchdog_task is None:
            self._watchdog_task = asyncio.get_running_loop().create_task(self._watchdog())

    async def _watchdog(self):
        while True:
            await asyncio.sleep(self.check_interval)
            self.reclaim_if_idle()

    def reclaim_if_idle(self) -> bool:
        orchestrator = self.orchestrator
        if orchestrator is None or not orchestrator.inbox.empty():
            return False
        idle = orchestrator.idle_seconds
        if idle < self.config.idle_timeout_sec:
            return False

        logger.warning(f"Orchestrator idle for {idle:.0f}s, reclaiming")
        if self._orchestrator_task is not None:
            self._orchestrator_task.cancel()
            self._orchestrator_task = None
        self.orchestrator = None
        self.reclaims += 1
        return True

    # ============== Shutdown ==============

    async def close(self):
        if self._watchdog_task is not None:
            self._watchdog_task.cancel()
            self._watchdog_task = None
        if self.capture_context is not None:
            await self.capture_context.close()
            self.capture_context = None
        if self._orchestrator_task is not None:
            self._orchestrator_task.cancel()
            try:
                await self._orchestrator_task
            except asyncio.CancelledError:
                pass
            self._orchestrator_task = None
        self.orchestrator = None
        logger.info("Service host closed")
