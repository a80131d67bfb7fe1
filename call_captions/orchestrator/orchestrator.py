"""Orchestrator: per-target sessions, capture control and transcript routing.

The orchestrator holds no audio resources itself. It asks the media host for a
handle, sends StartCapture/StopCapture to the capture context, and reacts to
what the capture context reports back.
"""

import asyncio
import itertools
import logging
import time
from collections.abc import Callable
from typing import Protocol

from shared.client import TranscriptHistory
from shared.core import LiveTranscriptUpdate

from ..capture.media import CaptureTarget, MediaHost
from ..errors import InvalidTransitionError
from ..messages import (
    CaptureError,
    CaptureStarted,
    HeartbeatPing,
    ModelLoading,
    StartCapture,
    StopCapture,
    TargetNavigated,
    TargetRemoved,
    TranscriptionFailed,
    TranscriptReady,
    Trigger,
)
from ..messaging import Mailbox
from .indicator import Indicator, StatusIndicator
from .session import CaptureSession, SessionState
from .sink import TranscriptSink

logger = logging.getLogger(__name__)


class CaptureHost(Protocol):
    """Host side that owns the capture context's lifetime."""

    capture_context: object | None

    def ensure_capture_context(self) -> object: ...


class Orchestrator:
    """Long-lived coordinator handling one message at a time."""

    def __init__(
        self,
        media_host: MediaHost,
        capture_host: CaptureHost,
        sink: TranscriptSink | None = None,
        indicator: StatusIndicator | None = None,
        history: TranscriptHistory | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.media_host = media_host
        self.capture_host = capture_host
        self.sink = sink or TranscriptSink()
        self.indicator = indicator or StatusIndicator()
        self.history = history if history is not None else TranscriptHistory()
        self._clock = clock

        self.inbox = Mailbox("orchestrator")
        self.sessions: dict[str, CaptureSession] = {}
        self.capturing: str | None = None
        self.last_activity = clock()
        self.heartbeats = 0
        self._session_ids = itertools.count(1)
        self._last_session_id = 0

        self._handlers = {
            Trigger: self.on_trigger,
            TargetRemoved: self.on_target_removed,
            TargetNavigated: self.on_target_navigated,
            CaptureStarted: self.on_capture_started,
            ModelLoading: self.on_model_loading,
            TranscriptReady: self.on_transcript,
            TranscriptionFailed: self.on_transcription_failed,
            CaptureError: self.on_capture_error,
            HeartbeatPing: self.on_heartbeat,
        }

    # ============== Message loop ==============

    def post(self, message) -> bool:
        return self.inbox.post(message)

    async def run(self):
        while True:
            message = await self.inbox.get()
            await self.handle(message)

    async def handle(self, message):
        """Dispatch one message. Handler errors are logged, never raised."""
        self.last_activity = self._clock()
        handler = self._handlers.get(type(message))
        if handler is None:
            logger.warning(f"Orchestrator ignoring {type(message).__name__}")
            return None
        try:
            return await handler(message)
        except InvalidTransitionError as e:
            logger.warning(f"Rejected state change: {e}")
        except Exception as e:
            logger.exception(f"Orchestrator failed handling {type(message).__name__}: {e}")
        return None

    @property
    def idle_seconds(self) -> float:
        return self._clock() - self.last_activity

    @property
    def current_session(self) -> CaptureSession | None:
        if self.capturing is None:
            return None
        return self.sessions.get(self.capturing)

    def session_state(self, target_id: str) -> SessionState:
        session = self.sessions.get(target_id)
        return session.state if session else SessionState.IDLE

    def _is_current(self, session_id: int) -> CaptureSession | None:
        session = self.current_session
        if session is None or session.session_id != session_id:
            return None
        return session

    # ============== Triggers ==============

    async def on_trigger(self, message: Trigger):
        target = message.target
        session = self.sessions.get(target.id)

        if session is not None and session.state is SessionState.LISTENING:
            self.stop(target.id)
            return
        if session is not None and session.state is SessionState.STARTING:
            logger.info(f"Capture for {target.id} already starting")
            return

        if self.capturing is not None and self.capturing != target.id:
            logger.info(f"Stopping capture of {self.capturing} to capture {target.id}")
            self.stop(self.capturing)

        await self.start(target)

    async def start(self, target: CaptureTarget):
        session = CaptureSession(target_id=target.id, session_id=next(self._session_ids))
        self._last_session_id = session.session_id
        session.transition(SessionState.STARTING)
        self.sessions[target.id] = session
        self.indicator.show(target.id, Indicator.WORKING)

        try:
            capture = self.capture_host.ensure_capture_context()
            handle = await asyncio.to_thread(self.media_host.get_media_handle, target)
        except Exception as e:
            logger.error(f"Failed to start capture for {target.id}: {e}")
            session.transition(SessionState.IDLE)
            self.sessions.pop(target.id, None)
            self.indicator.clear(target.id)
            return

        self.capturing = target.id
        capture.post(StartCapture(handle, session.session_id))
        logger.info(f"Starting capture for {target.id} (session {session.session_id})")

    def stop(self, target_id: str, clear_indicator: bool = True):
        """Stop capturing target_id and destroy its session."""
        session = self.sessions.pop(target_id, None)

        if self.capturing == target_id:
            self.capturing = None
            self._send_stop()

        if session is not None and session.state is not SessionState.IDLE:
            session.transition(SessionState.IDLE)
        if clear_indicator:
            self.indicator.clear(target_id)
        if session is not None:
            logger.info(f"Stopped capture for {target_id}")

    def _send_stop(self):
        capture = self.capture_host.capture_context
        if capture is not None:
            capture.post(StopCapture())

    async def on_target_removed(self, message: TargetRemoved):
        if message.target_id in self.sessions:
            logger.info(f"Target {message.target_id} removed, stopping capture")
            self.stop(message.target_id)

    async def on_target_navigated(self, message: TargetNavigated):
        if message.target_id in self.sessions:
            logger.info(f"Target {message.target_id} navigated away, stopping capture")
            self.stop(message.target_id)

    # ============== Capture context reports ==============

    async def on_capture_started(self, message: CaptureStarted):
        session = self._is_current(message.session_id)
        if session is None or session.state is not SessionState.STARTING:
            logger.debug("Ignoring CaptureStarted for a session that is no longer starting")
            return
        session.transition(SessionState.LISTENING)
        self.indicator.show(session.target_id, Indicator.ACTIVE)
        logger.info(f"Listening to {session.target_id}")

    async def on_model_loading(self, message: ModelLoading):
        session = self._is_current(message.session_id)
        if session is None:
            return
        logger.info("Speech model loading...")
        self.indicator.show(session.target_id, Indicator.WORKING)

    async def on_transcript(self, message: TranscriptReady):
        if self._is_current(message.session_id) is None:
            logger.debug("Discarding transcript from an ended session")
            return
        if not message.text:
            return

        event = self.history.append(message.text)
        logger.info(f"Transcript: {event.text}")
        await self.sink.forward(LiveTranscriptUpdate.from_event(event))

    async def on_transcription_failed(self, message: TranscriptionFailed):
        logger.warning(f"Transcription error: {message.message}")

    async def on_capture_error(self, message: CaptureError):
        session = self.current_session
        if session is not None:
            stale = session.session_id != message.session_id
        else:
            # Nonzero ids up to the last issued one belong to sessions that already ended
            stale = 0 < message.session_id <= self._last_session_id
        if stale:
            logger.info(f"Ignoring capture error from an earlier session: {message.message}")
            return

        logger.error(f"Audio capture error: {message.message}")
        if session is None:
            self.indicator.show(None, Indicator.ERROR)
            self._send_stop()
            return

        session.error = message.message
        if session.state is not SessionState.ERROR:
            session.transition(SessionState.ERROR)
        self.indicator.show(session.target_id, Indicator.ERROR)
        self.stop(session.target_id, clear_indicator=False)

    async def on_heartbeat(self, message: HeartbeatPing) -> bool:
        self.heartbeats += 1
        logger.debug("Keep-alive ping received")
        return True
