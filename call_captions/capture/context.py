"""Capture context: owns the live stream, recorder, audio graph and engine.

One context serves one capture activation at a time. Everything allocated for
an activation hangs off a Session object that is created by start_capture()
and dropped by stop_capture(), the single teardown path.
"""

import asyncio
import itertools
import logging
from collections.abc import Callable
from dataclasses import dataclass

from shared.config import PipelineConfig

from ..asr.engine import InferenceEngine
from ..audio.utils import decode_chunk, resample_audio
from ..messages import (
    CaptureError,
    CaptureStarted,
    EngineStatus,
    EngineTranscript,
    InferenceStatus,
    ModelLoading,
    ResampledChunk,
    StartCapture,
    StopCapture,
    TranscriptionFailed,
    TranscriptReady,
)
from ..messaging import Mailbox
from .graph import AudioGraph
from .heartbeat import Heartbeat
from .media import AudioBackend, MediaHandle, MediaStream
from .recorder import ChunkedRecorder

logger = logging.getLogger(__name__)


@dataclass
class Session:
    """Resources of one capture activation."""

    activation: int
    session_id: int
    handle: MediaHandle
    stream: MediaStream | None = None
    graph: AudioGraph | None = None
    recorder: ChunkedRecorder | None = None
    engine: InferenceEngine | None = None
    started_announced: bool = False
    chunks: int = 0

    def route_frames(self, frames: bytes):
        """Fan captured frames out to playback and recording (device thread)."""
        graph = self.graph
        if graph is not None:
            graph.feed(frames)
        recorder = self.recorder
        if recorder is not None:
            recorder.add_frames(frames)


class CaptureContext:
    """Isolated context driven by StartCapture/StopCapture messages."""

    def __init__(
        self,
        send: Callable[[object], None],
        backend: AudioBackend,
        config: PipelineConfig | None = None,
        engine_factory: Callable[..., InferenceEngine] = InferenceEngine,
        recorder_factory: Callable[..., ChunkedRecorder] = ChunkedRecorder,
    ):
        """
        Args:
            send: Delivers messages to the orchestrator
            backend: Opens input streams and the playback device
            config: Pipeline settings
            engine_factory: Builds the inference engine for an activation
            recorder_factory: Builds the chunked recorder for an activation
        """
        self._send = send
        self._backend = backend
        self.config = config or PipelineConfig()
        self._engine_factory = engine_factory
        self._recorder_factory = recorder_factory

        self.inbox = Mailbox("capture")
        self.heartbeat = Heartbeat(send, self.config.heartbeat_sec)
        self.session: Session | None = None
        self._activations = itertools.count(1)
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_recording(self) -> bool:
        session = self.session
        return session is not None and session.recorder is not None and session.recorder.is_recording

    def post(self, message) -> bool:
        return self.inbox.post(message)

    def start(self):
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def close(self):
        await self.stop_capture()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def _run(self):
        while True:
            message = await self.inbox.get()
            try:
                await self.handle(message)
            except Exception as e:
                logger.exception(f"Capture context failed handling {type(message).__name__}: {e}")

    async def handle(self, message):
        if isinstance(message, StartCapture):
            await self.start_capture(message.handle, message.session_id)
        elif isinstance(message, StopCapture):
            await self.stop_capture()
        elif isinstance(message, (EngineStatus, EngineTranscript)):
            self._on_engine_event(message)
        else:
            logger.warning(f"Capture context ignoring {type(message).__name__}")

    # ============== Start ==============

    async def start_capture(self, handle: MediaHandle, session_id: int = 0):
        if self.session is not None:
            logger.info("Capture already running, ignoring start request")
            return

        session = Session(activation=next(self._activations), session_id=session_id, handle=handle)

        try:
            session.stream = await asyncio.to_thread(
                self._backend.open_stream, handle, session.route_frames
            )
        except Exception as e:
            logger.error(f"Audio capture failed: {e}")
            handle.revoke()
            self._send(CaptureError(str(e), session_id))
            return

        self.session = session
        try:
            self._setup_session(session)
        except Exception as e:
            logger.error(f"Audio capture setup failed: {e}")
            self._send(CaptureError(str(e), session_id))
            await self.stop_capture()
            return

        self.heartbeat.start()
        logger.info(
            f"Audio capture started: {handle.device_name or handle.stream_id} "
            f"({handle.sample_rate}Hz → {self.config.target_sample_rate}Hz)"
        )

    def _setup_session(self, session: Session):
        handle = session.handle

        if handle.playback:
            # Keep a diverted source audible while it is being captured
            graph = AudioGraph(
                self._backend, handle.sample_rate, handle.channels, handle.playback_device_index
            )
            session.graph = graph
            graph.connect()
        else:
            logger.debug(f"{handle.device_name or handle.stream_id} is already audible, no playback")

        engine = self._engine_factory(self.post, self.config, activation=session.activation)
        session.engine = engine
        engine.start()

        recorder = self._recorder_factory(
            handle.sample_rate,
            handle.channels,
            on_chunk=lambda blob: self._on_chunk(session, blob),
            timeslice_ms=self.config.chunk_ms,
        )
        session.recorder = recorder
        recorder.start()
        session.stream.start()

    # ============== Chunks ==============

    def _on_chunk(self, session: Session, blob: bytes):
        if session is not self.session or session.engine is None:
            return

        try:
            samples, sample_rate = decode_chunk(blob)
        except (RuntimeError, ValueError) as e:
            logger.warning(f"Could not decode audio chunk: {e}")
            self._send(TranscriptionFailed(f"Could not decode audio chunk: {e}", session.session_id))
            return

        resampled = resample_audio(samples, sample_rate, self.config.target_sample_rate)
        session.chunks += 1
        # Ownership of the buffer passes to the engine
        session.engine.submit(ResampledChunk(resampled, self.config.target_sample_rate))

    # ============== Engine events ==============

    def _on_engine_event(self, message):
        session = self.session
        if session is None or message.activation != session.activation:
            logger.debug(f"Discarding {type(message).__name__} from an ended session")
            return

        if isinstance(message, EngineTranscript):
            self._send(TranscriptReady(message.text, session.session_id))
            return

        status = message.status
        if status is InferenceStatus.MODEL_LOADING:
            self._send(ModelLoading(session.session_id))
        elif status is InferenceStatus.MODEL_READY:
            if not session.started_announced:
                session.started_announced = True
                self._send(CaptureStarted(session.session_id))
        elif status is InferenceStatus.TRANSCRIPTION_ERROR:
            self._send(TranscriptionFailed(message.message, session.session_id))
        elif status is InferenceStatus.MODEL_ERROR:
            self._send(CaptureError(f"Model error: {message.message}", session.session_id))

    # ============== Stop ==============

    async def stop_capture(self):
        """Release everything the current session holds. Safe to call any time."""
        session = self.session
        self.session = None
        self.heartbeat.stop()

        if session is None:
            logger.debug("Stop requested with no active capture")
            return

        if session.recorder is not None:
            if session.recorder.is_recording:
                self._release("recorder", session.recorder.stop)
            session.recorder = None

        if session.stream is not None:
            self._release("stream", session.stream.close)
            session.stream = None

        if session.graph is not None:
            self._release("audio graph", session.graph.disconnect)
            self._release("audio graph", session.graph.close)
            session.graph = None

        if session.engine is not None:
            self._release("inference engine", session.engine.terminate)
            session.engine = None

        session.handle.revoke()
        logger.info(f"Audio capture stopped after {session.chunks} chunks")

    @staticmethod
    def _release(name: str, release: Callable[[], None]):
        try:
            release()
        except Exception as e:
            logger.warning(f"Error releasing {name}: {e}")
