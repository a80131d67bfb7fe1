"""Inference engine worker hosting the lazily-loaded ASR model.

The engine owns one single-thread executor. Model construction and every
inference run there, so the capture context's event loop keeps handling
messages (StopCapture included) while a chunk is being transcribed. A run that
overstays the inference timeout keeps its thread; the engine abandons that
executor and continues on a fresh one.
"""

import asyncio
import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from functools import partial

from shared.config import PipelineConfig

from ..errors import ModelLoadError, TranscriptionError
from ..messages import EngineStatus, EngineTranscript, InferenceStatus, ResampledChunk
from .model import clear_device_cache, create_pipeline, transcribe

logger = logging.getLogger(__name__)


class InferenceEngine:
    """Consumes resampled chunks and emits status and transcript events.

    Pending work is a depth-1 slot: a chunk submitted while another is still
    waiting replaces it, so the engine always works on the freshest audio.
    """

    def __init__(
        self,
        emit: Callable[[object], None],
        config: PipelineConfig | None = None,
        activation: int = 0,
        pipeline_factory: Callable[[str], object] = create_pipeline,
        transcriber: Callable[..., str] = transcribe,
    ):
        self._emit_raw = emit
        self.config = config or PipelineConfig()
        self.activation = activation
        self._pipeline_factory = pipeline_factory
        self._transcriber = transcriber

        self._model = None
        self._load_error: str | None = None
        self._ready_announced = False
        self._pending: ResampledChunk | None = None
        self._wakeup = asyncio.Event()
        self._task: asyncio.Task | None = None
        self._executor: ThreadPoolExecutor | None = None
        self._terminated = False

        self.chunks_dropped = 0
        self.chunks_processed = 0
        self.executors_replaced = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._terminated = False
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="asr")
        self._task = asyncio.get_running_loop().create_task(self._run())

    def submit(self, chunk: ResampledChunk):
        """Queue a chunk, replacing any chunk still waiting."""
        if self._terminated:
            return
        if self._pending is not None:
            self.chunks_dropped += 1
            logger.warning("Inference busy, dropping oldest pending chunk")
        self._pending = chunk
        self._wakeup.set()

    def _emit(self, message):
        if self._terminated:
            return
        self._emit_raw(message)

    async def _run(self):
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            chunk, self._pending = self._pending, None
            if chunk is None:
                continue
            await self._process(chunk)

    async def get_or_init_model(self):
        """Return the model, constructing it on first use.

        Raises:
            ModelLoadError: Construction failed now or on an earlier call
        """
        if self._model is not None:
            return self._model
        if self._load_error is not None:
            raise ModelLoadError(self._load_error)

        self._emit(EngineStatus(InferenceStatus.MODEL_LOADING, activation=self.activation))
        loop = asyncio.get_running_loop()
        try:
            model = await loop.run_in_executor(
                self._executor, self._pipeline_factory, self.config.model
            )
        except Exception as e:
            self._load_error = str(e) or type(e).__name__
            logger.error(f"Model load failed: {self._load_error}")
            self._emit(
                EngineStatus(
                    InferenceStatus.MODEL_ERROR, self._load_error, activation=self.activation
                )
            )
            raise ModelLoadError(self._load_error) from e

        self._model = model
        return model

    async def _process(self, chunk: ResampledChunk):
        try:
            model = await self.get_or_init_model()
        except ModelLoadError:
            # Already reported as MODEL_ERROR; the session is being torn down
            return

        if not self._ready_announced:
            self._ready_announced = True
            self._emit(EngineStatus(InferenceStatus.MODEL_READY, activation=self.activation))

        try:
            text = await self._transcribe(model, chunk)
        except TimeoutError:
            message = f"Inference timed out after {self.config.inference_timeout_sec}s"
            logger.warning(message)
            self._replace_executor()
            self._emit(
                EngineStatus(InferenceStatus.TRANSCRIPTION_ERROR, message, activation=self.activation)
            )
            return
        except Exception as e:
            logger.error(f"Transcription failed: {e}")
            self._emit(
                EngineStatus(InferenceStatus.TRANSCRIPTION_ERROR, str(e), activation=self.activation)
            )
            return

        self.chunks_processed += 1
        self._emit(EngineTranscript(text, activation=self.activation))

    def _replace_executor(self):
        # The stalled job cannot be interrupted; leave it running on the old thread
        stalled = self._executor
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="asr")
        if stalled is not None:
            stalled.shutdown(wait=False, cancel_futures=True)
        self.executors_replaced += 1

    async def _transcribe(self, model, chunk: ResampledChunk) -> str:
        if chunk.sample_rate != self.config.target_sample_rate:
            raise TranscriptionError(
                f"Expected {self.config.target_sample_rate}Hz audio, got {chunk.sample_rate}Hz"
            )

        loop = asyncio.get_running_loop()
        job = partial(
            self._transcriber,
            model,
            chunk.samples,
            language=self.config.language,
            window_sec=self.config.window_sec,
            stride_sec=self.config.stride_sec,
        )
        return await asyncio.wait_for(
            loop.run_in_executor(self._executor, job),
            timeout=self.config.inference_timeout_sec,
        )

    def terminate(self):
        """Stop the worker without waiting for in-flight inference."""
        if self._terminated:
            return
        self._terminated = True
        self._pending = None
        if self._task is not None:
            self._task.cancel()
            self._task = None
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
            self._executor = None
        if self._model is not None:
            self._model = None
            clear_device_cache()
        logger.info("Inference engine terminated")
