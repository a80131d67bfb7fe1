"""Chunked recorder that slices a live stream into encoded blobs.

Frames arrive on the audio device thread via add_frames(). Every timeslice
the buffered frames are wrapped in a WAV container and handed to on_chunk on
the event loop, one self-contained blob per slice.

Features:
- Timeslice of 2000 ms by default
- Empty slices are skipped
- Frames buffered when recording stops are discarded, not emitted
"""

import asyncio
import logging
import threading
from collections.abc import Callable

from ..audio.utils import CHUNK_DURATION_MS, SAMPLE_WIDTH, encode_wav

logger = logging.getLogger(__name__)

RECORDING = "recording"
INACTIVE = "inactive"


class ChunkedRecorder:
    """Buffers PCM frames and emits a WAV blob every timeslice.

    Usage:
        recorder = ChunkedRecorder(48000, 2, on_chunk=handle_blob)
        recorder.start()

        # In audio callback:
        recorder.add_frames(pcm_bytes)

        # When done:
        recorder.stop()
    """

    def __init__(
        self,
        sample_rate: int,
        channels: int,
        on_chunk: Callable[[bytes], None],
        timeslice_ms: int = CHUNK_DURATION_MS,
    ):
        """Initialize recorder.

        Args:
            sample_rate: Rate of the incoming frames
            channels: Interleaved channel count of the incoming frames
            on_chunk: Called on the event loop with each encoded blob
            timeslice_ms: Slice length in milliseconds
        """
        self.sample_rate = sample_rate
        self.channels = channels
        self.on_chunk = on_chunk
        self.timeslice_ms = timeslice_ms

        self._frames: list[bytes] = []
        self._lock = threading.Lock()
        self._task: asyncio.Task | None = None
        self._state = INACTIVE
        self.chunks_emitted = 0

    @property
    def state(self) -> str:
        return self._state

    @property
    def is_recording(self) -> bool:
        return self._state == RECORDING

    def start(self) -> bool:
        """Start slicing. Must be called from the event loop.

        Returns:
            True if started, False if already recording
        """
        if self._state == RECORDING:
            logger.warning("Already recording")
            return False

        with self._lock:
            self._frames = []
        self._state = RECORDING
        self._task = asyncio.get_running_loop().create_task(self._slice_loop())
        logger.debug(f"Recorder started ({self.timeslice_ms}ms slices)")
        return True

    def add_frames(self, frames: bytes):
        """Buffer raw 16-bit PCM. Safe to call from any thread."""
        if self._state != RECORDING:
            return
        with self._lock:
            self._frames.append(frames)

    def flush(self) -> bytes | None:
        """Encode and clear the current buffer. None when nothing was captured."""
        with self._lock:
            data = b"".join(self._frames)
            self._frames = []

        frame_bytes = SAMPLE_WIDTH * self.channels
        data = data[: len(data) - len(data) % frame_bytes]
        if not data:
            return None
        return encode_wav(data, self.sample_rate, self.channels)

    async def _slice_loop(self):
        interval = self.timeslice_ms / 1000
        while True:
            await asyncio.sleep(interval)
            blob = self.flush()
            if blob is None:
                continue
            self.chunks_emitted += 1
            try:
                self.on_chunk(blob)
            except Exception as e:
                # The slice loop outlives handler failures
                logger.error(f"Chunk handler error: {e}")

    def stop(self):
        """Stop slicing and drop any partially filled slice."""
        if self._state != RECORDING:
            return
        self._state = INACTIVE
        if self._task is not None:
            self._task.cancel()
            self._task = None
        with self._lock:
            self._frames = []
        logger.debug(f"Recorder stopped after {self.chunks_emitted} chunks")
