"""Audio graph that keeps captured audio audible.

Capturing a virtual sink such as BlackHole takes its audio away from the
speakers. The graph plays every captured frame on a real output device so the
user still hears the call while it is being transcribed. Sources the speakers
already play (microphones, monitor taps) never get a graph.
"""

import logging

from .media import AudioBackend, PlaybackStream

logger = logging.getLogger(__name__)


class AudioGraph:
    """Routes captured frames source → playback destination."""

    def __init__(
        self,
        backend: AudioBackend,
        sample_rate: int,
        channels: int,
        device_index: int | None = None,
    ):
        self._backend = backend
        self.sample_rate = sample_rate
        self.channels = channels
        self.device_index = device_index
        self._destination: PlaybackStream | None = None
        self.connected = False

    @property
    def closed(self) -> bool:
        return self._destination is None

    def connect(self):
        if self._destination is None:
            self._destination = self._backend.open_output(
                self.sample_rate, self.channels, self.device_index
            )
            self._destination.start()
        self.connected = True

    def feed(self, frames: bytes):
        destination = self._destination
        if self.connected and destination is not None:
            destination.write(frames)

    def disconnect(self):
        self.connected = False

    def close(self):
        self.connected = False
        if self._destination is not None:
            try:
                self._destination.close()
            finally:
                self._destination = None
