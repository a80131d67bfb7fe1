"""Host platform boundary: capture targets, media handles and streams.

The orchestrator asks a MediaHost for a handle scoped to a target; the capture
context turns that handle into a live stream through an AudioBackend. A handle
is only good for one capture activation and is revoked when it ends.
"""

import uuid
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from ..errors import HandleRevokedError

FramesCallback = Callable[[bytes], None]


@dataclass(frozen=True)
class CaptureTarget:
    """Something whose audio can be captured.

    Args:
        id: Stable identifier used for session bookkeeping
        device: Device index, device name fragment, or None for the default
            loopback/monitor source
    """

    id: str
    device: int | str | None = None


@dataclass
class MediaHandle:
    """Opaque stream identifier issued by the host for one activation.

    playback is set when capturing the device takes its audio away from the
    speakers; playback_device_index then names the real output to replay it on
    (None for the default output).
    """

    target_id: str
    device_index: int | None
    sample_rate: int
    channels: int = 1
    device_name: str = ""
    playback: bool = False
    playback_device_index: int | None = None
    stream_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    revoked: bool = False

    def revoke(self):
        self.revoked = True

    def ensure_valid(self):
        if self.revoked:
            raise HandleRevokedError(self.stream_id)


class MediaStream(ABC):
    """A captured input stream delivering 16-bit PCM frames to a callback."""

    @abstractmethod
    def start(self):
        """Begin delivering frames."""

    @abstractmethod
    def close(self):
        """Stop delivering frames and release the device."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """Whether frames are currently being delivered."""


class PlaybackStream(ABC):
    """An output stream on a playback device."""

    @abstractmethod
    def start(self):
        pass

    @abstractmethod
    def write(self, frames: bytes):
        """Queue frames for playback without blocking."""

    @abstractmethod
    def close(self):
        pass


class MediaHost(ABC):
    """Issues media handles for capture targets (orchestrator side)."""

    @abstractmethod
    def get_media_handle(self, target: CaptureTarget) -> MediaHandle:
        """
        Resolve a target into a capturable stream handle.

        Raises:
            CapturePermissionError: The host refuses capture of the target
            DeviceUnavailableError: The target has no usable audio device
        """


class AudioBackend(ABC):
    """Opens streams for media handles (capture context side)."""

    @abstractmethod
    def open_stream(self, handle: MediaHandle, on_frames: FramesCallback) -> MediaStream:
        """
        Acquire the audio stream behind a handle.

        Raises:
            HandleRevokedError: The handle's activation already ended
            CapturePermissionError: Access to the device was denied
            DeviceUnavailableError: The device is missing or busy
        """

    @abstractmethod
    def open_output(
        self, sample_rate: int, channels: int, device_index: int | None = None
    ) -> PlaybackStream:
        """Open an output device for playback (the default one when device_index is None)."""
