"""PyAudio implementation of the media host and audio backend."""

import logging
import threading

from ..audio.devices import (
    find_device_by_name,
    find_loopback_device,
    find_playback_device,
    get_default_input_info,
    get_default_output_info,
    is_diverting_name,
)
from ..audio.utils import SAMPLE_WIDTH, calculate_chunk_size
from ..errors import CapturePermissionError, DeviceUnavailableError
from .media import (
    AudioBackend,
    CaptureTarget,
    FramesCallback,
    MediaHandle,
    MediaHost,
    MediaStream,
    PlaybackStream,
)

logger = logging.getLogger(__name__)

MAX_PLAYBACK_BUFFER_SEC = 1.0


class PortAudioStream(MediaStream):
    """Callback-driven PyAudio input stream."""

    def __init__(self, pa, handle: MediaHandle, on_frames: FramesCallback):
        import pyaudio

        self._on_frames = on_frames
        self._running = False
        try:
            self._stream = pa.open(
                format=pyaudio.paInt16,
                channels=handle.channels,
                rate=handle.sample_rate,
                input=True,
                input_device_index=handle.device_index,
                frames_per_buffer=calculate_chunk_size(handle.sample_rate),
                stream_callback=self._audio_callback,
                start=False,
            )
        except OSError as e:
            raise DeviceUnavailableError(f"Cannot open {handle.device_name or 'device'}: {e}") from e

    @property
    def active(self) -> bool:
        return self._running

    def start(self):
        self._running = True
        self._stream.start_stream()

    def _audio_callback(self, in_data, frame_count, time_info, status):
        import pyaudio

        if not self._running:
            return (None, pyaudio.paComplete)

        try:
            self._on_frames(in_data)
        except Exception as e:
            logger.error(f"Capture callback error: {e}")

        return (None, pyaudio.paContinue)

    def close(self):
        self._running = False
        if self._stream is None:
            return
        try:
            self._stream.stop_stream()
            self._stream.close()
        finally:
            self._stream = None


class PortAudioPlayback(PlaybackStream):
    """Output stream fed from a byte buffer."""

    def __init__(self, pa, sample_rate: int, channels: int, device_index: int | None = None):
        self._pa = pa
        self.device_index = device_index
        self.sample_rate = sample_rate
        self.channels = channels
        self._frame_bytes = SAMPLE_WIDTH * channels
        self._max_bytes = int(sample_rate * MAX_PLAYBACK_BUFFER_SEC) * self._frame_bytes
        self._buffer = bytearray()
        self._lock = threading.Lock()
        self._stream = None

    def start(self):
        import pyaudio

        if self._stream is not None:
            return
        info = self._output_info()
        if info is None:
            raise DeviceUnavailableError("No output device for playback")
        try:
            self._stream = self._pa.open(
                format=pyaudio.paInt16,
                channels=self.channels,
                rate=self.sample_rate,
                output=True,
                output_device_index=int(info["index"]),
                frames_per_buffer=calculate_chunk_size(self.sample_rate),
                stream_callback=self._playback_callback,
            )
        except OSError as e:
            raise DeviceUnavailableError(f"Cannot open output {info['name']}: {e}") from e
        logger.info(f"Playing captured audio on {info['name']}")

    def _output_info(self) -> dict | None:
        if self.device_index is None:
            return get_default_output_info(self._pa)
        try:
            return dict(self._pa.get_device_info_by_index(self.device_index))
        except OSError:
            return None

    def write(self, frames: bytes):
        with self._lock:
            self._buffer.extend(frames)
            overflow = len(self._buffer) - self._max_bytes
            if overflow > 0:
                # Keep latency bounded; drop whole frames from the front
                overflow += -overflow % self._frame_bytes
                del self._buffer[:overflow]

    def _playback_callback(self, in_data, frame_count, time_info, status):
        import pyaudio

        wanted = frame_count * self._frame_bytes
        with self._lock:
            out = bytes(self._buffer[:wanted])
            del self._buffer[:wanted]
        if len(out) < wanted:
            out += b"\x00" * (wanted - len(out))
        return (out, pyaudio.paContinue)

    def close(self):
        if self._stream is not None:
            try:
                self._stream.stop_stream()
                self._stream.close()
            finally:
                self._stream = None
        with self._lock:
            self._buffer.clear()


class PortAudioHost(MediaHost, AudioBackend):
    """Resolves targets to PortAudio devices and opens streams on them."""

    def __init__(self):
        self._pa = None

    def _pyaudio(self):
        if self._pa is None:
            import pyaudio

            self._pa = pyaudio.PyAudio()
        return self._pa

    def get_media_handle(self, target: CaptureTarget) -> MediaHandle:
        pa = self._pyaudio()
        info = self._resolve_device(pa, target)
        if info is None:
            raise DeviceUnavailableError(f"No capture device for target {target.id}")

        max_channels = int(info["maxInputChannels"])
        if max_channels <= 0:
            raise CapturePermissionError(f"{info['name']} does not allow audio capture")

        handle = MediaHandle(
            target_id=target.id,
            device_index=int(info["index"]),
            sample_rate=int(info["defaultSampleRate"]),
            channels=min(2, max_channels),
            device_name=info["name"],
        )
        logger.info(
            f"Target {target.id} → {handle.device_name} "
            f"({handle.sample_rate}Hz, {handle.channels}ch)"
        )
        self._plan_playback(pa, handle)
        return handle

    @staticmethod
    def _plan_playback(pa, handle: MediaHandle):
        # Microphones and monitor taps are already audible; replaying them would feed back
        if not is_diverting_name(handle.device_name):
            return
        output = find_playback_device(pa, exclude_index=handle.device_index)
        if output is None:
            logger.warning(f"No real output device to replay {handle.device_name} on")
            return
        handle.playback = True
        handle.playback_device_index = int(output["index"])
        logger.info(f"{handle.device_name} audio will be replayed on {output['name']}")

    @staticmethod
    def _resolve_device(pa, target: CaptureTarget) -> dict | None:
        device = target.device
        if isinstance(device, int):
            try:
                return dict(pa.get_device_info_by_index(device))
            except OSError:
                return None
        if isinstance(device, str):
            return find_device_by_name(pa, device)

        info = find_loopback_device(pa)
        if info is None:
            logger.warning("No loopback device found, falling back to default input")
            info = get_default_input_info(pa)
        return info

    def open_stream(self, handle: MediaHandle, on_frames: FramesCallback) -> MediaStream:
        handle.ensure_valid()
        return PortAudioStream(self._pyaudio(), handle, on_frames)

    def open_output(
        self, sample_rate: int, channels: int, device_index: int | None = None
    ) -> PlaybackStream:
        return PortAudioPlayback(self._pyaudio(), sample_rate, channels, device_index)

    def close(self):
        if self._pa is not None:
            self._pa.terminate()
            self._pa = None
