"""Shared fakes for pipeline tests: host, streams, recorder and model."""

import asyncio

import pytest

from call_captions.audio.utils import encode_wav
from call_captions.capture.media import (
    AudioBackend,
    MediaHandle,
    MediaHost,
    MediaStream,
    PlaybackStream,
)


class FakeStream(MediaStream):
    def __init__(self, handle, on_frames):
        self.handle = handle
        self.on_frames = on_frames
        self.started = 0
        self.closed = 0

    @property
    def active(self) -> bool:
        return self.started > 0 and self.closed == 0

    def start(self):
        self.started += 1

    def close(self):
        self.closed += 1


class FakePlayback(PlaybackStream):
    def __init__(self, device_index=None):
        self.device_index = device_index
        self.started = 0
        self.closed = 0
        self.written: list[bytes] = []

    def start(self):
        self.started += 1

    def write(self, frames: bytes):
        self.written.append(frames)

    def close(self):
        self.closed += 1


class FakeBackend(AudioBackend):
    """Hands out fake streams; set open_error to make acquisition fail."""

    def __init__(self, open_error: Exception | None = None):
        self.open_error = open_error
        self.open_calls = 0
        self.streams: list[FakeStream] = []
        self.outputs: list[FakePlayback] = []

    def open_stream(self, handle, on_frames):
        self.open_calls += 1
        handle.ensure_valid()
        if self.open_error is not None:
            raise self.open_error
        stream = FakeStream(handle, on_frames)
        self.streams.append(stream)
        return stream

    def open_output(self, sample_rate, channels, device_index=None):
        playback = FakePlayback(device_index)
        self.outputs.append(playback)
        return playback


class FakeMediaHost(MediaHost):
    """Issues handles for a BlackHole-style sink unless playback=False."""

    def __init__(
        self,
        sample_rate: int = 48000,
        channels: int = 2,
        error: Exception | None = None,
        playback: bool = True,
    ):
        self.sample_rate = sample_rate
        self.channels = channels
        self.error = error
        self.playback = playback
        self.handles: list[MediaHandle] = []

    def get_media_handle(self, target):
        if self.error is not None:
            raise self.error
        handle = MediaHandle(
            target_id=target.id,
            device_index=0,
            sample_rate=self.sample_rate,
            channels=self.channels,
            device_name="Fake Loopback",
            playback=self.playback,
            playback_device_index=1 if self.playback else None,
        )
        self.handles.append(handle)
        return handle


class FakeRecorder:
    """Recorder whose chunks are emitted by the test instead of a timer."""

    instances: list["FakeRecorder"] = []

    def __init__(self, sample_rate, channels, on_chunk, timeslice_ms=2000):
        self.sample_rate = sample_rate
        self.channels = channels
        self.on_chunk = on_chunk
        self.timeslice_ms = timeslice_ms
        self.is_recording = False
        self.start_calls = 0
        self.stop_calls = 0
        FakeRecorder.instances.append(self)

    def start(self):
        self.start_calls += 1
        self.is_recording = True
        return True

    def add_frames(self, frames):
        pass

    def stop(self):
        self.stop_calls += 1
        self.is_recording = False

    def emit(self, blob: bytes):
        self.on_chunk(blob)


class FakePipeline:
    """Stands in for the transformers ASR pipeline."""

    def __init__(self, text: str = ""):
        self.text = text
        self.calls: list = []

    def __call__(self, inputs, **kwargs):
        self.calls.append((inputs, kwargs))
        return {"text": self.text}


class FakeCapture:
    """Capture context stand-in that records what the orchestrator posts."""

    def __init__(self):
        self.posted: list = []

    def post(self, message):
        self.posted.append(message)
        return True

    def of_type(self, message_type) -> list:
        return [m for m in self.posted if isinstance(m, message_type)]


class FakeCaptureHost:
    def __init__(self):
        self.capture_context: FakeCapture | None = None
        self.ensure_calls = 0

    def ensure_capture_context(self):
        self.ensure_calls += 1
        if self.capture_context is None:
            self.capture_context = FakeCapture()
        return self.capture_context


def silent_wav(seconds: float = 2.0, sample_rate: int = 48000, channels: int = 2) -> bytes:
    frames = int(seconds * sample_rate)
    return encode_wav(b"\x00\x00" * frames * channels, sample_rate, channels)


async def wait_until(predicate, timeout: float = 2.0):
    """Poll predicate on the event loop until it holds or timeout expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.01)


@pytest.fixture(autouse=True)
def reset_fake_recorders():
    FakeRecorder.instances.clear()
    yield
    FakeRecorder.instances.clear()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def media_host():
    return FakeMediaHost()


@pytest.fixture
def capture_host():
    return FakeCaptureHost()
