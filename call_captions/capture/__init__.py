"""Audio capture context and host boundary."""

from .context import CaptureContext, Session
from .graph import AudioGraph
from .heartbeat import Heartbeat
from .media import (
    AudioBackend,
    CaptureTarget,
    MediaHandle,
    MediaHost,
    MediaStream,
    PlaybackStream,
)
from .portaudio import PortAudioHost
from .recorder import ChunkedRecorder

__all__ = [
    "AudioBackend",
    "AudioGraph",
    "CaptureContext",
    "CaptureTarget",
    "ChunkedRecorder",
    "Heartbeat",
    "MediaHandle",
    "MediaHost",
    "MediaStream",
    "PlaybackStream",
    "PortAudioHost",
    "Session",
]
