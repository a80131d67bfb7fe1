"""
Call Captions

Real-time captions for call audio: capture a target's audio without muting
it, slice it into 2-second chunks, resample to 16 kHz and transcribe each
chunk with a local Whisper model.
"""

from .app import ServiceHost
from .capture.media import CaptureTarget, MediaHandle
from .errors import (
    CaptionsError,
    CapturePermissionError,
    ConsumerUnavailableError,
    DeviceUnavailableError,
    HandleRevokedError,
    InvalidTransitionError,
    ModelLoadError,
    TranscriptionError,
)
from .orchestrator import Orchestrator, SessionState

__version__ = "1.0.0"

__all__ = [
    "CaptionsError",
    "CapturePermissionError",
    "CaptureTarget",
    "ConsumerUnavailableError",
    "DeviceUnavailableError",
    "HandleRevokedError",
    "InvalidTransitionError",
    "MediaHandle",
    "ModelLoadError",
    "Orchestrator",
    "ServiceHost",
    "SessionState",
    "TranscriptionError",
    "__version__",
]
