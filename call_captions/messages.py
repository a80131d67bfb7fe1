"""Messages exchanged between the orchestrator, capture context and engine.

Contexts never share state; everything they know about each other arrives as
one of these immutable objects. Capture-to-orchestrator messages carry the
session_id of the StartCapture they belong to so late messages from an
earlier session can be recognised and dropped.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import numpy as np

    from .capture.media import CaptureTarget, MediaHandle


# ============== Trigger / host events → Orchestrator ==============


@dataclass(frozen=True)
class Trigger:
    """User asked to toggle capture for a target."""

    target: CaptureTarget


@dataclass(frozen=True)
class TargetRemoved:
    target_id: str


@dataclass(frozen=True)
class TargetNavigated:
    target_id: str
    url: str | None = None


# ============== Orchestrator → Capture ==============


@dataclass(frozen=True)
class StartCapture:
    handle: MediaHandle
    session_id: int = 0


@dataclass(frozen=True)
class StopCapture:
    pass


# ============== Capture → Orchestrator ==============


@dataclass(frozen=True)
class CaptureStarted:
    session_id: int = 0


@dataclass(frozen=True)
class ModelLoading:
    session_id: int = 0


@dataclass(frozen=True)
class TranscriptReady:
    text: str
    session_id: int = 0


@dataclass(frozen=True)
class TranscriptionFailed:
    message: str
    session_id: int = 0


@dataclass(frozen=True)
class CaptureError:
    message: str
    session_id: int = 0


@dataclass(frozen=True)
class HeartbeatPing:
    pass


# ============== Capture ↔ Inference Engine ==============


class InferenceStatus(Enum):
    MODEL_LOADING = "model_loading"
    MODEL_READY = "model_ready"
    MODEL_ERROR = "model_error"
    TRANSCRIPTION_ERROR = "transcription_error"


@dataclass
class ResampledChunk:
    """PCM handed to the engine. The sender gives up its reference."""

    samples: np.ndarray
    sample_rate: int = 16000


# Engine events carry the capture context's own activation counter, not the
# orchestrator's session id, so events from a terminated engine never match
# the session that replaced it.


@dataclass(frozen=True)
class EngineStatus:
    status: InferenceStatus
    message: str = ""
    activation: int = 0


@dataclass(frozen=True)
class EngineTranscript:
    text: str
    activation: int = 0
