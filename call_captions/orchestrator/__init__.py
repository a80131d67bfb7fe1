"""Session orchestration, status indicator and transcript sink."""

from .indicator import Indicator, StatusIndicator
from .orchestrator import CaptureHost, Orchestrator
from .session import TRANSITIONS, CaptureSession, SessionState
from .sink import TranscriptConsumer, TranscriptSink

__all__ = [
    "TRANSITIONS",
    "CaptureHost",
    "CaptureSession",
    "Indicator",
    "Orchestrator",
    "SessionState",
    "StatusIndicator",
    "TranscriptConsumer",
    "TranscriptSink",
]
