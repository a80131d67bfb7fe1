"""Shared core models for Call Captions."""

from shared.core.models import (
    LIVE_TRANSCRIPT_UPDATE,
    LiveTranscriptUpdate,
    TranscriptEvent,
)

__all__ = [
    "LIVE_TRANSCRIPT_UPDATE",
    "LiveTranscriptUpdate",
    "TranscriptEvent",
]
