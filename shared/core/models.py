"""
Shared Models for Transcript Delivery

Defines the data structures that leave the capture pipeline:
- TranscriptEvent: one finalized transcript segment as recorded in history
- LiveTranscriptUpdate: the message pushed to the foreground consumer

Protocol (consumer side):
    {"type": "LIVE_TRANSCRIPT_UPDATE", "text": "hello", "emitted_at": 1700000000.0}
"""

import time
from typing import Literal

from pydantic import BaseModel, Field

LIVE_TRANSCRIPT_UPDATE = "LIVE_TRANSCRIPT_UPDATE"


class TranscriptEvent(BaseModel):
    """A finalized transcript segment.

    emitted_at is a Unix timestamp in seconds.
    """

    text: str
    emitted_at: float = Field(default_factory=time.time)


class LiveTranscriptUpdate(BaseModel):
    """Message format for forwarding transcripts to a consumer."""

    type: Literal["LIVE_TRANSCRIPT_UPDATE"] = LIVE_TRANSCRIPT_UPDATE
    text: str
    emitted_at: float

    @classmethod
    def from_event(cls, event: TranscriptEvent) -> "LiveTranscriptUpdate":
        return cls(text=event.text, emitted_at=event.emitted_at)


__all__ = [
    "LIVE_TRANSCRIPT_UPDATE",
    "LiveTranscriptUpdate",
    "TranscriptEvent",
]
