"""
Transcript Client Module

Provides TranscriptHistory, the recent-transcript buffer the orchestrator
appends to and reply/context features read from.

Usage:
    from shared.client import TranscriptHistory

    history = TranscriptHistory(max_entries=10)
    history.append("hello there")
    recent = history.recent(max_age=300)
"""

from .history import DEFAULT_MAX_AGE_SEC, DEFAULT_MAX_ENTRIES, TranscriptHistory

__all__ = [
    "DEFAULT_MAX_AGE_SEC",
    "DEFAULT_MAX_ENTRIES",
    "TranscriptHistory",
]
