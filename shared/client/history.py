"""
Transcript History

Recent-transcript buffer consumed by the orchestrator.

Rules:
  - Newest entry first
  - At most `max_entries` entries are kept (oldest dropped)
  - Reads can be filtered by age (default 5 minutes)
  - Optionally mirrored to a JSON file so a restarted host sees recent context

Persistence is best effort: a failed write is logged and the in-memory
buffer stays authoritative.
"""

import json
import logging
import time
from collections import deque
from collections.abc import Callable
from pathlib import Path

from shared.core.models import TranscriptEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 10
DEFAULT_MAX_AGE_SEC = 300.0


class TranscriptHistory:
    """
    Capped, age-filtered list of recent transcripts.

    Simple API:
        history = TranscriptHistory()
        history.append("hello there")
        history.recent()            # [TranscriptEvent(text="hello there", ...)]
        history.recent(max_age=60)  # only entries from the last minute

    Callbacks:
        history.on_change = lambda: refresh_panel(history.recent())
    """

    def __init__(
        self,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        path: str | Path | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize transcript history.

        Args:
            max_entries: Maximum entries to keep (oldest removed first)
            path: Optional JSON file to mirror the buffer to
            clock: Time source returning Unix seconds
        """
        self._max_entries = max(1, max_entries)
        self._entries: deque[TranscriptEvent] = deque(maxlen=self._max_entries)
        self._path = Path(path) if path else None
        self._clock = clock

        self.on_change: Callable[[], None] | None = None

        if self._path:
            self._load()

    def append(self, text: str, emitted_at: float | None = None) -> TranscriptEvent:
        """
        Record a transcript as the newest entry.

        Args:
            text: Transcript text
            emitted_at: Unix timestamp, defaults to now

        Returns:
            The stored event
        """
        event = TranscriptEvent(
            text=text, emitted_at=emitted_at if emitted_at is not None else self._clock()
        )
        self._entries.appendleft(event)
        self._save()
        if self.on_change:
            self.on_change()
        return event

    def recent(self, max_age: float | None = DEFAULT_MAX_AGE_SEC) -> list[TranscriptEvent]:
        """
        Get recent entries, newest first.

        Args:
            max_age: Maximum age in seconds; None returns everything kept

        Returns:
            Entries strictly younger than max_age
        """
        if max_age is None:
            return list(self._entries)
        cutoff = self._clock() - max_age
        return [event for event in self._entries if event.emitted_at > cutoff]

    def clear(self):
        """Remove all entries."""
        self._entries.clear()
        self._save()
        if self.on_change:
            self.on_change()

    @property
    def max_entries(self) -> int:
        return self._max_entries

    def __len__(self) -> int:
        return len(self._entries)

    def _load(self):
        """Load entries from the JSON mirror, ignoring a missing or corrupt file."""
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            events = [TranscriptEvent.model_validate(item) for item in data]
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable transcript history {self._path}: {e}")
            return
        # File is stored newest first
        self._entries.extend(events[: self._max_entries])

    def _save(self):
        if not self._path:
            return
        payload = [event.model_dump() for event in self._entries]
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to save transcript history: {e}")
