"""
Unit tests for shared.client.history module.
"""

import json
from unittest.mock import MagicMock

import pytest

from shared.client import TranscriptHistory


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestTranscriptHistory:
    """Tests for the in-memory buffer."""

    def test_newest_first(self, clock):
        """Test entries come back newest first."""
        history = TranscriptHistory(clock=clock)
        history.append("one")
        clock.now += 1
        history.append("two")

        assert [e.text for e in history.recent()] == ["two", "one"]

    def test_cap_drops_oldest(self, clock):
        """Test only max_entries entries are kept."""
        history = TranscriptHistory(max_entries=3, clock=clock)
        for text in ("a", "b", "c", "d"):
            history.append(text)

        assert len(history) == 3
        assert [e.text for e in history.recent()] == ["d", "c", "b"]

    def test_max_entries_at_least_one(self):
        """Test a zero cap still keeps the newest entry."""
        assert TranscriptHistory(max_entries=0).max_entries == 1

    def test_age_filter(self, clock):
        """Test recent() hides entries older than max_age."""
        history = TranscriptHistory(clock=clock)
        history.append("old")
        clock.now += 400
        history.append("new")

        assert [e.text for e in history.recent()] == ["new"]
        assert [e.text for e in history.recent(max_age=None)] == ["new", "old"]
        assert [e.text for e in history.recent(max_age=1000)] == ["new", "old"]

    def test_explicit_timestamp(self, clock):
        """Test a supplied emitted_at is kept as is."""
        event = TranscriptHistory(clock=clock).append("hi", emitted_at=999.5)
        assert event.emitted_at == 999.5

    def test_on_change(self, clock):
        """Test listeners hear about appends and clears."""
        history = TranscriptHistory(clock=clock)
        history.on_change = MagicMock()

        history.append("hello")
        history.clear()

        assert history.on_change.call_count == 2
        assert len(history) == 0


class TestPersistence:
    """Tests for the JSON mirror."""

    def test_round_trip_through_file(self, tmp_path, clock):
        """Test a new history picks up what an earlier one saved."""
        path = tmp_path / "history.json"
        first = TranscriptHistory(path=path, clock=clock)
        first.append("one")
        first.append("two")

        second = TranscriptHistory(path=path, clock=clock)

        assert [e.text for e in second.recent()] == ["two", "one"]
        assert json.loads(path.read_text())[0]["text"] == "two"

    def test_load_respects_cap(self, tmp_path, clock):
        """Test loading a long file keeps only the newest entries."""
        path = tmp_path / "history.json"
        path.write_text(json.dumps([{"text": str(i), "emitted_at": clock.now} for i in range(5)]))

        history = TranscriptHistory(max_entries=2, path=path, clock=clock)

        assert [e.text for e in history.recent()] == ["0", "1"]

    def test_corrupt_file_ignored(self, tmp_path, clock):
        """Test an unreadable file starts an empty history."""
        path = tmp_path / "history.json"
        path.write_text("{not json")

        history = TranscriptHistory(path=path, clock=clock)

        assert len(history) == 0
        history.append("fresh")
        assert json.loads(path.read_text())[0]["text"] == "fresh"

    def test_creates_parent_directory(self, tmp_path, clock):
        """Test saving creates missing directories."""
        path = tmp_path / "nested" / "dir" / "history.json"
        TranscriptHistory(path=path, clock=clock).append("hi")
        assert path.exists()
