"""
Tests for the Debouncer.

Requires Python 3.11+.
"""

from pathlib import Path

import pytest

from watcher.debouncer import Debouncer


class TestDebouncer:
    """Test cases for Debouncer."""

    @pytest.fixture
    def batches(self) -> list[list[tuple[Path, str]]]:
        """Batches delivered to the callback."""
        return []

    @pytest.fixture
    def debouncer(self, scheduler, batches) -> Debouncer:
        """Create a debouncer driven by the manual clock."""
        return Debouncer(delay_ms=100, callback=batches.append, scheduler=scheduler)

    def test_single_event_fires_after_delay(self, debouncer: Debouncer, scheduler, batches):
        """Test that the callback waits for the quiet period."""
        debouncer.debounce(Path("/w/_a.scss"), "created")

        scheduler.advance(0.05)
        assert batches == []

        scheduler.advance(0.1)
        assert batches == [[(Path("/w/_a.scss"), "created")]]
        assert debouncer.pending_count == 0

    def test_window_restarts_on_each_event(self, debouncer: Debouncer, scheduler, batches):
        """Test that a burst of events yields one callback."""
        for i in range(5):
            debouncer.debounce(Path(f"/w/_{i}.scss"), "created")
            scheduler.advance(0.06)

        assert batches == []
        assert len(scheduler.pending) == 1

        scheduler.advance(0.2)
        assert len(batches) == 1
        assert len(batches[0]) == 5

    def test_same_path_keeps_latest_change(self, debouncer: Debouncer, scheduler, batches):
        """Test that repeated events for one path are merged."""
        debouncer.debounce(Path("/w/_a.scss"), "created")
        debouncer.debounce(Path("/w/_a.scss"), "deleted")

        assert debouncer.pending_paths == [Path("/w/_a.scss")]

        scheduler.advance(0.2)
        assert batches == [[(Path("/w/_a.scss"), "deleted")]]

    def test_flush(self, debouncer: Debouncer, scheduler, batches):
        """Test immediate processing."""
        debouncer.debounce(Path("/w/_a.scss"), "modified")

        changes = debouncer.flush()

        assert changes == [(Path("/w/_a.scss"), "modified")]
        assert batches == [changes]
        assert scheduler.pending == []

    def test_flush_empty(self, debouncer: Debouncer, batches):
        """Test that flushing nothing does not call back."""
        assert debouncer.flush() == []
        assert batches == []

    def test_clear_drops_changes(self, debouncer: Debouncer, scheduler, batches):
        """Test that clearing cancels the timer and never calls back."""
        debouncer.debounce(Path("/w/_a.scss"), "created")

        dropped = debouncer.clear()
        scheduler.advance(1.0)

        assert dropped == [(Path("/w/_a.scss"), "created")]
        assert batches == []
        assert debouncer.pending_count == 0

    def test_callback_error_is_contained(self, scheduler):
        """Test that a failing callback does not break later batches."""
        calls = []

        def callback(changes):
            calls.append(changes)
            raise RuntimeError("boom")

        debouncer = Debouncer(delay_ms=100, callback=callback, scheduler=scheduler)

        debouncer.debounce(Path("/w/_a.scss"), "created")
        scheduler.advance(0.2)
        debouncer.debounce(Path("/w/_b.scss"), "created")
        scheduler.advance(0.2)

        assert len(calls) == 2

    def test_set_callback(self, scheduler):
        """Test replacing the callback."""
        received = []
        debouncer = Debouncer(delay_ms=0, scheduler=scheduler)
        debouncer.set_callback(received.append)

        debouncer.debounce(Path("/w/_a.scss"), "created")
        scheduler.advance(0)

        assert received == [[(Path("/w/_a.scss"), "created")]]
