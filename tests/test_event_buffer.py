"""
Unit tests for EventBuffer flush policy.
"""

import logging

import pytest

from app.event_buffer import EventBuffer
from domain.models import Event, FlushPolicy, Operation


def make_event(size: int, path: str = "/a") -> Event:
    return Event(operation=Operation.READ, path=path, size_bytes=size, timestamp_seconds=1.5)


class FailingSink:
    def __init__(self):
        self.calls = 0

    def deliver(self, events):
        self.calls += 1
        raise RuntimeError("sink down")


class TestSizeTrigger:
    """Flush after a push reaches the size threshold."""

    def test_below_threshold_keeps_events(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(size_threshold_bytes=100), batch_sink, clock)
        buf.push(make_event(40))
        buf.push(make_event(59))

        assert batch_sink.batches == []
        assert buf.pending_count == 2
        assert buf.pending_bytes == 99

    def test_reaching_threshold_flushes_once(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(size_threshold_bytes=100), batch_sink, clock)
        buf.push(make_event(60))
        buf.push(make_event(40))

        assert len(batch_sink.batches) == 1
        assert [e.size_bytes for e in batch_sink.batches[0]] == [60, 40]
        assert buf.pending_count == 0
        assert buf.pending_bytes == 0

    def test_three_events_delivered_in_arrival_order(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(size_threshold_bytes=150), batch_sink, clock)
        for path in ("/x", "/y", "/z"):
            buf.push(make_event(50, path))

        assert len(batch_sink.batches) == 1
        assert [e.path for e in batch_sink.batches[0]] == ["/x", "/y", "/z"]
        assert buf.pending_count == 0

    def test_pushes_after_flush_start_new_batch(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(size_threshold_bytes=100), batch_sink, clock)
        buf.push(make_event(100, "/first"))
        buf.push(make_event(10, "/second"))

        assert [e.path for e in batch_sink.batches[0]] == ["/first"]
        assert buf.pending_count == 1
        assert buf.pending_bytes == 10


class TestFlush:
    """Explicit flush behaviour."""

    def test_empty_flush_only_resets_timer(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(), batch_sink, clock)
        clock.advance(5)
        buf.flush()

        assert batch_sink.batches == []
        assert buf.last_flush_epoch == clock.now

    def test_sink_failure_drops_batch(self, clock, caplog):
        sink = FailingSink()
        buf = EventBuffer(FlushPolicy(), sink, clock)
        buf.push(make_event(10))

        with caplog.at_level(logging.ERROR):
            buf.flush()
            buf.flush()

        assert sink.calls == 1
        assert buf.pending_count == 0
        assert "batch dropped" in caplog.text

    def test_push_during_delivery_goes_to_next_batch(self, clock):
        seen = []

        class ReentrantSink:
            def deliver(self, events):
                seen.append([e.path for e in events])
                if len(seen) == 1:
                    buf.push(make_event(1, "/during"))

        buf = EventBuffer(FlushPolicy(size_threshold_bytes=1000), ReentrantSink(), clock)
        buf.push(make_event(10, "/before"))
        buf.flush()

        assert seen == [["/before"]]
        assert buf.pending_count == 1
        buf.flush()
        assert seen == [["/before"], ["/during"]]


class TestFlushIfLate:
    """Time-triggered flush."""

    def test_noop_before_interval(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(forced_flush_interval_ms=60000), batch_sink, clock)
        buf.push(make_event(10))
        start = buf.last_flush_epoch
        clock.advance(59.9)
        buf.flush_if_late()

        assert batch_sink.batches == []
        assert buf.last_flush_epoch == start

    def test_flushes_after_interval(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(forced_flush_interval_ms=60000), batch_sink, clock)
        buf.push(make_event(10))
        clock.advance(60)
        buf.flush_if_late()

        assert len(batch_sink.batches) == 1
        assert buf.pending_count == 0

    def test_empty_buffer_still_advances_timer(self, clock, batch_sink):
        buf = EventBuffer(FlushPolicy(forced_flush_interval_ms=1000), batch_sink, clock)
        clock.advance(2)
        buf.flush_if_late()

        assert batch_sink.batches == []
        assert buf.last_flush_epoch == clock.now

        clock.advance(0.5)
        buf.flush_if_late()
        assert buf.last_flush_epoch == clock.now - 0.5

    def test_errors_are_logged_not_raised(self, batch_sink, caplog):
        class BrokenClock:
            calls = 0

            def now_epoch(self):
                self.calls += 1
                if self.calls > 1:
                    raise OSError("clock broke")
                return 0.0

        buf = EventBuffer(FlushPolicy(), batch_sink, BrokenClock())
        with caplog.at_level(logging.ERROR):
            buf.flush_if_late()

        assert "late flush" in caplog.text


class TestEventInvariants:
    """Event validates its own fields."""

    def test_negative_size_rejected(self):
        with pytest.raises(ValueError):
            make_event(-1)

    @pytest.mark.parametrize("path", ["", "users/a"])
    def test_path_must_start_with_slash(self, path):
        with pytest.raises(ValueError):
            make_event(1, path)

    def test_row_omits_missing_tag(self):
        assert make_event(3).to_row() == {"op": "r", "path": "/a", "size": 3, "time": 1.5}
