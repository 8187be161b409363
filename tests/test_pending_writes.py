"""Tests for the at-least-once draft write buffer."""

from storyline.services.pending_writes import PendingWriteQueue


class FlakyWriter:
    def __init__(self, failures=0):
        self.failures = failures
        self.written = []

    def __call__(self, key, value):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("database unavailable")
        self.written.append((key, value))


class TestPendingWriteQueue:
    def test_latest_value_wins(self):
        writer = FlakyWriter()
        queue = PendingWriteQueue(writer)

        queue.put(1, "Once")
        queue.put(1, "Once upon")
        queue.put(2, "Other")

        assert queue.flush() == 2
        assert writer.written == [(1, "Once upon"), (2, "Other")]
        assert len(queue) == 0

    def test_failed_write_stays_queued(self):
        writer = FlakyWriter(failures=1)
        queue = PendingWriteQueue(writer)
        queue.put(1, "draft")

        assert queue.flush() == 0
        assert len(queue) == 1

        assert queue.flush() == 1
        assert writer.written == [(1, "draft")]
        assert len(queue) == 0

    def test_newer_value_queued_during_write_is_kept(self):
        queue = None
        written = []

        def writer(key, value):
            written.append(value)
            if value == "first":
                queue.put(key, "second")

        queue = PendingWriteQueue(writer)
        queue.put(1, "first")

        queue.flush()
        assert len(queue) == 1

        queue.flush()
        assert written == ["first", "second"]
        assert len(queue) == 0

    def test_flush_on_empty_queue(self):
        assert PendingWriteQueue(FlakyWriter()).flush() == 0
