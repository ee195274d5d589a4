"""
Unit tests for AuditRecorder.

Tests verify:
- record() returns without waiting for the writer
- Writer failures are logged and never reach the caller
- A full queue drops records instead of blocking
"""

import logging
import threading
import time
from unittest.mock import Mock

import pytest

from src.adapters.memory import MemoryAuditWriter
from src.domain.audit import AuditRecorder
from src.domain.models import Record


def make_record(user: str = "alice") -> Record:
    return Record(owner="acme", name="rec", created_time="2026-01-01T00:00:00Z", organization="acme", user=user)


class TestAuditRecorder:
    """Tests for asynchronous audit persistence."""

    def test_records_reach_writer(self) -> None:
        writer = MemoryAuditWriter()
        recorder = AuditRecorder(writer)

        recorder.record(make_record("alice"))
        recorder.record(make_record("bob"))
        recorder.flush()

        assert [r.user for r in writer.records] == ["alice", "bob"]
        recorder.close()

    def test_record_does_not_wait_for_writer(self) -> None:
        """A slow writer does not delay the caller."""
        release = threading.Event()
        writer = Mock()
        writer.add_record.side_effect = lambda _: release.wait(5)
        recorder = AuditRecorder(writer)

        start = time.monotonic()
        recorder.record(make_record())
        elapsed = time.monotonic() - start

        assert elapsed < 0.5
        release.set()
        recorder.close()

    def test_writer_failure_is_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        writer = Mock()
        writer.add_record.side_effect = RuntimeError("disk full")
        recorder = AuditRecorder(writer)

        with caplog.at_level(logging.ERROR, logger="src.domain.audit"):
            recorder.record(make_record())
            recorder.flush()

        assert "Failed to persist audit record" in caplog.text
        recorder.close()

    def test_worker_survives_writer_failure(self) -> None:
        writer = Mock()
        writer.add_record.side_effect = [RuntimeError("boom"), None]
        recorder = AuditRecorder(writer)

        recorder.record(make_record("first"))
        recorder.record(make_record("second"))
        recorder.flush()

        assert writer.add_record.call_count == 2
        recorder.close()

    def test_full_queue_drops_record(self, caplog: pytest.LogCaptureFixture) -> None:
        release = threading.Event()
        started = threading.Event()
        writer = Mock()

        def slow_write(_: Record) -> None:
            started.set()
            release.wait(5)

        writer.add_record.side_effect = slow_write
        recorder = AuditRecorder(writer, max_queue_size=1)

        recorder.record(make_record("in-flight"))
        assert started.wait(2)
        recorder.record(make_record("queued"))
        with caplog.at_level(logging.WARNING, logger="src.domain.audit"):
            recorder.record(make_record("dropped"))

        assert "Audit queue full" in caplog.text
        release.set()
        recorder.flush()
        assert [c.args[0].user for c in writer.add_record.call_args_list] == ["in-flight", "queued"]
        recorder.close()
