"""
Audit recorder - fire-and-forget persistence of signup records.

record() only enqueues; a daemon worker thread drains the bounded queue
into the audit writer. Neither the completion nor the failure of a write
is observable by the caller.
"""

import logging
import queue
import threading

from .models import Record
from .ports import AuditWriter

logger = logging.getLogger(__name__)

_STOP = object()


class AuditRecorder:
    def __init__(self, writer: AuditWriter, max_queue_size: int = 1000) -> None:
        self._writer = writer
        self._queue: queue.Queue = queue.Queue(maxsize=max_queue_size)
        self._worker = threading.Thread(target=self._run, name="audit-recorder", daemon=True)
        self._worker.start()

    def record(self, event: Record) -> None:
        """Enqueue `event` without blocking; drops it when the queue is full."""
        try:
            self._queue.put_nowait(event)
        except queue.Full:
            logger.warning("Audit queue full, dropping record for %s/%s", event.organization, event.user)

    def flush(self) -> None:
        """Block until every queued record has been handed to the writer. Used by tests."""
        self._queue.join()

    def close(self, timeout: float = 5.0) -> None:
        self._queue.put(_STOP)
        self._worker.join(timeout)

    def _run(self) -> None:
        while True:
            event = self._queue.get()
            try:
                if event is _STOP:
                    return
                self._writer.add_record(event)
            except Exception:
                logger.exception("Failed to persist audit record")
            finally:
                self._queue.task_done()
