"""In-memory audit writer."""

import logging
import threading

from src.domain.models import Record

logger = logging.getLogger(__name__)


class MemoryAuditWriter:
    """Implements AuditWriter protocol by keeping records in a list."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.records: list[Record] = []

    def add_record(self, record: Record) -> None:
        with self._lock:
            self.records.append(record)
        logger.info("[AUDIT] %s %s/%s via %s", record.action, record.owner, record.user, record.organization)
