"""In-memory verification-code and captcha stores."""

import threading
from dataclasses import replace

from src.domain.models import CaptchaChallenge, VerificationRecord


class MemoryVerificationCodeStore:
    """Implements VerificationCodeStore protocol; one record per destination."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: dict[str, VerificationRecord] = {}

    def save(self, record: VerificationRecord) -> None:
        with self._lock:
            self._records[record.destination] = record

    def get(self, destination: str) -> VerificationRecord | None:
        with self._lock:
            return self._records.get(destination)

    def disable(self, destination: str) -> None:
        with self._lock:
            record = self._records.get(destination)
            if record is not None and not record.is_used:
                self._records[destination] = replace(record, is_used=True)


class MemoryCaptchaStore:
    """Implements CaptchaStore protocol."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._challenges: dict[str, CaptchaChallenge] = {}

    def save(self, challenge: CaptchaChallenge) -> None:
        with self._lock:
            self._challenges[challenge.captcha_id] = challenge

    def pop(self, captcha_id: str) -> CaptchaChallenge | None:
        with self._lock:
            return self._challenges.pop(captcha_id, None)
