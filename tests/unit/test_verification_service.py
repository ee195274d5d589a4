"""
Unit tests for VerificationCodeService.

Tests verify:
- Codes are stored before dispatch and routed by destination
- check() never consumes a record
- invalidate() makes later checks fail
- Expiry and mismatch messages
- Provider timeouts and failures are told apart
"""

import threading
from collections.abc import Generator
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest

from src.adapters.memory import MemoryVerificationCodeStore
from src.domain.dispatch import ProviderDispatcher
from src.domain.exceptions import DispatchFailed, ProviderUnavailable, VerificationFailed
from src.domain.verification import CODE_NOT_SENT, WRONG_CODE, VerificationCodeService


@pytest.fixture
def dispatcher() -> Generator[ProviderDispatcher, None, None]:
    dispatcher = ProviderDispatcher(timeout_seconds=0.5, max_workers=2)
    yield dispatcher
    dispatcher.shutdown()


@pytest.fixture
def store() -> MemoryVerificationCodeStore:
    return MemoryVerificationCodeStore()


@pytest.fixture
def email_sender() -> Mock:
    return Mock()


@pytest.fixture
def sms_sender() -> Mock:
    return Mock()


@pytest.fixture
def service(
    store: MemoryVerificationCodeStore,
    email_sender: Mock,
    sms_sender: Mock,
    dispatcher: ProviderDispatcher,
) -> VerificationCodeService:
    return VerificationCodeService(store, email_sender, sms_sender, dispatcher, ttl_minutes=10, code_length=6)


def issued_code(sender: Mock) -> str:
    return sender.send_verification_code.call_args[0][1]


class TestIssue:
    """Tests for issue()."""

    def test_email_destination_uses_email_sender(
        self, service: VerificationCodeService, email_sender: Mock, sms_sender: Mock
    ) -> None:
        """Destinations containing "@" are delivered by email."""
        service.issue("user@example.com")

        email_sender.send_verification_code.assert_called_once()
        sms_sender.send_verification_code.assert_not_called()

    def test_phone_destination_uses_sms_sender(
        self, service: VerificationCodeService, email_sender: Mock, sms_sender: Mock
    ) -> None:
        service.issue("+15551234")

        sms_sender.send_verification_code.assert_called_once()
        email_sender.send_verification_code.assert_not_called()

    def test_code_is_six_digits(self, service: VerificationCodeService, email_sender: Mock) -> None:
        service.issue("user@example.com")

        code = issued_code(email_sender)
        assert len(code) == 6
        assert code.isdigit()

    def test_record_saved_with_ttl(
        self, service: VerificationCodeService, store: MemoryVerificationCodeStore, email_sender: Mock
    ) -> None:
        service.issue("user@example.com")

        record = store.get("user@example.com")
        assert record is not None
        assert record.code == issued_code(email_sender)
        assert record.expires_at - record.created_at == timedelta(minutes=10)
        assert record.is_used is False

    def test_reissue_replaces_previous_code(
        self, service: VerificationCodeService, store: MemoryVerificationCodeStore, email_sender: Mock
    ) -> None:
        service.issue("user@example.com")
        service.issue("user@example.com")

        second = email_sender.send_verification_code.call_args_list[1][0][1]
        assert store.get("user@example.com").code == second

    def test_provider_timeout_raises_provider_unavailable(
        self, service: VerificationCodeService, email_sender: Mock
    ) -> None:
        """A provider that never answers is reported as unavailable."""
        release = threading.Event()
        email_sender.send_verification_code.side_effect = lambda *_: release.wait(5)

        try:
            with pytest.raises(ProviderUnavailable):
                service.issue("user@example.com")
        finally:
            release.set()

    def test_provider_error_raises_dispatch_failed(
        self, service: VerificationCodeService, sms_sender: Mock
    ) -> None:
        sms_sender.send_verification_code.side_effect = ConnectionError("gateway refused")

        with pytest.raises(DispatchFailed) as exc_info:
            service.issue("+15551234")
        assert "gateway refused" in exc_info.value.message


class TestCheck:
    """Tests for check()."""

    def test_correct_code_passes(self, service: VerificationCodeService, email_sender: Mock) -> None:
        service.issue("user@example.com")

        service.check("user@example.com", issued_code(email_sender))

    def test_check_does_not_consume(self, service: VerificationCodeService, email_sender: Mock) -> None:
        """A successful check leaves the code usable for a retry."""
        service.issue("user@example.com")
        code = issued_code(email_sender)

        service.check("user@example.com", code)
        service.check("user@example.com", code)

    def test_never_sent(self, service: VerificationCodeService) -> None:
        with pytest.raises(VerificationFailed) as exc_info:
            service.check("user@example.com", "123456")
        assert exc_info.value.message == CODE_NOT_SENT

    def test_wrong_code(self, service: VerificationCodeService, email_sender: Mock) -> None:
        service.issue("user@example.com")
        wrong = "000000" if issued_code(email_sender) != "000000" else "111111"

        with pytest.raises(VerificationFailed) as exc_info:
            service.check("user@example.com", wrong)
        assert exc_info.value.message == WRONG_CODE

    def test_empty_code_is_wrong(self, service: VerificationCodeService) -> None:
        service.issue("user@example.com")

        with pytest.raises(VerificationFailed) as exc_info:
            service.check("user@example.com", "")
        assert exc_info.value.message == WRONG_CODE

    def test_expired_code(
        self, service: VerificationCodeService, store: MemoryVerificationCodeStore, email_sender: Mock
    ) -> None:
        service.issue("user@example.com")
        record = store.get("user@example.com")
        store.save(replace(record, expires_at=datetime.now(UTC) - timedelta(seconds=1)))

        with pytest.raises(VerificationFailed) as exc_info:
            service.check("user@example.com", issued_code(email_sender))
        assert exc_info.value.message == "You should verify your code in 10 min!"

    def test_codes_are_bound_to_their_destination(
        self, service: VerificationCodeService, email_sender: Mock
    ) -> None:
        service.issue("a@example.com")
        code = issued_code(email_sender)

        with pytest.raises(VerificationFailed):
            service.check("b@example.com", code)


class TestInvalidate:
    """Tests for invalidate()."""

    def test_check_fails_after_invalidate(self, service: VerificationCodeService, email_sender: Mock) -> None:
        service.issue("user@example.com")
        code = issued_code(email_sender)

        service.invalidate("user@example.com")

        with pytest.raises(VerificationFailed) as exc_info:
            service.check("user@example.com", code)
        assert exc_info.value.message == CODE_NOT_SENT

    def test_empty_destination_is_noop(self) -> None:
        store = Mock()
        service = VerificationCodeService(store, Mock(), Mock(), Mock())

        service.invalidate("")

        store.disable.assert_not_called()

    def test_invalidate_without_record(self, service: VerificationCodeService) -> None:
        """Invalidating a destination that never got a code is harmless."""
        service.invalidate("nobody@example.com")

    def test_new_code_after_invalidate_is_usable(
        self, service: VerificationCodeService, email_sender: Mock
    ) -> None:
        service.issue("user@example.com")
        service.invalidate("user@example.com")
        service.issue("user@example.com")

        service.check("user@example.com", issued_code(email_sender))
