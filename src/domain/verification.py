"""
Verification code service - issue, check and invalidate one-time codes.

Lifecycle of a code bound to a destination:

    issue()       -> record stored, code dispatched to email/SMS provider
    check()       -> any number of times; never consumes the record
    invalidate()  -> record marked used; later checks fail

Consumption is an explicit separate step so that a signup whose
persistence fails leaves the code usable for a retry. Records for
different destinations never contend with each other.
"""

import logging
import secrets
from datetime import UTC, datetime, timedelta

from .dispatch import ProviderDispatcher
from .exceptions import VerificationFailed
from .models import VerificationRecord
from .ports import EmailSender, SmsSender, VerificationCodeStore

logger = logging.getLogger(__name__)

CODE_NOT_SENT = "Code has not been sent yet!"
WRONG_CODE = "Wrong code!"


class VerificationCodeService:
    def __init__(
        self,
        store: VerificationCodeStore,
        email_sender: EmailSender,
        sms_sender: SmsSender,
        dispatcher: ProviderDispatcher,
        ttl_minutes: int = 10,
        code_length: int = 6,
    ) -> None:
        self._store = store
        self._email_sender = email_sender
        self._sms_sender = sms_sender
        self._dispatcher = dispatcher
        self._ttl_minutes = ttl_minutes
        self._code_length = code_length

    def issue(self, destination: str) -> None:
        """
        Generate a code for `destination` and hand it to the provider.

        Destinations containing "@" go to the email sender, everything
        else to the SMS sender.

        Raises:
            ProviderUnavailable: provider timed out
            DispatchFailed: provider reported an error
        """
        code = self._generate_code()
        now = datetime.now(UTC)
        self._store.save(
            VerificationRecord(
                destination=destination,
                code=code,
                created_at=now,
                expires_at=now + timedelta(minutes=self._ttl_minutes),
            )
        )

        if "@" in destination:
            self._dispatcher.call("email", self._email_sender.send_verification_code, destination, code)
        else:
            self._dispatcher.call("sms", self._sms_sender.send_verification_code, destination, code)
        logger.info("Verification code issued to %s", destination)

    def check(self, destination: str, code: str) -> None:
        """
        Validate `code` against the outstanding record for `destination`.

        Raises:
            VerificationFailed: never sent, already invalidated, expired or mismatched
        """
        record = self._store.get(destination)
        if record is None or record.is_used:
            raise VerificationFailed(CODE_NOT_SENT)

        if datetime.now(UTC) > record.expires_at:
            raise VerificationFailed(f"You should verify your code in {self._ttl_minutes} min!")

        if not secrets.compare_digest(record.code.encode(), (code or "").encode()):
            raise VerificationFailed(WRONG_CODE)

    def invalidate(self, destination: str) -> None:
        """Mark any outstanding code unusable. Empty destinations are ignored."""
        if not destination:
            return
        self._store.disable(destination)

    def _generate_code(self) -> str:
        return "".join(secrets.choice("0123456789") for _ in range(self._code_length))
