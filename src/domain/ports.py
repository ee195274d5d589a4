"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols through
structural subtyping.
"""

from enum import Enum
from typing import Protocol

from .models import Account, Application, CaptchaChallenge, Organization, Record, VerificationRecord


class AddAccountResult(Enum):
    """
    Outcome of persisting a new account.

    DUPLICATE_ID is reported separately so that an identifier race under
    the incremental rule surfaces as a retryable conflict.
    """

    ADDED = "added"
    DUPLICATE_NAME = "duplicate_name"
    DUPLICATE_ID = "duplicate_id"
    REJECTED = "rejected"


class AccountRepository(Protocol):
    """Port interface for account persistence."""

    def get(self, owner: str, name: str) -> Account | None:
        ...

    def get_by_field(self, owner: str, value: str) -> Account | None:
        """Find an account in `owner` whose name, email or phone equals `value`."""
        ...

    def get_last(self, owner: str) -> Account | None:
        """Most recently created account in the organization."""
        ...

    def add(self, account: Account) -> AddAccountResult:
        """
        Insert a new account.

        Must enforce uniqueness of (owner, name) and (owner, id) atomically
        and report violations through the returned result, not exceptions.
        """
        ...

    def update_field(self, account: Account, field: str, value: str) -> None:
        ...


class AccountMirror(Protocol):
    """Port interface for the secondary ("original") account datastore."""

    def mirror(self, account: Account) -> bool:
        ...


class DirectoryRepository(Protocol):
    """Read-only access to organizations and applications."""

    def get_organization(self, key: str) -> Organization | None:
        ...

    def get_application(self, key: str) -> Application | None:
        ...


class VerificationCodeStore(Protocol):
    """Port interface for verification-code records keyed by destination."""

    def save(self, record: VerificationRecord) -> None:
        """Replace any outstanding record for the destination."""
        ...

    def get(self, destination: str) -> VerificationRecord | None:
        ...

    def disable(self, destination: str) -> None:
        """Mark the outstanding record as used; no-op when there is none."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str) -> None:
        ...


class SmsSender(Protocol):
    """Port interface for SMS delivery."""

    def send_verification_code(self, phone: str, code: str) -> None:
        ...


class HumanCheckProvider(Protocol):
    """External human-check service (its internals are not our concern)."""

    def verify(self, challenge_id: str, answer: str) -> bool:
        ...


class CaptchaStore(Protocol):
    """Storage for built-in captcha challenges."""

    def save(self, challenge: CaptchaChallenge) -> None:
        ...

    def pop(self, captcha_id: str) -> CaptchaChallenge | None:
        """Remove and return the challenge so each one is answered once."""
        ...


class CaptchaRenderer(Protocol):
    """Turns a captcha answer into something a client can display."""

    def render(self, captcha_id: str, answer: str) -> str:
        ...


class AuditWriter(Protocol):
    """Durable sink for audit records."""

    def add_record(self, record: Record) -> None:
        ...
