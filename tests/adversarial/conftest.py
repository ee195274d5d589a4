"""
Shared fixtures for adversarial tests.

Provides a signup service whose account repository can be made to
interleave concurrent signups deterministically.
"""

from collections.abc import Callable, Generator
from unittest.mock import Mock

import pytest

from src.adapters.memory import MemoryAccountMirror, MemoryAuditWriter, MemoryDirectory
from src.domain.audit import AuditRecorder
from src.domain.identifiers import IdentifierAllocator
from src.domain.signup import SignupService
from src.domain.validation import AccountValidator

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def audit() -> Generator[AuditRecorder, None, None]:
    recorder = AuditRecorder(MemoryAuditWriter())
    yield recorder
    recorder.close()


@pytest.fixture
def make_signup_service(directory: MemoryDirectory, audit: AuditRecorder) -> Callable[..., SignupService]:
    """Build a SignupService over `repository` with a permissive code checker."""

    def build(repository) -> SignupService:
        return SignupService(
            accounts=repository,
            directory=directory,
            mirror=MemoryAccountMirror(),
            validator=AccountValidator(repository),
            verification=Mock(),
            allocator=IdentifierAllocator(repository),
            audit=audit,
            bcrypt_cost=4,
        )

    return build
