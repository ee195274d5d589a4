"""In-memory adapters - used for development and as test doubles."""

from .accounts import MemoryAccountMirror, MemoryAccountRepository, MemoryDirectory
from .audit import MemoryAuditWriter
from .sessions import MemorySessionStore
from .verification import MemoryCaptchaStore, MemoryVerificationCodeStore

__all__ = [
    "MemoryAccountMirror",
    "MemoryAccountRepository",
    "MemoryAuditWriter",
    "MemoryCaptchaStore",
    "MemoryDirectory",
    "MemorySessionStore",
    "MemoryVerificationCodeStore",
]
