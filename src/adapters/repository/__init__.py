"""Repository adapters - Database implementations."""

from .postgres import (
    PostgresAccountMirror,
    PostgresAccountRepository,
    PostgresAuditWriter,
    PostgresDirectory,
    PostgresVerificationCodeStore,
    run_migrations,
)

__all__ = [
    "PostgresAccountMirror",
    "PostgresAccountRepository",
    "PostgresAuditWriter",
    "PostgresDirectory",
    "PostgresVerificationCodeStore",
    "run_migrations",
]
