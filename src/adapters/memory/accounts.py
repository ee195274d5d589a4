"""
In-memory account and directory adapters.

MemoryAccountRepository implements AccountRepository with the same
uniqueness guarantees as the PostgreSQL schema: (owner, name) and
(owner, id) are checked and inserted under one lock.
"""

import threading
from dataclasses import replace

from src.domain.models import Account, Application, Organization
from src.domain.ports import AddAccountResult


class MemoryAccountRepository:
    """Implements AccountRepository protocol with a lock-guarded list."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._accounts: list[Account] = []

    def get(self, owner: str, name: str) -> Account | None:
        with self._lock:
            for account in self._accounts:
                if account.owner == owner and account.name == name:
                    return replace(account)
        return None

    def get_by_field(self, owner: str, value: str) -> Account | None:
        if not value:
            return None
        with self._lock:
            for account in self._accounts:
                if account.owner == owner and value in (account.name, account.email, account.phone):
                    return replace(account)
        return None

    def get_last(self, owner: str) -> Account | None:
        with self._lock:
            for account in reversed(self._accounts):
                if account.owner == owner:
                    return replace(account)
        return None

    def add(self, account: Account) -> AddAccountResult:
        with self._lock:
            for existing in self._accounts:
                if existing.owner != account.owner:
                    continue
                if existing.name == account.name:
                    return AddAccountResult.DUPLICATE_NAME
                if existing.id == account.id:
                    return AddAccountResult.DUPLICATE_ID
            self._accounts.append(replace(account))
        return AddAccountResult.ADDED

    def update_field(self, account: Account, field: str, value: str) -> None:
        with self._lock:
            for i, existing in enumerate(self._accounts):
                if existing.owner == account.owner and existing.name == account.name:
                    self._accounts[i] = replace(existing, **{field: value})
                    return

    def count(self) -> int:
        with self._lock:
            return len(self._accounts)


class MemoryAccountMirror:
    """Secondary datastore kept as a plain list of mirrored account keys."""

    def __init__(self) -> None:
        self.mirrored: list[str] = []

    def mirror(self, account: Account) -> bool:
        self.mirrored.append(account.key)
        return True


class MemoryDirectory:
    """Implements DirectoryRepository protocol from dicts keyed by "owner/name"."""

    def __init__(
        self,
        organizations: list[Organization] | None = None,
        applications: list[Application] | None = None,
    ) -> None:
        self._organizations = {org.key: org for org in organizations or []}
        self._applications = {app.key: app for app in applications or []}

    def add_organization(self, organization: Organization) -> None:
        self._organizations[organization.key] = organization

    def add_application(self, application: Application) -> None:
        self._applications[application.key] = application

    def get_organization(self, key: str) -> Organization | None:
        return self._organizations.get(key)

    def get_application(self, key: str) -> Application | None:
        return self._applications.get(key)
