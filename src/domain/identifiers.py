"""
Identifier allocation for new accounts.

The incremental rule reads the last account of the organization and adds
one. That read-then-increment is not serialized: two concurrent signups
can compute the same identifier. The (owner, id) unique constraint in
storage rejects the second insert, and the orchestrator reports it as a
retryable AllocationConflict instead of persisting a duplicate.
"""

import uuid

from .models import RULE_INCREMENTAL
from .ports import AccountRepository


class IdentifierAllocator:
    def __init__(self, accounts: AccountRepository) -> None:
        self._accounts = accounts

    def allocate(self, organization: str, rule: str = "") -> str:
        if rule != RULE_INCREMENTAL:
            return str(uuid.uuid4())

        last = self._accounts.get_last(organization)
        last_id = -1
        if last is not None:
            try:
                last_id = int(last.id)
            except ValueError:
                last_id = -1
        return str(last_id + 1)
