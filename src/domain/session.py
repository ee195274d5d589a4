"""Explicit session context passed into and out of domain operations."""

from dataclasses import dataclass, field


@dataclass
class SessionContext:
    """
    Per-connection session state.

    username holds the signed-in account as "owner/name"; an empty string
    means nobody is signed in.
    """

    session_id: str = ""
    username: str = ""
    application: str = ""
    scope: str = ""
    audience: str = ""
    data: dict = field(default_factory=dict)

    def get_current_user(self) -> str:
        return self.username

    def set_current_user(self, username: str) -> None:
        self.username = username

    def clear(self) -> None:
        self.username = ""
        self.application = ""
        self.scope = ""
        self.audience = ""
        self.data = {}
