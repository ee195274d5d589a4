"""
In-memory session store.

Maps an opaque session id (carried in a cookie) to a SessionContext.
"""

import secrets
import threading

from src.domain.session import SessionContext


class MemorySessionStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, SessionContext] = {}

    def load(self, session_id: str | None) -> SessionContext:
        """Return the stored context, or a fresh unsaved one for unknown ids."""
        if session_id:
            with self._lock:
                context = self._sessions.get(session_id)
            if context is not None:
                return context
        return SessionContext(session_id=secrets.token_urlsafe(24))

    def save(self, context: SessionContext) -> None:
        with self._lock:
            if context.get_current_user():
                self._sessions[context.session_id] = context
            else:
                self._sessions.pop(context.session_id, None)
