"""
Session context propagated to log records.
"""

import contextvars
import uuid
from typing import Optional

_session_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "session_id", default=None
)


def get_session_id() -> Optional[str]:
    """Get the active study session ID from context."""
    return _session_id_var.get()


def set_session_id(session_id: Optional[str]) -> contextvars.Token:
    """Set the session ID in context. Returns token for reset."""
    return _session_id_var.set(session_id)


def generate_session_id() -> str:
    """Generate a new session ID."""
    return f"ses-{uuid.uuid4().hex[:16]}"


class SessionContext:
    """
    Context manager for session-scoped logging.

    Usage:
        with SessionContext() as ctx:
            logger.info("Timer started")  # carries ctx.session_id

        with SessionContext(session_id="ses-abc123"):
            ...
    """

    def __init__(self, session_id: Optional[str] = None):
        self.session_id = session_id or generate_session_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> "SessionContext":
        self._token = set_session_id(self.session_id)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _session_id_var.reset(self._token)
