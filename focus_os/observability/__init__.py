"""
Observability: structured logging with session IDs.

Usage:
    from focus_os.observability import configure_logging, get_logger, SessionContext

    configure_logging("DEBUG")
    logger = get_logger(__name__)

    with SessionContext() as ctx:
        logger.info("Timer started", extra={"method": "pomodoro"})
"""

from .context import SessionContext, generate_session_id, get_session_id, set_session_id
from .logging import (
    HumanFormatter,
    JSONFormatter,
    configure_log_rotation,
    configure_logging,
    get_logger,
)

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "configure_log_rotation",
    "JSONFormatter",
    "HumanFormatter",
    # Context
    "SessionContext",
    "get_session_id",
    "set_session_id",
    "generate_session_id",
]
