"""Chat-session logging context.

Attaches the current chat session id to every log record so a single
visitor conversation can be followed through the service and the
collaborator call.

Usage:
    set_session_id(session.id)
    logger.info("reply generated")  # -> [session=<id>] reply generated
"""

import logging
from contextvars import ContextVar

_session_id: ContextVar[str] = ContextVar("session_id", default="-")


def set_session_id(session_id: str) -> None:
    _session_id.set(session_id)


class SessionIdFilter(logging.Filter):
    """Injects session_id into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True
