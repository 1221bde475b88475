from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional, Union


# Per-request values stamped onto every log line
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
caller_id_var: ContextVar[Optional[str]] = ContextVar("caller_id", default=None)

# Third-party loggers that are chatty at INFO (stripe logs every API request).
_QUIET_LOGGERS = ("stripe", "sqlalchemy.engine", "httpx", "passlib")


class LoggingContextFilter(logging.Filter):
    """
    Copy correlation_id and caller_id from contextvars onto each record.

    Records emitted outside a request (startup, seeding) get "-".
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.correlation_id = correlation_id_var.get() or "-"
        record.caller_id = caller_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def bind_caller(caller_id: Optional[str]) -> None:
    """Attach the authenticated caller to log lines for the rest of the request."""
    caller_id_var.set(caller_id)


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """
    Install a single stdout handler with the pipe-separated format and context filter.

    Safe to call more than once; the handler is replaced rather than duplicated.
    """
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | caller=%(caller_id)s | %(message)s"
        )
    )
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
