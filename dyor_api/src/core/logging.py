from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional, Union

# Set per request by the HTTP middleware and the auth dependency
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | user=%(user_id)s | %(message)s"

# Third-party loggers that are chatty at INFO: one line per scheduled job run and per Birdeye/RPC request.
_QUIET_LOGGERS = ("apscheduler", "httpx", "httpcore")


class RequestContextFilter(logging.Filter):
    """Stamp each record with the current request's correlation id and user id ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.user_id = user_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    """Route all logging to stdout with request context; replaces handlers installed earlier."""
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper() if isinstance(level, str) else level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
