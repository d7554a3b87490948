from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional


# Per-request values injected into every log record
correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
merchant_id_var: ContextVar[Optional[str]] = ContextVar("merchant_id", default=None)


class LoggingContextFilter(logging.Filter):
    """
    Logging filter that copies correlation_id and merchant_id from contextvars
    onto each record. Missing values are rendered as '-'.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        setattr(record, "correlation_id", correlation_id_var.get() or "-")
        setattr(record, "merchant_id", merchant_id_var.get() or "-")
        return True


# PUBLIC_INTERFACE
def configure_logging(level: int = logging.INFO) -> None:
    """Configure root logging with the request-context format."""
    handler = logging.StreamHandler(stream=sys.stdout)
    fmt = (
        "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | merchant=%(merchant_id)s | "
        "%(message)s"
    )
    handler.setFormatter(logging.Formatter(fmt=fmt))
    handler.addFilter(LoggingContextFilter())

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)
    root.addHandler(handler)
    root.setLevel(level)
