"""Root logging setup; every record carries the correlation id of its request."""
import contextvars
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)s [%(request_id)s] %(name)s: %(message)s"

# log every provider round-trip at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "aiosqlite")

# Set per request by CorrelationIdMiddleware; job tasks inherit the submitting request's value.
request_id_ctx_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)


def current_request_id() -> str:
    return request_id_ctx_var.get() or "none"


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = current_request_id()
        return True


def configure_logging(level: Optional[str] = None) -> None:
    """Install a stdout handler on the root logger. Safe to call more than once.

    Handlers that already exist (uvicorn, pytest capture) are kept and only
    receive the request-id filter.
    """
    root = logging.getLogger()
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
    for handler in root.handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    root.setLevel((level or "INFO").upper())
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
