from __future__ import annotations

import logging
import sys

from request_context import get_request_id

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(process)d] [rid=%(request_id)s] %(message)s"

APP_LOGGERS = ("app", "llm", "itinerary", "store")

# The openai SDK logs each request body at DEBUG
LIBRARY_LEVELS = {
    "httpx": logging.INFO,
    "openai": logging.INFO,
}


class RequestIdFilter(logging.Filter):
    """Stamp records with the task's request id unless 'extra' already set one."""
    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = get_request_id()
        return True


def _stream_handler(root: logging.Logger) -> logging.Handler:
    for h in root.handlers:
        if isinstance(h, logging.StreamHandler):
            return h
    handler = logging.StreamHandler(sys.stdout)
    root.addHandler(handler)
    return handler


def setup_logging(level: int | str = logging.INFO) -> None:
    """Idempotent: safe to call again with a different level."""
    root = logging.getLogger()
    root.setLevel(level)

    handler = _stream_handler(root)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
        handler.addFilter(RequestIdFilter())

    for name in APP_LOGGERS:
        logger = logging.getLogger(name)
        logger.setLevel(level)
        logger.propagate = True

    for name, lib_level in LIBRARY_LEVELS.items():
        logging.getLogger(name).setLevel(lib_level)
