"""JSON logging with per-request correlation ids.

The HTTP middleware in ``checkout.main`` stores the current request id in
``REQUEST_ID_CTX``; ``RequestIdFilter`` copies it onto every record so the
JSON formatter can emit it.
"""

import logging
from contextvars import ContextVar
from logging import Filter, LogRecord

from pythonjsonlogger.json import JsonFormatter

REQUEST_ID_CTX: ContextVar[str] = ContextVar("request_id", default="-")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s %(request_id)s"


class RequestIdFilter(Filter):
    def filter(self, record: LogRecord) -> bool:
        record.request_id = REQUEST_ID_CTX.get()
        return True


def configure_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("checkout")
    if not logger.handlers:
        h = logging.StreamHandler()
        h.setFormatter(JsonFormatter(LOG_FORMAT))
        h.addFilter(RequestIdFilter())
        logger.addHandler(h)
    logger.setLevel(level.upper())
    return logger
