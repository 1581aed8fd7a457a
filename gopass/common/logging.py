"""JSON logs carrying the service name, correlation id and deposit id."""

import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4

from pythonjsonlogger.json import JsonFormatter

from gopass.common.config import settings

trace_id_ctx: ContextVar[str] = ContextVar("trace_id", default="")
deposit_id_ctx: ContextVar[str] = ContextVar("deposit_id", default="")

# Per-request lines from the provider HTTP client are too chatty at INFO.
QUIET_LOGGERS = ("httpx", "httpcore")


class ContextFilter(logging.Filter):
    """Copy the current context variables onto each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = settings.service_name
        record.trace_id = trace_id_ctx.get()
        record.deposit_id = deposit_id_ctx.get()
        return True


def configure_logging() -> None:
    """Install the JSON handler on the root logger; safe to call repeatedly."""

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter())
    handler.setFormatter(
        JsonFormatter(
            "%(asctime)s %(levelname)s %(name)s %(service_name)s %(trace_id)s %(deposit_id)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_correlation_id(value: str | None) -> str:
    """Set the request correlation id, generating one when the caller sent none."""

    correlation_id = value or str(uuid4())
    trace_id_ctx.set(correlation_id)
    return correlation_id


@contextmanager
def deposit_context(deposit_id: str):
    token = deposit_id_ctx.set(deposit_id)
    try:
        yield
    finally:
        deposit_id_ctx.reset(token)


logger = logging.getLogger("gopass")
