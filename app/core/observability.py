import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar


_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def new_correlation_id(prefix: str | None = None) -> str:
    seed = prefix or "req"
    return f"{seed}-{uuid.uuid4().hex[:12]}"


@contextmanager
def correlation_context(correlation_id: str | None = None):
    """Bind a correlation id to the current context for the duration of the block."""

    token = _correlation_id.set(correlation_id or new_correlation_id())
    try:
        yield _correlation_id.get()
    finally:
        _correlation_id.reset(token)


class CorrelationIdFilter(logging.Filter):
    """Attach the active correlation id to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = _correlation_id.get() or "-"
        return True
