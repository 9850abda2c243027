from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Optional
from uuid import uuid4

correlation_id_context: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str:
    correlation_id = correlation_id_context.get()
    if correlation_id is None:
        correlation_id = str(uuid4())
        correlation_id_context.set(correlation_id)
    return correlation_id


@contextmanager
def correlation_scope(correlation_id: Optional[str] = None) -> Iterator[str]:
    """Bind a correlation id for the duration of a request or script run."""
    token = correlation_id_context.set(correlation_id or str(uuid4()))
    try:
        yield correlation_id_context.get()
    finally:
        correlation_id_context.reset(token)
