"""Per-request correlation ids picked up by the JSON log formatter."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_ORDER_ID_CTX: ContextVar[str | None] = ContextVar("order_id", default=None)


def set_request_context(*, request_id: str | None = None) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_order_id() -> str | None:
    return _ORDER_ID_CTX.get()


@contextmanager
def order_context(order_id: int | str | None) -> Iterator[None]:
    """Tag every log line emitted inside the block with ``order_id``."""
    token = _ORDER_ID_CTX.set(str(order_id) if order_id is not None else None)
    try:
        yield
    finally:
        _ORDER_ID_CTX.reset(token)


def clear_request_context() -> None:
    _REQUEST_ID_CTX.set(None)
    _ORDER_ID_CTX.set(None)
