"""Correlation IDs for log lines.

HTTP requests take the caller's X-Request-ID or get a fresh one. Timer
firings and worker runs have no request, so they get a prefixed ID
("schedule-…", "task-…") scoped to that one run.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator, Optional

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


def generate_request_id(prefix: Optional[str] = None) -> str:
    """New correlation ID, optionally prefixed with the run origin."""
    value = uuid.uuid4().hex if prefix else str(uuid.uuid4())
    return f"{prefix}-{value}" if prefix else value


def get_request_id() -> str:
    """Current ID, or "no-request-id" outside any request or run."""
    return request_id_var.get() or "no-request-id"


def set_request_id(request_id: str) -> Token:
    """Bind ``request_id`` to the current context.

    Returns:
        Token for reset_request_id
    """
    return request_id_var.set(request_id)


def reset_request_id(token: Token) -> None:
    request_id_var.reset(token)


@contextmanager
def request_id_scope(prefix: str) -> Iterator[str]:
    """Bind a fresh prefixed ID for the duration of the block.

    Scheduler threads are reused across firings; the previous value is
    restored on exit so IDs never leak from one run into the next.
    """
    request_id = generate_request_id(prefix)
    token = set_request_id(request_id)
    try:
        yield request_id
    finally:
        reset_request_id(token)
