"""
Request Context
===============
Correlation id lookup. The id itself is generated upstream (a gateway or a
correlation-id middleware); httpaudit only reads it.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Iterator, Mapping, Optional

# Context variable for request tracking
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Keys looked up in a request's context mapping, in order
REQUEST_ID_KEYS = ("request_id", "correlation_id")


def get_request_id(context: Optional[Mapping[str, Any]] = None) -> str:
    """
    Return the correlation id for the current request.

    The request's own context mapping (e.g. ASGI ``scope["state"]``) wins
    over the context variable. Missing ids come back as "".
    """
    if context:
        for key in REQUEST_ID_KEYS:
            value = context.get(key)
            if value:
                return str(value)
    return request_id_var.get()


@contextmanager
def bind_request_id(request_id: str) -> Iterator[str]:
    """Set the correlation id for the duration of a block."""
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)
