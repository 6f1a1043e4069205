"""
Request correlation IDs.

The transport layer sets one ID per request; logs and response envelopes
read it back so a list call can be traced from the HTTP edge to the
queries it issued.
"""

import logging
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for request ID (safe across threads and tasks)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

REQUEST_ID_HEADER = "X-Request-ID"


def get_request_id() -> str:
    """Get the current request ID ("" outside a request)."""
    return request_id_var.get()


@contextmanager
def request_context(request_id: str | None = None) -> Generator[str, None, None]:
    """
    Bind a request ID for the duration of a block.

    Usage:
        with request_context() as request_id:
            crud.list(query, role="admin")
    """
    request_id = request_id or str(uuid.uuid4())
    token = request_id_var.set(request_id)
    try:
        yield request_id
    finally:
        request_id_var.reset(token)


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation IDs to all requests.

    - If X-Request-ID header is present, uses that value
    - Otherwise generates a new UUID
    - Returns the ID in response headers
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        with request_context(request.headers.get(REQUEST_ID_HEADER)) as request_id:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = request_id
            return response


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that adds request_id to log records.

    Usage:
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True
