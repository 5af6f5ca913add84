"""Correlation ID middleware for request tracking."""

import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from structlog.contextvars import bind_contextvars, clear_contextvars

CORRELATION_HEADER = "X-Request-ID"


def is_valid_correlation_id(value: str | None) -> bool:
    """Accept UUIDs and ``test-`` prefixed identifiers."""
    if not value:
        return False

    if value.startswith("test-"):
        return True

    try:
        uuid.UUID(value)
        return True
    except (ValueError, AttributeError, TypeError):
        return False


class CorrelationMiddleware(BaseHTTPMiddleware):
    """
    Middleware to handle request correlation IDs.

    Reuses a valid incoming ``X-Request-ID`` or generates one, then adds it to:
    - Request state
    - Response headers
    - Structured logging context, together with method and path
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers
        """
        clear_contextvars()

        header_value = request.headers.get(CORRELATION_HEADER, "")
        if is_valid_correlation_id(header_value):
            correlation_id = header_value
        else:
            correlation_id = str(uuid.uuid4())

        bind_contextvars(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )
        request.state.correlation_id = correlation_id

        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = correlation_id

        return response
