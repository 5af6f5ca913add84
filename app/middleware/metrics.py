"""Request metrics middleware for Prometheus monitoring."""

import time

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.routing import Match

from app.core.events import REQUEST_DURATION_SECONDS, REQUESTS_TOTAL, RESPONSES_TOTAL
from app.core.logging import get_logger

logger = get_logger()

UNMATCHED_PATH = "<unmatched>"


def route_template(request: Request) -> str:
    """Return the matched route path so label cardinality stays bounded."""
    for route in request.app.router.routes:
        match, _ = route.matches(request.scope)
        if match == Match.FULL:
            return getattr(route, "path", request.url.path)
    return UNMATCHED_PATH


class MetricsMiddleware(BaseHTTPMiddleware):
    """
    Middleware to collect request/response metrics.

    Records:
    - Total requests by method and route
    - Total responses by status code
    - Request duration histogram
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
        path = route_template(request)
        REQUESTS_TOTAL.labels(method=request.method, path=path).inc()

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                error=str(e),
            )
            raise
        duration = time.perf_counter() - start_time

        RESPONSES_TOTAL.labels(status_code=str(response.status_code)).inc()
        REQUEST_DURATION_SECONDS.labels(method=request.method, path=path).observe(
            duration
        )

        logger.info(
            "request_processed",
            status_code=response.status_code,
            duration=round(duration, 4),
        )
        return response
