"""Error handling middleware."""

from fastapi import HTTPException, Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR

from app.core.exceptions import GeoLookupError
from app.core.logging import get_logger

logger = get_logger()


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Middleware to turn unhandled exceptions into JSON error responses.

    Every error body has the shape::

        {"error": ..., "message": ..., "status_code": ..., "correlation_id": ...}

    Lookup errors add their own fields (``reason``, ``retry_after``) and
    headers (``Retry-After``). Any other exception is an internal error.
    """

    def _get_error_detail(self, exc: Exception) -> tuple[str, int]:
        """Get error detail and status code from exception."""
        if isinstance(exc, GeoLookupError):
            return str(exc), exc.status_code
        if isinstance(exc, HTTPException):
            return str(exc.detail), exc.status_code
        detail = str(exc.args[0] if exc.args else exc)
        return detail, HTTP_500_INTERNAL_SERVER_ERROR

    def _create_error_response(
        self,
        exc: Exception,
        detail: str,
        status_code: int,
        correlation_id: str | None,
    ) -> JSONResponse:
        """Create JSON error response with optional correlation ID."""
        content = {
            "error": exc.__class__.__name__,
            "message": detail,
            "status_code": status_code,
            "correlation_id": correlation_id if correlation_id else "unknown",
        }
        headers: dict[str, str] = {}
        if isinstance(exc, GeoLookupError):
            content.update(exc.extra())
            headers.update(exc.headers)
        elif isinstance(exc, HTTPException) and exc.headers:
            headers.update(exc.headers)
        if correlation_id:
            headers["X-Request-ID"] = correlation_id

        return JSONResponse(
            status_code=status_code,
            content=content,
            headers=headers,
            media_type="application/json",
        )

    def _log_error(
        self,
        request: Request,
        exc: Exception,
        detail: str,
        status_code: int,
        correlation_id: str | None,
    ) -> None:
        """Log error details; client errors at warning, the rest at error."""
        log = logger.warning if status_code < HTTP_500_INTERNAL_SERVER_ERROR else logger.error
        log(
            "request_error",
            error_type=exc.__class__.__name__,
            error_message=detail,
            status_code=status_code,
            path=request.url.path,
            method=request.method,
            correlation_id=correlation_id,
        )

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """
        Process the request/response cycle and handle errors.

        Args:
        ----
            request: The incoming request
            call_next: The next handler in the middleware chain

        Returns:
        -------
            The response from downstream handlers or error response
        """
        try:
            return await call_next(request)
        except Exception as exc:
            correlation_id = getattr(request.state, "correlation_id", None)
            detail, status_code = self._get_error_detail(exc)

            self._log_error(request, exc, detail, status_code, correlation_id)
            return self._create_error_response(
                exc, detail, status_code, correlation_id
            )
