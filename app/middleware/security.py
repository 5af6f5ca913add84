"""Security headers middleware."""

from fastapi import Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.types import ASGIApp

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=31536000",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses.

    Responses under ``no_store_prefix`` carry a visitor's postal code and
    location, so they are also marked ``Cache-Control: no-store``.
    """

    def __init__(self, app: ASGIApp, no_store_prefix: str = "/api/v1/geo-lookup") -> None:
        super().__init__(app)
        self.security_headers = dict(SECURITY_HEADERS)
        self.no_store_prefix = no_store_prefix

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)

        for header_name, header_value in self.security_headers.items():
            response.headers[header_name] = header_value
        if request.url.path.startswith(self.no_store_prefix):
            response.headers["Cache-Control"] = "no-store"

        return response
