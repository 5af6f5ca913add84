"""Domain exceptions raised by the lookup pipeline.

Each exception carries the HTTP status code it maps to, so the error
middleware can render it without a lookup table entry.
"""

from typing import Any


class GeoLookupError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    reason: str = "internal_error"

    def __init__(self, message: str, reason: str | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason

    @property
    def headers(self) -> dict[str, str]:
        """Extra response headers for this error."""
        return {}

    def extra(self) -> dict[str, Any]:
        """Extra fields merged into the error response body."""
        return {"reason": self.reason}


class InvalidPostalCodeError(GeoLookupError):
    """Raised when a code is neither a US ZIP nor a Canadian postal code."""

    status_code = 400
    reason = "invalid_format"


class RateLimitExceededError(GeoLookupError):
    """Raised when a client exceeds its request quota for the window."""

    status_code = 429
    reason = "rate_limited"

    def __init__(self, client_id: str, retry_after: int) -> None:
        super().__init__("Rate limit exceeded. Please try again in a minute.")
        self.client_id = client_id
        self.retry_after = max(1, retry_after)

    @property
    def headers(self) -> dict[str, str]:
        return {"Retry-After": str(self.retry_after)}

    def extra(self) -> dict[str, Any]:
        return {"reason": self.reason, "retry_after": self.retry_after}


class DirectoryUnavailableError(GeoLookupError):
    """Raised when the location directory cannot be queried."""

    status_code = 500
    reason = "directory_unavailable"


class GeocodeProviderError(Exception):
    """A single geocoding attempt produced no coordinate.

    Never reaches API callers; the orchestrator recovers from it.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
