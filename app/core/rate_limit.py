"""Per-client fixed window rate limiting."""

import math

from prometheus_client import Counter

from app.core.exceptions import RateLimitExceededError
from app.core.logging import get_logger
from app.core.store import KeyValueStore

logger = get_logger(__name__)

RATE_LIMITED_TOTAL = Counter(
    "app_rate_limited_requests_total",
    "Number of lookup requests rejected by the rate limiter",
)


class RateLimiter:
    """Admit at most ``limit`` requests per client per window.

    The first request from a client opens a window of ``window_seconds``;
    every later request inside the window increments the counter and is
    admitted while the count stays within the limit.
    """

    def __init__(
        self,
        store: KeyValueStore,
        limit: int = 30,
        window_seconds: int = 60,
        prefix: str = "ratelimit:",
    ) -> None:
        self.store = store
        self.limit = limit
        self.window_seconds = window_seconds
        self.prefix = prefix

    def _key(self, client_id: str) -> str:
        return f"{self.prefix}{client_id}"

    async def admit(self, client_id: str) -> bool:
        """Record a request from ``client_id`` and report whether it may proceed."""
        count = await self.store.increment(self._key(client_id), self.window_seconds)
        return count <= self.limit

    async def retry_after(self, client_id: str) -> int:
        """Seconds until the client's current window resets."""
        remaining = await self.store.ttl(self._key(client_id))
        if remaining is None:
            return 0
        return math.ceil(remaining)

    async def check(self, client_id: str) -> None:
        """Admit the request or raise.

        Raises:
            RateLimitExceededError: If the client is over its quota
        """
        if await self.admit(client_id):
            return

        retry_after = await self.retry_after(client_id)
        RATE_LIMITED_TOTAL.inc()
        logger.warning(
            "rate_limit_exceeded",
            client_id=client_id,
            limit=self.limit,
            retry_after=retry_after,
        )
        raise RateLimitExceededError(client_id, retry_after)
