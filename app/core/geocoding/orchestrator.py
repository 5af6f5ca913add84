"""Retry and fallback across the configured geocoding providers."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Literal, Optional

from prometheus_client import Counter

from app.core.config import Settings
from app.core.exceptions import GeocodeProviderError
from app.core.geocoding.providers import (
    GeocodeProvider,
    MapboxProvider,
    NominatimProvider,
)
from app.core.logging import get_logger
from app.models.geographic import GeoCoordinate, NormalizedCode

logger = get_logger(__name__)

GeocoderLabel = Literal["primary", "secondary", "none"]

GEOCODER_ATTEMPTS_TOTAL = Counter(
    "app_geocoder_attempts_total",
    "Geocoding attempts by provider role and outcome",
    labelnames=["provider", "outcome"],
)


class GeocoderOrchestrator:
    """Resolve codes through a primary provider with a secondary fallback.

    Each provider gets one attempt plus one retry after a short backoff.
    When every attempt fails the result is ``(None, "none")``, which callers
    treat as degraded mode rather than as an error.
    """

    def __init__(
        self,
        primary: Optional[GeocodeProvider],
        secondary: GeocodeProvider,
        timeout: float = 4.0,
        backoff_seconds: float = 0.5,
        attempts_per_provider: int = 2,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.primary = primary
        self.secondary = secondary
        self.timeout = timeout
        self.backoff_seconds = backoff_seconds
        self.attempts_per_provider = attempts_per_provider
        self._sleep = sleep

    @property
    def configured_primary(self) -> Literal["primary", "secondary"]:
        """Which role answers first under the current configuration."""
        return "primary" if self.primary is not None else "secondary"

    def _chain(self) -> list[tuple[GeocoderLabel, GeocodeProvider]]:
        chain: list[tuple[GeocoderLabel, GeocodeProvider]] = []
        if self.primary is not None:
            chain.append(("primary", self.primary))
        chain.append(("secondary", self.secondary))
        return chain

    async def _attempt(
        self,
        label: GeocoderLabel,
        provider: GeocodeProvider,
        code: NormalizedCode,
        attempt: int,
    ) -> Optional[GeoCoordinate]:
        try:
            # A timed-out call keeps running in its worker thread; its
            # result is discarded.
            coord = await asyncio.wait_for(
                asyncio.to_thread(provider.geocode, code), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            GEOCODER_ATTEMPTS_TOTAL.labels(provider=label, outcome="timeout").inc()
            logger.warning(
                "geocoder_attempt_timeout",
                provider=provider.name,
                role=label,
                attempt=attempt,
                timeout=self.timeout,
            )
            return None
        except GeocodeProviderError as e:
            GEOCODER_ATTEMPTS_TOTAL.labels(provider=label, outcome="failure").inc()
            logger.warning(
                "geocoder_attempt_failed",
                provider=provider.name,
                role=label,
                attempt=attempt,
                error=str(e),
            )
            return None
        except Exception as e:
            GEOCODER_ATTEMPTS_TOTAL.labels(provider=label, outcome="error").inc()
            logger.error(
                "geocoder_attempt_error",
                provider=provider.name,
                role=label,
                attempt=attempt,
                error=str(e),
            )
            return None

        GEOCODER_ATTEMPTS_TOTAL.labels(provider=label, outcome="success").inc()
        return coord

    async def resolve(
        self, code: NormalizedCode
    ) -> tuple[Optional[GeoCoordinate], GeocoderLabel]:
        """Geocode ``code``, falling back to the secondary provider.

        Args:
            code: Validated postal code

        Returns:
            Tuple of (coordinate or None, role of the provider that answered)
        """
        for label, provider in self._chain():
            for attempt in range(1, self.attempts_per_provider + 1):
                if attempt > 1:
                    await self._sleep(self.backoff_seconds)
                coord = await self._attempt(label, provider, code, attempt)
                if coord is not None:
                    return coord, label
            if label == "primary":
                logger.info("geocoder_falling_back", code=code.cache_key)

        logger.error("geocoding_exhausted", code=code.cache_key)
        return None, "none"


def create_orchestrator(settings: Settings) -> GeocoderOrchestrator:
    """Build the orchestrator from application settings.

    Without ``GEOCODER_API_KEY`` there is no primary provider and lookups go
    straight to Nominatim.
    """
    primary: Optional[GeocodeProvider] = None
    if settings.GEOCODER_API_KEY:
        primary = MapboxProvider(
            api_key=settings.GEOCODER_API_KEY, timeout=settings.GEOCODER_TIMEOUT
        )
    else:
        logger.warning("geocoder_primary_not_configured", fallback="nominatim")

    secondary = NominatimProvider(
        user_agent=settings.NOMINATIM_USER_AGENT,
        timeout=settings.GEOCODER_TIMEOUT,
        domain=settings.NOMINATIM_DOMAIN,
    )
    return GeocoderOrchestrator(
        primary=primary,
        secondary=secondary,
        timeout=settings.GEOCODER_TIMEOUT,
        backoff_seconds=settings.GEOCODER_RETRY_BACKOFF,
    )
