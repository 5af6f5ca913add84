"""Service layer for postal code lookups.

A lookup runs: rate limit -> validate -> cache -> geocode -> match the
location directory by distance -> merge national resources -> cache.
"""

import time
from collections.abc import Callable, Iterable
from typing import Optional

from app.api.v1.geo_lookup.catalog import nationals_for
from app.api.v1.geo_lookup.models import (
    HealthResponse,
    NationalResource,
    ProviderResult,
    ResolvedResponse,
)
from app.core.cache import ResultCache
from app.core.config import Settings
from app.core.geocoding.distance import distance_from
from app.core.geocoding.orchestrator import (
    GeocoderLabel,
    GeocoderOrchestrator,
    create_orchestrator,
)
from app.core.geocoding.postal import normalize
from app.core.logging import get_logger
from app.core.rate_limit import RateLimiter
from app.core.store import create_store
from app.database.repositories import LocationDirectory, SessionLocationDirectory
from app.models.geographic import CountryCode, GeoCoordinate, LocationRecord

logger = get_logger(__name__)

DEFAULT_WEBSITE = "https://www.nationalhelpline.org"
DEFAULT_PHONE = "Information not available"
DEFAULT_DESCRIPTION = "Mental health support provider"
DEGRADED_MESSAGE = "Could not locate postal code"


def match_providers(
    origin: GeoCoordinate,
    candidates: Iterable[LocationRecord],
    radius_miles: float = 25.0,
    limit: int = 10,
) -> list[ProviderResult]:
    """Rank directory locations by distance from ``origin``.

    Keeps locations within ``radius_miles``, nearest first (ties by name),
    at most ``limit`` of them. Missing website and phone values are
    replaced by fallback strings.
    """
    in_range = []
    for candidate in candidates:
        if not (-90 <= candidate.latitude <= 90 and -180 <= candidate.longitude <= 180):
            logger.debug("candidate_out_of_range", name=candidate.name)
            continue
        dist = distance_from(origin, candidate.latitude, candidate.longitude)
        if dist.mi <= radius_miles:
            in_range.append((dist.mi, candidate.name, dist, candidate))

    in_range.sort(key=lambda item: (item[0], item[1]))

    return [
        ProviderResult(
            name=candidate.name,
            description=candidate.type or DEFAULT_DESCRIPTION,
            website=candidate.website or DEFAULT_WEBSITE,
            phone=candidate.phone or DEFAULT_PHONE,
            distance_km=round(dist.km, 1),
            distance_mi=round(dist.mi, 1),
        )
        for _, _, dist, candidate in in_range[:limit]
    ]


def compose(
    locals_: list[ProviderResult],
    nationals: list[NationalResource],
    location: Optional[GeoCoordinate],
    country: CountryCode,
    geocoder: GeocoderLabel,
    latency_ms: int,
) -> ResolvedResponse:
    """Assemble the lookup payload.

    With ``geocoder == "none"`` the response is degraded: no locals, no
    location and an advisory error, but still the national resources.
    """
    if geocoder == "none":
        return ResolvedResponse(
            locals=[],
            nationals=nationals,
            location=None,
            country=country,
            geocoder="none",
            latency_ms=latency_ms,
            local_count=0,
            national_count=len(nationals),
            error=DEGRADED_MESSAGE,
        )

    return ResolvedResponse(
        locals=locals_,
        nationals=nationals,
        location=location,
        country=country,
        geocoder=geocoder,
        latency_ms=latency_ms,
        local_count=len(locals_),
        national_count=len(nationals),
    )


class GeoLookupService:
    """Resolves postal codes into nearby and national resources."""

    def __init__(
        self,
        orchestrator: GeocoderOrchestrator,
        cache: ResultCache[ResolvedResponse],
        rate_limiter: RateLimiter,
        directory: LocationDirectory,
        radius_miles: float = 25.0,
        max_results: int = 10,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.orchestrator = orchestrator
        self.cache = cache
        self.rate_limiter = rate_limiter
        self.directory = directory
        self.radius_miles = radius_miles
        self.max_results = max_results
        self._clock = clock
        self._started_at = time.monotonic()

    async def lookup(
        self,
        code: Optional[str],
        country_hint: Optional[str] = None,
        client_id: str = "unknown",
    ) -> ResolvedResponse:
        """Resolve a raw code for a client.

        Raises:
            RateLimitExceededError: If the client is over its quota
            InvalidPostalCodeError: If the code is missing or malformed
            DirectoryUnavailableError: If the location directory fails
        """
        await self.admit(client_id)
        return await self.resolve(code, country_hint)

    async def admit(self, client_id: str) -> None:
        """Count a request against the client's quota, valid or not."""
        await self.rate_limiter.check(client_id)

    async def resolve(
        self, code: Optional[str], country_hint: Optional[str] = None
    ) -> ResolvedResponse:
        """Resolve a raw code that has already been admitted."""
        normalized = normalize(code, country_hint)
        key = normalized.cache_key

        cached = await self.cache.get(key)
        if cached is not None:
            logger.info("geo_lookup_cache_hit", key=key)
            return cached.model_copy(update={"cached": True})

        start = self._clock()
        location, geocoder = await self.orchestrator.resolve(normalized)
        nationals = nationals_for(normalized.country)

        if location is None:
            response = compose(
                [], nationals, None, normalized.country, "none", self._elapsed_ms(start)
            )
            await self.cache.put_degraded(key, response)
            logger.warning("geo_lookup_degraded", key=key, latency_ms=response.latency_ms)
            return response

        candidates = await self.directory.list_active_locations_with_coordinates()
        locals_ = match_providers(
            location, candidates, self.radius_miles, self.max_results
        )
        response = compose(
            locals_,
            nationals,
            location,
            normalized.country,
            geocoder,
            self._elapsed_ms(start),
        )
        await self.cache.put(key, response)

        logger.info(
            "geo_lookup_resolved",
            key=key,
            locals=response.local_count,
            nationals=response.national_count,
            geocoder=geocoder,
            latency_ms=response.latency_ms,
        )
        return response

    def _elapsed_ms(self, start: float) -> int:
        return max(0, round((self._clock() - start) * 1000))

    async def health(self) -> HealthResponse:
        """Configuration-level status; does not probe the providers."""
        ok = True
        try:
            cache_size = await self.cache.size()
        except Exception as e:
            logger.error("geo_lookup_health_cache_error", error=str(e))
            ok = False
            cache_size = 0

        return HealthResponse(
            ok=ok,
            geocoder=self.orchestrator.configured_primary,
            cache_size=cache_size,
            cache_status=f"{cache_size} entries" if ok else "unavailable",
            uptime_seconds=round(time.monotonic() - self._started_at, 3),
        )

    async def close(self) -> None:
        """Release store connections."""
        await self.cache.store.close()
        if self.rate_limiter.store is not self.cache.store:
            await self.rate_limiter.store.close()


def create_geo_lookup_service(settings: Settings) -> GeoLookupService:
    """Wire a lookup service from application settings."""
    cache: ResultCache[ResolvedResponse] = ResultCache(
        create_store(settings),
        ResolvedResponse,
        ttl_seconds=settings.GEO_CACHE_TTL_SECONDS,
        degraded_ttl_seconds=settings.GEO_DEGRADED_CACHE_TTL_SECONDS,
    )
    rate_limiter = RateLimiter(
        create_store(settings),
        limit=settings.RATE_LIMIT_REQUESTS,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    return GeoLookupService(
        orchestrator=create_orchestrator(settings),
        cache=cache,
        rate_limiter=rate_limiter,
        directory=SessionLocationDirectory(),
        radius_miles=settings.LOCAL_RADIUS_MILES,
        max_results=settings.MAX_LOCAL_RESULTS,
    )
