"""Geocoding providers for postal code lookups.

Each provider wraps one geopy geocoder and turns its provider-specific
response into a ``GeoCoordinate``. Every kind of failure (timeout, HTTP
error, malformed body, no match) is raised as ``GeocodeProviderError`` so
the orchestrator can treat them alike.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from geopy.exc import GeopyError
from geopy.geocoders import MapBox, Nominatim
from geopy.location import Location
from pydantic import ValidationError

from app.core.exceptions import GeocodeProviderError
from app.models.geographic import COUNTRY_NAMES, GeoCoordinate, NormalizedCode

logger = logging.getLogger(__name__)


class GeocodeProvider(ABC):
    """A single upstream geocoding service."""

    name: str = "provider"

    @abstractmethod
    def _lookup(self, code: NormalizedCode) -> Optional[Location]:
        """Query the upstream service for ``code``."""

    @abstractmethod
    def _parse(self, location: Location, code: NormalizedCode) -> GeoCoordinate:
        """Convert the upstream result into a coordinate."""

    def geocode(self, code: NormalizedCode) -> GeoCoordinate:
        """Resolve a normalized code to a coordinate.

        Args:
            code: Validated postal code

        Returns:
            GeoCoordinate for the best match

        Raises:
            GeocodeProviderError: If no usable coordinate was obtained
        """
        try:
            location = self._lookup(code)
        except GeopyError as e:
            raise GeocodeProviderError(self.name, f"request failed: {e}") from e

        if not location:
            raise GeocodeProviderError(self.name, f"no match for {code.normalized}")

        try:
            return self._parse(location, code)
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise GeocodeProviderError(self.name, f"malformed response: {e}") from e


def _context_text(context: list[dict[str, Any]], prefix: str) -> Optional[str]:
    for item in context:
        if str(item.get("id", "")).startswith(prefix):
            return item.get("text")
    return None


class MapboxProvider(GeocodeProvider):
    """Mapbox places API; requires an access token."""

    name = "mapbox"

    def __init__(
        self,
        api_key: str,
        timeout: float = 4.0,
        geocoder: Optional[MapBox] = None,
    ) -> None:
        self.geocoder = geocoder or MapBox(api_key=api_key, timeout=timeout)
        logger.info(f"Mapbox geocoder initialized with {timeout}s timeout")

    def _lookup(self, code: NormalizedCode) -> Optional[Location]:
        query = f"{code.normalized}, Canada" if code.country == "CA" else code.normalized
        return self.geocoder.geocode(
            query, exactly_one=True, country=code.country.lower()
        )

    def _parse(self, location: Location, code: NormalizedCode) -> GeoCoordinate:
        feature = location.raw or {}
        context = feature.get("context") or []
        return GeoCoordinate(
            lat=location.latitude,
            lng=location.longitude,
            city=_context_text(context, "place"),
            region=_context_text(context, "region"),
            country=COUNTRY_NAMES[code.country],
        )


class NominatimProvider(GeocodeProvider):
    """OpenStreetMap Nominatim; needs no credentials."""

    name = "nominatim"

    def __init__(
        self,
        user_agent: str = "help-locator/1.0",
        timeout: float = 4.0,
        domain: str = "nominatim.openstreetmap.org",
        geocoder: Optional[Nominatim] = None,
    ) -> None:
        self.geocoder = geocoder or Nominatim(
            user_agent=user_agent, timeout=timeout, domain=domain
        )
        logger.info(f"Nominatim geocoder initialized with {timeout}s timeout")

    def _lookup(self, code: NormalizedCode) -> Optional[Location]:
        query = {
            "postalcode": code.normalized,
            "country": COUNTRY_NAMES[code.country],
        }
        return self.geocoder.geocode(
            query,
            exactly_one=True,
            addressdetails=True,
            country_codes=code.country.lower(),
        )

    def _parse(self, location: Location, code: NormalizedCode) -> GeoCoordinate:
        address = (location.raw or {}).get("address") or {}
        return GeoCoordinate(
            lat=float(location.latitude),
            lng=float(location.longitude),
            city=address.get("city") or address.get("town") or address.get("village"),
            region=address.get("state") or address.get("province"),
            country=COUNTRY_NAMES[code.country],
        )
