"""Postal code geocoding.

This package provides the geocoding side of lookups:
- Postal code validation and normalization
- Great-circle distance calculations
- Geocoding providers (Mapbox, Nominatim)
- Orchestration with retry and provider fallback
"""

from app.core.geocoding.distance import distance, distance_from, haversine_km
from app.core.geocoding.orchestrator import (
    GeocoderLabel,
    GeocoderOrchestrator,
    create_orchestrator,
)
from app.core.geocoding.postal import is_valid_code, normalize
from app.core.geocoding.providers import (
    GeocodeProvider,
    MapboxProvider,
    NominatimProvider,
)

__all__ = [
    "GeocodeProvider",
    "GeocoderLabel",
    "GeocoderOrchestrator",
    "MapboxProvider",
    "NominatimProvider",
    "create_orchestrator",
    "distance",
    "distance_from",
    "haversine_km",
    "is_valid_code",
    "normalize",
]
