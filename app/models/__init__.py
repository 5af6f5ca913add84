"""Shared data models."""

from .geographic import (
    COUNTRY_NAMES,
    CountryCode,
    Distance,
    GeoCoordinate,
    LocationRecord,
    NormalizedCode,
)

__all__ = [
    "COUNTRY_NAMES",
    "CountryCode",
    "Distance",
    "GeoCoordinate",
    "LocationRecord",
    "NormalizedCode",
]
