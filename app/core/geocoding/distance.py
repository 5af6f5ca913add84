"""Great-circle distance between coordinates."""

from math import atan2, cos, radians, sin, sqrt

from app.models.geographic import Distance, GeoCoordinate

EARTH_RADIUS_KM = 6371.0
KM_TO_MILES = 0.621371


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great circle distance between two points in kilometers."""
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_KM * c


def distance_from(origin: GeoCoordinate, latitude: float, longitude: float) -> Distance:
    """Distance from ``origin`` to a raw latitude/longitude pair."""
    km = haversine_km(origin.lat, origin.lng, latitude, longitude)
    return Distance(km=km, mi=km * KM_TO_MILES)


def distance(a: GeoCoordinate, b: GeoCoordinate) -> Distance:
    """Distance between two coordinates in kilometers and miles."""
    return distance_from(a, b.lat, b.lng)
