"""Geographic models for postal codes, coordinates and directory records."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

CountryCode = Literal["US", "CA"]

COUNTRY_NAMES: dict[str, str] = {
    "US": "United States",
    "CA": "Canada",
}


class NormalizedCode(BaseModel):
    """A validated postal code in canonical form."""

    model_config = ConfigDict(frozen=True)

    raw: str = Field(..., description="Code exactly as supplied by the caller")
    normalized: str = Field(..., description="Canonical ZIP or postal code")
    country: CountryCode = Field(..., description="Country the format belongs to")

    @property
    def cache_key(self) -> str:
        """Key used for cached lookups of this code."""
        return f"{self.country}:{self.normalized}"


class GeoCoordinate(BaseModel):
    """A resolved point, as returned by a geocoding provider."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(..., ge=-90, le=90, description="Latitude in decimal degrees")
    lng: float = Field(
        ..., ge=-180, le=180, description="Longitude in decimal degrees"
    )
    city: Optional[str] = None
    region: Optional[str] = None
    country: str = Field(..., description="Country display name")


class Distance(BaseModel):
    """Great-circle distance in both units."""

    model_config = ConfigDict(frozen=True)

    km: float
    mi: float


class LocationRecord(BaseModel):
    """A candidate physical location from the help directory."""

    model_config = ConfigDict(frozen=True)

    name: str
    phone: Optional[str] = None
    website: Optional[str] = None
    type: Optional[str] = None
    latitude: float
    longitude: float
