"""Pydantic models for the geo lookup endpoints."""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.geocoding.orchestrator import GeocoderLabel
from app.models.geographic import CountryCode, GeoCoordinate


class CamelModel(BaseModel):
    """Base model accepting both field names and camelCase aliases."""

    model_config = ConfigDict(populate_by_name=True)


class GeoLookupRequest(CamelModel):
    """Body of a lookup request."""

    code: Optional[str] = Field(None, description="US ZIP or Canadian postal code")
    country_hint: Optional[str] = Field(
        None,
        alias="countryHint",
        description="Advisory country (US or CA); the code format decides",
    )


class ProviderResult(CamelModel):
    """A nearby location, with its distance from the looked-up code."""

    name: str
    description: Optional[str] = None
    website: str
    phone: str
    distance_km: float = Field(..., alias="distanceKm", ge=0)
    distance_mi: float = Field(..., alias="distanceMi", ge=0)
    type: Literal["local"] = "local"


class NationalResource(CamelModel):
    """An always-available national hotline."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: str
    website: str
    phone: str
    type: Literal["national"] = "national"


class ResolvedResponse(CamelModel):
    """Result of a lookup; also the unit stored in the cache."""

    locals: List[ProviderResult] = Field(default_factory=list)
    nationals: List[NationalResource] = Field(default_factory=list)
    location: Optional[GeoCoordinate] = None
    country: CountryCode
    geocoder: GeocoderLabel
    latency_ms: int = Field(..., alias="latencyMs", ge=0)
    cached: bool = False
    local_count: int = Field(0, alias="localCount", ge=0)
    national_count: int = Field(0, alias="nationalCount", ge=0)
    error: Optional[str] = None


class HealthResponse(CamelModel):
    """Operational status of the lookup service."""

    ok: bool
    geocoder: Literal["primary", "secondary"]
    cache_size: int = Field(..., alias="cacheSize", ge=0)
    cache_status: str = Field(..., alias="cacheStatus")
    uptime_seconds: float = Field(..., alias="uptimeSeconds", ge=0)
