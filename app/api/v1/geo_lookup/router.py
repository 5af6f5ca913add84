"""Geo lookup API endpoints."""

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from app.api.v1.geo_lookup.models import (
    GeoLookupRequest,
    HealthResponse,
    ResolvedResponse,
)
from app.api.v1.geo_lookup.services import GeoLookupService
from app.core.config import settings
from app.core.exceptions import InvalidPostalCodeError
from app.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/geo-lookup", tags=["geo-lookup"])

# The body is read by a dependency so the rate limit runs first; this keeps
# the request schema in the OpenAPI document.
LOOKUP_REQUEST_BODY = {
    "requestBody": {
        "required": True,
        "content": {
            "application/json": {
                "schema": GeoLookupRequest.model_json_schema(by_alias=True),
            }
        },
    }
}


def get_geo_lookup_service(request: Request) -> GeoLookupService:
    """Lookup service owned by the running application."""
    return request.app.state.geo_lookup_service


def get_client_id(request: Request) -> str:
    """Identify the caller for rate limiting.

    Uses the first address of the trusted proxy header, then the socket
    peer, then ``"unknown"``.
    """
    forwarded = request.headers.get(settings.CLIENT_IP_HEADER, "")
    first_hop = forwarded.split(",")[0].strip()
    if first_hop:
        return first_hop
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


async def enforce_rate_limit(
    request: Request,
    service: GeoLookupService = Depends(get_geo_lookup_service),
) -> str:
    """Admit the caller before anything about the request is inspected."""
    client_id = get_client_id(request)
    await service.admit(client_id)
    return client_id


async def read_lookup_request(request: Request) -> GeoLookupRequest:
    """Parse the lookup body.

    An empty body is a missing code. Malformed JSON or a wrongly typed field
    is reported as an invalid format, never as a schema error.
    """
    body = await request.body()
    if not body.strip():
        return GeoLookupRequest()
    try:
        return GeoLookupRequest.model_validate_json(body)
    except ValidationError as exc:
        logger.debug("geo_lookup_bad_body", errors=exc.error_count())
        raise InvalidPostalCodeError("Invalid postal/ZIP format") from exc


@router.post(
    "",
    response_model=ResolvedResponse,
    response_model_exclude_none=True,
    openapi_extra=LOOKUP_REQUEST_BODY,
)
async def geo_lookup(
    client_id: str = Depends(enforce_rate_limit),
    payload: GeoLookupRequest = Depends(read_lookup_request),
    service: GeoLookupService = Depends(get_geo_lookup_service),
) -> ResolvedResponse:
    """
    Resolve a ZIP or postal code into nearby and national resources.

    ## Request Body:
    - **code**: US ZIP (`12345`, `12345-6789`) or Canadian postal code (`A1A 1A1`)
    - **countryHint**: Optional `US` or `CA`; the code format always decides

    ## Response:
    - **locals**: Up to 10 locations within 25 miles, nearest first
    - **nationals**: National crisis resources for the code's country
    - **geocoder**: `primary`, `secondary`, or `none` when geocoding failed

    When both geocoders fail the response is still 200, with empty `locals`
    and an advisory `error`.

    ## Errors:
    - **400**: Missing or malformed code
    - **429**: Too many requests from this client; see `Retry-After`
    """
    logger.debug("geo_lookup_admitted", client_id=client_id)
    return await service.resolve(payload.code, payload.country_hint)


@router.get("/health", response_model=HealthResponse)
async def geo_lookup_health(
    service: GeoLookupService = Depends(get_geo_lookup_service),
) -> HealthResponse:
    """Report the configured geocoder and cache size."""
    return await service.health()
