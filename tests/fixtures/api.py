"""API test fixtures."""

from typing import AsyncGenerator, Optional, cast

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient, Timeout
from starlette.types import ASGIApp

from app.api.v1.geo_lookup.models import ResolvedResponse
from app.api.v1.geo_lookup.services import GeoLookupService
from app.core.cache import ResultCache
from app.core.exceptions import DirectoryUnavailableError
from app.core.geocoding.orchestrator import GeocoderOrchestrator
from app.core.rate_limit import RateLimiter
from app.core.store import MemoryStore
from app.main import create_app
from app.models.geographic import LocationRecord

from .stores import FakeClock

# Default timeout configuration
DEFAULT_TIMEOUT: Timeout = Timeout(
    timeout=5.0,  # Default total timeout
    connect=2.0,  # Connection timeout
    read=5.0,  # Read timeout
    write=5.0,  # Write timeout
    pool=2.0,  # Pool timeout
)

# Two miles and roughly forty miles north of midtown Manhattan
NEARBY_CLINIC = LocationRecord(
    name="Midtown Counseling Center",
    phone="212-555-0100",
    website="https://midtown.example.org",
    type="Counseling",
    latitude=40.7796,
    longitude=-73.9972,
)
DISTANT_CLINIC = LocationRecord(
    name="Hudson Valley Wellness",
    latitude=41.3306,
    longitude=-73.9972,
)


class FakeDirectory:
    """In-memory location directory that can be switched to failing."""

    def __init__(self, records: Optional[list[LocationRecord]] = None) -> None:
        self.records = list(records or [])
        self.fail = False
        self.calls = 0

    async def list_active_locations_with_coordinates(self) -> list[LocationRecord]:
        self.calls += 1
        if self.fail:
            raise DirectoryUnavailableError("Location directory is unavailable")
        return list(self.records)


@pytest.fixture
def fake_directory() -> FakeDirectory:
    return FakeDirectory([NEARBY_CLINIC, DISTANT_CLINIC])


@pytest.fixture
def geo_lookup_service(
    orchestrator: GeocoderOrchestrator,
    fake_directory: FakeDirectory,
    fake_clock: FakeClock,
) -> GeoLookupService:
    """Lookup service with isolated stores, scripted geocoders and a fake directory."""
    cache: ResultCache[ResolvedResponse] = ResultCache(
        MemoryStore(clock=fake_clock), ResolvedResponse
    )
    rate_limiter = RateLimiter(MemoryStore(clock=fake_clock), limit=30, window_seconds=60)
    return GeoLookupService(
        orchestrator=orchestrator,
        cache=cache,
        rate_limiter=rate_limiter,
        directory=fake_directory,
    )


@pytest.fixture(scope="function")
def test_app(geo_lookup_service: GeoLookupService) -> FastAPI:
    """Get FastAPI test application.

    The lifespan does not run under ASGITransport, so the service is
    installed on the application state directly.
    """
    app = create_app()
    app.state.geo_lookup_service = geo_lookup_service
    return app


@pytest_asyncio.fixture(scope="function")
async def test_app_async_client(
    test_app: FastAPI,
) -> AsyncGenerator[AsyncClient, None]:
    """Get FastAPI async test client.

    Args:
        test_app: FastAPI application for testing

    Yields:
        Test client for making asynchronous requests
    """
    transport = ASGITransport(app=cast(ASGIApp, test_app))
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        follow_redirects=True,
        timeout=DEFAULT_TIMEOUT,
    ) as client:
        yield client
