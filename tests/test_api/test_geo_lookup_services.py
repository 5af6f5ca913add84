"""Tests for provider matching, response composition and the lookup service."""

import pytest

from app.api.v1.geo_lookup.catalog import NATIONAL_RESOURCES, nationals_for
from app.api.v1.geo_lookup.services import (
    DEFAULT_DESCRIPTION,
    DEFAULT_PHONE,
    DEFAULT_WEBSITE,
    DEGRADED_MESSAGE,
    compose,
    create_geo_lookup_service,
    match_providers,
)
from app.core.config import Settings
from app.core.exceptions import (
    DirectoryUnavailableError,
    InvalidPostalCodeError,
    RateLimitExceededError,
)
from app.models.geographic import LocationRecord
from tests.fixtures.api import NEARBY_CLINIC
from tests.fixtures.geocoding import NEW_YORK, failing


def record(name: str, lat_offset: float, **kwargs) -> LocationRecord:
    """A location due north of midtown Manhattan; 0.01 degrees is ~0.69 mi."""
    return LocationRecord(
        name=name,
        latitude=NEW_YORK.lat + lat_offset,
        longitude=NEW_YORK.lng,
        **kwargs,
    )


class TestMatchProviders:
    """Radius filter, ordering and truncation."""

    def test_should_keep_only_locations_within_radius(self):
        candidates = [record("Near", 0.1), record("Far", 0.4)]

        results = match_providers(NEW_YORK, candidates, radius_miles=25.0)

        assert [r.name for r in results] == ["Near"]
        assert results[0].distance_mi == pytest.approx(6.9, abs=0.1)

    def test_should_include_location_on_the_boundary(self):
        candidates = [record("Edge", 0.0)]

        results = match_providers(NEW_YORK, candidates, radius_miles=0.0)

        assert [r.name for r in results] == ["Edge"]
        assert results[0].distance_km == 0.0

    def test_should_sort_nearest_first(self):
        candidates = [record("C", 0.3), record("A", 0.1), record("B", 0.2)]

        results = match_providers(NEW_YORK, candidates)

        assert [r.name for r in results] == ["A", "B", "C"]

    def test_should_break_ties_by_name(self):
        candidates = [record("Zeta", 0.1), record("Alpha", 0.1)]

        results = match_providers(NEW_YORK, candidates)

        assert [r.name for r in results] == ["Alpha", "Zeta"]

    def test_should_truncate_to_limit(self):
        candidates = [record(f"Clinic {i:02d}", 0.01 * i) for i in range(15)]

        results = match_providers(NEW_YORK, candidates, limit=10)

        assert len(results) == 10
        assert results[-1].name == "Clinic 09"

    def test_should_fill_missing_contact_details(self):
        results = match_providers(NEW_YORK, [record("Bare", 0.01)])

        assert results[0].website == DEFAULT_WEBSITE
        assert results[0].phone == DEFAULT_PHONE
        assert results[0].description == DEFAULT_DESCRIPTION
        assert results[0].type == "local"

    def test_should_keep_directory_contact_details(self):
        results = match_providers(NEW_YORK, [NEARBY_CLINIC])

        assert results[0].website == "https://midtown.example.org"
        assert results[0].phone == "212-555-0100"
        assert results[0].description == "Counseling"

    def test_should_skip_invalid_coordinates(self):
        bad = LocationRecord(name="Broken", latitude=123.0, longitude=-73.9)

        assert match_providers(NEW_YORK, [bad]) == []

    def test_should_round_distances_to_one_decimal(self):
        results = match_providers(NEW_YORK, [NEARBY_CLINIC])

        assert results[0].distance_mi == 2.0
        assert results[0].distance_km == 3.2


class TestCompose:
    """Response assembly."""

    def test_should_count_results(self):
        locals_ = match_providers(NEW_YORK, [NEARBY_CLINIC])
        nationals = nationals_for("US")

        response = compose(locals_, nationals, NEW_YORK, "US", "primary", 42)

        assert response.local_count == 1
        assert response.national_count == 2
        assert response.location == NEW_YORK
        assert response.cached is False
        assert response.error is None

    def test_should_build_degraded_response(self):
        locals_ = match_providers(NEW_YORK, [NEARBY_CLINIC])

        response = compose(locals_, nationals_for("CA"), NEW_YORK, "CA", "none", 9000)

        assert response.locals == []
        assert response.location is None
        assert response.local_count == 0
        assert response.national_count == 2
        assert response.error == DEGRADED_MESSAGE

    def test_should_serialize_with_camel_case_keys(self):
        response = compose([], nationals_for("US"), NEW_YORK, "US", "secondary", 5)

        body = response.model_dump(by_alias=True)

        assert {"latencyMs", "localCount", "nationalCount"} <= body.keys()


class TestNationalCatalog:
    """Fixed national resources."""

    def test_should_list_us_resources(self):
        names = [r.name for r in nationals_for("US")]

        assert names == ["988 Suicide & Crisis Lifeline", "Crisis Text Line"]

    def test_should_list_canadian_resources(self):
        phones = [r.phone for r in nationals_for("CA")]

        assert phones == ["1-833-456-4566", "1-800-668-6868"]

    def test_should_mark_resources_national(self):
        for resources in NATIONAL_RESOURCES.values():
            assert all(r.type == "national" for r in resources)

    def test_should_return_a_fresh_list(self):
        first = nationals_for("US")
        first.clear()

        assert len(nationals_for("US")) == 2


class TestGeoLookupService:
    """End-to-end pipeline against in-memory collaborators."""

    async def test_should_resolve_code(self, geo_lookup_service, fake_directory):
        response = await geo_lookup_service.lookup("10001", client_id="10.0.0.1")

        assert response.country == "US"
        assert response.geocoder == "primary"
        assert [r.name for r in response.locals] == [NEARBY_CLINIC.name]
        assert response.cached is False
        assert fake_directory.calls == 1

    async def test_should_serve_second_lookup_from_cache(
        self, geo_lookup_service, primary_provider, fake_directory
    ):
        first = await geo_lookup_service.lookup("10001")
        second = await geo_lookup_service.lookup(" 10001 ")

        assert second.cached is True
        assert second.locals == first.locals
        assert second.latency_ms == first.latency_ms
        assert len(primary_provider.calls) == 1
        assert fake_directory.calls == 1

    async def test_should_degrade_when_geocoding_fails(
        self, geo_lookup_service, primary_provider, secondary_provider, fake_directory
    ):
        primary_provider.outcomes = [failing("mapbox")]
        secondary_provider.outcomes = [failing("nominatim")]

        response = await geo_lookup_service.lookup("M5V 2T6")

        assert response.geocoder == "none"
        assert response.country == "CA"
        assert response.locals == []
        assert response.error == DEGRADED_MESSAGE
        assert [r.name for r in response.nationals] == [
            "Talk Suicide Canada",
            "Kids Help Phone",
        ]
        assert fake_directory.calls == 0

    async def test_should_retry_geocoding_after_degraded_ttl(
        self, geo_lookup_service, primary_provider, secondary_provider, fake_clock
    ):
        primary_provider.outcomes = [failing("mapbox")]
        secondary_provider.outcomes = [failing("nominatim")]
        await geo_lookup_service.lookup("10001")

        cached = await geo_lookup_service.lookup("10001")
        assert cached.cached is True

        fake_clock.advance(300)
        primary_provider.outcomes = [NEW_YORK]
        primary_provider.calls.clear()

        fresh = await geo_lookup_service.lookup("10001")
        assert fresh.geocoder == "primary"
        assert fresh.cached is False

    async def test_should_geocode_again_after_cache_ttl(
        self, geo_lookup_service, primary_provider, fake_directory, fake_clock
    ):
        first = await geo_lookup_service.lookup("10001")
        assert first.cached is False
        assert len(primary_provider.calls) == 1

        fake_clock.advance(3600)

        fresh = await geo_lookup_service.lookup("10001")
        assert fresh.cached is False
        assert fresh.geocoder == "primary"
        assert len(primary_provider.calls) == 2
        assert fake_directory.calls == 2

    async def test_should_serve_from_cache_just_before_ttl(
        self, geo_lookup_service, primary_provider, fake_clock
    ):
        await geo_lookup_service.lookup("10001")

        fake_clock.advance(3599)

        cached = await geo_lookup_service.lookup("10001")
        assert cached.cached is True
        assert len(primary_provider.calls) == 1

    async def test_should_reject_invalid_code_without_geocoding(
        self, geo_lookup_service, primary_provider
    ):
        with pytest.raises(InvalidPostalCodeError):
            await geo_lookup_service.lookup("ABC12345")

        assert primary_provider.calls == []

    async def test_should_rate_limit_before_validating(self, geo_lookup_service):
        for _ in range(30):
            with pytest.raises(InvalidPostalCodeError):
                await geo_lookup_service.lookup("bad", client_id="10.0.0.9")

        with pytest.raises(RateLimitExceededError):
            await geo_lookup_service.lookup("10001", client_id="10.0.0.9")

    async def test_should_not_cache_directory_failures(
        self, geo_lookup_service, fake_directory
    ):
        fake_directory.fail = True
        with pytest.raises(DirectoryUnavailableError):
            await geo_lookup_service.lookup("10001")

        fake_directory.fail = False
        response = await geo_lookup_service.lookup("10001")

        assert response.cached is False
        assert response.local_count == 1

    async def test_should_report_health(self, geo_lookup_service):
        await geo_lookup_service.lookup("10001")

        health = await geo_lookup_service.health()

        assert health.ok is True
        assert health.geocoder == "primary"
        assert health.cache_size == 1
        assert health.cache_status == "1 entries"
        assert health.uptime_seconds >= 0

    async def test_should_report_unhealthy_cache(self, geo_lookup_service, monkeypatch):
        async def broken_size(prefix: str = "") -> int:
            raise ConnectionError("store down")

        monkeypatch.setattr(geo_lookup_service.cache.store, "size", broken_size)

        health = await geo_lookup_service.health()

        assert health.ok is False
        assert health.cache_status == "unavailable"


def test_create_service_from_settings():
    settings = Settings(GEOCODER_API_KEY=None, RATE_LIMIT_REQUESTS=5, MAX_LOCAL_RESULTS=3)

    service = create_geo_lookup_service(settings)

    assert service.rate_limiter.limit == 5
    assert service.max_results == 3
    assert service.cache.store is not service.rate_limiter.store
    assert service.orchestrator.configured_primary == "secondary"
