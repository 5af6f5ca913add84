"""Geocoding test fixtures."""

from collections.abc import Iterable
from typing import Optional, Union

import pytest
from geopy.location import Location

from app.core.exceptions import GeocodeProviderError
from app.core.geocoding.orchestrator import GeocoderOrchestrator
from app.core.geocoding.providers import GeocodeProvider
from app.models.geographic import GeoCoordinate, NormalizedCode

NEW_YORK = GeoCoordinate(
    lat=40.7506, lng=-73.9972, city="New York", region="NY", country="United States"
)
TORONTO = GeoCoordinate(
    lat=43.6426, lng=-79.3871, city="Toronto", region="ON", country="Canada"
)

Outcome = Union[GeoCoordinate, Exception]


class ScriptedProvider(GeocodeProvider):
    """Provider that replays a fixed sequence of outcomes.

    The last outcome repeats once the script runs out.
    """

    def __init__(self, name: str, outcomes: Iterable[Outcome]) -> None:
        self.name = name
        self.outcomes = list(outcomes)
        self.calls: list[NormalizedCode] = []

    def _lookup(self, code: NormalizedCode) -> Optional[Location]:
        raise NotImplementedError

    def _parse(self, location: Location, code: NormalizedCode) -> GeoCoordinate:
        raise NotImplementedError

    def geocode(self, code: NormalizedCode) -> GeoCoordinate:
        self.calls.append(code)
        index = min(len(self.calls), len(self.outcomes)) - 1
        outcome = self.outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def failing(name: str) -> GeocodeProviderError:
    return GeocodeProviderError(name, "no match")


class RecordingSleep:
    """Replacement for asyncio.sleep that records the requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def primary_provider() -> ScriptedProvider:
    """Primary provider that always answers with New York."""
    return ScriptedProvider("mapbox", [NEW_YORK])


@pytest.fixture
def secondary_provider() -> ScriptedProvider:
    """Secondary provider that always answers with New York."""
    return ScriptedProvider("nominatim", [NEW_YORK])


@pytest.fixture
def orchestrator(
    primary_provider: ScriptedProvider,
    secondary_provider: ScriptedProvider,
    recording_sleep: RecordingSleep,
) -> GeocoderOrchestrator:
    """Orchestrator over scripted providers that never really sleeps."""
    return GeocoderOrchestrator(
        primary=primary_provider,
        secondary=secondary_provider,
        timeout=1.0,
        backoff_seconds=0.5,
        sleep=recording_sleep,
    )
