"""National crisis resources, one fixed list per supported country."""

from types import MappingProxyType

from app.api.v1.geo_lookup.models import NationalResource
from app.models.geographic import CountryCode

NATIONAL_RESOURCES = MappingProxyType(
    {
        "US": (
            NationalResource(
                name="988 Suicide & Crisis Lifeline",
                description="24/7 free and confidential support for people in distress",
                website="https://988lifeline.org",
                phone="988",
            ),
            NationalResource(
                name="Crisis Text Line",
                description="Text HOME to 741741 for free 24/7 crisis support",
                website="https://www.crisistextline.org",
                phone="741741",
            ),
        ),
        "CA": (
            NationalResource(
                name="Talk Suicide Canada",
                description="24/7 support for anyone experiencing suicidal thoughts",
                website="https://talksuicide.ca",
                phone="1-833-456-4566",
            ),
            NationalResource(
                name="Kids Help Phone",
                description="24/7 support for young people (call, text, live chat)",
                website="https://kidshelpphone.ca",
                phone="1-800-668-6868",
            ),
        ),
    }
)


def nationals_for(country: CountryCode) -> list[NationalResource]:
    """National resources for ``country``; never empty."""
    return list(NATIONAL_RESOURCES.get(country, NATIONAL_RESOURCES["US"]))
