"""Postal code validation and normalization.

Only two formats are accepted:

- US ZIP codes: ``12345`` or ``12345-6789``
- Canadian postal codes: ``A1A 1A1`` (space or hyphen optional)

The country of a code is decided by which format it matches. A caller
supplied hint is advisory only and never changes the outcome.
"""

import logging
import re
from typing import Optional

from app.core.exceptions import InvalidPostalCodeError
from app.models.geographic import CountryCode, NormalizedCode

logger = logging.getLogger(__name__)

# ASCII only: without it \d also matches fullwidth and other non-Latin digits
US_ZIP_PATTERN = re.compile(r"^\d{5}(-\d{4})?$", re.ASCII)
CA_POSTAL_PATTERN = re.compile(r"^([A-Z]\d[A-Z])[ -]?(\d[A-Z]\d)$", re.ASCII)

_WHITESPACE = re.compile(r"\s+")


def clean_code(raw: str) -> str:
    """Trim, uppercase and collapse internal whitespace to single spaces."""
    return _WHITESPACE.sub(" ", raw.strip().upper())


def normalize(raw: Optional[str], country_hint: Optional[str] = None) -> NormalizedCode:
    """Classify and canonicalize a raw ZIP or postal code.

    Args:
        raw: Code as typed by the user
        country_hint: Optional "US" or "CA"; ignored when it disagrees
            with the matched format

    Returns:
        NormalizedCode with the canonical form and derived country

    Raises:
        InvalidPostalCodeError: If the code is missing or matches neither format
    """
    if raw is None or not raw.strip():
        raise InvalidPostalCodeError("Missing 'code' parameter", reason="missing_code")

    cleaned = clean_code(raw)
    country: CountryCode

    if US_ZIP_PATTERN.fullmatch(cleaned):
        country = "US"
        normalized = cleaned
    else:
        ca_match = CA_POSTAL_PATTERN.fullmatch(cleaned)
        if not ca_match:
            raise InvalidPostalCodeError("Invalid postal/ZIP format")
        country = "CA"
        normalized = f"{ca_match.group(1)} {ca_match.group(2)}"

    if country_hint and country_hint.upper() != country:
        logger.debug(
            f"Ignoring country hint {country_hint!r} for {country} code {normalized}"
        )

    return NormalizedCode(raw=raw, normalized=normalized, country=country)


def is_valid_code(raw: Optional[str]) -> bool:
    """Return True if ``raw`` is an acceptable US or Canadian code."""
    try:
        normalize(raw)
    except InvalidPostalCodeError:
        return False
    return True
