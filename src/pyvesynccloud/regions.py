"""Regional endpoint resolution for the VeSync cloud.

VeSync partitions accounts across regional clusters. Only two hosts exist
today: the US host serves US, CA, MX and JP accounts, the EU host serves
European accounts. Everything here is pure: the client owns the state.
"""

from __future__ import annotations

import logging
from enum import Enum
from urllib.parse import urlparse

from pyvesynccloud.const import EU_BASE_URL, US_BASE_URL


__all__ = [
    "Region",
    "alternate_region",
    "default_country_code",
    "endpoint_for",
    "is_known_endpoint",
    "parse_region",
    "resolve_active_base_url",
    "resolve_region_from_api_base_url",
    "resolve_region_from_country_code",
]

_LOGGER = logging.getLogger(__name__)


class Region(str, Enum):
    """Known VeSync regions."""

    US = "US"
    EU = "EU"
    CA = "CA"
    MX = "MX"
    JP = "JP"


REGION_ENDPOINTS: dict[Region, str] = {
    Region.US: US_BASE_URL,
    Region.EU: EU_BASE_URL,
    Region.CA: US_BASE_URL,
    Region.MX: US_BASE_URL,
    Region.JP: US_BASE_URL,
}

# Country codes whose accounts live on the EU cluster
EU_COUNTRY_CODES = frozenset(
    {
        "AT", "BE", "BG", "CH", "CY", "CZ", "DE", "DK", "EE", "ES", "FI", "FR",
        "GB", "GR", "HR", "HU", "IE", "IS", "IT", "LI", "LT", "LU", "LV", "MT",
        "NL", "NO", "PL", "PT", "RO", "SE", "SI", "SK", "UK",
    }
)  # fmt: skip

# Host suffix -> primary region
_HOST_SUFFIXES: tuple[tuple[str, Region], ...] = (
    ("vesync.eu", Region.EU),
    ("vesync.com", Region.US),
)

_DEFAULT_COUNTRY_CODES: dict[Region, str] = {
    Region.US: "US",
    Region.EU: "DE",
    Region.CA: "CA",
    Region.MX: "MX",
    Region.JP: "JP",
}


def parse_region(value: Region | str | None) -> Region | None:
    """Convert a region code to a Region, or None if it is not known."""
    if value is None:
        return None
    if isinstance(value, Region):
        return value
    try:
        return Region(value.strip().upper())
    except ValueError:
        return None


def resolve_region_from_country_code(code: str | None) -> Region:
    """Map a country code to the region whose cluster serves it.

    Unknown, empty and missing codes resolve to US, the home region.
    """
    if not code:
        return Region.US

    normalized = code.strip().upper()
    if normalized in EU_COUNTRY_CODES:
        return Region.EU
    if normalized in (Region.CA.value, Region.MX.value, Region.JP.value):
        return Region(normalized)
    return Region.US


def resolve_region_from_api_base_url(url: str | None) -> Region | None:
    """Infer the primary region from a base URL host.

    Returns None for hosts that are not VeSync endpoints, which marks the URL
    as a custom override that region switching must leave alone.
    """
    if not url:
        return None

    host = (urlparse(url).hostname or "").lower()
    for suffix, region in _HOST_SUFFIXES:
        if host == suffix or host.endswith(f".{suffix}"):
            return region
    return None


def is_known_endpoint(url: str | None) -> bool:
    """Check whether a URL points at one of the regional VeSync hosts."""
    return resolve_region_from_api_base_url(url) is not None


def endpoint_for(region: Region | str | None) -> str:
    """Return the base URL for a region, defaulting to the US host."""
    parsed = parse_region(region)
    if parsed is None:
        return REGION_ENDPOINTS[Region.US]
    return REGION_ENDPOINTS.get(parsed, REGION_ENDPOINTS[Region.US])


def alternate_region(region: Region | str | None) -> Region:
    """Return the other primary region.

    Regions served by the US host toggle to EU and EU toggles to US. This is a
    heuristic for the two primary clusters only.
    """
    if endpoint_for(region) == REGION_ENDPOINTS[Region.EU]:
        return Region.US
    return Region.EU


def default_country_code(region: Region | str | None) -> str:
    """Return the country code sent with a login when nothing better is known."""
    parsed = parse_region(region) or Region.US
    return _DEFAULT_COUNTRY_CODES[parsed]


def resolve_active_base_url(
    *,
    api_url_override: str | None = None,
    country_code_override: str | None = None,
    stored_base_url: str | None = None,
    region: Region | str | None = None,
) -> str:
    """Pick the base URL for the next login attempt.

    Precedence:
        1. Explicit caller-supplied override URL (sticky).
        2. Explicit caller-supplied country code.
        3. Base URL of a previously successful session.
        4. Stored or derived region.
        5. US.
    """
    if api_url_override:
        return api_url_override.rstrip("/")

    if country_code_override:
        resolved = resolve_region_from_country_code(country_code_override)
        _LOGGER.debug("Country code %s resolves to region %s", country_code_override, resolved.value)
        return endpoint_for(resolved)

    if stored_base_url:
        return stored_base_url.rstrip("/")

    if parse_region(region) is not None:
        return endpoint_for(region)

    return REGION_ENDPOINTS[Region.US]
