"""
Domain: geographic lookups.

Location lookups never fail the caller's flow. When the upstream provider is
unavailable the service answers with the defaults below, flagged as such.
"""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_LATITUDE = -37.8136
DEFAULT_LONGITUDE = 144.9631
DEFAULT_LOCATION_NAME = "Melbourne"

DEFAULT_COUNTRY_CODE = "AU"
DEFAULT_COUNTRY_NAME = "Australia"


@dataclass(frozen=True, slots=True)
class GeoLocation:
    latitude: float
    longitude: float
    name: str
    cached: bool = False
    fallback: bool = False

    @classmethod
    def default(cls) -> "GeoLocation":
        return cls(
            latitude=DEFAULT_LATITUDE,
            longitude=DEFAULT_LONGITUDE,
            name=DEFAULT_LOCATION_NAME,
            fallback=True,
        )


@dataclass(frozen=True, slots=True)
class CountryInfo:
    country_code: str
    country: str
    city: str = ""
    detected: bool = False

    @classmethod
    def default(cls) -> "CountryInfo":
        return cls(country_code=DEFAULT_COUNTRY_CODE, country=DEFAULT_COUNTRY_NAME)
