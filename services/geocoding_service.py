"""
Geocoding service.

Resolves a suburb or postcode to coordinates for distance search:
1. Look the normalised query up in the postcode cache
2. Otherwise ask Nominatim (OpenStreetMap) and cache the first result
3. On any upstream failure, answer with the default location

Cache reads and writes are best effort. A broken cache degrades to an
upstream call; it never fails the lookup.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from domain.errors import InvalidInput, LedgerError
from domain.location import DEFAULT_COUNTRY_NAME, GeoLocation
from domain.time import utc_now
from repositories.geocode_cache_repository import GeocodeCacheRepository

logger = logging.getLogger(__name__)

NOMINATIM_SEARCH_URL = "https://nominatim.openstreetmap.org/search"
USER_AGENT = "UrbanGarageSale/1.0 (+https://urbangaragesale.com)"


def _place_name(result: Mapping[str, Any], query: str) -> str:
    address = result.get("address") or {}
    for field in ("suburb", "town", "village"):
        if address.get(field):
            return str(address[field])
    display_name = result.get("display_name")
    if display_name:
        return str(display_name).split(",")[0].strip()
    return query


class GeocodingService:
    def __init__(
        self,
        cache: Optional[GeocodeCacheRepository],
        http: httpx.Client,
        search_url: str = NOMINATIM_SEARCH_URL,
    ) -> None:
        self._cache = cache
        self._http = http
        self._search_url = search_url

    def get_coordinates(self, query: str, country: str = DEFAULT_COUNTRY_NAME) -> GeoLocation:
        """
        Coordinates for a suburb or postcode.

        Raises:
            InvalidInput: If query is blank. Upstream failures never raise.
        """
        query = (query or "").strip()
        if not query:
            raise InvalidInput("Location query is required")

        cached = self._read_cache(query)
        if cached is not None:
            logger.debug("Geocode cache hit for %r", query)
            return cached

        location = self._search(query, country)
        if location is None:
            return GeoLocation.default()

        self._write_cache(query, location)
        return location

    def _search(self, query: str, country: str) -> Optional[GeoLocation]:
        try:
            response = self._http.get(
                self._search_url,
                params={"q": f"{query}, {country}", "addressdetails": 1, "format": "json"},
                headers={"User-Agent": USER_AGENT},
            )
            response.raise_for_status()
            results = response.json()
        except httpx.TimeoutException:
            logger.warning("Geocoding %r timed out, using default location", query)
            return None
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Geocoding %r failed (%s), using default location", query, e)
            return None

        if not isinstance(results, list):
            logger.warning("Unexpected geocoding answer for %r, using default location", query)
            return None
        if not results:
            logger.info("No geocoding results for %r, using default location", query)
            return None

        first = results[0]
        try:
            latitude = float(first["lat"])
            longitude = float(first["lon"])
        except (KeyError, TypeError, ValueError):
            logger.warning("Geocoding result for %r has no usable coordinates", query)
            return None

        return GeoLocation(latitude=latitude, longitude=longitude, name=_place_name(first, query))

    def _read_cache(self, query: str) -> Optional[GeoLocation]:
        if self._cache is None:
            return None
        try:
            return self._cache.get(query)
        except LedgerError as e:
            logger.warning("Geocode cache lookup failed for %r: %s", query, e)
            return None

    def _write_cache(self, query: str, location: GeoLocation) -> None:
        if self._cache is None:
            return
        try:
            self._cache.put(query, location, utc_now())
        except LedgerError as e:
            logger.warning("Failed to cache coordinates for %r: %s", query, e)


__all__ = ["GeocodingService", "NOMINATIM_SEARCH_URL"]
