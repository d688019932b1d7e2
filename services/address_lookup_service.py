"""
Address lookups.

- Country detection from the caller's IP address (ipapi.co). Best effort:
  anything that goes wrong answers with the default country.
- Suburb search and suburb/postcode validation (HandyAPI). These are proxied
  so the API key stays server-side; failures are reported to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

import httpx

from domain.errors import ConfigurationError, InvalidInput, UpstreamUnavailable
from domain.location import CountryInfo

logger = logging.getLogger(__name__)

IPAPI_BASE_URL = "https://ipapi.co"
HANDYAPI_BASE_URL = "https://handyapi.com/api"

_LOCAL_ADDRESSES = {"unknown", "::1", "127.0.0.1", "localhost", "testclient"}


def client_ip(headers: Mapping[str, str], peer: Optional[str] = None) -> Optional[str]:
    """
    Best guess at the caller's public IP.

    Proxy headers are consulted in order: cf-connecting-ip, x-forwarded-for
    (first hop), x-client-ip, x-real-ip; then the socket peer address.
    Local or unknown addresses are skipped.
    """
    forwarded = headers.get("x-forwarded-for")
    candidates = [
        headers.get("cf-connecting-ip"),
        forwarded.split(",")[0] if forwarded else None,
        headers.get("x-client-ip"),
        headers.get("x-real-ip"),
        peer,
    ]
    for candidate in candidates:
        if candidate and candidate.strip() and candidate.strip() not in _LOCAL_ADDRESSES:
            return candidate.strip()
    return None


class AddressLookupService:
    def __init__(
        self,
        http: httpx.Client,
        handyapi_key: Optional[str],
        ipapi_base_url: str = IPAPI_BASE_URL,
        handyapi_base_url: str = HANDYAPI_BASE_URL,
    ) -> None:
        self._http = http
        self._handyapi_key = handyapi_key
        self._ipapi_base_url = ipapi_base_url.rstrip("/")
        self._handyapi_base_url = handyapi_base_url.rstrip("/")

    def detect_country(self, ip: Optional[str]) -> CountryInfo:
        if not ip:
            logger.warning("Could not determine client IP, using default country")
            return CountryInfo.default()

        try:
            response = self._http.get(f"{self._ipapi_base_url}/{ip}/json/")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Country detection failed for %s: %s", ip, e)
            return CountryInfo.default()

        if not data.get("country_code") or not data.get("country_name"):
            logger.warning("Country detection for %s returned no country", ip)
            return CountryInfo.default()

        return CountryInfo(
            country_code=str(data["country_code"]),
            country=str(data["country_name"]),
            city=str(data.get("city") or ""),
            detected=True,
        )

    def search_suburbs(self, query: str) -> Any:
        query = (query or "").strip()
        if not query:
            raise InvalidInput("query is required")
        return self._handyapi("GET", "/Suburb/Search", params={"Query": query})

    def validate_suburb(self, suburb: str, postcode: str) -> Any:
        if not suburb or not postcode:
            raise InvalidInput("suburb and postcode are required")
        return self._handyapi("POST", "/Suburb/Validate", json={"suburb": suburb, "postcode": postcode})

    def _handyapi(self, method: str, path: str, **kwargs: Any) -> Any:
        if not self._handyapi_key:
            raise ConfigurationError("Address lookup not configured - missing HANDYAPI_KEY")

        try:
            response = self._http.request(
                method,
                f"{self._handyapi_base_url}{path}",
                headers={"x-api-key": self._handyapi_key},
                **kwargs,
            )
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error("HandyAPI %s %s timed out", method, path)
            raise UpstreamUnavailable("Address lookup timed out", retryable=True) from e
        except httpx.HTTPStatusError as e:
            logger.error("HandyAPI %s %s returned %s", method, path, e.response.status_code)
            raise UpstreamUnavailable(f"HandyAPI error: {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("HandyAPI %s %s failed: %s", method, path, e)
            raise UpstreamUnavailable("Address lookup failed", retryable=isinstance(e, httpx.TransportError)) from e


__all__ = ["AddressLookupService", "client_ip"]
