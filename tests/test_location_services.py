"""
Tests for `services/geocoding_service.py` and `services/address_lookup_service.py`.

httpx is replaced by a MagicMock client. Geocoding and country detection
must degrade to defaults; suburb lookups must report failures.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import httpx
import pytest

from domain.errors import ConfigurationError, InvalidInput, UpstreamUnavailable
from domain.location import DEFAULT_LATITUDE, DEFAULT_LONGITUDE, GeoLocation
from fakes import FakeGeocodeCache
from repositories.geocode_cache_repository import GeocodeCacheRepository
from services.address_lookup_service import AddressLookupService, client_ip
from services.geocoding_service import GeocodingService


def _http_returning(payload) -> MagicMock:
    response = MagicMock()
    response.raise_for_status.return_value = None
    response.json.return_value = payload
    http = MagicMock()
    http.get.return_value = response
    http.request.return_value = response
    return http


NOMINATIM_RESULT = [
    {
        "lat": "-37.8183",
        "lon": "144.9978",
        "display_name": "Richmond, City of Yarra, Victoria, Australia",
        "address": {"suburb": "Richmond"},
    }
]


# ============================================================================
# Geocoding
# ============================================================================

def test_cache_hit_skips_upstream() -> None:
    cache = FakeGeocodeCache()
    cache.entries["richmond"] = GeoLocation(-37.82, 145.0, "Richmond")
    http = MagicMock()

    location = GeocodingService(cache, http).get_coordinates("  Richmond ")

    assert location.cached
    assert location.name == "Richmond"
    http.get.assert_not_called()


def test_cache_miss_queries_nominatim_and_caches() -> None:
    cache = FakeGeocodeCache()
    http = _http_returning(NOMINATIM_RESULT)

    location = GeocodingService(cache, http).get_coordinates("Richmond", "Australia")

    assert (location.latitude, location.longitude) == (-37.8183, 144.9978)
    assert location.name == "Richmond"
    assert not location.cached and not location.fallback
    assert "richmond" in cache.entries

    params = http.get.call_args.kwargs["params"]
    assert params["q"] == "Richmond, Australia"
    assert "User-Agent" in http.get.call_args.kwargs["headers"]


def test_display_name_used_when_no_suburb() -> None:
    result = [{"lat": "-33.9", "lon": "151.2", "display_name": "Sydney, NSW, Australia", "address": {}}]

    location = GeocodingService(None, _http_returning(result)).get_coordinates("2000")

    assert location.name == "Sydney"


@pytest.mark.parametrize(
    "failure",
    [
        httpx.ConnectTimeout("timed out"),
        httpx.ConnectError("connection refused"),
    ],
)
def test_upstream_failure_falls_back_to_default(failure) -> None:
    cache = FakeGeocodeCache()
    http = MagicMock()
    http.get.side_effect = failure

    location = GeocodingService(cache, http).get_coordinates("Nowhere")

    assert location.fallback
    assert (location.latitude, location.longitude) == (DEFAULT_LATITUDE, DEFAULT_LONGITUDE)
    assert cache.entries == {}


def test_empty_result_falls_back_to_default() -> None:
    location = GeocodingService(FakeGeocodeCache(), _http_returning([])).get_coordinates("Atlantis")

    assert location.fallback
    assert location.name == "Melbourne"


def test_broken_cache_does_not_fail_lookup() -> None:
    cache = FakeGeocodeCache()
    cache.fail = True

    location = GeocodingService(cache, _http_returning(NOMINATIM_RESULT)).get_coordinates("Richmond")

    assert location.name == "Richmond"
    assert not location.fallback


def test_unreachable_cache_store_does_not_fail_lookup() -> None:
    client = MagicMock()
    lookup = client.table.return_value.select.return_value.eq.return_value.limit.return_value
    lookup.execute.side_effect = httpx.ConnectError("connection refused")
    client.table.return_value.upsert.return_value.execute.side_effect = httpx.ReadTimeout("timed out")

    location = GeocodingService(GeocodeCacheRepository(client), _http_returning(NOMINATIM_RESULT)).get_coordinates(
        "Richmond"
    )

    assert location.name == "Richmond"
    assert not location.fallback


def test_error_object_from_upstream_falls_back_to_default() -> None:
    location = GeocodingService(None, _http_returning({"error": "Unable to geocode"})).get_coordinates("3000")

    assert location.fallback
    assert (location.latitude, location.longitude) == (DEFAULT_LATITUDE, DEFAULT_LONGITUDE)


def test_blank_query_is_invalid() -> None:
    with pytest.raises(InvalidInput):
        GeocodingService(None, MagicMock()).get_coordinates("   ")


# ============================================================================
# Country detection
# ============================================================================

def test_client_ip_header_precedence() -> None:
    headers = {"x-forwarded-for": "203.0.113.7, 10.0.0.1", "x-real-ip": "198.51.100.2"}

    assert client_ip(headers, "10.0.0.9") == "203.0.113.7"
    assert client_ip({"cf-connecting-ip": "192.0.2.1", **headers}) == "192.0.2.1"


def test_client_ip_skips_local_addresses() -> None:
    assert client_ip({"x-forwarded-for": "127.0.0.1"}, "::1") is None
    assert client_ip({"x-forwarded-for": "127.0.0.1", "x-real-ip": "198.51.100.2"}) == "198.51.100.2"


def test_detect_country() -> None:
    http = _http_returning({"country_code": "NZ", "country_name": "New Zealand", "city": "Auckland"})

    info = AddressLookupService(http, None).detect_country("203.0.113.7")

    assert (info.country_code, info.country, info.city, info.detected) == ("NZ", "New Zealand", "Auckland", True)
    assert http.get.call_args.args[0] == "https://ipapi.co/203.0.113.7/json/"


def test_detect_country_without_ip_uses_default() -> None:
    http = MagicMock()

    info = AddressLookupService(http, None).detect_country(None)

    assert (info.country_code, info.detected) == ("AU", False)
    http.get.assert_not_called()


def test_detect_country_upstream_failure_uses_default() -> None:
    http = MagicMock()
    http.get.side_effect = httpx.ReadTimeout("timed out")

    info = AddressLookupService(http, None).detect_country("203.0.113.7")

    assert (info.country_code, info.country, info.city, info.detected) == ("AU", "Australia", "", False)


def test_detect_country_incomplete_answer_uses_default() -> None:
    info = AddressLookupService(_http_returning({"error": True}), None).detect_country("203.0.113.7")

    assert not info.detected


# ============================================================================
# Suburb lookups
# ============================================================================

def test_suburb_search_sends_api_key() -> None:
    http = _http_returning([{"suburb": "Richmond", "postcode": "3121"}])

    result = AddressLookupService(http, "handy-key").search_suburbs("Rich")

    assert result == [{"suburb": "Richmond", "postcode": "3121"}]
    method, url = http.request.call_args.args
    assert (method, url) == ("GET", "https://handyapi.com/api/Suburb/Search")
    assert http.request.call_args.kwargs["headers"] == {"x-api-key": "handy-key"}
    assert http.request.call_args.kwargs["params"] == {"Query": "Rich"}


def test_suburb_validate_posts_json() -> None:
    http = _http_returning({"valid": True})

    assert AddressLookupService(http, "handy-key").validate_suburb("Richmond", "3121") == {"valid": True}
    assert http.request.call_args.kwargs["json"] == {"suburb": "Richmond", "postcode": "3121"}


def test_suburb_lookup_without_key_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        AddressLookupService(MagicMock(), None).search_suburbs("Rich")


def test_suburb_lookup_upstream_error() -> None:
    request = httpx.Request("GET", "https://handyapi.com/api/Suburb/Search")
    response = MagicMock()
    response.raise_for_status.side_effect = httpx.HTTPStatusError(
        "server error", request=request, response=httpx.Response(502, request=request)
    )
    http = MagicMock()
    http.request.return_value = response

    with pytest.raises(UpstreamUnavailable, match="502"):
        AddressLookupService(http, "handy-key").search_suburbs("Rich")


def test_suburb_lookup_timeout_is_retryable() -> None:
    http = MagicMock()
    http.request.side_effect = httpx.ReadTimeout("timed out")

    with pytest.raises(UpstreamUnavailable) as excinfo:
        AddressLookupService(http, "handy-key").search_suburbs("Rich")

    assert excinfo.value.retryable
