"""
Location API Endpoints.

Geocoding for distance search, country detection, and suburb lookups.
"""

from fastapi import APIRouter, Depends, Query, Request

from api.container import ServiceContainer
from api.dependencies import get_container, get_identity
from api.models import CountryResponse, GeoLocationResponse, ValidateSuburbRequest
from domain.location import DEFAULT_COUNTRY_NAME
from domain.user import VerifiedIdentity
from services.address_lookup_service import client_ip

router = APIRouter()


@router.get(
    "/coordinates",
    response_model=GeoLocationResponse,
    summary="Geocode Location",
    description="Coordinates for a suburb or postcode. Falls back to a default location."
)
def get_coordinates(
    query: str = Query(..., min_length=1, description="Suburb name or postcode"),
    country: str = Query(DEFAULT_COUNTRY_NAME),
    container: ServiceContainer = Depends(get_container),
):
    """
    Geocode a suburb or postcode.

    **Success response:**
    ```json
    {"latitude": -37.8136, "longitude": 144.9631, "name": "Melbourne", "cached": true, "fallback": false}
    ```
    """
    location = container.geocoding.get_coordinates(query, country)
    return GeoLocationResponse(
        latitude=location.latitude,
        longitude=location.longitude,
        name=location.name,
        cached=location.cached,
        fallback=location.fallback,
    )


@router.get(
    "/country",
    response_model=CountryResponse,
    summary="Detect Country",
    description="Country of the caller's IP address. Falls back to Australia."
)
def detect_country(request: Request, container: ServiceContainer = Depends(get_container)):
    peer = request.client.host if request.client else None
    info = container.address_lookup.detect_country(client_ip(request.headers, peer))
    return CountryResponse(
        country_code=info.country_code,
        country=info.country,
        city=info.city,
        detected=info.detected,
    )


@router.get(
    "/suburbs",
    summary="Search Suburbs",
    description="Suburb autocomplete."
)
def search_suburbs(
    query: str = Query(..., min_length=1),
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    return container.address_lookup.search_suburbs(query)


@router.post(
    "/suburbs/validate",
    summary="Validate Suburb",
    description="Check that a suburb and postcode belong together."
)
def validate_suburb(
    request: ValidateSuburbRequest,
    identity: VerifiedIdentity = Depends(get_identity),
    container: ServiceContainer = Depends(get_container),
):
    return container.address_lookup.validate_suburb(request.suburb, request.postcode)
