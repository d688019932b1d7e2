"""
Listing query utilities.

Pure functions over listings already loaded into memory:
- filter_listings: conjunctive sale type / postcode / radius filter
- is_listing_saved: saved-listing membership check
- group_listings_by_proximity: half-degree buckets for map clustering

None of these functions perform I/O or mutate their inputs.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from domain.listing import ALL_SALE_TYPES, Listing, ListingSearchCriteria

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometres."""

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def _coordinate(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _matches(listing: Listing, criteria: ListingSearchCriteria, radius_km: Optional[float]) -> bool:
    if criteria.sale_type and criteria.sale_type != ALL_SALE_TYPES:
        if listing.get("sale_type") != criteria.sale_type:
            return False

    if criteria.postcode:
        if listing.get("postcode") != criteria.postcode:
            return False

    if radius_km is not None:
        lat = _coordinate(listing.get("latitude"))
        lon = _coordinate(listing.get("longitude"))
        # A listing that cannot be placed on the map is outside every radius.
        if lat is None or lon is None:
            return False
        distance = haversine_km(criteria.user_latitude, criteria.user_longitude, lat, lon)
        if distance > radius_km:
            return False

    return True


def _radius(criteria: ListingSearchCriteria) -> Optional[float]:
    if criteria.distance is None or criteria.user_latitude is None or criteria.user_longitude is None:
        return None
    try:
        return float(criteria.distance)
    except (TypeError, ValueError):
        return None


def filter_listings(
    listings: Sequence[Listing],
    criteria: Optional[ListingSearchCriteria] = None,
) -> List[Listing]:
    """
    Filter listings by the criteria that are present.

    A listing passes when all of these hold:
    - sale_type is unset, "all", or equal to the listing's sale_type
    - postcode is unset or equal to the listing's postcode
    - when distance and both user coordinates are set, the listing lies
      within `distance` km of the user

    Missing or empty criteria return the same listings in the same order.
    """

    if criteria is None or criteria.is_empty():
        return list(listings)

    radius_km = _radius(criteria)
    return [listing for listing in listings if _matches(listing, criteria, radius_km)]


def is_listing_saved(listing_id: Any, saved_listings: Iterable[Mapping[str, Any]]) -> bool:
    """
    True when some saved entry's `garage_sale_id` is `listing_id`.

    The comparison is type-strict: 1 does not match "1", and True does not
    match 1.
    """

    for saved in saved_listings:
        candidate = saved.get("garage_sale_id")
        if type(candidate) is type(listing_id) and candidate == listing_id:
            return True
    return False


def _round_half_degree(value: float) -> float:
    # Halves round towards positive infinity.
    return math.floor(value * 2 + 0.5) / 2


def _format_degree(value: float) -> str:
    if value == int(value):
        return str(int(value))
    return str(value)


def proximity_key(latitude: float, longitude: float) -> str:
    return f"{_format_degree(_round_half_degree(latitude))},{_format_degree(_round_half_degree(longitude))}"


def group_listings_by_proximity(listings: Iterable[Listing]) -> Dict[str, List[Listing]]:
    """
    Bucket listings by coordinates rounded to the nearest half degree.

    Keys look like "-38,145" or "-37.5,145". Within a bucket listings keep
    their input order. Listings without coordinates are left out.
    """

    groups: Dict[str, List[Listing]] = {}
    for listing in listings:
        lat = _coordinate(listing.get("latitude"))
        lon = _coordinate(listing.get("longitude"))
        if lat is None or lon is None:
            continue
        groups.setdefault(proximity_key(lat, lon), []).append(listing)
    return groups


__all__ = [
    "EARTH_RADIUS_KM",
    "filter_listings",
    "group_listings_by_proximity",
    "haversine_km",
    "is_listing_saved",
    "proximity_key",
]
