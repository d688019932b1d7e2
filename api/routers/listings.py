"""
Listings API Endpoints.

Public search over active garage sale listings.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.container import ServiceContainer
from api.dependencies import get_container
from domain.listing import ListingSearchCriteria
from services.listing_query_service import filter_listings, group_listings_by_proximity

router = APIRouter()


@router.get(
    "/listings",
    summary="Search Listings",
    description="Active listings filtered by sale type, postcode and distance."
)
def search_listings(
    sale_type: Optional[str] = Query(None, alias="saleType", description="Sale type, or 'all'"),
    postcode: Optional[str] = Query(None),
    distance: Optional[float] = Query(None, gt=0, description="Radius in km around the user"),
    user_latitude: Optional[float] = Query(None, alias="userLatitude", ge=-90, le=90),
    user_longitude: Optional[float] = Query(None, alias="userLongitude", ge=-180, le=180),
    grouped: bool = Query(False, description="Group results into half-degree map clusters"),
    container: ServiceContainer = Depends(get_container),
):
    """
    Search active listings.

    All filters are optional and combine with AND. The distance filter only
    applies when `distance`, `userLatitude` and `userLongitude` are all given.

    **Example:** `GET /listings?saleType=moving&userLatitude=-37.81&userLongitude=144.96&distance=10`

    **Grouped response (`grouped=true`):**
    ```json
    {"groups": {"-38,145": [{"id": "..."}], "-37.5,145": [{"id": "..."}]}}
    ```
    """
    criteria = ListingSearchCriteria(
        sale_type=sale_type,
        postcode=postcode,
        distance=distance,
        user_latitude=user_latitude,
        user_longitude=user_longitude,
    )
    listings = filter_listings(container.listings.list_active_listings(), criteria)

    if grouped:
        return {"groups": group_listings_by_proximity(listings)}
    return {"listings": listings}
