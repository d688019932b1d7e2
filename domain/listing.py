"""
Domain: Garage sale listings as consumed by search.

Listings are externally populated documents. Search only reads the
`sale_type`, `postcode`, `latitude` and `longitude` attributes; every other
column is passed through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Union

Listing = Mapping[str, Any]

ALL_SALE_TYPES = "all"


class ListingStatus:
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    REJECTED = "rejected"
    COMPLETED = "completed"


@dataclass(frozen=True, slots=True)
class ListingSearchCriteria:
    """
    Optional, conjunctive search criteria.

    `distance` is a radius in kilometres around (user_latitude,
    user_longitude); it only applies when all three are set.
    """

    sale_type: Optional[str] = None
    postcode: Optional[str] = None
    distance: Optional[Union[float, str]] = None
    user_latitude: Optional[float] = None
    user_longitude: Optional[float] = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))
