"""
Geocoding cache repository.

Resolved coordinates are cached in `postcode_cache`, keyed by the normalised
(lower-cased, trimmed) location query.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.location import GeoLocation
from repositories.client import execute

_CACHE_TABLE: str = "postcode_cache"


def cache_key(query: str) -> str:
    return query.strip().lower()


class GeocodeCacheRepository:
    def __init__(self, client: Client) -> None:
        self._client = client

    def get(self, query: str) -> Optional[GeoLocation]:
        rows = execute(
            self._client.table(_CACHE_TABLE).select("*").eq("key", cache_key(query)).limit(1),
            "read geocode cache",
        )
        if not rows:
            return None
        row = rows[0]
        return GeoLocation(
            latitude=float(row["latitude"]),
            longitude=float(row["longitude"]),
            name=str(row.get("name") or query),
            cached=True,
        )

    def put(self, query: str, location: GeoLocation, cached_at: datetime) -> None:
        execute(
            self._client.table(_CACHE_TABLE).upsert(
                {
                    "key": cache_key(query),
                    "query": query,
                    "name": location.name,
                    "latitude": location.latitude,
                    "longitude": location.longitude,
                    "cached_at": cached_at.isoformat(),
                },
                on_conflict="key",
            ),
            "write geocode cache",
        )


__all__ = ["GeocodeCacheRepository", "cache_key"]
