"""
Garage sale listing repository.

Listings are stored in `garage_sales`; listing-publication fee payments are
stored in `payments`. Rows are returned as plain mappings because the search
utilities pass every column through untouched.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.listing import ListingStatus
from repositories.client import execute

_LISTINGS_TABLE: str = "garage_sales"
_PAYMENTS_TABLE: str = "payments"


class ListingRepository:
    def __init__(self, client: Client) -> None:
        self._client = client

    def get_listing(self, listing_id: str) -> Optional[Dict[str, Any]]:
        rows = execute(
            self._client.table(_LISTINGS_TABLE).select("*").eq("id", listing_id).limit(1),
            "fetch listing",
        )
        return dict(rows[0]) if rows else None

    def list_active_listings(self, page_size: int = 1000) -> List[Dict[str, Any]]:
        """
        Every active listing, oldest first so results have a stable order.

        Rows are fetched in pages of `page_size`, since the store caps the
        number of rows a single select returns.
        """

        listings: List[Dict[str, Any]] = []
        start = 0
        while True:
            rows = execute(
                self._client.table(_LISTINGS_TABLE)
                .select("*")
                .eq("status", ListingStatus.ACTIVE)
                .order("created_at")
                .order("id")
                .range(start, start + page_size - 1),
                "list listings",
            )
            listings.extend(dict(row) for row in rows)
            if len(rows) < page_size:
                return listings
            start += page_size

    def set_status(self, listing_id: str, status: str) -> None:
        execute(
            self._client.table(_LISTINGS_TABLE).update({"status": status}).eq("id", listing_id),
            "update listing status",
        )

    def mark_paid(self, listing_id: str, paid_at: datetime) -> None:
        """Move a listing whose publication fee was paid into the approval queue."""

        execute(
            self._client.table(_LISTINGS_TABLE)
            .update(
                {
                    "status": ListingStatus.PENDING_APPROVAL,
                    "payment_status": "paid",
                    "payment_completed_at": paid_at.isoformat(),
                }
            )
            .eq("id", listing_id),
            "update listing payment",
        )

    def has_payment(self, transaction_id: str) -> bool:
        rows = execute(
            self._client.table(_PAYMENTS_TABLE).select("id").eq("transaction_id", transaction_id).limit(1),
            "look up listing payment",
        )
        return bool(rows)

    def insert_payment(
        self,
        listing_id: str,
        user_uid: str,
        user_email: Optional[str],
        amount: Decimal,
        transaction_id: Optional[str],
        created_at: datetime,
    ) -> None:
        execute(
            self._client.table(_PAYMENTS_TABLE).insert(
                {
                    "garage_sale_id": listing_id,
                    "user_email": user_email,
                    "user_uid": user_uid,
                    "amount": str(amount),
                    "status": "completed",
                    "payment_method": "stripe",
                    "transaction_id": transaction_id,
                    "created_at": created_at.isoformat(),
                }
            ),
            "record listing payment",
        )


__all__ = ["ListingRepository"]
