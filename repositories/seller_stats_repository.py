"""
Seller statistics repository.

The aggregate is only ever mutated through the `increment_seller_stats`
PostgreSQL function (see sql/schema.sql), which performs

    INSERT ... ON CONFLICT (seller_id) DO UPDATE
        SET total_earnings = seller_stats.total_earnings + EXCLUDED.total_earnings,
            total_sales    = seller_stats.total_sales + 1

in a single statement. Concurrent sales for the same seller therefore never
lose an update, and the first sale creates the row without clobbering any
other column.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Mapping, Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.sale import SellerStats
from domain.time import parse_utc_datetime
from repositories.client import execute

_SELLER_STATS_TABLE: str = "seller_stats"
_INCREMENT_FUNCTION: str = "increment_seller_stats"


def _row_to_stats(row: Mapping[str, Any]) -> SellerStats:
    last_updated = row.get("last_updated")
    return SellerStats(
        seller_id=str(row["seller_id"]),
        total_earnings=Decimal(str(row.get("total_earnings") or "0")),
        total_sales=int(row.get("total_sales") or 0),
        last_updated=parse_utc_datetime(last_updated) if last_updated else None,
    )


class SellerStatsRepository:
    def __init__(self, client: Client) -> None:
        self._client = client

    def increment(self, seller_id: str, amount: Decimal) -> None:
        """
        Atomically add one sale of `amount` to the seller's aggregate.

        Raises:
            LedgerError: If the RPC fails
        """

        execute(
            self._client.rpc(
                _INCREMENT_FUNCTION,
                {
                    "p_seller_id": seller_id,
                    "p_amount": float(amount),
                },
            ),
            "update seller stats",
        )

    def get_stats(self, seller_id: str) -> Optional[SellerStats]:
        """
        Get the aggregate for a seller.

        Returns:
            SellerStats or None if the seller has no recorded sales yet
        """

        rows = execute(
            self._client.table(_SELLER_STATS_TABLE)
            .select("*")
            .eq("seller_id", seller_id)
            .limit(1),
            "fetch seller stats",
        )
        if not rows:
            return None
        return _row_to_stats(rows[0])

    def replace_stats(
        self,
        seller_id: str,
        total_earnings: Decimal,
        total_sales: int,
        last_updated: datetime,
    ) -> None:
        """Overwrite the aggregate; only used when rebuilding it from `sales`."""

        execute(
            self._client.table(_SELLER_STATS_TABLE).upsert(
                {
                    "seller_id": seller_id,
                    "total_earnings": str(total_earnings),
                    "total_sales": total_sales,
                    "last_updated": last_updated.isoformat(),
                },
                on_conflict="seller_id",
            ),
            "rebuild seller stats",
        )


__all__ = ["SellerStatsRepository"]
