"""
Sale repository (persistence).

This module provides *only* persistence operations for the SaleRecord domain
entity. It does not enforce business rules (payment confirmation, identity
checks); it only inserts and fetches sale records.

The `sales` table assigns `id` and `timestamp` itself, so inserts read the
stored row back instead of inventing identifiers.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, List, Mapping, Optional

from supabase import Client  # type: ignore[import-not-found]

from domain.errors import LedgerError
from domain.sale import HOME_CURRENCY, PaymentMethod, SaleRecord, SaleStatus
from domain.time import parse_utc_datetime
from repositories.client import execute

# Supabase table name for sale records.
# Keep this aligned with sql/schema.sql.
_SALES_TABLE: str = "sales"

RECENT_SALES_LIMIT = 100


def _optional_decimal(value: Any) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


def _row_to_sale(row: Mapping[str, Any]) -> SaleRecord:
    """Convert a Supabase row into a SaleRecord."""

    return SaleRecord(
        sale_id=str(row["id"]),
        seller_id=str(row["seller_id"]),
        amount=Decimal(str(row["amount"])),
        currency=str(row.get("currency") or HOME_CURRENCY),
        description=str(row.get("description") or ""),
        payment_method=PaymentMethod(str(row["payment_method"])),
        status=SaleStatus(str(row["status"])),
        timestamp=parse_utc_datetime(row["timestamp"]),
        payment_intent_id=row.get("payment_intent_id"),
        transaction_fee=_optional_decimal(row.get("transaction_fee")),
        net_earnings=_optional_decimal(row.get("net_earnings")),
    )


class SaleRepository:
    """Insert and read rows of the `sales` table."""

    def __init__(self, client: Client) -> None:
        self._client = client

    def insert_sale(
        self,
        seller_id: str,
        amount: Decimal,
        currency: str,
        description: str,
        payment_method: PaymentMethod,
        status: SaleStatus,
        payment_intent_id: Optional[str] = None,
        transaction_fee: Optional[Decimal] = None,
        net_earnings: Optional[Decimal] = None,
    ) -> SaleRecord:
        """
        Insert a new sale and return it with its store-assigned id and timestamp.

        Raises:
            LedgerError: If the insert fails or returns no row
        """

        payload: dict[str, Any] = {
            "seller_id": seller_id,
            "amount": str(amount),
            "currency": currency,
            "description": description,
            "payment_method": payment_method.value,
            "payment_intent_id": payment_intent_id,
            "status": status.value,
            "transaction_fee": str(transaction_fee) if transaction_fee is not None else None,
            "net_earnings": str(net_earnings) if net_earnings is not None else None,
        }

        rows = execute(self._client.table(_SALES_TABLE).insert(payload), "record sale")
        if not rows:
            raise LedgerError("Failed to record sale: store returned no row")

        return _row_to_sale(rows[0])

    def list_recent_sales(self, seller_id: str, limit: int = RECENT_SALES_LIMIT) -> List[SaleRecord]:
        """
        Retrieve a seller's most recent sales, newest first.

        Returns:
            List[SaleRecord] (possibly empty)
        """

        rows = execute(
            self._client.table(_SALES_TABLE)
            .select("*")
            .eq("seller_id", seller_id)
            .order("timestamp", desc=True)
            .limit(limit),
            "list sales",
        )
        return [_row_to_sale(row) for row in rows]

    def list_all_sales(self, seller_id: str) -> List[SaleRecord]:
        """Every sale for a seller, used to rebuild the aggregate."""

        rows = execute(
            self._client.table(_SALES_TABLE).select("*").eq("seller_id", seller_id),
            "list sales",
        )
        return [_row_to_sale(row) for row in rows]


__all__ = ["SaleRepository", "RECENT_SALES_LIMIT"]
