"""
Rebuild seller statistics from the sales ledger.

The seller_stats aggregate can fall behind `sales` when an increment fails
after a sale was stored. This script recomputes totals for the given sellers
(or every seller with sales) and overwrites the aggregate.

Usage:
    python scripts/recompute_seller_stats.py [seller_id ...]
"""

import sys
from decimal import Decimal
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from api.config import load_settings
from domain.time import utc_now
from repositories.client import create_supabase_client, execute
from repositories.sale_repository import SaleRepository
from repositories.seller_stats_repository import SellerStatsRepository


def seller_ids_with_sales(client):
    """Distinct seller ids present in the sales table."""

    rows = execute(client.table("sales").select("seller_id"), "list sellers")
    return sorted({str(row["seller_id"]) for row in rows})


def recompute_seller_stats(seller_ids=None):
    settings = load_settings()
    client = create_supabase_client(settings)
    sales = SaleRepository(client)
    stats = SellerStatsRepository(client)

    seller_ids = seller_ids or seller_ids_with_sales(client)

    print("=" * 60)
    print("RECOMPUTE SELLER STATS")
    print("=" * 60)
    print(f"Sellers to rebuild: {len(seller_ids)}")
    print()

    for seller_id in seller_ids:
        records = sales.list_all_sales(seller_id)
        total_earnings = sum((record.amount for record in records), Decimal("0"))
        before = stats.get_stats(seller_id)

        stats.replace_stats(seller_id, total_earnings, len(records), utc_now())

        if before and (before.total_earnings != total_earnings or before.total_sales != len(records)):
            print(
                f"  ✓ {seller_id}: {before.total_sales} sales / {before.total_earnings} "
                f"-> {len(records)} sales / {total_earnings}"
            )
        else:
            print(f"  ✓ {seller_id}: {len(records)} sales / {total_earnings}")

    print()
    print("Done.")


if __name__ == "__main__":
    recompute_seller_stats(sys.argv[1:])
