# Overview: Service-layer operations for reporting; read-only inventory aggregates.

"""
Inventory reporting.

All figures are derived from the inventory ledger's collections at call
time; nothing here is persisted.

Monthly figures cover the calendar month (UTC) containing `now`.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from decimal import Decimal

from ..models import InventoryReport
from ..models.base import ZERO
from ..time_utils import utcnow, parse_iso_datetime
from .inventory_service import InventoryLedger


TOP_SELLING_LIMIT = 5


def _in_month(value: str | None, now: datetime) -> bool:
    dt = parse_iso_datetime(value)
    return dt is not None and dt.year == now.year and dt.month == now.month


def top_selling_items(ledger: InventoryLedger, limit: int = TOP_SELLING_LIMIT) -> list[dict]:
    """Items ranked by sales revenue (ties broken by number of sales)."""
    revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    for sale in ledger.list_sales():
        revenue[sale.item_id] += sale.total_amount
        counts[sale.item_id] += 1

    items = {item.id: item for item in ledger.list_items()}
    ranked = sorted(
        (item_id for item_id in revenue if item_id in items),
        key=lambda item_id: (revenue[item_id], counts[item_id]),
        reverse=True,
    )
    return [
        {"item": items[item_id], "sales_count": counts[item_id], "revenue": revenue[item_id]}
        for item_id in ranked[:limit]
    ]


def build_inventory_report(ledger: InventoryLedger, now: datetime | None = None) -> InventoryReport:
    if now is None:
        now = utcnow()

    items = ledger.list_items()
    total_value = sum((item.current_stock * item.unit_price for item in items), ZERO)

    monthly_collections = sum(
        (tx.total_amount for tx in ledger.list_collections() if _in_month(tx.date, now)), ZERO,
    )
    monthly_sales = sum(
        (tx.total_amount for tx in ledger.list_sales() if _in_month(tx.date, now)), ZERO,
    )

    if monthly_sales > 0:
        profit_margin = ((monthly_sales - monthly_collections) / monthly_sales * 100).quantize(Decimal("0.01"))
    else:
        profit_margin = ZERO

    return InventoryReport(
        total_items=len(items),
        total_value=total_value,
        low_stock_items=[item for item in items if item.is_low_stock],
        top_selling_items=top_selling_items(ledger),
        monthly_collections=monthly_collections,
        monthly_sales=monthly_sales,
        profit_margin=profit_margin,
    )
