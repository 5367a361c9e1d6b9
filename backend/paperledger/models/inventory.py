from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .base import LedgerRecord, ZERO


ITEM_CATEGORIES = (
    "mama_products",
    "bags",
    "paper_bags",
    "handcrafted",
    "home_decor",
    "accessories",
    "other",
)
ITEM_TYPES = ("outlet_item", "supplier_item")
SUPPLIER_STATUSES = ("active", "inactive")
PAYMENT_METHODS = ("cash", "mobile", "bank")
RECEIPT_TYPES = ("collection", "sale")


@dataclass
class InventoryItem(LedgerRecord):
    """
    Stock-keeping record for one kind of collected or resold material.

    current_stock only moves through collections (+) and sales (-) and is
    never negative. total_collected / total_sold are cumulative counters.
    """
    id: str
    name: str
    category: str = "other"
    unit_price: Decimal = ZERO
    sale_price: Decimal = ZERO
    current_stock: Decimal = ZERO
    min_stock_level: Decimal = ZERO
    total_collected: Decimal = ZERO
    total_sold: Decimal = ZERO
    last_updated: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    item_type: str = "supplier_item"
    supplier: Optional[str] = None
    barcode: Optional[str] = None
    sku: Optional[str] = None

    decimal_fields = (
        "unit_price",
        "sale_price",
        "current_stock",
        "min_stock_level",
        "total_collected",
        "total_sold",
    )

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock_level


@dataclass
class Supplier(LedgerRecord):
    id: str
    name: str
    phone: str = ""
    address: Optional[str] = None
    email: Optional[str] = None
    status: str = "active"
    total_collections: Decimal = ZERO
    last_collection: Optional[str] = None

    decimal_fields = ("total_collections",)


@dataclass
class CollectionTransaction(LedgerRecord):
    """Material bought in from a supplier. Append-only."""
    id: str
    supplier_id: str
    item_id: str
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal
    date: str
    receipt_number: str
    supplier_name: str = ""
    item_name: str = ""
    notes: Optional[str] = None
    image: Optional[str] = None

    decimal_fields = ("quantity", "unit_price", "total_amount")


@dataclass
class SaleTransaction(LedgerRecord):
    """Material sold out of stock. Append-only."""
    id: str
    item_id: str
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal
    date: str
    receipt_number: str
    payment_method: str = "cash"
    item_name: str = ""
    customer_name: Optional[str] = None

    decimal_fields = ("quantity", "unit_price", "total_amount")


@dataclass
class ReceiptLine(LedgerRecord):
    name: str
    quantity: Decimal
    unit_price: Decimal
    total_amount: Decimal

    decimal_fields = ("quantity", "unit_price", "total_amount")


@dataclass
class Receipt(LedgerRecord):
    """
    Printable summary of one collection or sale, keyed by receipt_number.

    The receipt number is shared with the transaction it was issued for.
    """
    id: str
    receipt_number: str
    type: str
    total_amount: Decimal
    date: str
    items: list = field(default_factory=list)
    supplier_name: Optional[str] = None
    customer_name: Optional[str] = None
    notes: Optional[str] = None
    payment_method: Optional[str] = None

    decimal_fields = ("total_amount",)

    @property
    def counterpart(self) -> Optional[str]:
        return self.supplier_name if self.type == "collection" else self.customer_name

    @classmethod
    def from_dict(cls, data: dict):
        receipt = super().from_dict(data)
        receipt.items = [
            line if isinstance(line, ReceiptLine) else ReceiptLine.from_dict(line)
            for line in receipt.items
        ]
        return receipt


@dataclass
class InventoryReport:
    total_items: int
    total_value: Decimal
    low_stock_items: list
    top_selling_items: list
    monthly_collections: Decimal
    monthly_sales: Decimal
    profit_margin: Decimal

    def to_dict(self) -> dict:
        return {
            "total_items": self.total_items,
            "total_value": str(self.total_value),
            "low_stock_items": [item.to_dict() for item in self.low_stock_items],
            "top_selling_items": [
                {
                    "item": entry["item"].to_dict(),
                    "sales_count": entry["sales_count"],
                    "revenue": str(entry["revenue"]),
                }
                for entry in self.top_selling_items
            ],
            "monthly_collections": str(self.monthly_collections),
            "monthly_sales": str(self.monthly_sales),
            "profit_margin": str(self.profit_margin),
        }
