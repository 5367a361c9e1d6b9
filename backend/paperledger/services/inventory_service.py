# Overview: Service-layer operations for inventory; items, suppliers, collections, sales and receipts.

# backend/paperledger/services/inventory_service.py

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from ..models import InventoryItem, Supplier, CollectionTransaction, SaleTransaction, Receipt, ReceiptLine
from ..models.inventory import ITEM_CATEGORIES, ITEM_TYPES, SUPPLIER_STATUSES, PAYMENT_METHODS
from ..time_utils import utcnow_iso
from ..validation import (
    RecordValidationPolicy,
    validate_payload,
    require_positive,
    ValidationError,
    InsufficientStockError,
)
from .collection_store import (
    CollectionStore,
    INVENTORY_ITEMS_KEY,
    SUPPLIERS_KEY,
    COLLECTIONS_KEY,
    SALES_KEY,
    RECEIPTS_KEY,
)
from .concurrency import run_with_retry
from .identifier_service import new_id, generate_receipt_number
"""
Inventory Ledger Invariants (authoritative)

Stock model:
- InventoryItem.current_stock is a stored quantity, changed only by
  record_collection (+quantity) and record_sale (-quantity), or by an
  explicit correction through update_item.
- current_stock is never negative. A sale larger than the stock on hand is
  rejected with InsufficientStockError and nothing is written.
- total_collected / total_sold only grow, and only through collections/sales.

Receipts:
- Every successful collection or sale appends exactly one Receipt whose
  receipt_number equals the transaction's receipt_number.
- Collections use the COL prefix, sales the SAL prefix.
- Transactions and receipts are append-only.

Linkage:
- A collection referencing an unknown item or supplier is still recorded;
  the missing side is simply not updated (logged at WARNING).
- All collections touched by one operation are committed together.
"""


logger = logging.getLogger(__name__)

ITEM_CREATE_POLICY = RecordValidationPolicy(
    writable_fields={
        "name", "category", "unit_price", "sale_price", "current_stock", "min_stock_level",
        "total_collected", "total_sold", "description", "image", "item_type", "supplier",
        "barcode", "sku",
    },
    required_on_create={"name"},
    non_negative={
        "unit_price", "sale_price", "current_stock", "min_stock_level", "total_collected", "total_sold",
    },
    choices={"category": ITEM_CATEGORIES, "item_type": ITEM_TYPES},
)

# Cumulative totals are owned by collections and sales
ITEM_UPDATE_POLICY = RecordValidationPolicy(
    writable_fields=ITEM_CREATE_POLICY.writable_fields - {"total_collected", "total_sold"},
    required_on_create={"name"},
    non_negative=ITEM_CREATE_POLICY.non_negative,
    choices=ITEM_CREATE_POLICY.choices,
)

SUPPLIER_POLICY = RecordValidationPolicy(
    writable_fields={"name", "phone", "address", "email", "status"},
    required_on_create={"name"},
    choices={"status": SUPPLIER_STATUSES},
)


def _index_of(records: list, record_id: str) -> int:
    for idx, record in enumerate(records):
        if record.id == record_id:
            return idx
    return -1


class InventoryLedger:
    """Inventory-side ledger over an injected CollectionStore."""

    def __init__(self, store: CollectionStore, *, receipt_number_attempts: int = 5):
        self.store = store
        self.receipt_number_attempts = receipt_number_attempts

    # Reads

    def list_items(self) -> list[InventoryItem]:
        return self.store.load(INVENTORY_ITEMS_KEY, [], InventoryItem)

    def list_suppliers(self) -> list[Supplier]:
        return self.store.load(SUPPLIERS_KEY, [], Supplier)

    def list_collections(self) -> list[CollectionTransaction]:
        return self.store.load(COLLECTIONS_KEY, [], CollectionTransaction)

    def list_sales(self) -> list[SaleTransaction]:
        return self.store.load(SALES_KEY, [], SaleTransaction)

    def list_receipts(self) -> list[Receipt]:
        return self.store.load(RECEIPTS_KEY, [], Receipt)

    def get_item(self, item_id: str) -> InventoryItem | None:
        return next((i for i in self.list_items() if i.id == item_id), None)

    def get_supplier(self, supplier_id: str) -> Supplier | None:
        return next((s for s in self.list_suppliers() if s.id == supplier_id), None)

    def find_receipt(self, receipt_number: str) -> Receipt | None:
        for receipt in self.list_receipts():
            if receipt.receipt_number == receipt_number:
                return receipt
        return None

    def low_stock_items(self) -> list[InventoryItem]:
        """Items at or below their minimum stock level."""
        return [item for item in self.list_items() if item.is_low_stock]

    def collections_for_supplier(self, supplier_id: str) -> list[CollectionTransaction]:
        return [tx for tx in self.list_collections() if tx.supplier_id == supplier_id]

    # Items and suppliers

    def create_item(self, fields: dict) -> InventoryItem:
        patch = validate_payload(
            record_type=InventoryItem, payload=fields, policy=ITEM_CREATE_POLICY, partial=False,
        )

        def _op():
            with self.store.transaction():
                items = self.list_items()
                item = InventoryItem(id=new_id(), last_updated=utcnow_iso(), **patch)
                items.append(item)
                self.store.save(INVENTORY_ITEMS_KEY, items)
            return item

        return run_with_retry(_op)

    def update_item(self, item_id: str, updates: dict) -> InventoryItem | None:
        """Merge updates into an item. Returns None if the item does not exist."""
        patch = validate_payload(
            record_type=InventoryItem, payload=updates, policy=ITEM_UPDATE_POLICY, partial=True,
        )

        def _op():
            with self.store.transaction():
                items = self.list_items()
                idx = _index_of(items, item_id)
                if idx == -1:
                    return None
                items[idx] = replace(items[idx], **patch, last_updated=utcnow_iso())
                self.store.save(INVENTORY_ITEMS_KEY, items)
                return items[idx]

        return run_with_retry(_op)

    def create_supplier(self, fields: dict) -> Supplier:
        patch = validate_payload(
            record_type=Supplier, payload=fields, policy=SUPPLIER_POLICY, partial=False,
        )

        def _op():
            with self.store.transaction():
                suppliers = self.list_suppliers()
                supplier = Supplier(id=new_id(), **patch)
                suppliers.append(supplier)
                self.store.save(SUPPLIERS_KEY, suppliers)
            return supplier

        return run_with_retry(_op)

    def update_supplier(self, supplier_id: str, updates: dict) -> Supplier | None:
        patch = validate_payload(
            record_type=Supplier, payload=updates, policy=SUPPLIER_POLICY, partial=True,
        )

        def _op():
            with self.store.transaction():
                suppliers = self.list_suppliers()
                idx = _index_of(suppliers, supplier_id)
                if idx == -1:
                    return None
                suppliers[idx] = replace(suppliers[idx], **patch)
                self.store.save(SUPPLIERS_KEY, suppliers)
                return suppliers[idx]

        return run_with_retry(_op)

    # Stock movements

    def _next_receipt_number(self, prefix: str, receipts: list[Receipt]) -> str:
        taken = {r.receipt_number for r in receipts}
        return generate_receipt_number(
            prefix, is_taken=taken.__contains__, attempts=self.receipt_number_attempts,
        )

    def record_collection(
        self,
        supplier_id: str,
        item_id: str,
        quantity,
        unit_price,
        notes: str | None = None,
        image: str | None = None,
        *,
        supplier_name: str | None = None,
        item_name: str | None = None,
    ) -> CollectionTransaction:
        """
        Record material collected from a supplier.

        Increases the item's stock and total_collected by quantity, adds
        quantity * unit_price to the supplier's total_collections, and
        issues a COL receipt. supplier_name / item_name are only used when
        the referenced record does not exist.

        Raises ValidationError if quantity or unit_price is not > 0.
        """
        quantity = require_positive(quantity, "quantity")
        unit_price = require_positive(unit_price, "unit_price")
        total_amount = quantity * unit_price

        def _op():
            with self.store.transaction():
                receipts = self.list_receipts()
                receipt_number = self._next_receipt_number("COL", receipts)
                now = utcnow_iso()

                items = self.list_items()
                item_idx = _index_of(items, item_id)
                if item_idx != -1:
                    item = items[item_idx]
                    item.current_stock += quantity
                    item.total_collected += quantity
                    item.last_updated = now
                    self.store.save(INVENTORY_ITEMS_KEY, items)
                    resolved_item_name = item.name
                else:
                    logger.warning("Collection %s references unknown item %s", receipt_number, item_id)
                    resolved_item_name = item_name or ""

                suppliers = self.list_suppliers()
                supplier_idx = _index_of(suppliers, supplier_id)
                if supplier_idx != -1:
                    supplier = suppliers[supplier_idx]
                    supplier.total_collections += total_amount
                    supplier.last_collection = now
                    self.store.save(SUPPLIERS_KEY, suppliers)
                    resolved_supplier_name = supplier.name
                else:
                    logger.warning("Collection %s references unknown supplier %s", receipt_number, supplier_id)
                    resolved_supplier_name = supplier_name or ""

                tx = CollectionTransaction(
                    id=new_id(),
                    supplier_id=supplier_id,
                    supplier_name=resolved_supplier_name,
                    item_id=item_id,
                    item_name=resolved_item_name,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_amount=total_amount,
                    notes=notes,
                    image=image,
                    date=now,
                    receipt_number=receipt_number,
                )
                collections = self.list_collections()
                collections.append(tx)
                self.store.save(COLLECTIONS_KEY, collections)

                receipts.append(Receipt(
                    id=new_id(),
                    receipt_number=receipt_number,
                    type="collection",
                    items=[ReceiptLine(
                        name=resolved_item_name,
                        quantity=quantity,
                        unit_price=unit_price,
                        total_amount=total_amount,
                    )],
                    total_amount=total_amount,
                    date=now,
                    supplier_name=resolved_supplier_name,
                    notes=notes,
                ))
                self.store.save(RECEIPTS_KEY, receipts)

            logger.info(
                "Recorded collection %s: %s x %s of item %s from supplier %s",
                tx.receipt_number, quantity, unit_price, item_id, supplier_id,
            )
            return tx

        return run_with_retry(_op)

    def record_sale(
        self,
        item_id: str,
        quantity,
        unit_price,
        payment_method: str = "cash",
        customer_name: str | None = None,
    ) -> SaleTransaction:
        """
        Sell quantity of an item out of stock and issue a SAL receipt.

        Raises:
            ValidationError: quantity/unit_price not > 0, or unknown payment method
            InsufficientStockError: item missing or current_stock < quantity;
                no transaction or receipt is created
        """
        quantity = require_positive(quantity, "quantity")
        unit_price = require_positive(unit_price, "unit_price")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
        total_amount = quantity * unit_price

        def _op():
            with self.store.transaction():
                items = self.list_items()
                idx = _index_of(items, item_id)
                on_hand = items[idx].current_stock if idx != -1 else Decimal("0")
                if idx == -1 or on_hand < quantity:
                    raise InsufficientStockError(
                        "Insufficient stock" if idx != -1 else "Item not found",
                        details={
                            "item_id": item_id,
                            "requested_quantity": str(quantity),
                            "on_hand": str(on_hand),
                        },
                    )

                item = items[idx]
                now = utcnow_iso()
                item.current_stock -= quantity
                item.total_sold += quantity
                item.last_updated = now
                self.store.save(INVENTORY_ITEMS_KEY, items)

                receipts = self.list_receipts()
                receipt_number = self._next_receipt_number("SAL", receipts)

                tx = SaleTransaction(
                    id=new_id(),
                    item_id=item_id,
                    item_name=item.name,
                    quantity=quantity,
                    unit_price=unit_price,
                    total_amount=total_amount,
                    customer_name=customer_name,
                    payment_method=payment_method,
                    date=now,
                    receipt_number=receipt_number,
                )
                sales = self.list_sales()
                sales.append(tx)
                self.store.save(SALES_KEY, sales)

                receipts.append(Receipt(
                    id=new_id(),
                    receipt_number=receipt_number,
                    type="sale",
                    items=[ReceiptLine(
                        name=item.name,
                        quantity=quantity,
                        unit_price=unit_price,
                        total_amount=total_amount,
                    )],
                    total_amount=total_amount,
                    date=now,
                    customer_name=customer_name,
                    payment_method=payment_method,
                ))
                self.store.save(RECEIPTS_KEY, receipts)

            logger.info(
                "Recorded sale %s: %s x %s of item %s", tx.receipt_number, quantity, unit_price, item_id,
            )
            return tx

        return run_with_retry(_op)
