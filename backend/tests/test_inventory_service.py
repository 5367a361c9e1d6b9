from decimal import Decimal

import pytest

from paperledger.services.collection_store import (
    INVENTORY_ITEMS_KEY,
    SALES_KEY,
    RECEIPTS_KEY,
)
from paperledger.validation import ValidationError, InsufficientStockError


class TestItemsAndSuppliers:
    def test_create_item_assigns_id_and_timestamp(self, inventory):
        item = inventory.create_item({"name": "Cardboard", "unit_price": "4.50", "current_stock": 3})
        assert item.id
        assert item.last_updated and item.last_updated.endswith("Z")
        assert item.unit_price == Decimal("4.50")
        assert inventory.list_items() == [item]

    def test_create_item_validation(self, inventory):
        with pytest.raises(ValidationError):
            inventory.create_item({"category": "bags"})
        with pytest.raises(ValidationError):
            inventory.create_item({"name": "Bags", "current_stock": "-1"})
        with pytest.raises(ValidationError):
            inventory.create_item({"name": "Bags", "category": "furniture"})
        with pytest.raises(ValidationError):
            inventory.create_item({"name": "Bags", "colour": "red"})
        assert inventory.list_items() == []

    def test_update_item_merges_and_refreshes_timestamp(self, inventory, item_factory):
        item = item_factory(name="Mixed paper")
        updated = inventory.update_item(item.id, {"sale_price": "25", "min_stock_level": 2})

        assert updated.name == "Mixed paper"
        assert updated.sale_price == 25
        assert updated.min_stock_level == 2
        assert updated.last_updated >= item.last_updated
        assert inventory.get_item(item.id) == updated

    def test_update_item_unknown_id(self, inventory):
        assert inventory.update_item("missing", {"name": "x"}) is None

    def test_cumulative_totals_are_not_writable(self, inventory, item_factory):
        item = item_factory()
        with pytest.raises(ValidationError):
            inventory.update_item(item.id, {"total_sold": "0"})

    def test_supplier_create_and_update(self, inventory, supplier_factory):
        supplier = supplier_factory()
        assert supplier.status == "active"
        assert supplier.total_collections == 0

        updated = inventory.update_supplier(supplier.id, {"status": "inactive", "email": "ops@bole.et"})
        assert updated.status == "inactive"
        assert updated.email == "ops@bole.et"
        assert inventory.update_supplier("missing", {"status": "active"}) is None

        with pytest.raises(ValidationError):
            inventory.update_supplier(supplier.id, {"status": "paused"})
        with pytest.raises(ValidationError):
            inventory.update_supplier(supplier.id, {"total_collections": "100"})


class TestRecordCollection:
    def test_collection_updates_item_supplier_and_issues_receipt(self, inventory, item_factory, supplier_factory):
        item = item_factory(current_stock="10")
        supplier = supplier_factory()

        tx = inventory.record_collection(supplier.id, item.id, 5, 10, notes="morning pickup")

        assert tx.total_amount == 50
        assert tx.receipt_number.startswith("COL-")
        assert tx.item_name == item.name
        assert tx.supplier_name == supplier.name

        stored_item = inventory.get_item(item.id)
        assert stored_item.current_stock == 15
        assert stored_item.total_collected == 5

        stored_supplier = inventory.get_supplier(supplier.id)
        assert stored_supplier.total_collections == 50
        assert stored_supplier.last_collection == tx.date

        assert inventory.list_collections() == [tx]
        receipt = inventory.find_receipt(tx.receipt_number)
        assert receipt.type == "collection"
        assert receipt.total_amount == 50
        assert receipt.supplier_name == supplier.name
        assert receipt.counterpart == supplier.name
        assert receipt.notes == "morning pickup"
        assert [(line.name, line.quantity, line.unit_price) for line in receipt.items] == [(item.name, 5, 10)]

    @pytest.mark.parametrize("quantity,unit_price", [(0, 10), (-1, 10), (5, 0), (5, "-2"), ("abc", 1)])
    def test_non_positive_values_are_rejected(self, inventory, item_factory, supplier_factory, quantity, unit_price):
        item = item_factory(current_stock="10")
        supplier = supplier_factory()

        with pytest.raises(ValidationError):
            inventory.record_collection(supplier.id, item.id, quantity, unit_price)

        assert inventory.get_item(item.id).current_stock == 10
        assert inventory.list_collections() == []
        assert inventory.list_receipts() == []

    def test_unknown_supplier_still_records(self, inventory, item_factory):
        item = item_factory(current_stock="1")

        tx = inventory.record_collection("ghost", item.id, "2.5", "8", supplier_name="Walk-in")

        assert tx.supplier_name == "Walk-in"
        assert inventory.get_item(item.id).current_stock == Decimal("3.5")
        assert inventory.find_receipt(tx.receipt_number) is not None

    def test_unknown_item_still_records(self, inventory, supplier_factory):
        supplier = supplier_factory()

        tx = inventory.record_collection(supplier.id, "ghost", 3, 4, item_name="Unlisted")

        assert tx.item_name == "Unlisted"
        assert inventory.list_items() == []
        assert inventory.get_supplier(supplier.id).total_collections == 12

    def test_collections_are_additive(self, inventory, item_factory, supplier_factory):
        item = item_factory(current_stock="0")
        supplier = supplier_factory()
        quantities = [Decimal("1.5"), Decimal("2"), Decimal("7.25")]

        for qty in quantities:
            inventory.record_collection(supplier.id, item.id, qty, "3")

        stored = inventory.get_item(item.id)
        assert stored.current_stock == sum(quantities)
        assert stored.total_collected == sum(quantities)
        assert len(inventory.collections_for_supplier(supplier.id)) == 3


class TestRecordSale:
    def test_insufficient_stock_changes_nothing(self, medium, inventory, item_factory):
        item = item_factory(current_stock="10")
        before = dict(medium.data)

        with pytest.raises(InsufficientStockError) as exc_info:
            inventory.record_sale(item.id, 12, 20)

        assert exc_info.value.details["on_hand"] == "10"
        assert exc_info.value.details["requested_quantity"] == "12"
        assert medium.data == before
        assert SALES_KEY not in medium.data
        assert RECEIPTS_KEY not in medium.data

    def test_unknown_item_is_rejected(self, inventory):
        with pytest.raises(InsufficientStockError):
            inventory.record_sale("ghost", 1, 1)
        assert inventory.list_sales() == []

    def test_sale_validation(self, inventory, item_factory):
        item = item_factory(current_stock="10")
        with pytest.raises(ValidationError):
            inventory.record_sale(item.id, 0, 20)
        with pytest.raises(ValidationError):
            inventory.record_sale(item.id, 1, 0)
        with pytest.raises(ValidationError):
            inventory.record_sale(item.id, 1, 20, payment_method="cheque")
        assert inventory.get_item(item.id).current_stock == 10

    def test_sale_issues_receipt(self, inventory, item_factory):
        item = item_factory(current_stock="4")

        tx = inventory.record_sale(item.id, 4, "12.5", payment_method="mobile", customer_name="Addis Recyclers")

        assert tx.total_amount == 50
        assert tx.receipt_number.startswith("SAL-")
        assert tx.item_name == item.name
        stored = inventory.get_item(item.id)
        assert stored.current_stock == 0
        assert stored.total_sold == 4

        receipt = inventory.find_receipt(tx.receipt_number)
        assert receipt.type == "sale"
        assert receipt.customer_name == "Addis Recyclers"
        assert receipt.counterpart == "Addis Recyclers"
        assert receipt.payment_method == "mobile"

    def test_stock_never_negative(self, medium, inventory, item_factory, supplier_factory):
        item = item_factory(current_stock="3")
        supplier = supplier_factory()
        steps = [("sale", 2), ("sale", 2), ("collection", 4), ("sale", 5), ("sale", 1), ("sale", 1)]

        for kind, qty in steps:
            if kind == "collection":
                inventory.record_collection(supplier.id, item.id, qty, 1)
            else:
                try:
                    inventory.record_sale(item.id, qty, 1)
                except InsufficientStockError:
                    pass
            assert inventory.get_item(item.id).current_stock >= 0

        stored = inventory.get_item(item.id)
        # 3 - 2 (second 2 rejected) + 4 - 5 (then both 1s rejected)
        assert stored.current_stock == 0
        assert stored.total_sold == 7
        assert len(inventory.list_sales()) == 2


class TestReceipts:
    def test_every_transaction_has_exactly_one_receipt(self, inventory, item_factory, supplier_factory):
        item = item_factory(current_stock="0")
        supplier = supplier_factory()

        txs = [inventory.record_collection(supplier.id, item.id, 10, 2) for _ in range(3)]
        txs += [inventory.record_sale(item.id, 5, 4) for _ in range(2)]

        receipts = inventory.list_receipts()
        assert len(receipts) == 5
        numbers = [r.receipt_number for r in receipts]
        assert len(set(numbers)) == 5
        assert numbers == [tx.receipt_number for tx in txs]
        for tx in txs:
            assert inventory.find_receipt(tx.receipt_number).total_amount == tx.total_amount

    def test_find_receipt_unknown(self, inventory):
        assert inventory.find_receipt("COL-000000-XXX") is None


class TestLowStock:
    def test_low_stock_items(self, inventory, item_factory):
        low = item_factory(name="Low", current_stock="5", min_stock_level="5")
        item_factory(name="Plenty", current_stock="50", min_stock_level="5")

        assert [i.id for i in inventory.low_stock_items()] == [low.id]


def test_reference_scenario(inventory, item_factory, supplier_factory):
    """
    SCENARIO: item starts at stock 10 (min 5); oversell, restock, sell out
    EXPECTED: rejected sale leaves stock at 10; collection of 5 @ 10 -> 15
              with a COL receipt of 50; sale of 15 @ 20 -> 0 with a SAL
              receipt of 300
    """
    item = item_factory(current_stock="10", min_stock_level="5")
    supplier = supplier_factory()

    with pytest.raises(InsufficientStockError):
        inventory.record_sale(item.id, 12, 20)
    assert inventory.get_item(item.id).current_stock == 10

    collection = inventory.record_collection(supplier.id, item.id, 5, 10)
    stored = inventory.get_item(item.id)
    assert stored.current_stock == 15
    assert stored.total_collected == 5
    col_receipt = inventory.find_receipt(collection.receipt_number)
    assert col_receipt.receipt_number.startswith("COL-")
    assert col_receipt.total_amount == 50

    sale = inventory.record_sale(item.id, 15, 20)
    stored = inventory.get_item(item.id)
    assert stored.current_stock == 0
    assert stored.total_sold == 15
    sal_receipt = inventory.find_receipt(sale.receipt_number)
    assert sal_receipt.receipt_number.startswith("SAL-")
    assert sal_receipt.total_amount == 300

    assert len(inventory.list_receipts()) == 2
