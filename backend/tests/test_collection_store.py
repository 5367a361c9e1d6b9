import json
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from paperledger.extensions import db
from paperledger.models import InventoryItem, StoredCollection
from paperledger.services.collection_store import (
    CollectionStore,
    InMemoryStorage,
    SqlAlchemyStorage,
    build_storage,
    INVENTORY_ITEMS_KEY,
    SUPPLIERS_KEY,
    RECEIPTS_KEY,
    BANKS_KEY,
)
from paperledger.services.cashflow_service import CashFlowLedger
from paperledger.services.inventory_service import InventoryLedger
from paperledger.services.registry import get_ledgers


class ExplodingStorage:
    """Medium whose reads always fail."""

    def read(self, key):
        raise OSError("disk unavailable")

    def write_many(self, snapshots):
        raise OSError("disk unavailable")


class CountingStorage(InMemoryStorage):
    def __init__(self):
        super().__init__()
        self.write_calls = []

    def write_many(self, snapshots):
        self.write_calls.append(dict(snapshots))
        super().write_many(snapshots)


class FlakyStorage(InMemoryStorage):
    """Medium whose next `failures` reads of one key raise `error`."""

    def __init__(self, fail_key, error):
        super().__init__()
        self.fail_key = fail_key
        self.error = error
        self.failures = 0

    def read(self, key):
        if key == self.fail_key and self.failures > 0:
            self.failures -= 1
            raise self.error
        return super().read(key)


class FailingWriteStorage(InMemoryStorage):
    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def write_many(self, snapshots):
        if self.fail_writes:
            raise OSError("disk full")
        super().write_many(snapshots)


class TestLoadFallback:
    """load() returns the caller's default instead of raising."""

    def test_missing_key_returns_default(self, store):
        assert store.load(INVENTORY_ITEMS_KEY, []) == []
        assert store.load(INVENTORY_ITEMS_KEY, [{"seed": 1}]) == [{"seed": 1}]

    def test_default_is_copied(self, store):
        default = []
        result = store.load(INVENTORY_ITEMS_KEY, default)
        result.append("x")
        assert default == []

    @pytest.mark.parametrize("raw", ["{not json", "", "{\"a\": 1}", "42", "null"])
    def test_unparseable_payload_returns_default(self, medium, store, raw):
        medium.data[INVENTORY_ITEMS_KEY] = raw
        assert store.load(INVENTORY_ITEMS_KEY, []) == []
        # storage is left as it was
        assert medium.data[INVENTORY_ITEMS_KEY] == raw

    def test_records_that_do_not_decode_return_default(self, medium, store):
        medium.data[INVENTORY_ITEMS_KEY] = json.dumps([{"name": "no id"}])
        assert store.load(INVENTORY_ITEMS_KEY, [], InventoryItem) == []

        medium.data[INVENTORY_ITEMS_KEY] = json.dumps([{"id": "a", "name": "x", "current_stock": "lots"}])
        assert store.load(INVENTORY_ITEMS_KEY, [], InventoryItem) == []

    def test_failing_medium_returns_default(self):
        store = CollectionStore(ExplodingStorage())
        assert store.load(SUPPLIERS_KEY, []) == []


class TestSave:
    def test_save_overwrites_snapshot(self, medium, store):
        store.save(SUPPLIERS_KEY, [{"id": "1"}, {"id": "2"}])
        store.save(SUPPLIERS_KEY, [{"id": "3"}])
        assert json.loads(medium.data[SUPPLIERS_KEY]) == [{"id": "3"}]

    def test_records_round_trip_with_decimals(self, store):
        item = InventoryItem(id="i1", name="Cartons")
        item.current_stock += 12
        store.save(INVENTORY_ITEMS_KEY, [item])

        loaded = store.load(INVENTORY_ITEMS_KEY, [], InventoryItem)
        assert loaded == [item]
        assert loaded[0].current_stock == 12


class TestTransaction:
    def test_saves_are_flushed_in_one_write(self):
        medium = CountingStorage()
        store = CollectionStore(medium)

        with store.transaction():
            store.save(INVENTORY_ITEMS_KEY, [{"id": "i"}])
            store.save(SUPPLIERS_KEY, [{"id": "s"}])
            assert medium.write_calls == []
            # reads inside the block see buffered writes
            assert store.load(SUPPLIERS_KEY, []) == [{"id": "s"}]

        assert len(medium.write_calls) == 1
        assert set(medium.write_calls[0]) == {INVENTORY_ITEMS_KEY, SUPPLIERS_KEY}

    def test_error_discards_buffered_writes(self, medium, store):
        store.save(SUPPLIERS_KEY, [{"id": "before"}])

        with pytest.raises(RuntimeError):
            with store.transaction():
                store.save(SUPPLIERS_KEY, [{"id": "after"}])
                raise RuntimeError("boom")

        assert store.load(SUPPLIERS_KEY, []) == [{"id": "before"}]

    def test_nested_transaction_joins_outer(self):
        medium = CountingStorage()
        store = CollectionStore(medium)

        with store.transaction():
            with store.transaction():
                store.save(SUPPLIERS_KEY, [{"id": "inner"}])
            assert medium.write_calls == []

        assert len(medium.write_calls) == 1


class TestStorageFailureDuringWrites:
    """A failing medium never costs records that were already stored."""

    def test_read_failure_aborts_create_item(self):
        medium = FlakyStorage(INVENTORY_ITEMS_KEY, OSError("database is locked"))
        ledger = InventoryLedger(CollectionStore(medium))
        ledger.create_item({"name": "A"})
        ledger.create_item({"name": "B"})
        before = dict(medium.data)

        medium.failures = 1
        with pytest.raises(OSError):
            ledger.create_item({"name": "C"})

        assert medium.data == before
        assert [i.name for i in ledger.list_items()] == ["A", "B"]

        ledger.create_item({"name": "C"})
        assert [i.name for i in ledger.list_items()] == ["A", "B", "C"]

    def test_locked_read_is_retried(self):
        locked = OperationalError("SELECT payload", {}, Exception("database is locked"))
        medium = FlakyStorage(INVENTORY_ITEMS_KEY, locked)
        ledger = InventoryLedger(CollectionStore(medium))
        ledger.create_item({"name": "A"})
        ledger.create_item({"name": "B"})

        medium.failures = 1
        ledger.create_item({"name": "C"})

        assert medium.failures == 0
        assert [i.name for i in ledger.list_items()] == ["A", "B", "C"]

    def test_read_failure_aborts_record_collection(self):
        medium = FlakyStorage(RECEIPTS_KEY, OSError("database is locked"))
        ledger = InventoryLedger(CollectionStore(medium))
        item = ledger.create_item({"name": "Cartons", "current_stock": "4"})
        supplier = ledger.create_supplier({"name": "Merkato Print"})
        ledger.record_collection(supplier.id, item.id, 6, 2)
        before = dict(medium.data)

        medium.failures = 1
        with pytest.raises(OSError):
            ledger.record_collection(supplier.id, item.id, 5, 2)

        assert medium.data == before
        stored = ledger.get_item(item.id)
        assert stored.current_stock == 10
        assert stored.total_collected == 6
        assert len(ledger.list_receipts()) == 1

    def test_write_failure_keeps_inventory_snapshot(self):
        medium = FailingWriteStorage()
        ledger = InventoryLedger(CollectionStore(medium))
        item = ledger.create_item({"name": "Cartons", "current_stock": "4"})
        supplier = ledger.create_supplier({"name": "Merkato Print"})
        before = dict(medium.data)

        medium.fail_writes = True
        with pytest.raises(OSError):
            ledger.record_collection(supplier.id, item.id, 5, 2)
        with pytest.raises(OSError):
            ledger.record_sale(item.id, 1, 3)

        assert medium.data == before
        assert ledger.get_item(item.id).current_stock == 4
        assert ledger.list_collections() == []
        assert ledger.list_receipts() == []

    def test_write_failure_keeps_bank_and_ledger_entries(self):
        medium = FailingWriteStorage()
        ledger = CashFlowLedger(CollectionStore(medium))
        ledger.record_transaction("1", credit=100)
        before = dict(medium.data)

        medium.fail_writes = True
        with pytest.raises(OSError):
            ledger.record_transaction("1", debit=40)

        assert medium.data == before
        assert BANKS_KEY in medium.data
        assert len(ledger.list_transactions("1")) == 1
        assert ledger.get_bank("1").balance == Decimal("620352.27")


class TestBuildStorage:
    def test_known_kinds(self):
        assert isinstance(build_storage("memory"), InMemoryStorage)
        assert isinstance(build_storage("SQL"), SqlAlchemyStorage)

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            build_storage("redis")


class TestSqlAlchemyStorage:
    def test_round_trip_and_versioning(self, sql_app):
        store = get_ledgers().store
        assert isinstance(store.medium, SqlAlchemyStorage)

        store.save(SUPPLIERS_KEY, [{"id": "1"}])
        store.save(SUPPLIERS_KEY, [{"id": "1"}, {"id": "2"}])

        row = db.session.query(StoredCollection).filter_by(key=SUPPLIERS_KEY).first()
        assert row.version_id == 2
        assert store.load(SUPPLIERS_KEY, []) == [{"id": "1"}, {"id": "2"}]

    def test_ledger_operations_persist_to_table(self, sql_app):
        ledgers = get_ledgers()
        item = ledgers.inventory.create_item({"name": "Newspaper", "current_stock": "3"})

        keys = {row.key for row in db.session.query(StoredCollection).all()}
        assert INVENTORY_ITEMS_KEY in keys
        assert ledgers.inventory.get_item(item.id).current_stock == 3

    def test_corrupt_row_falls_back_to_default(self, sql_app):
        db.session.add(StoredCollection(key=SUPPLIERS_KEY, payload="<<garbage>>"))
        db.session.commit()

        assert get_ledgers().inventory.list_suppliers() == []
