"""
Pytest fixtures for paperledger backend tests.

Provides ledgers over a fresh in-memory store, a Flask app/test client,
and a SQL-backed app for storage tests.
"""

import pytest

from paperledger import create_app
from paperledger.config import TestConfig
from paperledger.extensions import db
from paperledger.services.collection_store import CollectionStore, InMemoryStorage
from paperledger.services.inventory_service import InventoryLedger
from paperledger.services.cashflow_service import CashFlowLedger
from paperledger.services.registry import get_ledgers


class SqlTestConfig(TestConfig):
    LEDGER_STORAGE = "sql"


@pytest.fixture(scope='function')
def medium():
    """Raw in-memory medium, exposed so tests can inspect or corrupt it."""
    return InMemoryStorage()


@pytest.fixture(scope='function')
def store(medium):
    return CollectionStore(medium)


@pytest.fixture(scope='function')
def inventory(store):
    return InventoryLedger(store)


@pytest.fixture(scope='function')
def cashflow(store):
    return CashFlowLedger(store)


@pytest.fixture(scope='function')
def app(medium):
    """Create application for testing, backed by the test's medium."""
    app = create_app(TestConfig, storage=medium)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def ledgers(app):
    return get_ledgers()


@pytest.fixture(scope='function')
def sql_app():
    """Application whose ledgers persist to the stored_collections table."""
    app = create_app(SqlTestConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def item_factory(inventory):
    """Create inventory items with sensible defaults."""
    def _make(**overrides):
        fields = {
            "name": "Office paper",
            "category": "other",
            "unit_price": "10",
            "sale_price": "20",
            "current_stock": "0",
            "min_stock_level": "5",
        }
        fields.update(overrides)
        return inventory.create_item(fields)
    return _make


@pytest.fixture(scope='function')
def supplier_factory(inventory):
    def _make(**overrides):
        fields = {"name": "Bole Printing House", "phone": "+251911000000", "status": "active"}
        fields.update(overrides)
        return inventory.create_supplier(fields)
    return _make
