# Overview: Per-app wiring of the collection store and both ledgers.

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from .collection_store import CollectionStore
from .inventory_service import InventoryLedger
from .cashflow_service import CashFlowLedger


EXTENSION_KEY = "paperledger"


@dataclass
class LedgerServices:
    store: CollectionStore
    inventory: InventoryLedger
    cashflow: CashFlowLedger


def build_ledgers(store: CollectionStore, config) -> LedgerServices:
    return LedgerServices(
        store=store,
        inventory=InventoryLedger(store, receipt_number_attempts=config.get("RECEIPT_NUMBER_ATTEMPTS", 5)),
        cashflow=CashFlowLedger(store, seed_default_banks=config.get("SEED_DEFAULT_BANKS", True)),
    )


def get_ledgers() -> LedgerServices:
    """Ledgers bound to the current Flask app."""
    return current_app.extensions[EXTENSION_KEY]
