# Overview: Durable collection store; load/save named record lists over a swappable storage medium.

"""
Durable Collection Store

Every ledger collection (items, suppliers, receipts, banks, ...) is kept as
one JSON array under a fixed key. Ledger services never talk to the medium
directly; they load a whole collection, mutate it in memory and save it back.

Invariants:
- load() outside a transaction never raises. A missing key, an unreadable
  medium, malformed JSON, a non-list payload or a record that does not
  decode all yield the caller's default. Storage is left untouched.
- Inside transaction(), an unreadable medium raises instead, so a
  read-modify-write never saves "default + new record" over real data.
- save() overwrites the previous snapshot (no merging).
- Inside transaction(), saves are buffered and flushed with a single
  write_many() when the block exits cleanly; on error nothing is written.
  Loads inside the block see the buffered snapshots.
- transaction() holds the store's lock, so ledger operations sharing a
  store run one at a time within a process.
"""

from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from typing import Protocol

from ..extensions import db
from ..models import StoredCollection
from ..models.base import encode_value


logger = logging.getLogger(__name__)

INVENTORY_ITEMS_KEY = "inventory_items"
SUPPLIERS_KEY = "suppliers"
COLLECTIONS_KEY = "collection_transactions"
SALES_KEY = "sale_transactions"
RECEIPTS_KEY = "receipts"
BANKS_KEY = "bank_accounts"
CASHFLOW_TRANSACTIONS_KEY = "cashflow_transactions"
PAYABLES_KEY = "payables"
RECEIVABLES_KEY = "receivables"

COLLECTION_KEYS = (
    INVENTORY_ITEMS_KEY,
    SUPPLIERS_KEY,
    COLLECTIONS_KEY,
    SALES_KEY,
    RECEIPTS_KEY,
    BANKS_KEY,
    CASHFLOW_TRANSACTIONS_KEY,
    PAYABLES_KEY,
    RECEIVABLES_KEY,
)


class StorageMedium(Protocol):
    def read(self, key: str) -> str | None:
        ...

    def write_many(self, snapshots: dict[str, str]) -> None:
        """Persist every snapshot, or none of them."""
        ...


class InMemoryStorage:
    """Dict-backed medium for tests and throwaway runs."""

    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def read(self, key: str) -> str | None:
        return self.data.get(key)

    def write_many(self, snapshots: dict[str, str]) -> None:
        self.data.update(snapshots)


class SqlAlchemyStorage:
    """
    Medium backed by the stored_collections table.

    Must be used inside a Flask app context. All snapshots of one
    write_many() are committed in the same DB transaction.
    """

    def read(self, key: str) -> str | None:
        try:
            row = db.session.query(StoredCollection).filter_by(key=key).first()
        except Exception:
            db.session.rollback()
            raise
        return row.payload if row else None

    def write_many(self, snapshots: dict[str, str]) -> None:
        try:
            for key, payload in snapshots.items():
                row = db.session.query(StoredCollection).filter_by(key=key).first()
                if row is None:
                    db.session.add(StoredCollection(key=key, payload=payload))
                else:
                    row.payload = payload
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise


def build_storage(kind: str) -> StorageMedium:
    kind = (kind or "").strip().lower()
    if kind == "sql":
        return SqlAlchemyStorage()
    if kind == "memory":
        return InMemoryStorage()
    raise ValueError(f"Unknown LEDGER_STORAGE '{kind}' (expected 'sql' or 'memory')")


class CollectionStore:
    def __init__(self, medium: StorageMedium | None = None):
        self.medium = medium if medium is not None else InMemoryStorage()
        self._lock = threading.RLock()
        self._local = threading.local()

    def _pending(self) -> dict | None:
        return getattr(self._local, "pending", None)

    def load(self, key: str, default: list, record_type=None) -> list:
        """
        Load the collection stored under key.

        record_type: optional LedgerRecord class; each element is decoded
        with record_type.from_dict().

        Inside transaction() a failing medium read is re-raised, so the
        operation aborts (and can be retried) instead of saving over the
        stored snapshot.
        """
        pending = self._pending()
        if pending is not None and key in pending:
            raw = pending[key]
        else:
            try:
                raw = self.medium.read(key)
            except Exception:
                if pending is not None:
                    logger.warning("Could not read collection %r inside a transaction; aborting", key)
                    raise
                logger.warning("Could not read collection %r; using default", key, exc_info=True)
                return list(default)

        if raw is None:
            return list(default)

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError(f"expected a JSON array, got {type(data).__name__}")
            if record_type is None:
                return data
            return [record_type.from_dict(entry) for entry in data]
        except Exception as exc:
            logger.warning("Collection %r holds unreadable data (%s); using default", key, exc)
            return list(default)

    def save(self, key: str, records: list) -> None:
        payload = json.dumps([encode_value(r) for r in records])
        pending = self._pending()
        if pending is not None:
            pending[key] = payload
            return
        with self._lock:
            self.medium.write_many({key: payload})

    @contextmanager
    def transaction(self):
        """
        Group several saves into one atomic write.

        Nested transaction() blocks join the outermost one.
        """
        with self._lock:
            if self._pending() is not None:
                yield self
                return

            self._local.pending = {}
            try:
                yield self
                pending = self._local.pending
                if pending:
                    self.medium.write_many(pending)
            finally:
                self._local.pending = None
