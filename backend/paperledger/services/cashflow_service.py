# Overview: Service-layer operations for cash flow; bank balances, ledger entries, payables and receivables.

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal

from ..models import BankAccount, CashFlowTransaction, Payable, Receivable, FinancialSummary
from ..models.base import ZERO
from ..models.cashflow import TRANSACTION_TYPES, SETTLEMENT_STATUSES
from ..time_utils import utcnow_iso
from ..validation import (
    RecordValidationPolicy,
    validate_payload,
    require_non_negative,
    ValidationError,
    NotFoundError,
)
from .collection_store import (
    CollectionStore,
    BANKS_KEY,
    CASHFLOW_TRANSACTIONS_KEY,
    PAYABLES_KEY,
    RECEIVABLES_KEY,
)
from .concurrency import run_with_retry
from .identifier_service import new_id
"""
Cash-Flow Ledger Invariants (authoritative)

Banks:
- Balances change only through update_bank_balance / record_transaction.
- No floor: a debit larger than the balance leaves it negative (overdraft).

Ledger entries:
- Exactly one of debit / credit is > 0 on every entry.
- balance (running) = previous entry's balance for the same bank, taken in
  insertion order, -debit or +credit. The first entry for a bank starts
  from the bank's balance before the update.
- bank_balance is the bank's absolute balance right after the update.
- The bank update and the appended entry are committed together; an
  unknown bank writes nothing.

Payables / receivables:
- Payable.pending == amount - paid, recomputed whenever either changes.
- paid never exceeds amount, so pending is never negative.
- The financial summary is derived on demand and never stored.
"""


logger = logging.getLogger(__name__)

DEFAULT_BANKS = (
    ("1", "CBE Bank", "620252.27"),
    ("2", "Awash Bank", "150000.00"),
    ("3", "Abissinia Bank", "85000.00"),
    ("4", "Zemen Bank", "42000.00"),
    ("5", "Dashen Bank", "125000.00"),
    ("6", "Abay Bank", "95000.00"),
    ("7", "Enat Bank", "78000.00"),
)

TRANSACTION_POLICY = RecordValidationPolicy(
    writable_fields={
        "date", "description", "paid_to", "received_from", "pv_number", "cheque_number",
        "fs_number", "remark", "bank_name", "transaction_type",
    },
    choices={"transaction_type": TRANSACTION_TYPES},
)

PAYABLE_POLICY = RecordValidationPolicy(
    writable_fields={
        "amount", "paid", "due_date", "paid_to", "purpose", "status",
        "first_priority", "second_priority", "third_priority", "remark", "extra",
    },
    required_on_create={"amount"},
    non_negative={"amount", "paid", "first_priority", "second_priority", "third_priority"},
    choices={"status": SETTLEMENT_STATUSES},
    allow_extra=True,
)

RECEIVABLE_POLICY = RecordValidationPolicy(
    writable_fields={
        "amount", "status", "due_date", "receivable_from", "purpose", "bank", "remark", "extra",
    },
    required_on_create={"amount"},
    non_negative={"amount"},
    choices={"status": SETTLEMENT_STATUSES},
    allow_extra=True,
)


def default_banks() -> list[BankAccount]:
    now = utcnow_iso()
    return [
        BankAccount(id=bank_id, name=name, balance=Decimal(balance), last_updated=now)
        for bank_id, name, balance in DEFAULT_BANKS
    ]


def _index_of(records: list, record_id: str) -> int:
    for idx, record in enumerate(records):
        if record.id == record_id:
            return idx
    return -1


def _check_paid_within_amount(amount: Decimal, paid: Decimal) -> None:
    if paid > amount:
        raise ValidationError("paid cannot exceed amount")


def _merge_extra(current: dict, patch: dict) -> dict:
    if "extra" not in patch:
        return patch
    merged = dict(patch)
    merged["extra"] = {**(current or {}), **(patch["extra"] or {})}
    return merged


class CashFlowLedger:
    """Cash-side ledger over an injected CollectionStore."""

    def __init__(self, store: CollectionStore, *, seed_default_banks: bool = True):
        self.store = store
        self.seed_default_banks = seed_default_banks

    # Banks

    def list_banks(self) -> list[BankAccount]:
        """Bank accounts; the default set is seeded and saved on first use."""
        banks = self.store.load(BANKS_KEY, [], BankAccount)
        if not banks and self.seed_default_banks:
            banks = default_banks()
            self.store.save(BANKS_KEY, banks)
            logger.info("Seeded %d default bank accounts", len(banks))
        return banks

    def _banks_snapshot(self) -> list[BankAccount]:
        # Read-only view: shows the default set without persisting it
        banks = self.store.load(BANKS_KEY, [], BankAccount)
        if not banks and self.seed_default_banks:
            return default_banks()
        return banks

    def get_bank(self, bank_id: str) -> BankAccount | None:
        return next((b for b in self._banks_snapshot() if b.id == bank_id), None)

    def _apply_bank_balance_inner(self, banks: list[BankAccount], idx: int, amount: Decimal, is_debit: bool) -> BankAccount:
        """Core balance update without locking, retry or commit."""
        bank = banks[idx]
        bank.balance = bank.balance - amount if is_debit else bank.balance + amount
        bank.last_updated = utcnow_iso()
        self.store.save(BANKS_KEY, banks)
        return bank

    def update_bank_balance(self, bank_id: str, amount, is_debit: bool) -> BankAccount | None:
        """
        Debit (subtract) or credit (add) amount on a bank's balance.

        Returns the updated bank, or None if bank_id is unknown.
        """
        amount = require_non_negative(amount, "amount")

        def _op():
            with self.store.transaction():
                banks = self.list_banks()
                idx = _index_of(banks, bank_id)
                if idx == -1:
                    return None
                return self._apply_bank_balance_inner(banks, idx, amount, bool(is_debit))

        return run_with_retry(_op)

    # Ledger entries

    def list_transactions(self, bank_id: str | None = None) -> list[CashFlowTransaction]:
        transactions = self.store.load(CASHFLOW_TRANSACTIONS_KEY, [], CashFlowTransaction)
        if bank_id is None:
            return transactions
        return [tx for tx in transactions if tx.bank_id == bank_id]

    def record_transaction(self, bank_id: str, debit=0, credit=0, **fields) -> CashFlowTransaction:
        """
        Post a debit or a credit against a bank and append a ledger entry.

        Extra keyword fields (description, paid_to, cheque_number, ...) are
        stored on the entry. transaction_type defaults to 'withdrawal' for
        debits and 'deposit' for credits.

        Raises:
            ValidationError: negative amounts, or not exactly one side > 0
            NotFoundError: bank_id is unknown (nothing is written)
        """
        debit = require_non_negative(debit, "debit")
        credit = require_non_negative(credit, "credit")
        if (debit > 0) == (credit > 0):
            raise ValidationError("Exactly one of debit or credit must be > 0")

        patch = validate_payload(
            record_type=CashFlowTransaction, payload=fields, policy=TRANSACTION_POLICY, partial=True,
        )
        is_debit = debit > 0
        amount = debit if is_debit else credit
        bank_name = patch.pop("bank_name", None)
        transaction_type = patch.pop("transaction_type", None) or ("withdrawal" if is_debit else "deposit")

        def _op():
            with self.store.transaction():
                banks = self.list_banks()
                idx = _index_of(banks, bank_id)
                if idx == -1:
                    raise NotFoundError(f"Bank {bank_id} not found")

                balance_before = banks[idx].balance
                bank = self._apply_bank_balance_inner(banks, idx, amount, is_debit)

                transactions = self.list_transactions()
                history = [tx for tx in transactions if tx.bank_id == bank_id]
                previous_balance = history[-1].balance if history else balance_before
                running_balance = previous_balance - debit if is_debit else previous_balance + credit

                tx = CashFlowTransaction(
                    id=new_id(),
                    bank_id=bank_id,
                    bank_name=bank_name or bank.name,
                    debit=debit,
                    credit=credit,
                    balance=running_balance,
                    bank_balance=bank.balance,
                    created_at=utcnow_iso(),
                    transaction_type=transaction_type,
                    **patch,
                )
                transactions.append(tx)
                self.store.save(CASHFLOW_TRANSACTIONS_KEY, transactions)

            logger.info(
                "Recorded %s of %s on bank %s (running balance %s)",
                "debit" if is_debit else "credit", amount, bank_id, tx.balance,
            )
            return tx

        return run_with_retry(_op)

    # Payables

    def list_payables(self) -> list[Payable]:
        return self.store.load(PAYABLES_KEY, [], Payable)

    def create_payable(self, fields: dict) -> Payable:
        patch = validate_payload(
            record_type=Payable, payload=fields, policy=PAYABLE_POLICY, partial=False,
        )
        amount = patch.pop("amount")
        paid = patch.pop("paid", None) or ZERO
        _check_paid_within_amount(amount, paid)

        def _op():
            with self.store.transaction():
                payables = self.list_payables()
                payable = Payable(
                    id=new_id(),
                    amount=amount,
                    paid=paid,
                    pending=amount - paid,
                    created_at=utcnow_iso(),
                    **patch,
                )
                payables.append(payable)
                self.store.save(PAYABLES_KEY, payables)
            return payable

        return run_with_retry(_op)

    def update_payable(self, payable_id: str, updates: dict) -> Payable | None:
        """
        Merge updates into a payable; pending is recomputed from the merged
        amount and paid. Returns None if payable_id is unknown.
        """
        patch = validate_payload(
            record_type=Payable, payload=updates, policy=PAYABLE_POLICY, partial=True,
        )

        def _op():
            with self.store.transaction():
                payables = self.list_payables()
                idx = _index_of(payables, payable_id)
                if idx == -1:
                    return None
                current = payables[idx]
                updated = replace(current, **_merge_extra(current.extra, patch))
                if "amount" in patch or "paid" in patch:
                    _check_paid_within_amount(updated.amount, updated.paid)
                    updated.pending = updated.amount - updated.paid
                payables[idx] = updated
                self.store.save(PAYABLES_KEY, payables)
                return updated

        return run_with_retry(_op)

    # Receivables

    def list_receivables(self) -> list[Receivable]:
        return self.store.load(RECEIVABLES_KEY, [], Receivable)

    def create_receivable(self, fields: dict) -> Receivable:
        patch = validate_payload(
            record_type=Receivable, payload=fields, policy=RECEIVABLE_POLICY, partial=False,
        )

        def _op():
            with self.store.transaction():
                receivables = self.list_receivables()
                receivable = Receivable(id=new_id(), created_at=utcnow_iso(), **patch)
                receivables.append(receivable)
                self.store.save(RECEIVABLES_KEY, receivables)
            return receivable

        return run_with_retry(_op)

    def update_receivable(self, receivable_id: str, updates: dict) -> Receivable | None:
        patch = validate_payload(
            record_type=Receivable, payload=updates, policy=RECEIVABLE_POLICY, partial=True,
        )

        def _op():
            with self.store.transaction():
                receivables = self.list_receivables()
                idx = _index_of(receivables, receivable_id)
                if idx == -1:
                    return None
                current = receivables[idx]
                receivables[idx] = replace(current, **_merge_extra(current.extra, patch))
                self.store.save(RECEIVABLES_KEY, receivables)
                return receivables[idx]

        return run_with_retry(_op)

    # Summary

    def compute_financial_summary(self) -> FinancialSummary:
        """Aggregate banks, payables and receivables. Read-only."""
        payables = self.list_payables()
        receivables = self.list_receivables()
        banks = self._banks_snapshot()

        total_payable = sum((p.pending for p in payables), ZERO)
        total_receivable = sum((r.amount for r in receivables if r.status == "unpaid"), ZERO)
        total_bank_balance = sum((b.balance for b in banks), ZERO)
        cash_balance = total_bank_balance

        return FinancialSummary(
            total_payable=total_payable,
            total_receivable=total_receivable,
            total_bank_balance=total_bank_balance,
            cash_balance=cash_balance,
            cash_receivable_balance=cash_balance + total_receivable - total_payable,
            difference=total_receivable - total_payable,
        )
