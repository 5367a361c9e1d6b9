from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from .base import LedgerRecord, ZERO


TRANSACTION_TYPES = ("deposit", "withdrawal", "transfer")
SETTLEMENT_STATUSES = ("paid", "unpaid", "partial")


@dataclass
class BankAccount(LedgerRecord):
    # balance may go negative (overdraft is allowed)
    id: str
    name: str
    balance: Decimal = ZERO
    last_updated: Optional[str] = None

    decimal_fields = ("balance",)


@dataclass
class CashFlowTransaction(LedgerRecord):
    """
    One debit or credit against a bank account.

    balance is the running ledger balance of the bank after this entry,
    computed from the previous entry for the same bank in insertion order.
    bank_balance is the account's absolute balance right after the update.
    """
    id: str
    bank_id: str
    debit: Decimal
    credit: Decimal
    balance: Decimal
    bank_balance: Decimal
    created_at: str
    bank_name: str = ""
    transaction_type: str = "deposit"
    date: Optional[str] = None
    description: str = ""
    paid_to: Optional[str] = None
    received_from: Optional[str] = None
    pv_number: Optional[str] = None
    cheque_number: Optional[str] = None
    fs_number: Optional[str] = None
    remark: Optional[str] = None

    decimal_fields = ("debit", "credit", "balance", "bank_balance")

    @property
    def is_debit(self) -> bool:
        return self.debit > 0


@dataclass
class Payable(LedgerRecord):
    """Money owed to a counterpart. pending is always amount - paid."""
    id: str
    amount: Decimal
    paid: Decimal
    pending: Decimal
    created_at: str
    due_date: Optional[str] = None
    paid_to: Optional[str] = None
    purpose: Optional[str] = None
    status: str = "unpaid"
    first_priority: Decimal = ZERO
    second_priority: Decimal = ZERO
    third_priority: Decimal = ZERO
    remark: Optional[str] = None
    extra: dict = field(default_factory=dict)

    decimal_fields = (
        "amount",
        "paid",
        "pending",
        "first_priority",
        "second_priority",
        "third_priority",
    )


@dataclass
class Receivable(LedgerRecord):
    id: str
    amount: Decimal
    created_at: str
    status: str = "unpaid"
    due_date: Optional[str] = None
    receivable_from: Optional[str] = None
    purpose: Optional[str] = None
    bank: Optional[str] = None
    remark: Optional[str] = None
    extra: dict = field(default_factory=dict)

    decimal_fields = ("amount",)


@dataclass(frozen=True)
class FinancialSummary:
    """Derived on demand from banks, payables and receivables; never stored."""
    total_payable: Decimal
    total_receivable: Decimal
    total_bank_balance: Decimal
    cash_balance: Decimal
    cash_receivable_balance: Decimal
    difference: Decimal

    def to_dict(self) -> dict:
        return {
            "total_payable": str(self.total_payable),
            "total_receivable": str(self.total_receivable),
            "total_bank_balance": str(self.total_bank_balance),
            "cash_balance": str(self.cash_balance),
            "cash_receivable_balance": str(self.cash_receivable_balance),
            "difference": str(self.difference),
        }
