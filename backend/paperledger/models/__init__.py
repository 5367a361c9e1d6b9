from .storage import StoredCollection
from .inventory import (
    InventoryItem, Supplier, CollectionTransaction, SaleTransaction, Receipt, ReceiptLine, InventoryReport,
)
from .cashflow import BankAccount, CashFlowTransaction, Payable, Receivable, FinancialSummary

__all__ = [
    'StoredCollection',
    'InventoryItem', 'Supplier', 'CollectionTransaction', 'SaleTransaction',
    'Receipt', 'ReceiptLine', 'InventoryReport',
    'BankAccount', 'CashFlowTransaction', 'Payable', 'Receivable', 'FinancialSummary',
]
