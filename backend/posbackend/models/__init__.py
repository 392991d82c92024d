from .inventory import Product, InventoryRecord, InventoryMovement
from .sales import Sale, SaleLine, SalePayment, DocumentSequence
from .ledger import AccountingEntry

__all__ = [
    'Product', 'InventoryRecord', 'InventoryMovement',
    'Sale', 'SaleLine', 'SalePayment', 'DocumentSequence',
    'AccountingEntry',
]
