from .auth import User
from .customers import Customer
from .catalog import Product, UnitQuantity, Tax
from .transactions import Transaction, TransactionItem, Discount
from .inventory import InventoryHistory
from .payments import Payment, PaymentDetail

__all__ = [
    'User',
    'Customer',
    'Product', 'UnitQuantity', 'Tax',
    'Transaction', 'TransactionItem', 'Discount',
    'InventoryHistory',
    'Payment', 'PaymentDetail',
]
