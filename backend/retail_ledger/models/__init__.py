from .tenancy import Business
from .inventory import Product, StockMovement
from .sales import Sale, SaleItem, RefundAdjustment, RefundAdjustmentLine
from .cash import CashShift, CashMovement

__all__ = [
    'Business',
    'Product', 'StockMovement',
    'Sale', 'SaleItem', 'RefundAdjustment', 'RefundAdjustmentLine',
    'CashShift', 'CashMovement',
]
