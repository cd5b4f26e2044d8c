from .auth import User
from .catalog import Brand, Product, StockItem
from .inventory import Stock
from .sales import Bill, BillItem
from .orders import Order, OrderItem
from .suppliers import Supplier, SupplierPayment
from .documents import DocumentSequence
from .company import Company

__all__ = [
    'User',
    'Brand', 'Product', 'StockItem',
    'Stock',
    'Bill', 'BillItem',
    'Order', 'OrderItem',
    'Supplier', 'SupplierPayment',
    'DocumentSequence',
    'Company',
]
