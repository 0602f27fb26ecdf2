from .catalog import Product, Variant
from .customers import Customer
from .orders import PaymentStatus, Order, OrderItem, SalesRecord, OrderStatusLog
from .returns import SalesReturn, SalesReturnItem

__all__ = [
    'Product', 'Variant',
    'Customer',
    'PaymentStatus', 'Order', 'OrderItem', 'SalesRecord', 'OrderStatusLog',
    'SalesReturn', 'SalesReturnItem',
]
