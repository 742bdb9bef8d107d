from .tenancy import Tenant, Table
from .inventory import Product, StockMovement, StockMovementType
from .orders import Order, OrderItem, OrderStatus, TERMINAL_ORDER_STATUSES

__all__ = [
    'Tenant', 'Table',
    'Product', 'StockMovement', 'StockMovementType',
    'Order', 'OrderItem', 'OrderStatus', 'TERMINAL_ORDER_STATUSES',
]
