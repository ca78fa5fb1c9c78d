from .database import Base, Database
from .admins import Admin
from .products import Product
from .orders import Order, OrderItem

__all__ = [
    "Base",
    "Database",
    "Admin",
    "Product",
    "Order",
    "OrderItem",
]
