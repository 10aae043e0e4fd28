from .base import Base, new_id, utcnow
from .cart import Cart, CartItem
from .category import Category
from .order import Order, OrderStatus
from .order_item import OrderItem
from .product import PRODUCT_UNITS, Product
from .user import USER_ROLES, USER_STATUSES, User

__all__ = [
    "Base",
    "Cart",
    "CartItem",
    "Category",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PRODUCT_UNITS",
    "Product",
    "USER_ROLES",
    "USER_STATUSES",
    "User",
    "new_id",
    "utcnow",
]
