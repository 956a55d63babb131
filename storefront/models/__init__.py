"""Models package - exports all SQLAlchemy models."""
from storefront.models.user import User, Role
from storefront.models.product import Product
from storefront.models.cart import Cart
from storefront.models.cart_item import CartItem
from storefront.models.order import Order, OrderStatus, ALLOWED_TRANSITIONS, TERMINAL_STATUSES
from storefront.models.order_item import OrderItem

__all__ = [
    'User', 'Role',
    'Product',
    'Cart', 'CartItem',
    'Order', 'OrderStatus', 'ALLOWED_TRANSITIONS', 'TERMINAL_STATUSES', 'OrderItem',
]
