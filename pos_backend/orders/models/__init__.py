"""
PATH: orders/models/__init__.py

Orders models export surface.
"""

from .order import Order
from .order_item import OrderItem

__all__ = [
    "Order",
    "OrderItem",
]
