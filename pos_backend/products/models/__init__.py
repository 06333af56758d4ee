"""
PATH: products/models/__init__.py

Products models export surface.
"""

from .product import Product
from .inventory_item import InventoryItem

__all__ = [
    "Product",
    "InventoryItem",
]
