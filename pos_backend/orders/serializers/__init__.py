from .order import (
    OrderCreateSerializer,
    OrderItemInputSerializer,
    OrderItemSerializer,
    OrderSerializer,
    OrderUpdateSerializer,
)

__all__ = [
    "OrderSerializer",
    "OrderItemSerializer",
    "OrderItemInputSerializer",
    "OrderCreateSerializer",
    "OrderUpdateSerializer",
]
