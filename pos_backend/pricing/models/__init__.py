# pricing/models/__init__.py

from .discount import Discount
from .tax import Tax

__all__ = ["Discount", "Tax"]
