"""SQLAlchemy models.

All models are imported here so ``Base.metadata`` knows every table.
"""

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from app.models.category import Category
from app.models.product import Product

__all__ = [
    "Base",
    "TimestampMixin",
    "UUIDPrimaryKeyMixin",
    "Category",
    "Product",
]
