"""Product model.

Only the columns the category tree needs: products are managed elsewhere,
this table is read to count a category's products.
"""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.category import Category


class Product(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Catalog product assigned to at most one category."""

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
        index=True,
    )

    category: Mapped[Optional["Category"]] = relationship(back_populates="products")

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name='{self.name[:30]}')>"
