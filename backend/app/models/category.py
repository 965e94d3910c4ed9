"""Category model for the product category tree."""

import uuid
from typing import TYPE_CHECKING, Optional

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from app.models.product import Product


class Category(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Product category with hierarchical support.

    Categories form a single-parent forest stored as a flat table: each row
    points at its parent through ``parent_id`` (NULL for roots), e.g.
    'Fashion' > 'Men' > 'Shirts'.
    """

    __tablename__ = "categories"

    # Basic info
    name: Mapped[str] = mapped_column(String(100), nullable=False, comment="Display name")
    name_local: Mapped[Optional[str]] = mapped_column(String(100), nullable=True, comment="Localized display name")
    slug: Mapped[str] = mapped_column(String(150), unique=True, index=True, nullable=False, comment="URL-friendly identifier")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, comment="Display order among siblings")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, comment="Visible in public listings")

    # Descriptive / SEO
    image: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    meta_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # Hierarchical support
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("categories.id"),
        nullable=True,
        index=True,
        comment="Parent category ID, NULL for roots"
    )

    # Self-referential relationship. Children are reparented explicitly on
    # delete, so no cascade here.
    parent: Mapped[Optional["Category"]] = relationship(
        "Category",
        remote_side="Category.id",
        back_populates="children",
    )
    children: Mapped[list["Category"]] = relationship(
        "Category",
        back_populates="parent",
    )

    products: Mapped[list["Product"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<Category(id={self.id}, slug='{self.slug}', name='{self.name}')>"
