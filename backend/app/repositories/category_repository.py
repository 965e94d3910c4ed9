"""Category storage: key lookups and bulk queries against the categories table.

``CategoryRepository`` is the narrow interface the tree service depends on.
``SQLAlchemyCategoryRepository`` implements it over an ``AsyncSession``.
Repository methods never commit; the caller owns the transaction.
"""

import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, NamedTuple, Optional, Tuple

import structlog
from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ConflictError, NotFoundError, StoreError
from app.models.category import Category
from app.models.product import Product

logger = structlog.get_logger(__name__)

# SQLSTATE class 23 codes
_FOREIGN_KEY_VIOLATION = "23503"


class CategoryMinimal(NamedTuple):
    """Just enough of a category to place it in the hierarchy."""

    id: uuid.UUID
    name: str
    name_local: Optional[str]
    slug: str
    parent_id: Optional[uuid.UUID]


@contextmanager
def _store_errors(operation: str) -> Iterator[None]:
    """Wrap driver/connection failures in StoreError.

    Domain errors raised inside the block pass through untouched.
    """
    try:
        yield
    except IntegrityError:
        raise
    except SQLAlchemyError as e:
        logger.error("category_store_failed", operation=operation, error=str(e))
        raise StoreError(operation, str(e)) from e


def _is_foreign_key_violation(error: IntegrityError) -> bool:
    """True when ``error`` comes from the parent_id foreign key, not the slug index."""
    orig = error.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate:
        return sqlstate == _FOREIGN_KEY_VIOLATION
    return "foreign key" in str(orig).lower()


def _integrity_to_domain(
    error: IntegrityError,
    slug: str,
    parent_id: Optional[uuid.UUID],
) -> Exception:
    if _is_foreign_key_violation(error):
        # Parent removed between validation and the write.
        return NotFoundError("Parent category", str(parent_id))
    return ConflictError("Category", "slug", slug)


class CategoryRepository(ABC):

    @abstractmethod
    async def find_active_ordered(self) -> List[Category]:
        pass

    @abstractmethod
    async def find_all_ordered_minimal(self) -> List[CategoryMinimal]:
        pass

    @abstractmethod
    async def find_by_id(self, category_id: uuid.UUID) -> Optional[Category]:
        pass

    @abstractmethod
    async def find_by_slug(self, slug: str) -> Optional[Category]:
        pass

    @abstractmethod
    async def find_children(self, parent_id: uuid.UUID) -> List[uuid.UUID]:
        pass

    async def find_children_of_many(
        self,
        parent_ids: Iterable[uuid.UUID],
    ) -> List[Tuple[uuid.UUID, uuid.UUID]]:
        """(child_id, parent_id) pairs for all children of ``parent_ids``.

        Falls back to one ``find_children`` call per parent; storages that
        can filter on a set of parents should override it.
        """
        pairs = []
        for parent_id in parent_ids:
            for child_id in await self.find_children(parent_id):
                pairs.append((child_id, parent_id))
        return pairs

    @abstractmethod
    async def find_active_children(self, parent_id: uuid.UUID) -> List[Category]:
        pass

    @abstractmethod
    async def create(self, fields: Dict[str, Any]) -> Category:
        pass

    @abstractmethod
    async def update(self, category_id: uuid.UUID, patch: Dict[str, Any]) -> Category:
        pass

    @abstractmethod
    async def delete(self, category_id: uuid.UUID) -> None:
        pass

    @abstractmethod
    async def bulk_reparent(
        self,
        old_parent_id: uuid.UUID,
        new_parent_id: Optional[uuid.UUID],
    ) -> int:
        pass

    @abstractmethod
    async def count_products(self, category_id: uuid.UUID) -> int:
        pass

    @abstractmethod
    async def count_products_by_category(
        self,
        category_ids: Iterable[uuid.UUID],
    ) -> Dict[uuid.UUID, int]:
        pass

    @abstractmethod
    async def count_children(self, category_id: uuid.UUID) -> int:
        pass


class SQLAlchemyCategoryRepository(CategoryRepository):
    """Category repository backed by an async SQLAlchemy session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_active_ordered(self) -> List[Category]:
        """Active categories ordered by sort_order, then name."""
        with _store_errors("find_active_ordered"):
            result = await self.db.execute(
                select(Category)
                .where(Category.is_active.is_(True))
                .order_by(Category.sort_order, Category.name, Category.id)
            )
            return list(result.scalars().all())

    async def find_all_ordered_minimal(self) -> List[CategoryMinimal]:
        """Every category, active or not, with only hierarchy columns."""
        with _store_errors("find_all_ordered_minimal"):
            result = await self.db.execute(
                select(
                    Category.id,
                    Category.name,
                    Category.name_local,
                    Category.slug,
                    Category.parent_id,
                ).order_by(Category.sort_order, Category.name, Category.id)
            )
            return [CategoryMinimal(*row) for row in result.all()]

    async def find_by_id(self, category_id: uuid.UUID) -> Optional[Category]:
        with _store_errors("find_by_id"):
            result = await self.db.execute(
                select(Category).where(Category.id == category_id)
            )
            return result.scalar_one_or_none()

    async def find_by_slug(self, slug: str) -> Optional[Category]:
        with _store_errors("find_by_slug"):
            result = await self.db.execute(
                select(Category).where(Category.slug == slug)
            )
            return result.scalar_one_or_none()

    async def find_children(self, parent_id: uuid.UUID) -> List[uuid.UUID]:
        """IDs of the direct children of ``parent_id``."""
        with _store_errors("find_children"):
            result = await self.db.execute(
                select(Category.id).where(Category.parent_id == parent_id)
            )
            return list(result.scalars().all())

    async def find_children_of_many(
        self,
        parent_ids: Iterable[uuid.UUID],
    ) -> List[Tuple[uuid.UUID, uuid.UUID]]:
        """(child_id, parent_id) pairs for every child of any of ``parent_ids``.

        Lets a caller walk a subtree one level per query.
        """
        parent_ids = list(parent_ids)
        if not parent_ids:
            return []

        with _store_errors("find_children_of_many"):
            result = await self.db.execute(
                select(Category.id, Category.parent_id)
                .where(Category.parent_id.in_(parent_ids))
            )
            return [(row.id, row.parent_id) for row in result.all()]

    async def find_active_children(self, parent_id: uuid.UUID) -> List[Category]:
        with _store_errors("find_active_children"):
            result = await self.db.execute(
                select(Category)
                .where(Category.parent_id == parent_id, Category.is_active.is_(True))
                .order_by(Category.sort_order, Category.name, Category.id)
            )
            return list(result.scalars().all())

    async def count_products(self, category_id: uuid.UUID) -> int:
        with _store_errors("count_products"):
            result = await self.db.execute(
                select(func.count(Product.id)).where(Product.category_id == category_id)
            )
            return result.scalar() or 0

    async def count_products_by_category(
        self,
        category_ids: Iterable[uuid.UUID],
    ) -> Dict[uuid.UUID, int]:
        """Product counts for many categories in one grouped query.

        Categories without products are absent from the result.
        """
        category_ids = list(category_ids)
        if not category_ids:
            return {}

        with _store_errors("count_products_by_category"):
            result = await self.db.execute(
                select(Product.category_id, func.count(Product.id))
                .where(Product.category_id.in_(category_ids))
                .group_by(Product.category_id)
            )
            return {category_id: count for category_id, count in result.all()}

    async def count_children(self, category_id: uuid.UUID) -> int:
        with _store_errors("count_children"):
            result = await self.db.execute(
                select(func.count(Category.id)).where(Category.parent_id == category_id)
            )
            return result.scalar() or 0

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create(self, fields: Dict[str, Any]) -> Category:
        """Insert a category and return it with server defaults loaded.

        Raises:
            ConflictError: If the slug unique index rejects the row.
            NotFoundError: If the parent_id foreign key rejects the row.
        """
        category = Category(**fields)
        with _store_errors("create"):
            self.db.add(category)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise _integrity_to_domain(e, fields.get("slug", ""), fields.get("parent_id")) from e
            await self.db.refresh(category)

        logger.debug("category_row_inserted", category_id=str(category.id), slug=category.slug)
        return category

    async def update(self, category_id: uuid.UUID, patch: Dict[str, Any]) -> Category:
        """Apply ``patch`` (only the keys present) to one category."""
        category = await self.find_by_id(category_id)
        if category is None:
            # Callers validate existence first; a miss here means a concurrent delete.
            raise NotFoundError("Category", str(category_id))

        for field, value in patch.items():
            setattr(category, field, value)
        slug, parent_id = category.slug, category.parent_id

        with _store_errors("update"):
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise _integrity_to_domain(e, slug, parent_id) from e
            await self.db.refresh(category)

        return category

    async def delete(self, category_id: uuid.UUID) -> None:
        with _store_errors("delete"):
            await self.db.execute(delete(Category).where(Category.id == category_id))

    async def bulk_reparent(
        self,
        old_parent_id: uuid.UUID,
        new_parent_id: Optional[uuid.UUID],
    ) -> int:
        """Move every direct child of ``old_parent_id`` under ``new_parent_id``.

        Returns:
            Number of rows reparented
        """
        with _store_errors("bulk_reparent"):
            result = await self.db.execute(
                update(Category)
                .where(Category.parent_id == old_parent_id)
                .values(parent_id=new_parent_id)
            )
            return result.rowcount or 0
