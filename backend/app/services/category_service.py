"""Category service for the product category tree.

Read side: nested tree of active categories, flat listing with depth and
full path, detail by slug. Write side: create, update (including
reparenting) and delete, validated so the parent links always form a
forest: no cycles, no orphaned branches.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    ConflictError,
    InvalidOperationError,
    NotFoundError,
    StoreError,
)
from app.models.category import Category
from app.repositories.category_repository import (
    CategoryRepository,
    SQLAlchemyCategoryRepository,
)
from app.schemas.category import (
    CategoryBrief,
    CategoryCreate,
    CategoryDeleteResponse,
    CategoryDetailResponse,
    CategoryFlatResponse,
    CategoryResponse,
    CategoryTreeResponse,
    CategoryUpdate,
    CategoryWithParentResponse,
)
from app.services.category_tree import OrphanPolicy, build_forest, compute_path

logger = structlog.get_logger(__name__)


def _base_fields(category: Category, product_count: int = 0) -> dict:
    """Column values of ``category`` as a dict, without touching relationships."""
    data = CategoryResponse.model_validate(category).model_dump()
    data["product_count"] = product_count
    return data


class CategoryService:
    """Service for reading and mutating the category tree.

    Stateless between calls: every lookup map is rebuilt per call and all
    mutable state lives in the database.
    """

    def __init__(
        self,
        db: AsyncSession,
        repository: Optional[CategoryRepository] = None,
        orphan_policy: Optional[OrphanPolicy] = None,
        max_path_depth: Optional[int] = None,
    ):
        """Initialize category service.

        Args:
            db: Async database session (owns the transaction)
            repository: Category storage, defaults to SQLAlchemy over ``db``
            orphan_policy: Tree handling of categories under a hidden parent
            max_path_depth: Hop limit when computing full paths
        """
        self.db = db
        self.repo = repository or SQLAlchemyCategoryRepository(db)
        self.orphan_policy = orphan_policy or OrphanPolicy(settings.CATEGORY_TREE_ORPHAN_POLICY)
        self.max_path_depth = max_path_depth or settings.CATEGORY_MAX_PATH_DEPTH
        self.logger = logger.bind(service="category_service")

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_tree(self) -> List[CategoryTreeResponse]:
        """Active categories nested into a forest.

        Siblings are ordered by sort_order, then name. Each node carries its
        product count.
        """
        categories = await self.repo.find_active_ordered()
        counts = await self.repo.count_products_by_category(c.id for c in categories)

        nodes = [
            CategoryTreeResponse(**_base_fields(c, counts.get(c.id, 0)))
            for c in categories
        ]
        roots = build_forest(nodes, self.orphan_policy)

        self.logger.debug(
            "category_tree_built",
            roots=len(roots),
            total=len(categories),
        )
        return roots

    async def get_flat_list(self) -> List[CategoryFlatResponse]:
        """Every category with its depth and "A > B > C" path.

        Inactive categories are included so an inactive parent still shows
        up in its children's paths. Sorted by full path (case-insensitive),
        which reads as a depth-first walk of the tree.
        """
        rows = await self.repo.find_all_ordered_minimal()
        lookup = {row.id: row for row in rows}

        items = []
        for row in rows:
            path = compute_path(lookup, row.id, self.max_path_depth)
            items.append(
                CategoryFlatResponse(
                    id=row.id,
                    name=row.name,
                    name_local=row.name_local,
                    slug=row.slug,
                    parent_id=row.parent_id,
                    depth=path.depth,
                    full_path=path.full_path,
                )
            )

        items.sort(key=lambda item: item.full_path.casefold())
        return items

    async def get_by_slug(self, slug: str) -> CategoryDetailResponse:
        """Category detail with parent summary and active direct children.

        Raises:
            NotFoundError: If no category has this slug
        """
        category = await self.repo.find_by_slug(slug)
        if category is None:
            raise NotFoundError("Category", slug)

        parent = await self._parent_brief(category)
        children = await self.repo.find_active_children(category.id)
        product_count = await self.repo.count_products(category.id)

        return CategoryDetailResponse(
            **_base_fields(category, product_count),
            parent=parent,
            children=[CategoryBrief.model_validate(child) for child in children],
        )

    # ------------------------------------------------------------------
    # Ancestry guard
    # ------------------------------------------------------------------

    async def is_descendant(
        self,
        candidate_id: uuid.UUID,
        ancestor_id: uuid.UUID,
    ) -> bool:
        """True if ``candidate_id`` sits anywhere below ``ancestor_id``.

        Breadth-first over child links with one query per tree level. Stops
        as soon as the candidate is found. Already visited ids are skipped,
        so corrupt cyclic data cannot loop.
        """
        visited = {ancestor_id}
        frontier = [ancestor_id]

        while frontier:
            next_frontier = []
            for child_id, _ in await self.repo.find_children_of_many(frontier):
                if child_id == candidate_id:
                    return True
                if child_id not in visited:
                    visited.add(child_id)
                    next_frontier.append(child_id)
            frontier = next_frontier

        return False

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(self, data: CategoryCreate) -> CategoryWithParentResponse:
        """Create a category.

        Raises:
            ConflictError: If the slug is already used by any category
            NotFoundError: If parent_id is given but does not exist
        """
        await self._ensure_slug_free(data.slug)

        parent = None
        if data.parent_id is not None:
            parent = await self.repo.find_by_id(data.parent_id)
            if parent is None:
                raise NotFoundError("Parent category", str(data.parent_id))

        async with self._unit_of_work("create"):
            category = await self.repo.create(data.model_dump())

        self.logger.info(
            "category_created",
            category_id=str(category.id),
            slug=category.slug,
            parent_id=str(category.parent_id) if category.parent_id else None,
        )

        return CategoryWithParentResponse(
            **_base_fields(category),
            parent=CategoryBrief.model_validate(parent) if parent else None,
        )

    async def update(
        self,
        category_id: uuid.UUID,
        data: CategoryUpdate,
    ) -> CategoryWithParentResponse:
        """Apply a partial update, only touching the fields that were sent.

        Raises:
            NotFoundError: If the category or the new parent does not exist
            ConflictError: If the new slug is taken by another category
            InvalidOperationError: If the new parent is the category itself
                or one of its descendants
        """
        category = await self.repo.find_by_id(category_id)
        if category is None:
            raise NotFoundError("Category", str(category_id))

        changes = data.changes()

        if "slug" in changes and changes["slug"] != category.slug:
            await self._ensure_slug_free(changes["slug"])

        if "parent_id" in changes:
            new_parent_id = changes["parent_id"]
            if new_parent_id == category.id:
                raise InvalidOperationError("A category cannot be its own parent")
            if new_parent_id != category.parent_id:
                await self._validate_new_parent(category.id, new_parent_id)

        if changes:
            async with self._unit_of_work("update"):
                category = await self.repo.update(category.id, changes)

            self.logger.info(
                "category_updated",
                category_id=str(category.id),
                fields=sorted(changes),
            )

        product_count = await self.repo.count_products(category.id)
        return CategoryWithParentResponse(
            **_base_fields(category, product_count),
            parent=await self._parent_brief(category),
        )

    async def delete(self, category_id: uuid.UUID) -> CategoryDeleteResponse:
        """Delete a category, handing its children to its own parent.

        Children are reparented and the row removed in one transaction: if
        the reparent fails nothing is deleted.

        Raises:
            NotFoundError: If the category does not exist
            InvalidOperationError: If products are still assigned to it
        """
        category = await self.repo.find_by_id(category_id)
        if category is None:
            raise NotFoundError("Category", str(category_id))

        product_count = await self.repo.count_products(category.id)
        if product_count > 0:
            raise InvalidOperationError(
                f"Cannot delete category '{category.name}': "
                f"{product_count} product(s) are still assigned to it"
            )

        child_count = await self.repo.count_children(category.id)
        name = category.name
        new_parent_id = category.parent_id
        reassigned = 0

        async with self._unit_of_work("delete"):
            if child_count > 0:
                reassigned = await self.repo.bulk_reparent(category.id, new_parent_id)
            await self.repo.delete(category.id)

        self.logger.info(
            "category_deleted",
            category_id=str(category_id),
            reassigned_children=reassigned,
            new_parent_id=str(new_parent_id) if new_parent_id else None,
        )

        message = f"Category '{name}' deleted successfully"
        if reassigned:
            message += f"; {reassigned} child categor{'y' if reassigned == 1 else 'ies'} moved up one level"
        return CategoryDeleteResponse(message=message, reassigned_children=reassigned)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _ensure_slug_free(self, slug: str) -> None:
        if await self.repo.find_by_slug(slug) is not None:
            self.logger.info("category_slug_conflict", slug=slug)
            raise ConflictError("Category", "slug", slug)

    async def _validate_new_parent(
        self,
        category_id: uuid.UUID,
        new_parent_id: Optional[uuid.UUID],
    ) -> None:
        """Check that moving ``category_id`` under ``new_parent_id`` keeps a forest."""
        if new_parent_id is None:
            return

        parent = await self.repo.find_by_id(new_parent_id)
        if parent is None:
            raise NotFoundError("Parent category", str(new_parent_id))

        if await self.is_descendant(new_parent_id, category_id):
            self.logger.info(
                "category_cycle_rejected",
                category_id=str(category_id),
                new_parent_id=str(new_parent_id),
            )
            raise InvalidOperationError(
                "Cannot move a category under one of its own descendants"
            )

    async def _parent_brief(self, category: Category) -> Optional[CategoryBrief]:
        if category.parent_id is None:
            return None
        parent = await self.repo.find_by_id(category.parent_id)
        return CategoryBrief.model_validate(parent) if parent else None

    @asynccontextmanager
    async def _unit_of_work(self, operation: str) -> AsyncIterator[None]:
        """Commit the writes made inside the block, or roll all of them back."""
        try:
            yield
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            self.logger.error("category_commit_failed", operation=operation, error=str(e))
            raise StoreError(operation, str(e)) from e
        except Exception:
            await self.db.rollback()
            raise
