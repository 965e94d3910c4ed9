"""Categories API endpoints."""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from pydantic import TypeAdapter

from app.config import settings
from app.dependencies import get_category_service, require_admin
from app.schemas import (
    ApiResponse,
    CategoryCreate,
    CategoryDeleteResponse,
    CategoryDetailResponse,
    CategoryFlatResponse,
    CategoryTreeResponse,
    CategoryUpdate,
    CategoryWithParentResponse,
)
from app.services.cache_service import (
    CATEGORY_FLAT_KEY,
    CATEGORY_TREE_KEY,
    CacheService,
    get_cache,
    invalidate_categories_cache,
)
from app.services.category_service import CategoryService

router = APIRouter()

_TreeEnvelope = TypeAdapter(ApiResponse[List[CategoryTreeResponse]])
_FlatEnvelope = TypeAdapter(ApiResponse[List[CategoryFlatResponse]])


# ─── Public ────────────────────────────────────────────────────────────────


@router.get("", response_model=ApiResponse[List[CategoryTreeResponse]])
async def list_category_tree(
    service: CategoryService = Depends(get_category_service),
    cache: CacheService = Depends(get_cache),
):
    """All active categories as a nested tree.

    Used for navigation menus. Cached for CATEGORY_CACHE_TTL seconds.
    """
    cached = await cache.get(CATEGORY_TREE_KEY)
    if cached:
        return _TreeEnvelope.validate_json(cached)

    response = ApiResponse(status="success", data=await service.get_tree())
    await cache.set(CATEGORY_TREE_KEY, response.model_dump_json(), ttl=settings.CATEGORY_CACHE_TTL)
    return response


@router.get("/flat", response_model=ApiResponse[List[CategoryFlatResponse]])
async def list_categories_flat(
    service: CategoryService = Depends(get_category_service),
    cache: CacheService = Depends(get_cache),
):
    """All categories as one list with depth and full path, for dropdowns."""
    cached = await cache.get(CATEGORY_FLAT_KEY)
    if cached:
        return _FlatEnvelope.validate_json(cached)

    response = ApiResponse(status="success", data=await service.get_flat_list())
    await cache.set(CATEGORY_FLAT_KEY, response.model_dump_json(), ttl=settings.CATEGORY_CACHE_TTL)
    return response


@router.get("/{slug}", response_model=ApiResponse[CategoryDetailResponse])
async def get_category(
    slug: str,
    service: CategoryService = Depends(get_category_service),
):
    """Single category by slug with its parent and active children."""
    return ApiResponse(status="success", data=await service.get_by_slug(slug))


# ─── Admin ─────────────────────────────────────────────────────────────────


@router.post(
    "",
    response_model=ApiResponse[CategoryWithParentResponse],
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_category(
    body: CategoryCreate,
    service: CategoryService = Depends(get_category_service),
    cache: CacheService = Depends(get_cache),
):
    """Create a category. The slug must be unused."""
    category = await service.create(body)
    await invalidate_categories_cache(cache)
    return ApiResponse(status="success", data=category)


@router.patch(
    "/{category_id}",
    response_model=ApiResponse[CategoryWithParentResponse],
    dependencies=[Depends(require_admin)],
)
async def update_category(
    category_id: UUID,
    body: CategoryUpdate,
    service: CategoryService = Depends(get_category_service),
    cache: CacheService = Depends(get_cache),
):
    """Partially update a category.

    Moving a category under itself or one of its descendants is rejected.
    """
    category = await service.update(category_id, body)
    await invalidate_categories_cache(cache)
    return ApiResponse(status="success", data=category)


@router.delete(
    "/{category_id}",
    response_model=ApiResponse[CategoryDeleteResponse],
    dependencies=[Depends(require_admin)],
)
async def delete_category(
    category_id: UUID,
    service: CategoryService = Depends(get_category_service),
    cache: CacheService = Depends(get_cache),
):
    """Delete a category without products.

    Its children are moved to its parent (or become roots).
    """
    result = await service.delete(category_id)
    await invalidate_categories_cache(cache)
    return ApiResponse(status="success", data=result)
