"""Health check endpoint."""

from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.dependencies import get_db
from app.models import Category
from app.schemas import HealthCheckResponse
from app.services.cache_service import CacheService, get_cache

router = APIRouter()


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    db: AsyncSession = Depends(get_db),
    cache: CacheService = Depends(get_cache),
):
    """Return service health status.

    Counts the categories table to check the store, and pings Redis.
    The cache is optional, so a Redis outage reports "degraded"; an
    unreachable store reports "unavailable".
    """
    categories = None
    try:
        result = await db.execute(select(func.count(Category.id)))
        categories = result.scalar() or 0
        db_status = "ok"
    except SQLAlchemyError:
        db_status = "error"

    cache_status = "ok" if await cache.health_check() else "error"

    if db_status != "ok":
        overall_status = "unavailable"
    elif cache_status != "ok":
        overall_status = "degraded"
    else:
        overall_status = "ok"

    return HealthCheckResponse(
        status=overall_status,
        database=db_status,
        cache=cache_status,
        categories=categories,
    )
