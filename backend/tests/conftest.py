"""Pytest configuration and shared fixtures."""

import os

# Point settings at SQLite before any app module builds the engine.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")

from typing import Optional
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.db.session import build_engine
from app.models import Base, Category, Product
from app.services.cache_service import CacheService


@pytest_asyncio.fixture
async def test_db():
    """Create an in-memory SQLite database for testing."""
    engine = build_engine("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    SessionLocal = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )

    async with SessionLocal() as session:
        yield session

    await engine.dispose()


@pytest.fixture
def make_category(test_db: AsyncSession):
    """Factory inserting a category row directly, bypassing the service."""

    async def _make(
        name: str,
        slug: Optional[str] = None,
        parent: Optional[Category] = None,
        sort_order: int = 0,
        is_active: bool = True,
        **extra,
    ) -> Category:
        category = Category(
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            parent_id=parent.id if parent else None,
            sort_order=sort_order,
            is_active=is_active,
            **extra,
        )
        test_db.add(category)
        await test_db.commit()
        await test_db.refresh(category)
        return category

    return _make


@pytest.fixture
def make_product(test_db: AsyncSession):
    """Factory assigning a product to a category."""

    async def _make(category: Category, name: str = "Test product") -> Product:
        product = Product(name=name, category_id=category.id)
        test_db.add(product)
        await test_db.commit()
        return product

    return _make


@pytest_asyncio.fixture
async def abc_chain(make_category):
    """A (root) -> B -> C."""
    a = await make_category("A", slug="a")
    b = await make_category("B", slug="b", parent=a)
    c = await make_category("C", slug="c", parent=b)
    return a, b, c


@pytest.fixture
def fake_cache() -> AsyncMock:
    """Cache that always misses and records invalidations."""
    cache = AsyncMock(spec=CacheService)
    cache.get.return_value = None
    cache.set.return_value = True
    cache.delete_pattern.return_value = 0
    cache.health_check.return_value = True
    return cache
