"""Seed the categories table with a starter category tree."""

import asyncio
import sys
import os

# Add backend to path so we can import app modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from app.core.exceptions import ConflictError
from app.db.session import async_session_factory, engine
from app.models import Base
from app.schemas import CategoryCreate
from app.services.category_service import CategoryService

CATEGORIES = [
    {
        "name": "Fashion",
        "slug": "fashion",
        "sort_order": 1,
        "children": [
            {
                "name": "Men's Clothing",
                "slug": "mens-clothing",
                "sort_order": 1,
                "children": [
                    {"name": "Shirts", "slug": "mens-shirts", "sort_order": 1},
                    {"name": "Trousers", "slug": "mens-trousers", "sort_order": 2},
                ],
            },
            {
                "name": "Women's Clothing",
                "slug": "womens-clothing",
                "sort_order": 2,
                "children": [
                    {"name": "Dresses", "slug": "womens-dresses", "sort_order": 1},
                    {"name": "Sarees", "slug": "sarees", "sort_order": 2},
                ],
            },
        ],
    },
    {
        "name": "Electronics",
        "slug": "electronics",
        "sort_order": 2,
        "children": [
            {"name": "Mobile Phones", "slug": "mobile-phones", "sort_order": 1},
            {"name": "Laptops", "slug": "laptops", "sort_order": 2},
            {"name": "Accessories", "slug": "electronics-accessories", "sort_order": 3},
        ],
    },
    {
        "name": "Home & Living",
        "slug": "home-living",
        "sort_order": 3,
        "children": [
            {"name": "Furniture", "slug": "furniture", "sort_order": 1},
            {"name": "Kitchen", "slug": "kitchen", "sort_order": 2},
        ],
    },
]


async def _seed_node(service, fields, parent_id, counts):
    """Create one category, or reuse the one already holding its slug.

    Returns:
        ID of the category the node's children belong under
    """
    existing = await service.repo.find_by_slug(fields["slug"])
    if existing is None:
        try:
            category = await service.create(CategoryCreate(**fields, parent_id=parent_id))
        except ConflictError:
            # Created concurrently between the lookup and the insert
            existing = await service.repo.find_by_slug(fields["slug"])
            if existing is None:
                raise
        else:
            print(f"  ✅ Added category: {category.name} ({category.slug})")
            counts["added"] += 1
            return category.id

    print(f"  ⏭️  Category '{fields['name']}' ({fields['slug']}) already exists, skipping")
    counts["skipped"] += 1
    return existing.id


async def _seed_level(service, nodes, parent_id, counts):
    for node in nodes:
        fields = {k: v for k, v in node.items() if k != "children"}
        category_id = await _seed_node(service, fields, parent_id, counts)
        await _seed_level(service, node.get("children", []), category_id, counts)


async def seed_categories():
    """Seed the category tree into the database.

    This function is idempotent - running it multiple times will not
    create duplicate categories. Categories are identified by their unique slug.
    """
    print(f"\n{'='*60}")
    print(f"  Seeding Categories Database")
    print(f"{'='*60}\n")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    counts = {"added": 0, "skipped": 0}

    async with async_session_factory() as session:
        service = CategoryService(session)
        await _seed_level(service, CATEGORIES, None, counts)

        flat = await service.get_flat_list()

    print(f"\n{'='*60}")
    print(f"  Seeding Complete")
    print(f"{'='*60}")
    print(f"  ✅ Added: {counts['added']} categories")
    print(f"  ⏭️  Skipped: {counts['skipped']} categories (already exist)")
    print(f"  📊 Total: {len(flat)} categories in database\n")
    for item in flat:
        print(f"  {'  ' * item.depth}{item.full_path}")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed_categories())
