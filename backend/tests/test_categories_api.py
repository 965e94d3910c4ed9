"""HTTP tests for the categories and health endpoints."""

import json
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import StoreError
from app.dependencies import get_category_service, get_db
from app.main import app
from app.services.cache_service import CATEGORY_FLAT_KEY, CATEGORY_TREE_KEY, get_cache
from app.services.category_service import CategoryService

ADMIN_KEY = "test-admin-key"
ADMIN_HEADERS = {"X-Admin-Key": ADMIN_KEY}


@pytest_asyncio.fixture
async def client(test_db: AsyncSession, fake_cache, monkeypatch):
    """API client wired to the in-memory database and a mocked cache."""
    monkeypatch.setattr(settings, "ADMIN_API_KEY", ADMIN_KEY)

    async def _override_db():
        yield test_db

    async def _override_cache():
        return fake_cache

    app.dependency_overrides[get_db] = _override_db
    app.dependency_overrides[get_cache] = _override_cache

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


# ============================================================================
# TESTS: PUBLIC READS
# ============================================================================

class TestPublicEndpoints:
    """Tests for the public category endpoints."""

    async def test_tree(self, client, abc_chain):
        response = await client.get("/api/v1/categories")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert [n["name"] for n in body["data"]] == ["A"]
        assert body["data"][0]["children"][0]["children"][0]["name"] == "C"

    async def test_tree_is_cached(self, client, abc_chain, fake_cache):
        await client.get("/api/v1/categories")

        fake_cache.set.assert_awaited_once()
        key, payload = fake_cache.set.await_args.args
        assert key == CATEGORY_TREE_KEY
        assert json.loads(payload)["data"][0]["slug"] == "a"

    async def test_tree_served_from_cache(self, client, fake_cache):
        cached = {
            "status": "success",
            "data": [
                {
                    "id": str(uuid4()),
                    "name": "Cached",
                    "slug": "cached",
                    "sort_order": 0,
                    "is_active": True,
                    "product_count": 0,
                    "created_at": "2026-01-01T00:00:00Z",
                    "updated_at": "2026-01-01T00:00:00Z",
                    "children": [],
                }
            ],
        }
        fake_cache.get.return_value = json.dumps(cached)

        response = await client.get("/api/v1/categories")

        assert response.status_code == 200
        assert response.json()["data"][0]["name"] == "Cached"
        fake_cache.set.assert_not_awaited()

    async def test_flat(self, client, abc_chain, fake_cache):
        response = await client.get("/api/v1/categories/flat")

        assert response.status_code == 200
        data = response.json()["data"]
        assert [item["full_path"] for item in data] == ["A", "A > B", "A > B > C"]
        assert data[2]["depth"] == 2
        assert fake_cache.set.await_args.args[0] == CATEGORY_FLAT_KEY

    async def test_detail_by_slug(self, client, abc_chain):
        response = await client.get("/api/v1/categories/b")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["parent"]["slug"] == "a"
        assert [c["slug"] for c in data["children"]] == ["c"]

    async def test_unknown_slug_is_404(self, client):
        response = await client.get("/api/v1/categories/nope")

        assert response.status_code == 404
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == "not_found"


# ============================================================================
# TESTS: ADMIN WRITES
# ============================================================================

class TestAdminEndpoints:
    """Tests for the privileged category endpoints."""

    async def test_create_requires_admin_key(self, client):
        response = await client.post(
            "/api/v1/categories",
            json={"name": "Shoes", "slug": "shoes"},
        )

        assert response.status_code == 403

    async def test_wrong_admin_key_rejected(self, client):
        response = await client.post(
            "/api/v1/categories",
            json={"name": "Shoes", "slug": "shoes"},
            headers={"X-Admin-Key": "wrong"},
        )

        assert response.status_code == 403

    async def test_unconfigured_admin_key_disables_writes(self, client, monkeypatch):
        monkeypatch.setattr(settings, "ADMIN_API_KEY", "")

        response = await client.post(
            "/api/v1/categories",
            json={"name": "Shoes", "slug": "shoes"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 403

    async def test_create_invalidates_cache(self, client, fake_cache):
        response = await client.post(
            "/api/v1/categories",
            json={"name": "Mens Clothing", "slug": "mens-clothing"},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 201
        assert response.json()["data"]["slug"] == "mens-clothing"
        fake_cache.delete_pattern.assert_awaited_once_with("categories:*")

    async def test_duplicate_slug_is_409(self, client):
        payload = {"name": "Mens Clothing", "slug": "mens-clothing"}
        await client.post("/api/v1/categories", json=payload, headers=ADMIN_HEADERS)

        response = await client.post("/api/v1/categories", json=payload, headers=ADMIN_HEADERS)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "conflict"
        assert response.json()["error"]["field"] == "slug"

    @pytest.mark.parametrize("slug", ["Mens", "mens_clothing", "-mens", "mens--clothing", "m"])
    async def test_invalid_slug_is_422(self, client, slug):
        response = await client.post(
            "/api/v1/categories",
            json={"name": "Mens Clothing", "slug": slug},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 422

    async def test_cyclic_reparent_is_400(self, client, abc_chain, fake_cache):
        a, b, c = abc_chain

        response = await client.patch(
            f"/api/v1/categories/{a.id}",
            json={"parent_id": str(c.id)},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "invalid_operation"
        fake_cache.delete_pattern.assert_not_awaited()

    async def test_patch_null_name_is_422(self, client, abc_chain):
        a, b, c = abc_chain

        response = await client.patch(
            f"/api/v1/categories/{a.id}",
            json={"name": None},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 422

    async def test_patch_moves_to_root(self, client, abc_chain):
        a, b, c = abc_chain

        response = await client.patch(
            f"/api/v1/categories/{c.id}",
            json={"parent_id": None},
            headers=ADMIN_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["data"]["parent_id"] is None

    async def test_delete_reports_reassigned_children(self, client, abc_chain, fake_cache):
        a, b, c = abc_chain

        response = await client.delete(f"/api/v1/categories/{b.id}", headers=ADMIN_HEADERS)

        assert response.status_code == 200
        assert response.json()["data"]["reassigned_children"] == 1
        fake_cache.delete_pattern.assert_awaited_once_with("categories:*")

        flat = (await client.get("/api/v1/categories/flat")).json()["data"]
        assert [item["full_path"] for item in flat] == ["A", "A > C"]

    async def test_delete_with_products_is_400(self, client, abc_chain, make_product):
        a, b, c = abc_chain
        await make_product(c)

        response = await client.delete(f"/api/v1/categories/{c.id}", headers=ADMIN_HEADERS)

        assert response.status_code == 400


# ============================================================================
# TESTS: STORE FAILURES
# ============================================================================

class TestStoreFailures:
    """Tests for the store-unavailable error mapping."""

    @pytest.fixture
    def failing_service(self):
        service = AsyncMock(spec=CategoryService)
        error = StoreError("find_by_slug", "(asyncpg) SELECT categories.slug FROM categories -- secret-host")
        service.get_by_slug.side_effect = error
        service.get_tree.side_effect = error
        app.dependency_overrides[get_category_service] = lambda: service
        return service

    async def test_store_error_is_503(self, client, failing_service):
        response = await client.get("/api/v1/categories/shoes")

        assert response.status_code == 503
        body = response.json()
        assert body["status"] == "error"
        assert body["error"]["code"] == "store_unavailable"

    async def test_store_error_hides_driver_detail(self, client, failing_service):
        response = await client.get("/api/v1/categories")

        assert response.status_code == 503
        message = response.json()["error"]["message"]
        assert "SELECT" not in message
        assert "secret-host" not in message


# ============================================================================
# TESTS: HEALTH
# ============================================================================

class TestHealth:
    """Tests for the health endpoint."""

    async def test_all_ok(self, client, abc_chain):
        response = await client.get("/api/v1/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["categories"] == 3

    async def test_redis_down_is_degraded(self, client, fake_cache):
        fake_cache.health_check.return_value = False

        response = await client.get("/api/v1/health")

        body = response.json()
        assert body["status"] == "degraded"
        assert body["database"] == "ok"
        assert body["cache"] == "error"

    async def test_store_down_is_unavailable(self, client):
        session = AsyncMock(spec=AsyncSession)
        session.execute.side_effect = OperationalError("SELECT count(categories.id)", {}, Exception("refused"))

        async def _broken_db():
            yield session

        app.dependency_overrides[get_db] = _broken_db

        response = await client.get("/api/v1/health")

        body = response.json()
        assert body["status"] == "unavailable"
        assert body["database"] == "error"
        assert body["categories"] is None
