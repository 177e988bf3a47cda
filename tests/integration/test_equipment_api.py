"""Integration tests for the equipment and equipment type REST endpoints.

Tests the complete API layer including request validation, business logic,
envelope-to-status mapping and database operations.
"""

import pytest
import pytest_asyncio
from fastapi import FastAPI, status
from httpx import ASGITransport, AsyncClient

from gatherer_mes.api.deps import get_db_session
from gatherer_mes.api.v1.equipment import router as equipment_router
from gatherer_mes.api.v1.equipment_types import router as equipment_types_router


@pytest_asyncio.fixture
async def app(seeded_session):
    """Create FastAPI app with the equipment routers."""
    app = FastAPI()
    app.include_router(equipment_types_router)
    app.include_router(equipment_router)

    # Override dependencies to use test session
    async def override_get_db():
        yield seeded_session

    app.dependency_overrides[get_db_session] = override_get_db

    return app


@pytest_asyncio.fixture
async def client(app):
    """Create async HTTP client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture
async def type_ids(client) -> dict[str, str]:
    response = await client.get("/api/v1/equipment-types/")
    return {t["name"]: t["id"] for t in response.json()}


@pytest_asyncio.fixture
async def site_id(client, type_ids) -> str:
    """A root site called Plant 1."""
    response = await client.post(
        "/api/v1/equipment/", json={"name": "Plant 1", "type_id": type_ids["site"]}
    )
    return response.json()["data"]["id"]


class TestEquipmentTypeEndpoints:
    """Tests for /api/v1/equipment-types."""

    @pytest.mark.asyncio
    async def test_list_seeded_types(self, client) -> None:
        response = await client.get("/api/v1/equipment-types/")

        assert response.status_code == status.HTTP_200_OK
        assert [t["name"] for t in response.json()] == [
            "area",
            "cell",
            "enterprise",
            "line",
            "site",
        ]

    @pytest.mark.asyncio
    async def test_create_and_duplicate(self, client) -> None:
        """Test creation returns 201 and a case-insensitive duplicate 409."""
        created = await client.post("/api/v1/equipment-types/", json={"name": "Robot"})
        duplicate = await client.post("/api/v1/equipment-types/", json={"name": "robot"})

        assert created.status_code == status.HTTP_201_CREATED
        assert created.json()["status"] == "Success"
        assert duplicate.status_code == status.HTTP_409_CONFLICT
        assert duplicate.json()["error"] == "ConflictError"

    @pytest.mark.asyncio
    async def test_delete_default_type_forbidden(self, client, type_ids) -> None:
        response = await client.delete(f"/api/v1/equipment-types/{type_ids['line']}")

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json()["message"] == "Cannot delete default equipment type: line"

    @pytest.mark.asyncio
    async def test_get_by_name(self, client) -> None:
        response = await client.get("/api/v1/equipment-types/by-name/Area")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["name"] == "area"


class TestEquipmentEndpoints:
    """Tests for /api/v1/equipment."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client, type_ids, site_id) -> None:
        """Test a created child reads back with its parent reference."""
        created = await client.post(
            "/api/v1/equipment/",
            json={
                "name": "Line 1",
                "type_id": type_ids["line"],
                "parent_id": site_id,
                "metadata": {"speed": 60},
            },
        )
        line_id = created.json()["data"]["id"]

        response = await client.get(f"/api/v1/equipment/{line_id}")

        assert created.status_code == status.HTTP_201_CREATED
        body = response.json()
        assert body["status"] == "Success"
        assert body["data"]["parent"] == {"id": site_id, "name": "Plant 1"}
        assert body["data"]["equipment_type"]["name"] == "line"
        assert body["data"]["metadata"] == {"speed": 60}

    @pytest.mark.asyncio
    async def test_duplicate_sibling(self, client, type_ids, site_id) -> None:
        payload = {"name": "Line 1", "type_id": type_ids["line"], "parent_id": site_id}
        await client.post("/api/v1/equipment/", json=payload)

        response = await client.post("/api/v1/equipment/", json=payload)

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()["error"] == "ConflictError"

    @pytest.mark.asyncio
    async def test_get_missing(self, client) -> None:
        response = await client.get("/api/v1/equipment/does-not-exist")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["status"] == "Error"

    @pytest.mark.asyncio
    async def test_tree_and_exists(self, client, type_ids, site_id) -> None:
        """Test the tree view and the existence check."""
        await client.post(
            "/api/v1/equipment/",
            json={"name": "Cell 1", "type_id": type_ids["cell"], "parent_id": site_id},
        )

        tree = await client.get("/api/v1/equipment/tree")
        exists = await client.get(
            "/api/v1/equipment/exists", params={"name": "Cell 1", "parent_id": site_id}
        )

        assert tree.status_code == status.HTTP_200_OK
        assert tree.json()[0]["children"][0]["name"] == "Cell 1"
        assert exists.json() == {"exists": True}

    @pytest.mark.asyncio
    async def test_patch_no_changes(self, client, site_id) -> None:
        """Test an empty patch returns NoChanges with 200."""
        response = await client.patch(f"/api/v1/equipment/{site_id}", json={})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "NoChanges"

    @pytest.mark.asyncio
    async def test_patch_self_parent(self, client, site_id) -> None:
        response = await client.patch(
            f"/api/v1/equipment/{site_id}", json={"parent_id": site_id}
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert response.json()["message"] == "Equipment cannot be its own parent"

    @pytest.mark.asyncio
    async def test_metadata_as_json_text(self, client, site_id) -> None:
        """Test the metadata endpoint accepts a JSON document encoded as a string."""
        response = await client.put(
            f"/api/v1/equipment/{site_id}/metadata", json={"metadata": '{"erp": "P100"}'}
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["data"]["metadata"] == {"erp": "P100"}

    @pytest.mark.asyncio
    async def test_force_delete_orphans(self, client, type_ids, site_id) -> None:
        """Test force_delete turns children into root nodes."""
        child = await client.post(
            "/api/v1/equipment/",
            json={"name": "Line 1", "type_id": type_ids["line"], "parent_id": site_id},
        )
        child_id = child.json()["data"]["id"]

        refused = await client.delete(f"/api/v1/equipment/{site_id}")
        forced = await client.delete(
            f"/api/v1/equipment/{site_id}", params={"force_delete": "true"}
        )
        orphan = await client.get(f"/api/v1/equipment/{child_id}")

        assert refused.status_code == status.HTTP_409_CONFLICT
        assert refused.json()["error"] == "DependencyError"
        assert forced.status_code == status.HTTP_200_OK
        assert forced.json()["data"]["orphaned_children"] == 1
        assert orphan.json()["data"]["parent"] is None
