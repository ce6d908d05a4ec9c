"""Tests for the Project endpoints."""

from httpx import AsyncClient

from serp_volatility.core.config import get_settings


class TestProjectEndpoints:
    """Tests for /api/v1/projects."""

    async def test_default_project_is_seeded(self, async_client: AsyncClient) -> None:
        """Test the default project is listed."""
        response = await async_client.get("/api/v1/projects")

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["slug"] == get_settings().default_project_slug
        assert data["items"][0]["id"] == get_settings().default_project_id

    async def test_create_and_get(self, async_client: AsyncClient) -> None:
        """Test a created project can be fetched by id."""
        response = await async_client.post(
            "/api/v1/projects", json={"name": "  Acme Corp ", "slug": "acme"}
        )
        assert response.status_code == 201
        created = response.json()["data"]
        assert created["name"] == "Acme Corp"
        assert created["status"] == "active"
        assert "createdAt" in created

        response = await async_client.get(f"/api/v1/projects/{created['id']}")
        assert response.status_code == 200
        assert response.json()["data"]["slug"] == "acme"

    async def test_duplicate_slug(self, async_client: AsyncClient) -> None:
        """Test slugs are unique."""
        await async_client.post("/api/v1/projects", json={"name": "Acme", "slug": "acme"})
        response = await async_client.post(
            "/api/v1/projects", json={"name": "Other", "slug": "acme"}
        )
        assert response.status_code == 409
        assert response.json()["code"] == "CONFLICT"

    async def test_invalid_slug(self, async_client: AsyncClient) -> None:
        """Test slug validation."""
        response = await async_client.post(
            "/api/v1/projects", json={"name": "Acme", "slug": "Not A Slug"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_not_found(self, async_client: AsyncClient) -> None:
        """Test an unknown project id."""
        response = await async_client.get(
            "/api/v1/projects/11111111-1111-4111-a111-111111111111"
        )
        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"
