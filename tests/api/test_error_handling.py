"""Tests for the error envelope, request ids and project scoping headers."""

from httpx import AsyncClient


class TestRequestId:
    """Tests for the X-Request-ID header."""

    async def test_generated(self, async_client: AsyncClient) -> None:
        """Test every response carries a request id."""
        response = await async_client.get("/health")
        assert response.headers.get("X-Request-ID")

    async def test_propagated(self, async_client: AsyncClient) -> None:
        """Test a caller-supplied request id is echoed back."""
        response = await async_client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestErrorShape:
    """Tests for the structured error body."""

    async def test_validation_error(self, async_client: AsyncClient) -> None:
        """Test request validation failures answer 400 with details."""
        response = await async_client.post(
            "/api/v1/seo/keyword-targets", json={"locale": "en-US"}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "VALIDATION_ERROR"
        assert body["request_id"] == response.headers["X-Request-ID"]
        assert isinstance(body["error"], str)
        assert body["details"]

    async def test_service_validation_error(self, async_client: AsyncClient) -> None:
        """Test a service-raised validation error answers 400, not 500."""
        response = await async_client.get(
            "/api/v1/seo/keyword-targets/not-a-uuid/volatility"
        )

        assert response.status_code == 400
        body = response.json()
        assert set(body) == {"error", "code", "request_id"}
        assert body["code"] == "VALIDATION_ERROR"
        assert "keywordTargetId" in body["error"]

    async def test_project_scope_error(self, async_client: AsyncClient) -> None:
        """Test an unusable X-Project-Id answers 400 with the error shape."""
        response = await async_client.get(
            "/api/v1/seo/volatility-summary", headers={"X-Project-Id": "not-a-uuid"}
        )

        assert response.status_code == 400
        assert set(response.json()) == {"error", "code", "request_id"}

    async def test_not_found(self, async_client: AsyncClient) -> None:
        """Test 404 bodies share the same shape."""
        response = await async_client.get(
            "/api/v1/seo/keyword-targets/11111111-1111-4111-a111-111111111111/volatility"
        )
        assert response.status_code == 404
        assert set(response.json()) == {"error", "code", "request_id"}


class TestProjectScope:
    """Tests for X-Project-Id / X-Project-Slug resolution."""

    async def test_malformed_project_id(self, async_client: AsyncClient) -> None:
        """Test a malformed X-Project-Id answers 400."""
        response = await async_client.get(
            "/api/v1/seo/keyword-targets", headers={"X-Project-Id": "not-a-uuid"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_unknown_project_id(self, async_client: AsyncClient) -> None:
        """Test an X-Project-Id naming no project answers 400."""
        response = await async_client.get(
            "/api/v1/seo/keyword-targets",
            headers={"X-Project-Id": "22222222-2222-4222-a222-222222222222"},
        )
        assert response.status_code == 400

    async def test_unknown_slug(self, async_client: AsyncClient) -> None:
        """Test an X-Project-Slug naming no project answers 400."""
        response = await async_client.get(
            "/api/v1/seo/keyword-targets", headers={"X-Project-Slug": "nobody"}
        )
        assert response.status_code == 400

    async def test_slug_resolves(self, async_client: AsyncClient) -> None:
        """Test a known slug scopes the request to its project."""
        await async_client.post("/api/v1/projects", json={"name": "Acme", "slug": "acme"})
        await async_client.post(
            "/api/v1/seo/keyword-targets",
            json={"query": "acme widgets", "locale": "en-US", "device": "desktop"},
            headers={"X-Project-Slug": "acme"},
        )

        scoped = await async_client.get(
            "/api/v1/seo/keyword-targets", headers={"X-Project-Slug": "acme"}
        )
        default = await async_client.get("/api/v1/seo/keyword-targets")

        assert [t["query"] for t in scoped.json()["data"]] == ["acme widgets"]
        assert default.json()["data"] == []
