"""Tests for the KeywordTarget endpoints.

Tests cover:
- Creating targets with query normalisation
- Natural-key conflicts (409)
- Locale/device validation (400)
- Cursor pagination, including cursor reuse and malformed cursors
- SERP history
"""

from collections.abc import Callable
from typing import Any

from httpx import AsyncClient

BASE = "/api/v1/seo/keyword-targets"


class TestCreateKeywordTarget:
    """Tests for POST /keyword-targets."""

    async def test_create(self, async_client: AsyncClient) -> None:
        """Test a target is created with a normalised query."""
        response = await async_client.post(
            BASE,
            json={
                "query": "  Best   Running SHOES ",
                "locale": "en-US",
                "device": "mobile",
                "isPrimary": True,
            },
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["query"] == "best running shoes"
        assert data["locale"] == "en-US"
        assert data["device"] == "mobile"
        assert data["isPrimary"] is True
        assert data["createdAt"].endswith("Z")

    async def test_conflict(self, async_client: AsyncClient) -> None:
        """Test the same query/locale/device cannot be registered twice."""
        body = {"query": "running shoes", "locale": "en-US", "device": "desktop"}
        first = await async_client.post(BASE, json=body)
        second = await async_client.post(
            BASE, json={**body, "query": "Running  Shoes"}
        )

        assert first.status_code == 201
        assert second.status_code == 409
        assert second.json()["code"] == "CONFLICT"

    async def test_other_device_is_distinct(self, async_client: AsyncClient) -> None:
        """Test device is part of the natural key."""
        body = {"query": "running shoes", "locale": "en-US", "device": "desktop"}
        await async_client.post(BASE, json=body)
        response = await async_client.post(BASE, json={**body, "device": "mobile"})
        assert response.status_code == 201

    async def test_invalid_locale(self, async_client: AsyncClient) -> None:
        """Test malformed locales are rejected."""
        response = await async_client.post(
            BASE, json={"query": "shoes", "locale": "english", "device": "desktop"}
        )
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_invalid_device(self, async_client: AsyncClient) -> None:
        """Test unknown devices are rejected."""
        response = await async_client.post(
            BASE, json={"query": "shoes", "locale": "en-US", "device": "tablet"}
        )
        assert response.status_code == 400

    async def test_blank_query(self, async_client: AsyncClient) -> None:
        """Test whitespace-only queries are rejected."""
        response = await async_client.post(
            BASE, json={"query": "   ", "locale": "en-US", "device": "desktop"}
        )
        assert response.status_code == 400


class TestListKeywordTargets:
    """Tests for GET /keyword-targets."""

    async def test_pagination(
        self, async_client: AsyncClient, create_keyword_target: Callable[..., Any]
    ) -> None:
        """Test pages cover every target once and cursors are reusable."""
        for query in ("alpha", "bravo", "charlie"):
            await create_keyword_target(query=query)

        first = await async_client.get(BASE, params={"limit": 2})
        assert first.status_code == 200
        body = first.json()
        assert len(body["data"]) == 2
        assert body["pagination"]["hasMore"] is True
        cursor = body["pagination"]["nextCursor"]
        assert cursor

        second = await async_client.get(BASE, params={"limit": 2, "cursor": cursor})
        again = await async_client.get(BASE, params={"limit": 2, "cursor": cursor})
        assert second.json() == again.json()
        assert len(second.json()["data"]) == 1
        assert second.json()["pagination"] == {
            "limit": 2,
            "hasMore": False,
            "nextCursor": None,
        }

        ids = [t["id"] for t in body["data"]] + [t["id"] for t in second.json()["data"]]
        assert len(set(ids)) == 3

    async def test_malformed_cursor(self, async_client: AsyncClient) -> None:
        """Test a garbage cursor answers 400."""
        response = await async_client.get(BASE, params={"cursor": "garbage!!"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_limit_bounds(self, async_client: AsyncClient) -> None:
        """Test limit outside 1..100 answers 400."""
        assert (await async_client.get(BASE, params={"limit": 0})).status_code == 400
        assert (await async_client.get(BASE, params={"limit": 101})).status_code == 400


class TestSerpHistory:
    """Tests for GET /keyword-targets/{id}/serp-history."""

    async def test_history(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
        create_snapshot: Callable[..., Any],
    ) -> None:
        """Test history is newest first with truncated top results."""
        target = await create_keyword_target()
        urls = [f"https://site{i}.com" for i in range(1, 16)]
        await create_snapshot(target, 3, urls)
        await create_snapshot(target, 2, urls, features=["video"])
        newest = await create_snapshot(target, 1, urls, ai_overview_status="present")

        response = await async_client.get(
            f"{BASE}/{target['id']}/serp-history", params={"limit": 2, "topN": 5}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["keywordTargetId"] == target["id"]
        assert data["hasMore"] is True
        assert [item["snapshotId"] for item in data["items"]][0] == newest["id"]
        first = data["items"][0]
        assert len(first["topResults"]) == 5
        assert first["topResults"][0] == {"rank": 1, "url": "https://site1.com"}
        assert first["aiOverviewStatus"] == "present"
        assert first["payloadParseWarning"] is False
        assert first["rawPayload"] is None
        assert data["items"][1]["features"] == ["video"]

        rest = await async_client.get(
            f"{BASE}/{target['id']}/serp-history",
            params={"limit": 2, "cursor": data["nextCursor"]},
        )
        assert len(rest.json()["data"]["items"]) == 1
        assert rest.json()["data"]["hasMore"] is False

    async def test_include_payload(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
        create_snapshot: Callable[..., Any],
    ) -> None:
        """Test the raw payload is returned on request."""
        target = await create_keyword_target()
        await create_snapshot(target, 1, ["https://a.com"])

        response = await async_client.get(
            f"{BASE}/{target['id']}/serp-history", params={"includePayload": "true"}
        )
        item = response.json()["data"]["items"][0]
        assert item["rawPayload"]["results"][0]["url"] == "https://a.com"

    async def test_unknown_target(self, async_client: AsyncClient) -> None:
        """Test history of a missing target answers 404."""
        response = await async_client.get(
            f"{BASE}/33333333-3333-4333-a333-333333333333/serp-history"
        )
        assert response.status_code == 404

    async def test_cursor_from_other_list(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
    ) -> None:
        """Test a keyword-target list cursor is rejected by history."""
        target = await create_keyword_target(query="alpha")
        await create_keyword_target(query="bravo")
        listing = await async_client.get(BASE, params={"limit": 1})
        cursor = listing.json()["pagination"]["nextCursor"]

        response = await async_client.get(
            f"{BASE}/{target['id']}/serp-history", params={"cursor": cursor}
        )
        assert response.status_code == 400
