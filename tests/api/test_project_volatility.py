"""Tests for the project-level volatility endpoints.

Tests cover:
- Volatility summary distributions and concentration
- Volatility alerts filtering, ordering and cursor pagination
- Alert scan (T1/T2/T3) validation and ordering
"""

from collections.abc import Callable
from typing import Any

import pytest
from httpx import AsyncClient

SUMMARY = "/api/v1/seo/volatility-summary"
VOLATILITY_ALERTS = "/api/v1/seo/volatility-alerts"
ALERTS = "/api/v1/seo/alerts"

URLS = ["https://a.com", "https://b.com", "https://c.com"]
URLS_100 = [f"https://site{i}.com" for i in range(1, 101)]


@pytest.fixture
def flipping_target(
    create_keyword_target: Callable[..., Any],
    create_snapshot: Callable[..., Any],
) -> Callable[..., Any]:
    """A target whose two snapshots differ only in AI overview (score 20)."""

    async def _create(query: str, headers: dict[str, str] | None = None) -> dict[str, Any]:
        target = await create_keyword_target(query=query, headers=headers)
        await create_snapshot(target, 2, URLS, headers=headers)
        await create_snapshot(
            target, 1, URLS, ai_overview_status="present", headers=headers
        )
        return target

    return _create


@pytest.fixture
def quiet_target(
    create_keyword_target: Callable[..., Any],
    create_snapshot: Callable[..., Any],
) -> Callable[..., Any]:
    """A target whose snapshots never change (score 0)."""

    async def _create(query: str) -> dict[str, Any]:
        target = await create_keyword_target(query=query)
        await create_snapshot(target, 2, URLS)
        await create_snapshot(target, 1, URLS)
        return target

    return _create


class TestVolatilitySummary:
    """Tests for GET /volatility-summary."""

    async def test_summary(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
        flipping_target: Callable[..., Any],
        quiet_target: Callable[..., Any],
    ) -> None:
        """Test counts add up to the keyword count."""
        flipping = await flipping_target("alpha")
        await quiet_target("bravo")
        await create_keyword_target(query="charlie")

        response = await async_client.get(SUMMARY, params={"windowDays": 30})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["keywordCount"] == 3
        assert data["activeKeywordCount"] == 1
        assert sum(data["regimeCounts"].values()) == 3
        assert sum(data["maturityCounts"].values()) == 3
        assert (
            data["highVolatilityCount"]
            + data["mediumVolatilityCount"]
            + data["lowVolatilityCount"]
            + data["stableCount"]
        ) == 3
        assert data["maxVolatility"] == 20.0
        assert data["weightedProjectVolatilityScore"] == 10.0
        assert data["volatilityConcentrationRatio"] == 1.0
        assert [k["keywordTargetId"] for k in data["top3RiskKeywords"]] == [flipping["id"]]

    async def test_empty_project(self, async_client: AsyncClient) -> None:
        """Test a project without targets has a null concentration ratio."""
        response = await async_client.get(SUMMARY)

        data = response.json()["data"]
        assert data["keywordCount"] == 0
        assert data["volatilityConcentrationRatio"] is None
        assert data["top3RiskKeywords"] == []

    async def test_invalid_window(self, async_client: AsyncClient) -> None:
        """Test windowDays validation."""
        response = await async_client.get(SUMMARY, params={"windowDays": 0})
        assert response.status_code == 400


class TestVolatilityAlerts:
    """Tests for GET /volatility-alerts."""

    async def test_pagination(
        self,
        async_client: AsyncClient,
        flipping_target: Callable[..., Any],
        quiet_target: Callable[..., Any],
    ) -> None:
        """Test matching keywords page by score desc, then query."""
        for query in ("charlie", "alpha", "bravo"):
            await flipping_target(query)
        await quiet_target("delta")
        params = {"alertThreshold": 10, "minMaturity": "preliminary", "limit": 2}

        first = await async_client.get(VOLATILITY_ALERTS, params=params)

        assert first.status_code == 200
        data = first.json()["data"]
        assert data["totalMatched"] == 3
        assert [i["query"] for i in data["items"]] == ["alpha", "bravo"]
        assert data["hasMore"] is True
        assert all(i["exceedsThreshold"] for i in data["items"])

        rest = await async_client.get(
            VOLATILITY_ALERTS, params={**params, "cursor": data["nextCursor"]}
        )
        rest_data = rest.json()["data"]
        assert [i["query"] for i in rest_data["items"]] == ["charlie"]
        assert rest_data["hasMore"] is False
        assert rest_data["nextCursor"] is None

    async def test_threshold_zero_includes_quiet_keywords(
        self,
        async_client: AsyncClient,
        flipping_target: Callable[..., Any],
        quiet_target: Callable[..., Any],
    ) -> None:
        """Test a zero score meets a zero threshold once the keyword has pairs."""
        await flipping_target("alpha")
        await quiet_target("bravo")

        response = await async_client.get(
            VOLATILITY_ALERTS, params={"alertThreshold": 0, "minMaturity": "preliminary"}
        )

        data = response.json()["data"]
        assert data["totalMatched"] == 2
        assert [i["query"] for i in data["items"]] == ["alpha", "bravo"]
        assert data["items"][1]["volatilityScore"] == 0.0
        assert data["items"][1]["exceedsThreshold"] is True

    async def test_maturity_floor(
        self, async_client: AsyncClient, flipping_target: Callable[..., Any]
    ) -> None:
        """Test the default developing floor excludes single-pair keywords."""
        await flipping_target("alpha")
        response = await async_client.get(VOLATILITY_ALERTS, params={"alertThreshold": 0})
        assert response.json()["data"]["items"] == []

    async def test_zero_sample_excluded(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
    ) -> None:
        """Test keywords without pairs never alert, even at threshold 0."""
        await create_keyword_target(query="alpha")
        response = await async_client.get(
            VOLATILITY_ALERTS, params={"alertThreshold": 0, "minMaturity": "preliminary"}
        )
        assert response.json()["data"]["totalMatched"] == 0

    async def test_bad_cursor(self, async_client: AsyncClient) -> None:
        """Test a malformed cursor answers 400."""
        response = await async_client.get(VOLATILITY_ALERTS, params={"cursor": "%%%"})
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_bad_maturity(self, async_client: AsyncClient) -> None:
        """Test an unknown minMaturity answers 400."""
        response = await async_client.get(VOLATILITY_ALERTS, params={"minMaturity": "ripe"})
        assert response.status_code == 400

    @pytest.mark.parametrize("limit", ["2.0", "+2"])
    async def test_limit_must_be_digits(self, async_client: AsyncClient, limit: str) -> None:
        """Test a non-digit limit answers 400."""
        response = await async_client.get(VOLATILITY_ALERTS, params={"limit": limit})
        assert response.status_code == 400


class TestAlerts:
    """Tests for GET /alerts."""

    async def test_scan(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
        create_snapshot: Callable[..., Any],
        quiet_target: Callable[..., Any],
    ) -> None:
        """Test concentration and spike alerts for one volatile keyword."""
        target = await create_keyword_target(query="alpha")
        await create_snapshot(target, 2, URLS_100)
        await create_snapshot(
            target, 1, list(reversed(URLS_100)), ai_overview_status="present"
        )
        await quiet_target("bravo")

        response = await async_client.get(ALERTS, params={"windowDays": 7})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["windowDays"] == 7
        assert [a["triggerType"] for a in data["alerts"]] == ["T3", "T2"]
        assert data["totalAlerts"] == data["alertCount"] == 2
        spike = data["alerts"][1]
        assert spike["keywordTargetId"] == target["id"]
        assert spike["pairVolatilityScore"] == 85.0
        assert spike["exceedanceMargin"] == 10.0

    async def test_limit(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
        create_snapshot: Callable[..., Any],
    ) -> None:
        """Test limit caps the alerts but not the total."""
        target = await create_keyword_target(query="alpha")
        await create_snapshot(target, 2, URLS_100)
        await create_snapshot(
            target, 1, list(reversed(URLS_100)), ai_overview_status="present"
        )

        response = await async_client.get(ALERTS, params={"windowDays": 7, "limit": 1})
        data = response.json()["data"]
        assert data["alertCount"] == 1
        assert data["totalAlerts"] == 2

    async def test_window_required(self, async_client: AsyncClient) -> None:
        """Test windowDays is required."""
        response = await async_client.get(ALERTS)
        assert response.status_code == 400

    @pytest.mark.parametrize("window_days", [0, 31])
    async def test_window_bounds(self, async_client: AsyncClient, window_days: int) -> None:
        """Test windowDays outside 1..30 answers 400."""
        response = await async_client.get(ALERTS, params={"windowDays": window_days})
        assert response.status_code == 400

    @pytest.mark.parametrize(
        "params",
        [
            {"windowDays": "7.0"},
            {"windowDays": "+7"},
            {"windowDays": 7, "limit": "3.0"},
            {"windowDays": 7, "limit": " 3"},
        ],
    )
    async def test_integers_must_be_digits(
        self, async_client: AsyncClient, params: dict[str, Any]
    ) -> None:
        """Test windowDays and limit reject signs, decimals and padding."""
        response = await async_client.get(ALERTS, params=params)
        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    async def test_quiet_project(
        self, async_client: AsyncClient, quiet_target: Callable[..., Any]
    ) -> None:
        """Test a project without volatility has no alerts."""
        await quiet_target("alpha")
        response = await async_client.get(ALERTS, params={"windowDays": 30})
        assert response.json()["data"]["alerts"] == []


class TestProjectIsolation:
    """Tests that project aggregates only see the caller's keywords."""

    @pytest.fixture
    async def other_project(self, async_client: AsyncClient) -> dict[str, str]:
        """Headers scoping requests to a second project."""
        response = await async_client.post(
            "/api/v1/projects", json={"name": "Acme", "slug": "acme"}
        )
        assert response.status_code == 201
        return {"X-Project-Id": response.json()["data"]["id"]}

    async def _aggregates(
        self, async_client: AsyncClient, headers: dict[str, str] | None = None
    ) -> tuple[dict[str, Any], dict[str, Any], dict[str, Any]]:
        headers = headers or {}
        summary = await async_client.get(SUMMARY, headers=headers)
        volatility_alerts = await async_client.get(
            VOLATILITY_ALERTS,
            params={"alertThreshold": 10, "minMaturity": "preliminary"},
            headers=headers,
        )
        alerts = await async_client.get(
            ALERTS, params={"windowDays": 7}, headers=headers
        )
        for response in (summary, volatility_alerts, alerts):
            assert response.status_code == 200
        return (
            summary.json()["data"],
            volatility_alerts.json()["data"],
            alerts.json()["data"],
        )

    async def test_other_project_does_not_leak(
        self,
        async_client: AsyncClient,
        create_keyword_target: Callable[..., Any],
        create_snapshot: Callable[..., Any],
        flipping_target: Callable[..., Any],
        other_project: dict[str, str],
    ) -> None:
        """Test another project's volatile keywords leave our aggregates alone."""
        ours = await flipping_target("alpha")
        summary, volatility_alerts, alerts = await self._aggregates(async_client)

        theirs = await create_keyword_target(query="alpha", headers=other_project)
        await create_snapshot(theirs, 2, URLS_100, headers=other_project)
        await create_snapshot(
            theirs,
            1,
            list(reversed(URLS_100)),
            ai_overview_status="present",
            headers=other_project,
        )
        await flipping_target("bravo", headers=other_project)

        after_summary, after_volatility_alerts, after_alerts = await self._aggregates(
            async_client
        )

        assert after_summary["keywordCount"] == summary["keywordCount"] == 1
        assert after_summary["maxVolatility"] == summary["maxVolatility"] == 20.0
        assert after_volatility_alerts["totalMatched"] == volatility_alerts["totalMatched"]
        assert [i["keywordTargetId"] for i in after_volatility_alerts["items"]] == [
            ours["id"]
        ]
        assert after_alerts["totalAlerts"] == alerts["totalAlerts"]
        assert all(a["triggerType"] != "T2" for a in after_alerts["alerts"])

    async def test_other_project_sees_own_keywords(
        self,
        async_client: AsyncClient,
        flipping_target: Callable[..., Any],
        other_project: dict[str, str],
    ) -> None:
        """Test the second project's aggregates cover only its own keywords."""
        await flipping_target("alpha")
        theirs = await flipping_target("bravo", headers=other_project)

        summary, volatility_alerts, _ = await self._aggregates(
            async_client, other_project
        )

        assert summary["keywordCount"] == 1
        assert [k["keywordTargetId"] for k in summary["top3RiskKeywords"]] == [
            theirs["id"]
        ]
        assert volatility_alerts["totalMatched"] == 1
        assert volatility_alerts["items"][0]["query"] == "bravo"
