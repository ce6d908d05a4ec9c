"""Service-layer tests against the in-memory database.

Tests cover:
- KeywordTargetService conflicts and tenant checks
- SerpSnapshotService replay and record loading
- VolatilityService validation errors
"""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.config import get_settings
from serp_volatility.schemas.keyword_target import KeywordTargetCreate
from serp_volatility.schemas.serp_snapshot import SerpSnapshotCreate
from serp_volatility.services import (
    KeywordTargetConflictError,
    KeywordTargetNotFoundError,
    KeywordTargetService,
    KeywordTargetValidationError,
    SerpSnapshotService,
    VolatilityService,
    VolatilityValidationError,
)
from tests.conftest import serp_payload


@pytest.fixture
def project_id() -> str:
    return get_settings().default_project_id


def target_data(query: str = "running shoes") -> KeywordTargetCreate:
    return KeywordTargetCreate(query=query, locale="en-US", device="desktop")


def snapshot_data(captured_at: datetime, urls: list[str]) -> SerpSnapshotCreate:
    return SerpSnapshotCreate(
        query="running shoes",
        locale="en-US",
        device="desktop",
        captured_at=captured_at,
        raw_payload=serp_payload(urls),
        ai_overview_status="absent",
        source="manual",
    )


class TestKeywordTargetService:
    """Tests for KeywordTargetService."""

    async def test_conflict(self, db_session: AsyncSession, project_id: str) -> None:
        """Test registering the same natural key twice."""
        service = KeywordTargetService(db_session)
        await service.create_target(project_id, target_data())

        with pytest.raises(KeywordTargetConflictError):
            await service.create_target(project_id, target_data())

    async def test_get_target_validation(
        self, db_session: AsyncSession, project_id: str
    ) -> None:
        """Test malformed ids raise validation errors and unknown ids not-found."""
        service = KeywordTargetService(db_session)

        with pytest.raises(KeywordTargetValidationError) as exc_info:
            await service.get_target(project_id, "nope")
        assert exc_info.value.field == "keywordTargetId"

        with pytest.raises(KeywordTargetNotFoundError):
            await service.get_target(project_id, "44444444-4444-4444-a444-444444444444")


class TestSerpSnapshotService:
    """Tests for SerpSnapshotService."""

    async def test_replay_returns_existing(
        self, db_session: AsyncSession, project_id: str
    ) -> None:
        """Test recording the same capture twice stores one row."""
        service = SerpSnapshotService(db_session)
        captured_at = datetime(2026, 3, 1, 10, 0, tzinfo=UTC)

        first, created = await service.record_snapshot(
            project_id, snapshot_data(captured_at, ["https://a.com"])
        )
        second, replayed_created = await service.record_snapshot(
            project_id, snapshot_data(captured_at, ["https://b.com"])
        )

        assert created is True
        assert replayed_created is False
        assert second.id == first.id

    async def test_load_records_in_capture_order(
        self, db_session: AsyncSession, project_id: str
    ) -> None:
        """Test records come back oldest first and UTC-aware."""
        target = await KeywordTargetService(db_session).create_target(
            project_id, target_data()
        )
        service = SerpSnapshotService(db_session)
        base = datetime(2026, 3, 1, tzinfo=UTC)
        for offset in (2, 0, 1):
            await service.record_snapshot(
                project_id, snapshot_data(base + timedelta(days=offset), ["https://a.com"])
            )

        records = await service.load_records(target)

        assert [r.captured_at for r in records] == [
            base,
            base + timedelta(days=1),
            base + timedelta(days=2),
        ]
        assert all(r.captured_at.tzinfo is not None for r in records)
        assert records[0].rank_map == {"https://a.com": 1}


class TestVolatilityService:
    """Tests for VolatilityService validation."""

    async def test_alert_window_required(
        self, db_session: AsyncSession, project_id: str
    ) -> None:
        """Test the alert scan requires a window."""
        with pytest.raises(VolatilityValidationError) as exc_info:
            await VolatilityService(db_session).evaluate_alerts(project_id, window_days=None)
        assert exc_info.value.field == "windowDays"

    async def test_alert_window_bound(
        self, db_session: AsyncSession, project_id: str
    ) -> None:
        """Test the alert scan window is at most 30 days."""
        with pytest.raises(VolatilityValidationError):
            await VolatilityService(db_session).evaluate_alerts(project_id, window_days=31)

    async def test_invalid_min_maturity(
        self, db_session: AsyncSession, project_id: str
    ) -> None:
        """Test minMaturity must name a maturity tier."""
        with pytest.raises(VolatilityValidationError) as exc_info:
            await VolatilityService(db_session).list_volatility_alerts(
                project_id, min_maturity="ripe"
            )
        assert exc_info.value.field == "minMaturity"
