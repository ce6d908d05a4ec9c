"""SerpSnapshotRepository: append-only snapshot storage and windowed reads.

Snapshots attach to keyword targets by the natural key
(project_id, query, locale, device). All timestamps are bound in UTC so
comparisons behave the same on every backend.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Include entity IDs (project_id, snapshot_id) in all logs
- Add timing logs for operations >1 second
"""

import time
from datetime import datetime
from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.config import get_settings
from serp_volatility.core.logging import db_logger, get_logger
from serp_volatility.models.serp_snapshot import SerpSnapshot
from serp_volatility.utils.serp_extraction import ensure_utc

logger = get_logger(__name__)


class SerpSnapshotRepository:
    """Repository for SerpSnapshot operations."""

    TABLE_NAME = "serp_snapshots"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    def _check_slow(self, query: str, start_time: float, **extra: Any) -> None:
        duration_ms = (time.monotonic() - start_time) * 1000
        logger.debug(
            f"{query} completed",
            extra={"duration_ms": round(duration_ms, 2), **extra},
        )
        if duration_ms > get_settings().db_slow_query_threshold_ms:
            db_logger.slow_query(
                query=query,
                duration_ms=duration_ms,
                table=self.TABLE_NAME,
            )

    async def create(
        self,
        project_id: str,
        query: str,
        locale: str,
        device: str,
        captured_at: datetime,
        raw_payload: dict[str, Any],
        source: str,
        ai_overview_status: str,
        valid_at: datetime | None = None,
        payload_schema_version: str | None = None,
        ai_overview_text: str | None = None,
        batch_ref: str | None = None,
    ) -> SerpSnapshot:
        """Insert a snapshot.

        Raises:
            IntegrityError: If the natural key and captured_at already exist
            SQLAlchemyError: On other database errors
        """
        start_time = time.monotonic()
        try:
            snapshot = SerpSnapshot(
                project_id=project_id,
                query=query,
                locale=locale,
                device=device,
                captured_at=ensure_utc(captured_at),
                valid_at=ensure_utc(valid_at) if valid_at else None,
                raw_payload=raw_payload,
                payload_schema_version=payload_schema_version,
                ai_overview_status=ai_overview_status,
                ai_overview_text=ai_overview_text,
                source=source,
                batch_ref=batch_ref,
            )
            self.session.add(snapshot)
            await self.session.flush()
            await self.session.refresh(snapshot)
        except IntegrityError:
            raise
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Creating snapshot for project_id={project_id}",
            )
            raise

        self._check_slow(
            "INSERT INTO serp_snapshots",
            start_time,
            project_id=project_id,
            snapshot_id=snapshot.id,
        )
        return snapshot

    async def get_by_id(self, snapshot_id: str) -> SerpSnapshot | None:
        result = await self.session.execute(
            select(SerpSnapshot).where(SerpSnapshot.id == snapshot_id)
        )
        return result.scalar_one_or_none()

    async def get_by_natural_key(
        self,
        project_id: str,
        query: str,
        locale: str,
        device: str,
        captured_at: datetime,
    ) -> SerpSnapshot | None:
        result = await self.session.execute(
            select(SerpSnapshot).where(
                SerpSnapshot.project_id == project_id,
                SerpSnapshot.query == query,
                SerpSnapshot.locale == locale,
                SerpSnapshot.device == device,
                SerpSnapshot.captured_at == ensure_utc(captured_at),
            )
        )
        return result.scalar_one_or_none()

    async def list_for_target(
        self,
        project_id: str,
        query: str,
        locale: str,
        device: str,
        since: datetime | None = None,
    ) -> list[SerpSnapshot]:
        """Snapshots of one target captured at or after ``since``, oldest first."""
        start_time = time.monotonic()
        stmt = select(SerpSnapshot).where(
            SerpSnapshot.project_id == project_id,
            SerpSnapshot.query == query,
            SerpSnapshot.locale == locale,
            SerpSnapshot.device == device,
        )
        if since is not None:
            stmt = stmt.where(SerpSnapshot.captured_at >= ensure_utc(since))
        stmt = stmt.order_by(SerpSnapshot.captured_at.asc(), SerpSnapshot.id.asc())

        try:
            result = await self.session.execute(stmt)
            snapshots = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list snapshots for keyword target",
                extra={
                    "project_id": project_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

        self._check_slow(
            "SELECT FROM serp_snapshots WHERE natural key",
            start_time,
            project_id=project_id,
            count=len(snapshots),
        )
        return snapshots

    async def list_for_project(
        self, project_id: str, since: datetime | None = None
    ) -> list[SerpSnapshot]:
        """All snapshots of a project captured at or after ``since``."""
        start_time = time.monotonic()
        stmt = select(SerpSnapshot).where(SerpSnapshot.project_id == project_id)
        if since is not None:
            stmt = stmt.where(SerpSnapshot.captured_at >= ensure_utc(since))
        stmt = stmt.order_by(SerpSnapshot.captured_at.asc(), SerpSnapshot.id.asc())

        result = await self.session.execute(stmt)
        snapshots = list(result.scalars().all())
        self._check_slow(
            "SELECT FROM serp_snapshots WHERE project_id",
            start_time,
            project_id=project_id,
            count=len(snapshots),
        )
        return snapshots

    async def list_page(
        self,
        project_id: str,
        limit: int,
        before: tuple[datetime, str] | None = None,
        natural_key: tuple[str, str, str] | None = None,
    ) -> tuple[list[SerpSnapshot], bool]:
        """One page of snapshots ordered by (captured_at, id) descending.

        Args:
            project_id: Project to list
            limit: Page size
            before: Sort key of the last item of the previous page
            natural_key: Optional (query, locale, device) filter

        Returns:
            Tuple of (snapshots, has_more)
        """
        stmt = select(SerpSnapshot).where(SerpSnapshot.project_id == project_id)
        if natural_key is not None:
            query, locale, device = natural_key
            stmt = stmt.where(
                SerpSnapshot.query == query,
                SerpSnapshot.locale == locale,
                SerpSnapshot.device == device,
            )
        if before is not None:
            captured_at, snapshot_id = ensure_utc(before[0]), before[1]
            stmt = stmt.where(
                or_(
                    SerpSnapshot.captured_at < captured_at,
                    and_(
                        SerpSnapshot.captured_at == captured_at,
                        SerpSnapshot.id < snapshot_id,
                    ),
                )
            )
        stmt = stmt.order_by(
            SerpSnapshot.captured_at.desc(), SerpSnapshot.id.desc()
        ).limit(limit + 1)

        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())
        return rows[:limit], len(rows) > limit
