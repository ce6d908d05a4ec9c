"""KeywordTargetRepository with create/lookup/list operations.

Every read is scoped by project_id; callers never see another
project's targets.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Include entity IDs (project_id, keyword_target_id) in all logs
- Add timing logs for operations >1 second
"""

import time
from datetime import datetime

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.config import get_settings
from serp_volatility.core.logging import db_logger, get_logger
from serp_volatility.models.keyword_target import KeywordTarget
from serp_volatility.utils.serp_extraction import ensure_utc

logger = get_logger(__name__)


class KeywordTargetRepository:
    """Repository for KeywordTarget operations."""

    TABLE_NAME = "keyword_targets"

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository with database session.

        Args:
            session: Async SQLAlchemy session for database operations
        """
        self.session = session

    def _check_slow(self, query: str, start_time: float) -> None:
        duration_ms = (time.monotonic() - start_time) * 1000
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
        is_primary: bool = False,
        intent: str | None = None,
        notes: str | None = None,
    ) -> KeywordTarget:
        """Create a keyword target.

        Raises:
            IntegrityError: If (project_id, query, locale, device) exists
            SQLAlchemyError: On other database errors
        """
        start_time = time.monotonic()
        logger.debug(
            "Creating keyword target",
            extra={
                "project_id": project_id,
                "query": query[:100],
                "locale": locale,
                "device": device,
            },
        )

        try:
            target = KeywordTarget(
                project_id=project_id,
                query=query,
                locale=locale,
                device=device,
                is_primary=is_primary,
                intent=intent,
                notes=notes,
            )
            self.session.add(target)
            await self.session.flush()
            await self.session.refresh(target)
        except IntegrityError as e:
            logger.warning(
                "Keyword target insert hit unique constraint",
                extra={
                    "project_id": project_id,
                    "query": query[:100],
                    "error_type": type(e).__name__,
                },
            )
            raise
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Creating keyword target for project_id={project_id}",
            )
            raise

        self._check_slow("INSERT INTO keyword_targets", start_time)
        return target

    async def get_by_id(self, keyword_target_id: str) -> KeywordTarget | None:
        start_time = time.monotonic()
        result = await self.session.execute(
            select(KeywordTarget).where(KeywordTarget.id == keyword_target_id)
        )
        target = result.scalar_one_or_none()
        logger.debug(
            "Keyword target fetch completed",
            extra={
                "keyword_target_id": keyword_target_id,
                "found": target is not None,
            },
        )
        self._check_slow("SELECT FROM keyword_targets WHERE id", start_time)
        return target

    async def get_by_natural_key(
        self, project_id: str, query: str, locale: str, device: str
    ) -> KeywordTarget | None:
        result = await self.session.execute(
            select(KeywordTarget).where(
                KeywordTarget.project_id == project_id,
                KeywordTarget.query == query,
                KeywordTarget.locale == locale,
                KeywordTarget.device == device,
            )
        )
        return result.scalar_one_or_none()

    async def list_by_project(self, project_id: str) -> list[KeywordTarget]:
        """All targets of a project, oldest first."""
        start_time = time.monotonic()
        try:
            result = await self.session.execute(
                select(KeywordTarget)
                .where(KeywordTarget.project_id == project_id)
                .order_by(KeywordTarget.created_at.asc(), KeywordTarget.id.asc())
            )
            targets = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list keyword targets",
                extra={
                    "project_id": project_id,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

        self._check_slow("SELECT FROM keyword_targets WHERE project_id", start_time)
        return targets

    async def list_page(
        self,
        project_id: str,
        limit: int,
        after: tuple[datetime, str] | None = None,
    ) -> tuple[list[KeywordTarget], bool]:
        """One page of a project's targets ordered by (created_at, id).

        Args:
            project_id: Project to list
            limit: Page size
            after: Sort key of the last item of the previous page

        Returns:
            Tuple of (targets, has_more)
        """
        stmt = select(KeywordTarget).where(KeywordTarget.project_id == project_id)
        if after is not None:
            created_at, target_id = ensure_utc(after[0]), after[1]
            stmt = stmt.where(
                or_(
                    KeywordTarget.created_at > created_at,
                    and_(
                        KeywordTarget.created_at == created_at,
                        KeywordTarget.id > target_id,
                    ),
                )
            )
        stmt = stmt.order_by(
            KeywordTarget.created_at.asc(), KeywordTarget.id.asc()
        ).limit(limit + 1)

        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())
        return rows[:limit], len(rows) > limit
