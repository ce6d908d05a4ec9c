"""ProjectRepository: lookups used for tenant resolution plus basic CRUD.

Follows the layered architecture pattern: API -> Service -> Repository -> Database.
"""

import time

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.config import get_settings
from serp_volatility.core.logging import db_logger, get_logger
from serp_volatility.models.project import Project

logger = get_logger(__name__)


class ProjectRepository:
    """Repository for Project operations."""

    TABLE_NAME = "projects"

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def create(self, name: str, slug: str) -> Project:
        """Create a project.

        Raises:
            IntegrityError: If the slug is already taken
            SQLAlchemyError: On other database errors
        """
        logger.debug("Creating project", extra={"slug": slug})
        try:
            project = Project(name=name, slug=slug)
            self.session.add(project)
            await self.session.flush()
            await self.session.refresh(project)
            return project
        except SQLAlchemyError as e:
            db_logger.transaction_failure(
                e,
                table=self.TABLE_NAME,
                context=f"Creating project slug={slug}",
            )
            raise

    async def get_by_id(self, project_id: str) -> Project | None:
        result = await self.session.execute(
            select(Project).where(Project.id == project_id)
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Project | None:
        result = await self.session.execute(select(Project).where(Project.slug == slug))
        return result.scalar_one_or_none()

    async def list(self, limit: int, offset: int) -> tuple[list[Project], int]:
        """List projects newest first with the total count."""
        start_time = time.monotonic()
        try:
            total = await self.session.scalar(select(func.count()).select_from(Project))
            result = await self.session.execute(
                select(Project)
                .order_by(Project.created_at.desc(), Project.id.desc())
                .limit(limit)
                .offset(offset)
            )
            projects = list(result.scalars().all())
        except SQLAlchemyError as e:
            logger.error(
                "Failed to list projects",
                extra={
                    "limit": limit,
                    "offset": offset,
                    "error_type": type(e).__name__,
                    "error_message": str(e),
                },
                exc_info=True,
            )
            raise

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > get_settings().db_slow_query_threshold_ms:
            db_logger.slow_query(
                query="SELECT FROM projects",
                duration_ms=duration_ms,
                table=self.TABLE_NAME,
            )
        return projects, total or 0
