"""Project service: CRUD plus tenant resolution.

Every /api/v1/seo request runs through ``resolve_project_id``, which picks
the caller's project from the X-Project-Id or X-Project-Slug header and
falls back to the configured default project.
"""

import re

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.config import get_settings
from serp_volatility.core.logging import get_logger
from serp_volatility.models.project import Project
from serp_volatility.repositories.project import ProjectRepository
from serp_volatility.schemas.common import UUID_PATTERN
from serp_volatility.schemas.project import ProjectCreate

logger = get_logger(__name__)

_UUID_RE = re.compile(UUID_PATTERN)


class ProjectServiceError(Exception):
    """Base exception for ProjectService errors."""

    pass


class ProjectNotFoundError(ProjectServiceError):
    """Raised when a project is not found."""

    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class ProjectSlugConflictError(ProjectServiceError):
    """Raised when a slug is already taken."""

    def __init__(self, slug: str):
        self.slug = slug
        super().__init__(f"Project slug already exists: {slug}")


class ProjectScopeError(ProjectServiceError):
    """Raised when request headers do not resolve to a project."""

    def __init__(self, header: str, value: str, message: str):
        self.header = header
        self.value = value
        self.message = message
        super().__init__(message)


def is_valid_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value))


class ProjectService:
    """Service for Project operations."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = ProjectRepository(session)

    async def create_project(self, data: ProjectCreate) -> Project:
        """Create a project.

        Raises:
            ProjectSlugConflictError: If the slug is taken
        """
        if await self.repository.get_by_slug(data.slug) is not None:
            logger.warning(
                "Project slug conflict",
                extra={"field": "slug", "value": data.slug},
            )
            raise ProjectSlugConflictError(data.slug)

        try:
            project = await self.repository.create(name=data.name, slug=data.slug)
        except IntegrityError as e:
            await self.session.rollback()
            raise ProjectSlugConflictError(data.slug) from e

        logger.info(
            "Project created",
            extra={"project_id": project.id, "slug": project.slug},
        )
        return project

    async def get_project(self, project_id: str) -> Project:
        """Get a project by ID.

        Raises:
            ProjectNotFoundError: If the id is malformed or unknown
        """
        if not is_valid_uuid(project_id):
            raise ProjectNotFoundError(project_id)
        project = await self.repository.get_by_id(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    async def list_projects(self, limit: int, offset: int) -> tuple[list[Project], int]:
        return await self.repository.list(limit=limit, offset=offset)

    async def resolve_project_id(
        self, project_id_header: str | None, slug_header: str | None
    ) -> str:
        """Resolve the caller's project.

        Order: X-Project-Id (must be a UUID of an existing project), then
        X-Project-Slug (must name an existing project), then the default.

        Raises:
            ProjectScopeError: If a supplied header does not resolve
        """
        if project_id_header:
            if not is_valid_uuid(project_id_header):
                logger.warning(
                    "Validation failed: malformed project id header",
                    extra={"field": "X-Project-Id", "value": project_id_header[:64]},
                )
                raise ProjectScopeError(
                    "X-Project-Id", project_id_header, "X-Project-Id must be a valid UUID"
                )
            if await self.repository.get_by_id(project_id_header) is None:
                raise ProjectScopeError(
                    "X-Project-Id", project_id_header, "Project not found"
                )
            return project_id_header

        if slug_header:
            project = await self.repository.get_by_slug(slug_header.strip().lower())
            if project is None:
                raise ProjectScopeError("X-Project-Slug", slug_header, "Project not found")
            return project.id

        return get_settings().default_project_id
