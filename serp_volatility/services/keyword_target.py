"""KeywordTargetService: registration, lookup and listing of tracked queries.

ERROR LOGGING REQUIREMENTS:
- Log method entry/exit at DEBUG level with parameters (sanitized)
- Include entity IDs (project_id, keyword_target_id) in all service logs
- Log validation failures with field names and rejected values
- Log state transitions (created records) at INFO level
"""

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.logging import get_logger, volatility_logger
from serp_volatility.models.keyword_target import KeywordTarget
from serp_volatility.repositories.keyword_target import KeywordTargetRepository
from serp_volatility.schemas.keyword_target import KeywordTargetCreate
from serp_volatility.services.project import is_valid_uuid
from serp_volatility.utils.cursor import KEYWORD_TARGET_LIST_CURSOR, CursorError
from serp_volatility.utils.serp_extraction import ensure_utc

logger = get_logger(__name__)

KEYWORD_TARGET_NOT_FOUND = "KeywordTarget not found"


class KeywordTargetServiceError(Exception):
    """Base exception for KeywordTargetService errors."""

    pass


class KeywordTargetNotFoundError(KeywordTargetServiceError):
    """Raised when a target does not exist in the caller's project.

    The message is identical whether the id is unknown or belongs to
    another project.
    """

    def __init__(self, keyword_target_id: str):
        self.keyword_target_id = keyword_target_id
        super().__init__(KEYWORD_TARGET_NOT_FOUND)


class KeywordTargetConflictError(KeywordTargetServiceError):
    """Raised when (query, locale, device) already exists in the project."""

    def __init__(self, query: str, locale: str, device: str):
        self.query = query
        self.locale = locale
        self.device = device
        super().__init__(
            f"KeywordTarget already exists for query='{query}', "
            f"locale='{locale}', device='{device}'"
        )


class KeywordTargetValidationError(KeywordTargetServiceError):
    """Raised when a request parameter is invalid."""

    def __init__(self, field: str, value: object, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for '{field}': {message}")


class KeywordTargetService:
    """Service for KeywordTarget business logic and validation."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = KeywordTargetRepository(session)

    async def create_target(
        self, project_id: str, data: KeywordTargetCreate
    ) -> KeywordTarget:
        """Register a keyword target.

        Raises:
            KeywordTargetConflictError: If the natural key already exists
        """
        logger.debug(
            "create_target() called",
            extra={
                "project_id": project_id,
                "query": data.query[:100],
                "locale": data.locale,
                "device": data.device,
            },
        )
        existing = await self.repository.get_by_natural_key(
            project_id, data.query, data.locale, data.device
        )
        if existing is not None:
            raise KeywordTargetConflictError(data.query, data.locale, data.device)

        try:
            target = await self.repository.create(
                project_id=project_id,
                query=data.query,
                locale=data.locale,
                device=data.device,
                is_primary=data.is_primary,
                intent=data.intent,
                notes=data.notes,
            )
        except IntegrityError as e:
            await self.session.rollback()
            raise KeywordTargetConflictError(data.query, data.locale, data.device) from e

        logger.info(
            "Keyword target created",
            extra={
                "project_id": project_id,
                "keyword_target_id": target.id,
            },
        )
        return target

    async def get_target(self, project_id: str, keyword_target_id: str) -> KeywordTarget:
        """Get a target owned by ``project_id``.

        Raises:
            KeywordTargetNotFoundError: If missing or owned by another project
        """
        if not is_valid_uuid(keyword_target_id):
            raise KeywordTargetValidationError(
                "keywordTargetId", keyword_target_id, "must be a valid UUID"
            )
        target = await self.repository.get_by_id(keyword_target_id)
        if target is None or target.project_id != project_id:
            logger.warning(
                "Keyword target not found in project",
                extra={
                    "project_id": project_id,
                    "keyword_target_id": keyword_target_id,
                    "exists_elsewhere": target is not None,
                },
            )
            raise KeywordTargetNotFoundError(keyword_target_id)
        return target

    async def list_project_targets(self, project_id: str) -> list[KeywordTarget]:
        return await self.repository.list_by_project(project_id)

    async def list_targets(
        self, project_id: str, limit: int, cursor: str | None = None
    ) -> tuple[list[KeywordTarget], str | None, bool]:
        """One cursor page of a project's targets, oldest first.

        Returns:
            Tuple of (targets, next_cursor, has_more)

        Raises:
            KeywordTargetValidationError: If the cursor is malformed
        """
        after = None
        if cursor is not None:
            try:
                after = KEYWORD_TARGET_LIST_CURSOR.decode(cursor)
            except CursorError as e:
                volatility_logger.cursor_rejected("keyword-targets", e.message)
                raise KeywordTargetValidationError("cursor", cursor, e.message) from e

        targets, has_more = await self.repository.list_page(
            project_id, limit=limit, after=after
        )
        next_cursor = None
        if has_more and targets:
            last = targets[-1]
            next_cursor = KEYWORD_TARGET_LIST_CURSOR.encode(
                ensure_utc(last.created_at), last.id
            )
        return targets, next_cursor, has_more
