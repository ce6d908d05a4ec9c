"""Keyword target API endpoints.

- POST /api/v1/seo/keyword-targets - Register a keyword target
- GET /api/v1/seo/keyword-targets - List the project's targets (cursor paginated)
- GET /api/v1/seo/keyword-targets/{keyword_target_id}/serp-history - Snapshot history

All routes are scoped to the project resolved from X-Project-Id /
X-Project-Slug. Targets of other projects answer 404.
"""

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.api.deps import (
    NOT_FOUND_RESPONSE,
    VALIDATION_ERROR_RESPONSE,
    conflict_response,
    get_project_scope,
    get_request_id,
    not_found_response,
    validation_error_response,
)
from serp_volatility.core.database import get_session
from serp_volatility.core.logging import get_logger
from serp_volatility.schemas.common import (
    DataResponse,
    PaginatedResponse,
    PaginationMeta,
    QueryInt,
)
from serp_volatility.schemas.keyword_target import KeywordTargetCreate, KeywordTargetResponse
from serp_volatility.schemas.serp_snapshot import SerpHistoryResponse
from serp_volatility.services.keyword_target import (
    KeywordTargetConflictError,
    KeywordTargetNotFoundError,
    KeywordTargetService,
    KeywordTargetValidationError,
)
from serp_volatility.services.serp_snapshot import (
    DEFAULT_HISTORY_LIMIT,
    DEFAULT_HISTORY_TOP_N,
    MAX_HISTORY_LIMIT,
    MAX_HISTORY_TOP_N,
    SerpSnapshotService,
    SerpSnapshotValidationError,
)

logger = get_logger(__name__)

router = APIRouter()

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100


@router.post(
    "",
    response_model=DataResponse[KeywordTargetResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a keyword target",
    description="Register a (query, locale, device) target for volatility tracking.",
    responses={
        **VALIDATION_ERROR_RESPONSE,
        409: {
            "description": "Keyword target already exists",
            "content": {
                "application/json": {
                    "example": {
                        "error": "KeywordTarget already exists for query='running shoes', locale='en-US', device='desktop'",
                        "code": "CONFLICT",
                        "request_id": "<request_id>",
                    }
                }
            },
        },
    },
)
async def create_keyword_target(
    request: Request,
    data: KeywordTargetCreate,
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[KeywordTargetResponse] | JSONResponse:
    """Create a keyword target in the caller's project."""
    request_id = get_request_id(request)
    logger.info(
        "Create keyword target request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "locale": data.locale,
            "device": data.device,
        },
    )
    logger.debug(
        "Create keyword target request body",
        extra={
            "request_id": request_id,
            "query": data.query[:50] + "..." if len(data.query) > 50 else data.query,
            "is_primary": data.is_primary,
        },
    )

    service = KeywordTargetService(session)
    try:
        target = await service.create_target(project_id, data)
    except KeywordTargetConflictError as e:
        return conflict_response(request_id, e, project_id=project_id)

    return DataResponse(data=KeywordTargetResponse.model_validate(target))


@router.get(
    "",
    response_model=PaginatedResponse[KeywordTargetResponse],
    summary="List keyword targets",
    description="List the project's keyword targets, oldest first.",
    responses=VALIDATION_ERROR_RESPONSE,
)
async def list_keyword_targets(
    request: Request,
    limit: QueryInt = Query(
        default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT, description="Page size"
    ),
    cursor: str | None = Query(default=None, description="Cursor from a previous page"),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> PaginatedResponse[KeywordTargetResponse] | JSONResponse:
    """List keyword targets with cursor pagination."""
    request_id = get_request_id(request)
    logger.info(
        "List keyword targets request",
        extra={"request_id": request_id, "project_id": project_id, "limit": limit},
    )

    service = KeywordTargetService(session)
    try:
        targets, next_cursor, has_more = await service.list_targets(
            project_id, limit=limit, cursor=cursor
        )
    except KeywordTargetValidationError as e:
        return validation_error_response(request_id, e, project_id=project_id)

    return PaginatedResponse(
        data=[KeywordTargetResponse.model_validate(t) for t in targets],
        pagination=PaginationMeta(limit=limit, has_more=has_more, next_cursor=next_cursor),
    )


@router.get(
    "/{keyword_target_id}/serp-history",
    response_model=DataResponse[SerpHistoryResponse],
    summary="SERP history of a keyword target",
    description=(
        "Snapshots of the target newest first, each with its top results. "
        "Raw payloads are included only when includePayload=true."
    ),
    responses={**VALIDATION_ERROR_RESPONSE, **NOT_FOUND_RESPONSE},
)
async def get_serp_history(
    request: Request,
    keyword_target_id: str,
    limit: QueryInt = Query(default=DEFAULT_HISTORY_LIMIT, ge=1, le=MAX_HISTORY_LIMIT),
    top_n: QueryInt = Query(
        default=DEFAULT_HISTORY_TOP_N, ge=1, le=MAX_HISTORY_TOP_N, alias="topN"
    ),
    include_payload: bool = Query(default=False, alias="includePayload"),
    cursor: str | None = Query(default=None),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[SerpHistoryResponse] | JSONResponse:
    """Page through a keyword target's snapshot history."""
    request_id = get_request_id(request)
    logger.info(
        "SERP history request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "keyword_target_id": keyword_target_id,
            "limit": limit,
            "top_n": top_n,
        },
    )

    service = SerpSnapshotService(session)
    try:
        history = await service.get_history(
            project_id,
            keyword_target_id,
            limit=limit,
            top_n=top_n,
            include_payload=include_payload,
            cursor=cursor,
        )
    except (KeywordTargetValidationError, SerpSnapshotValidationError) as e:
        return validation_error_response(request_id, e, project_id=project_id)
    except KeywordTargetNotFoundError as e:
        return not_found_response(
            request_id, e, project_id=project_id, keyword_target_id=keyword_target_id
        )

    return DataResponse(data=history)
