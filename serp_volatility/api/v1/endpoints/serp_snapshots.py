"""SERP snapshot API endpoints.

- POST /api/v1/seo/serp-snapshots - Record a snapshot (201 new, 200 replay)
- GET /api/v1/seo/serp-snapshots - List snapshots, newest first (cursor paginated)
- GET /api/v1/seo/serp-deltas - Rank delta between two snapshots of a target
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, Query, Request, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.api.deps import (
    NOT_FOUND_RESPONSE,
    VALIDATION_ERROR_RESPONSE,
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
from serp_volatility.schemas.serp_snapshot import SerpSnapshotCreate, SerpSnapshotResponse
from serp_volatility.schemas.volatility import SerpDeltaResponse
from serp_volatility.services.keyword_target import (
    KeywordTargetNotFoundError,
    KeywordTargetValidationError,
)
from serp_volatility.services.serp_snapshot import (
    SerpSnapshotNotFoundError,
    SerpSnapshotService,
    SerpSnapshotValidationError,
)

logger = get_logger(__name__)

router = APIRouter()

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 100


@router.post(
    "/serp-snapshots",
    response_model=DataResponse[SerpSnapshotResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Record a SERP snapshot",
    description=(
        "Store a captured result page. Re-sending the same query, locale, "
        "device and capturedAt returns the stored snapshot with 200."
    ),
    responses=VALIDATION_ERROR_RESPONSE,
)
async def record_serp_snapshot(
    request: Request,
    response: Response,
    data: SerpSnapshotCreate,
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[SerpSnapshotResponse]:
    """Record a snapshot, idempotent on its natural key."""
    request_id = get_request_id(request)
    logger.info(
        "Record SERP snapshot request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "locale": data.locale,
            "device": data.device,
            "captured_at": data.captured_at.isoformat(),
            "source": data.source,
        },
    )

    service = SerpSnapshotService(session)
    snapshot, created = await service.record_snapshot(project_id, data)
    if not created:
        response.status_code = status.HTTP_200_OK

    return DataResponse(data=SerpSnapshotResponse.model_validate(snapshot))


@router.get(
    "/serp-snapshots",
    response_model=PaginatedResponse[SerpSnapshotResponse],
    summary="List SERP snapshots",
    description="List the project's snapshots, newest first.",
    responses={**VALIDATION_ERROR_RESPONSE, **NOT_FOUND_RESPONSE},
)
async def list_serp_snapshots(
    request: Request,
    limit: QueryInt = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=MAX_LIST_LIMIT),
    cursor: str | None = Query(default=None),
    keyword_target_id: str | None = Query(default=None, alias="keywordTargetId"),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> PaginatedResponse[SerpSnapshotResponse] | JSONResponse:
    """List snapshots with cursor pagination."""
    request_id = get_request_id(request)
    logger.info(
        "List SERP snapshots request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "limit": limit,
            "keyword_target_id": keyword_target_id,
        },
    )

    service = SerpSnapshotService(session)
    try:
        snapshots, next_cursor, has_more = await service.list_snapshots(
            project_id, limit=limit, cursor=cursor, keyword_target_id=keyword_target_id
        )
    except (KeywordTargetValidationError, SerpSnapshotValidationError) as e:
        return validation_error_response(request_id, e, project_id=project_id)
    except KeywordTargetNotFoundError as e:
        return not_found_response(
            request_id, e, project_id=project_id, keyword_target_id=keyword_target_id
        )

    return PaginatedResponse(
        data=[SerpSnapshotResponse.model_validate(s) for s in snapshots],
        pagination=PaginationMeta(limit=limit, has_more=has_more, next_cursor=next_cursor),
    )


@router.get(
    "/serp-deltas",
    response_model=DataResponse[SerpDeltaResponse],
    summary="SERP delta",
    description=(
        "Compare two snapshots of a keyword target (default: the latest two). "
        "fromSnapshotId and toSnapshotId must be supplied together."
    ),
    responses={**VALIDATION_ERROR_RESPONSE, **NOT_FOUND_RESPONSE},
)
async def get_serp_delta(
    request: Request,
    keyword_target_id: str = Query(..., alias="keywordTargetId"),
    from_snapshot_id: str | None = Query(default=None, alias="fromSnapshotId"),
    to_snapshot_id: str | None = Query(default=None, alias="toSnapshotId"),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[SerpDeltaResponse] | JSONResponse:
    """Entered, exited and moved URLs between two snapshots."""
    request_id = get_request_id(request)
    logger.info(
        "SERP delta request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "keyword_target_id": keyword_target_id,
            "from_snapshot_id": from_snapshot_id,
            "to_snapshot_id": to_snapshot_id,
        },
    )

    service = SerpSnapshotService(session)
    try:
        delta = await service.get_delta(
            project_id,
            keyword_target_id,
            from_snapshot_id=from_snapshot_id,
            to_snapshot_id=to_snapshot_id,
            computed_at=datetime.now(UTC),
        )
    except (KeywordTargetValidationError, SerpSnapshotValidationError) as e:
        return validation_error_response(request_id, e, project_id=project_id)
    except (KeywordTargetNotFoundError, SerpSnapshotNotFoundError) as e:
        return not_found_response(
            request_id, e, project_id=project_id, keyword_target_id=keyword_target_id
        )

    return DataResponse(data=delta)
