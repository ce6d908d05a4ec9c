"""Per-keyword volatility API endpoints.

- GET /api/v1/seo/keyword-targets/{keyword_target_id}/volatility
- GET /api/v1/seo/keyword-targets/{keyword_target_id}/volatility-breakdown
- GET /api/v1/seo/keyword-targets/{keyword_target_id}/volatility-spikes
- GET /api/v1/seo/keyword-targets/{keyword_target_id}/feature-transitions

Everything is computed on read from the target's snapshots. A zero-sample
target is not an error: it answers 200 with zeroed metrics.
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, Request
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
from serp_volatility.schemas.common import DataResponse, QueryInt
from serp_volatility.schemas.volatility import (
    FeatureTransitionsResponse,
    KeywordVolatilityResponse,
    VolatilityBreakdownResponse,
    VolatilitySpikesResponse,
)
from serp_volatility.services.keyword_target import (
    KeywordTargetNotFoundError,
    KeywordTargetValidationError,
)
from serp_volatility.services.volatility import (
    DEFAULT_ALERT_THRESHOLD,
    VolatilityService,
    VolatilityValidationError,
)
from serp_volatility.utils.attribution import (
    DEFAULT_ATTRIBUTION_TOP_N,
    MAX_ATTRIBUTION_TOP_N,
)
from serp_volatility.utils.spikes import DEFAULT_SPIKE_TOP_N, MAX_SPIKE_TOP_N
from serp_volatility.utils.windowing import MAX_WINDOW_DAYS, MIN_WINDOW_DAYS

logger = get_logger(__name__)

router = APIRouter()

ERROR_RESPONSES = {**VALIDATION_ERROR_RESPONSE, **NOT_FOUND_RESPONSE}


def _window_query() -> Any:
    return Query(
        default=None,
        ge=MIN_WINDOW_DAYS,
        le=MAX_WINDOW_DAYS,
        alias="windowDays",
        description="Trailing window in days; omit for all history",
    )


@router.get(
    "/{keyword_target_id}/volatility",
    response_model=DataResponse[KeywordVolatilityResponse],
    summary="Keyword volatility",
    description="Volatility score, components, regime and maturity of a keyword target.",
    responses=ERROR_RESPONSES,
)
async def get_keyword_volatility(
    request: Request,
    keyword_target_id: str,
    window_days: QueryInt | None = _window_query(),
    alert_threshold: float = Query(
        default=DEFAULT_ALERT_THRESHOLD, ge=0, le=100, alias="alertThreshold"
    ),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[KeywordVolatilityResponse] | JSONResponse:
    """Compute the volatility of one keyword target."""
    request_id = get_request_id(request)
    logger.info(
        "Keyword volatility request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "keyword_target_id": keyword_target_id,
            "window_days": window_days,
        },
    )

    service = VolatilityService(session)
    try:
        result = await service.get_keyword_volatility(
            project_id,
            keyword_target_id,
            window_days=window_days,
            alert_threshold=alert_threshold,
        )
    except (KeywordTargetValidationError, VolatilityValidationError) as e:
        return validation_error_response(request_id, e, project_id=project_id)
    except KeywordTargetNotFoundError as e:
        return not_found_response(
            request_id, e, project_id=project_id, keyword_target_id=keyword_target_id
        )

    return DataResponse(data=result)


@router.get(
    "/{keyword_target_id}/volatility-breakdown",
    response_model=DataResponse[VolatilityBreakdownResponse],
    summary="Volatility breakdown by URL",
    description="Per-URL rank movement, largest total shift first.",
    responses=ERROR_RESPONSES,
)
async def get_volatility_breakdown(
    request: Request,
    keyword_target_id: str,
    window_days: QueryInt | None = _window_query(),
    top_n: QueryInt = Query(
        default=DEFAULT_ATTRIBUTION_TOP_N, ge=1, le=MAX_ATTRIBUTION_TOP_N, alias="topN"
    ),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[VolatilityBreakdownResponse] | JSONResponse:
    """Attribute a keyword target's rank movement to URLs."""
    request_id = get_request_id(request)
    logger.info(
        "Volatility breakdown request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "keyword_target_id": keyword_target_id,
            "window_days": window_days,
            "top_n": top_n,
        },
    )

    service = VolatilityService(session)
    try:
        result = await service.get_breakdown(
            project_id, keyword_target_id, window_days=window_days, top_n=top_n
        )
    except (KeywordTargetValidationError, VolatilityValidationError) as e:
        return validation_error_response(request_id, e, project_id=project_id)
    except KeywordTargetNotFoundError as e:
        return not_found_response(
            request_id, e, project_id=project_id, keyword_target_id=keyword_target_id
        )

    return DataResponse(data=result)


@router.get(
    "/{keyword_target_id}/volatility-spikes",
    response_model=DataResponse[VolatilitySpikesResponse],
    summary="Volatility spikes",
    description="The most volatile snapshot pairs of a keyword target.",
    responses=ERROR_RESPONSES,
)
async def get_volatility_spikes(
    request: Request,
    keyword_target_id: str,
    window_days: QueryInt | None = _window_query(),
    top_n: QueryInt = Query(
        default=DEFAULT_SPIKE_TOP_N, ge=1, le=MAX_SPIKE_TOP_N, alias="topN"
    ),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[VolatilitySpikesResponse] | JSONResponse:
    """Rank a keyword target's snapshot pairs by score."""
    request_id = get_request_id(request)
    logger.info(
        "Volatility spikes request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "keyword_target_id": keyword_target_id,
            "window_days": window_days,
            "top_n": top_n,
        },
    )

    service = VolatilityService(session)
    try:
        result = await service.get_spikes(
            project_id, keyword_target_id, window_days=window_days, top_n=top_n
        )
    except (KeywordTargetValidationError, VolatilityValidationError) as e:
        return validation_error_response(request_id, e, project_id=project_id)
    except KeywordTargetNotFoundError as e:
        return not_found_response(
            request_id, e, project_id=project_id, keyword_target_id=keyword_target_id
        )

    return DataResponse(data=result)


@router.get(
    "/{keyword_target_id}/feature-transitions",
    response_model=DataResponse[FeatureTransitionsResponse],
    summary="SERP feature transitions",
    description="How often each feature-set transition occurred between snapshots.",
    responses=ERROR_RESPONSES,
)
async def get_feature_transitions(
    request: Request,
    keyword_target_id: str,
    window_days: QueryInt | None = _window_query(),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[FeatureTransitionsResponse] | JSONResponse:
    """Tally a keyword target's feature-set transitions."""
    request_id = get_request_id(request)
    logger.info(
        "Feature transitions request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "keyword_target_id": keyword_target_id,
            "window_days": window_days,
        },
    )

    service = VolatilityService(session)
    try:
        result = await service.get_feature_transitions(
            project_id, keyword_target_id, window_days=window_days
        )
    except (KeywordTargetValidationError, VolatilityValidationError) as e:
        return validation_error_response(request_id, e, project_id=project_id)
    except KeywordTargetNotFoundError as e:
        return not_found_response(
            request_id, e, project_id=project_id, keyword_target_id=keyword_target_id
        )

    return DataResponse(data=result)
