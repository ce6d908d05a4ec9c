"""Project-level volatility API endpoints.

- GET /api/v1/seo/volatility-summary - Project risk summary
- GET /api/v1/seo/volatility-alerts - Keywords over the alert threshold (cursor paginated)
- GET /api/v1/seo/alerts - T1/T2/T3 alert scan

These aggregate over the caller's own project only; another project's
figures never appear in the response.
"""

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.api.deps import (
    VALIDATION_ERROR_RESPONSE,
    get_project_scope,
    get_request_id,
    validation_error_response,
)
from serp_volatility.core.database import get_session
from serp_volatility.core.logging import get_logger
from serp_volatility.schemas.alerts import AlertsResponse
from serp_volatility.schemas.common import DataResponse, QueryInt
from serp_volatility.schemas.volatility import (
    VolatilityAlertsResponse,
    VolatilitySummaryResponse,
)
from serp_volatility.services.volatility import (
    DEFAULT_ALERT_THRESHOLD,
    DEFAULT_MIN_MATURITY,
    DEFAULT_VOLATILITY_ALERTS_LIMIT,
    MAX_VOLATILITY_ALERTS_LIMIT,
    VolatilityService,
    VolatilityValidationError,
)
from serp_volatility.utils.alerts import (
    DEFAULT_ALERT_LIMIT,
    DEFAULT_CONCENTRATION_THRESHOLD,
    DEFAULT_SPIKE_THRESHOLD,
    MAX_ALERT_LIMIT,
)
from serp_volatility.utils.windowing import (
    MAX_ALERT_WINDOW_DAYS,
    MAX_WINDOW_DAYS,
    MIN_WINDOW_DAYS,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "/volatility-summary",
    response_model=DataResponse[VolatilitySummaryResponse],
    summary="Project volatility summary",
    description=(
        "Regime and maturity distributions, score bands, weighted score and "
        "concentration ratio over every keyword target of the project."
    ),
    responses=VALIDATION_ERROR_RESPONSE,
)
async def get_volatility_summary(
    request: Request,
    window_days: QueryInt | None = Query(
        default=None, ge=MIN_WINDOW_DAYS, le=MAX_WINDOW_DAYS, alias="windowDays"
    ),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[VolatilitySummaryResponse] | JSONResponse:
    """Summarise the project's volatility."""
    request_id = get_request_id(request)
    logger.info(
        "Volatility summary request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "window_days": window_days,
        },
    )

    service = VolatilityService(session)
    try:
        summary = await service.get_summary(project_id, window_days=window_days)
    except VolatilityValidationError as e:
        return validation_error_response(request_id, e, project_id=project_id)

    return DataResponse(data=summary)


@router.get(
    "/volatility-alerts",
    response_model=DataResponse[VolatilityAlertsResponse],
    summary="Volatility alerts",
    description=(
        "Keywords scoring at or above alertThreshold with at least minMaturity, "
        "ordered by score descending, then query, then id."
    ),
    responses=VALIDATION_ERROR_RESPONSE,
)
async def list_volatility_alerts(
    request: Request,
    window_days: QueryInt | None = Query(
        default=None, ge=MIN_WINDOW_DAYS, le=MAX_WINDOW_DAYS, alias="windowDays"
    ),
    alert_threshold: float = Query(
        default=DEFAULT_ALERT_THRESHOLD, ge=0, le=100, alias="alertThreshold"
    ),
    min_maturity: str = Query(default=DEFAULT_MIN_MATURITY, alias="minMaturity"),
    limit: QueryInt = Query(
        default=DEFAULT_VOLATILITY_ALERTS_LIMIT, ge=1, le=MAX_VOLATILITY_ALERTS_LIMIT
    ),
    cursor: str | None = Query(default=None),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[VolatilityAlertsResponse] | JSONResponse:
    """List keywords over the alert threshold."""
    request_id = get_request_id(request)
    logger.info(
        "Volatility alerts request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "window_days": window_days,
            "alert_threshold": alert_threshold,
            "min_maturity": min_maturity,
            "limit": limit,
        },
    )

    service = VolatilityService(session)
    try:
        alerts = await service.list_volatility_alerts(
            project_id,
            window_days=window_days,
            alert_threshold=alert_threshold,
            min_maturity=min_maturity,
            limit=limit,
            cursor=cursor,
        )
    except VolatilityValidationError as e:
        return validation_error_response(request_id, e, project_id=project_id)

    return DataResponse(data=alerts)


@router.get(
    "/alerts",
    response_model=DataResponse[AlertsResponse],
    summary="Alert scan",
    description=(
        "Regime transitions (T1), spikes (T2) and concentration risk (T3) "
        "within the last windowDays (1-30, required)."
    ),
    responses=VALIDATION_ERROR_RESPONSE,
)
async def get_alerts(
    request: Request,
    window_days: QueryInt = Query(
        ..., ge=MIN_WINDOW_DAYS, le=MAX_ALERT_WINDOW_DAYS, alias="windowDays"
    ),
    spike_threshold: float = Query(
        default=DEFAULT_SPIKE_THRESHOLD, ge=0, le=100, alias="spikeThreshold"
    ),
    concentration_threshold: float = Query(
        default=DEFAULT_CONCENTRATION_THRESHOLD, ge=0, le=1, alias="concentrationThreshold"
    ),
    limit: QueryInt = Query(default=DEFAULT_ALERT_LIMIT, ge=1, le=MAX_ALERT_LIMIT),
    project_id: str = Depends(get_project_scope),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[AlertsResponse] | JSONResponse:
    """Scan the project for alert conditions."""
    request_id = get_request_id(request)
    logger.info(
        "Alert scan request",
        extra={
            "request_id": request_id,
            "project_id": project_id,
            "window_days": window_days,
            "spike_threshold": spike_threshold,
            "concentration_threshold": concentration_threshold,
            "limit": limit,
        },
    )

    service = VolatilityService(session)
    try:
        alerts = await service.evaluate_alerts(
            project_id,
            window_days=window_days,
            spike_threshold=spike_threshold,
            concentration_threshold=concentration_threshold,
            limit=limit,
        )
    except VolatilityValidationError as e:
        return validation_error_response(request_id, e, project_id=project_id)

    return DataResponse(data=alerts)
