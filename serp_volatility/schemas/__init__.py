"""Pydantic schemas for request/response validation."""

from serp_volatility.schemas.alerts import AlertItem, AlertsResponse, alert_item_from
from serp_volatility.schemas.common import (
    CamelModel,
    DataResponse,
    PaginatedResponse,
    PaginationMeta,
)
from serp_volatility.schemas.keyword_target import (
    VALID_DEVICES,
    KeywordTargetCreate,
    KeywordTargetResponse,
    normalize_query,
)
from serp_volatility.schemas.project import (
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
)
from serp_volatility.schemas.serp_snapshot import (
    VALID_AI_OVERVIEW_STATUSES,
    VALID_SOURCES,
    SerpHistoryItem,
    SerpHistoryResponse,
    SerpSnapshotCreate,
    SerpSnapshotResponse,
)
from serp_volatility.schemas.volatility import (
    FeatureTransitionsResponse,
    KeywordVolatilityResponse,
    SerpDeltaResponse,
    VolatilityAlertsResponse,
    VolatilityBreakdownResponse,
    VolatilitySpikesResponse,
    VolatilitySummaryResponse,
)

__all__ = [
    # Alerts
    "AlertItem",
    "AlertsResponse",
    "alert_item_from",
    # Common
    "CamelModel",
    "DataResponse",
    "PaginatedResponse",
    "PaginationMeta",
    # Keyword targets
    "VALID_DEVICES",
    "KeywordTargetCreate",
    "KeywordTargetResponse",
    "normalize_query",
    # Projects
    "ProjectCreate",
    "ProjectListResponse",
    "ProjectResponse",
    # Snapshots
    "VALID_AI_OVERVIEW_STATUSES",
    "VALID_SOURCES",
    "SerpHistoryItem",
    "SerpHistoryResponse",
    "SerpSnapshotCreate",
    "SerpSnapshotResponse",
    # Volatility
    "FeatureTransitionsResponse",
    "KeywordVolatilityResponse",
    "SerpDeltaResponse",
    "VolatilityAlertsResponse",
    "VolatilityBreakdownResponse",
    "VolatilitySpikesResponse",
    "VolatilitySummaryResponse",
]
