"""Pydantic schemas for SERP snapshot ingest, listing and history."""

import re
from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from serp_volatility.models.serp_snapshot import AIOverviewStatus, SnapshotSource
from serp_volatility.schemas.common import CamelModel, UtcDatetime
from serp_volatility.schemas.keyword_target import (
    LOCALE_PATTERN,
    VALID_DEVICES,
    normalize_query,
)

VALID_AI_OVERVIEW_STATUSES = frozenset(s.value for s in AIOverviewStatus)
VALID_SOURCES = frozenset(s.value for s in SnapshotSource)

# ISO 8601 with seconds and an explicit offset; date-only values are rejected
ISO_TIMESTAMP_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(\.\d{1,6})?(Z|[+-]\d{2}:\d{2})$"
)


def _require_offset(field: str, v: Any) -> Any:
    if isinstance(v, str):
        if not ISO_TIMESTAMP_PATTERN.match(v):
            raise ValueError(
                f"{field} must be an ISO 8601 timestamp with a timezone offset"
            )
        return v
    if isinstance(v, datetime) and v.tzinfo is None:
        raise ValueError(f"{field} must carry a timezone offset")
    return v


class SerpSnapshotCreate(CamelModel):
    """Schema for recording a captured result page."""

    query: str = Field(..., min_length=1, max_length=500)
    locale: str
    device: str
    captured_at: UtcDatetime = Field(..., description="Capture time with offset")
    valid_at: UtcDatetime | None = Field(None, description="Provider validity time")
    raw_payload: dict[str, Any] = Field(..., description="Provider payload as returned")
    payload_schema_version: str | None = Field(None, max_length=50)
    ai_overview_status: str = Field(default=AIOverviewStatus.UNKNOWN.value)
    ai_overview_text: str | None = None
    source: str = Field(..., description="Payload source")
    batch_ref: str | None = Field(None, max_length=255)

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        normalized = normalize_query(v)
        if not normalized:
            raise ValueError("query cannot be empty or whitespace only")
        return normalized

    @field_validator("locale")
    @classmethod
    def validate_locale(cls, v: str) -> str:
        if not LOCALE_PATTERN.match(v):
            raise ValueError(f"Invalid locale '{v}'. Expected e.g. 'en' or 'en-US'")
        return v

    @field_validator("device")
    @classmethod
    def validate_device(cls, v: str) -> str:
        if v not in VALID_DEVICES:
            raise ValueError(
                f"Invalid device '{v}'. Must be one of: {', '.join(sorted(VALID_DEVICES))}"
            )
        return v

    @field_validator("captured_at", mode="before")
    @classmethod
    def validate_captured_at(cls, v: Any) -> Any:
        return _require_offset("capturedAt", v)

    @field_validator("valid_at", mode="before")
    @classmethod
    def validate_valid_at(cls, v: Any) -> Any:
        if v is None:
            return v
        return _require_offset("validAt", v)

    @field_validator("ai_overview_status")
    @classmethod
    def validate_ai_overview_status(cls, v: str) -> str:
        if v not in VALID_AI_OVERVIEW_STATUSES:
            raise ValueError(
                f"Invalid aiOverviewStatus '{v}'. "
                f"Must be one of: {', '.join(sorted(VALID_AI_OVERVIEW_STATUSES))}"
            )
        return v

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        if v not in VALID_SOURCES:
            raise ValueError(
                f"Invalid source '{v}'. Must be one of: {', '.join(sorted(VALID_SOURCES))}"
            )
        return v


class SerpSnapshotResponse(CamelModel):
    id: str = Field(..., description="Snapshot UUID")
    project_id: str
    query: str
    locale: str
    device: str
    captured_at: UtcDatetime
    valid_at: UtcDatetime | None = None
    payload_schema_version: str | None = None
    ai_overview_status: str
    ai_overview_text: str | None = None
    source: str
    batch_ref: str | None = None
    created_at: UtcDatetime


class TopResult(CamelModel):
    rank: int | None
    url: str


class SerpHistoryItem(CamelModel):
    snapshot_id: str
    captured_at: UtcDatetime
    ai_overview_status: str
    payload_parse_warning: bool
    top_results: list[TopResult]
    features: list[str]
    raw_payload: dict[str, Any] | None = Field(
        None, description="Present only when includePayload=true"
    )


class SerpHistoryResponse(CamelModel):
    keyword_target_id: str
    query: str
    locale: str
    device: str
    limit: int
    top_n: int
    include_payload: bool
    items: list[SerpHistoryItem]
    next_cursor: str | None = None
    has_more: bool = False
