"""Pydantic schemas for KeywordTarget ingest and listing."""

import re

from pydantic import Field, field_validator

from serp_volatility.schemas.common import CamelModel, UtcDatetime

VALID_DEVICES = frozenset({"desktop", "mobile"})

LOCALE_PATTERN = re.compile(r"^[a-z]{2}(-[A-Z]{2})?$")

_WHITESPACE = re.compile(r"\s+")


def normalize_query(value: str) -> str:
    """Trim, collapse internal whitespace and lower-case a query."""
    return _WHITESPACE.sub(" ", value.strip()).lower()


class KeywordTargetCreate(CamelModel):
    """Schema for registering a keyword target."""

    query: str = Field(..., min_length=1, max_length=500, description="Search query")
    locale: str = Field(..., description="Locale code, e.g. 'en-US'")
    device: str = Field(..., description="Device class: desktop or mobile")
    is_primary: bool = Field(default=False, description="Primary keyword flag")
    intent: str | None = Field(None, max_length=50, description="Search intent label")
    notes: str | None = Field(None, max_length=5000, description="Free-form notes")

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


class KeywordTargetResponse(CamelModel):
    id: str = Field(..., description="Keyword target UUID")
    project_id: str = Field(..., description="Project UUID")
    query: str
    locale: str
    device: str
    is_primary: bool
    intent: str | None = None
    notes: str | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime
