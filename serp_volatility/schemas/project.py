"""Pydantic schemas for Project validation.

Defines request/response models for Project API endpoints with validation rules.
"""

import re

from pydantic import Field, field_validator

from serp_volatility.schemas.common import CamelModel, UtcDatetime

SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")


class ProjectCreate(CamelModel):
    """Schema for creating a new project."""

    name: str = Field(..., min_length=1, max_length=255, description="Project name")
    slug: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Lower-case slug (letters, digits, hyphens)",
    )

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Project name cannot be empty or whitespace only")
        return v

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        if not SLUG_PATTERN.match(v):
            raise ValueError(
                f"Invalid slug '{v}'. Use lower-case letters, digits and single hyphens"
            )
        return v


class ProjectResponse(CamelModel):
    """Schema for project response."""

    id: str = Field(..., description="Project UUID")
    name: str = Field(..., description="Project name")
    slug: str = Field(..., description="Project slug")
    status: str = Field(..., description="Project status")
    created_at: UtcDatetime = Field(..., description="Creation timestamp")
    updated_at: UtcDatetime = Field(..., description="Last update timestamp")


class ProjectListResponse(CamelModel):
    """Schema for paginated project list response."""

    items: list[ProjectResponse] = Field(..., description="List of projects")
    total: int = Field(..., ge=0, description="Total count of projects")
    limit: int = Field(..., ge=1, description="Page size limit")
    offset: int = Field(..., ge=0, description="Offset from start")
