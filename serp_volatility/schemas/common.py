"""Shared schema building blocks.

All API payloads use camelCase field names; models accept snake_case
names too so services can construct them directly.
"""

import re
from datetime import datetime
from typing import Annotated, Any, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from serp_volatility.utils.serp_extraction import ensure_utc

T = TypeVar("T")

UUID_PATTERN = (
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-"
    r"[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}$"
)

# Always rendered with an explicit UTC offset
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]

_DIGITS = re.compile(r"[0-9]+")


def _digits_only(value: Any) -> Any:
    if isinstance(value, str) and not _DIGITS.fullmatch(value):
        raise ValueError("must be a whole number written with digits only")
    return value


# Query-string integers: no sign, decimal point or surrounding whitespace
QueryInt = Annotated[int, BeforeValidator(_digits_only)]


class CamelModel(BaseModel):
    """Base model serialised with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DataResponse(BaseModel, Generic[T]):
    """Success envelope: ``{"data": ...}``."""

    data: T


class PaginationMeta(CamelModel):
    limit: int = Field(..., ge=1, description="Page size limit")
    has_more: bool = Field(..., description="Whether another page follows")
    next_cursor: str | None = Field(
        None, description="Cursor for the next page, null on the last page"
    )


class PaginatedResponse(BaseModel, Generic[T]):
    """Envelope for cursor-paginated record lists."""

    data: list[T]
    pagination: PaginationMeta


class ErrorResponse(BaseModel):
    """Error body returned by every endpoint."""

    error: str = Field(..., description="Human-readable message")
    code: str = Field(..., description="Machine-readable error code")
    request_id: str = Field(..., description="Request id for log correlation")
    details: list[dict[str, Any]] | None = Field(
        None, description="Field-level validation errors"
    )
