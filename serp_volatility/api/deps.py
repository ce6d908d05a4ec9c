"""Shared endpoint dependencies and error responses.

Every endpoint returns errors in one shape:
    {"error": str, "code": str, "request_id": str}
4xx responses are logged at WARNING with the offending field and value.
"""

from typing import Any

from fastapi import Depends, Header, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.database import get_session
from serp_volatility.core.logging import get_logger
from serp_volatility.services.project import ProjectService

logger = get_logger(__name__)

# Example bodies for OpenAPI ``responses=``
VALIDATION_ERROR_RESPONSE: dict[int | str, dict[str, Any]] = {
    400: {
        "description": "Validation error",
        "content": {
            "application/json": {
                "example": {
                    "error": "Validation failed for 'field': message",
                    "code": "VALIDATION_ERROR",
                    "request_id": "<request_id>",
                }
            }
        },
    },
}

NOT_FOUND_RESPONSE: dict[int | str, dict[str, Any]] = {
    404: {
        "description": "Keyword target not found",
        "content": {
            "application/json": {
                "example": {
                    "error": "KeywordTarget not found",
                    "code": "NOT_FOUND",
                    "request_id": "<request_id>",
                }
            }
        },
    },
}


def get_request_id(request: Request) -> str:
    """Get request_id from request state."""
    return getattr(request.state, "request_id", "unknown")


async def get_project_scope(
    x_project_id: str | None = Header(default=None, alias="X-Project-Id"),
    x_project_slug: str | None = Header(default=None, alias="X-Project-Slug"),
    session: AsyncSession = Depends(get_session),
) -> str:
    """Resolve the caller's project id from request headers.

    Raises ProjectScopeError, which the application maps to 400.
    """
    service = ProjectService(session)
    return await service.resolve_project_id(x_project_id, x_project_slug)


def error_response(
    status_code: int, code: str, message: str, request_id: str
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "code": code,
            "request_id": request_id,
        },
    )


def validation_error_response(
    request_id: str, error: Any, **context: Any
) -> JSONResponse:
    """400 for a service validation error carrying field/value/message."""
    logger.warning(
        "Request validation error",
        extra={
            "request_id": request_id,
            "field": error.field,
            "value": str(error.value)[:100] if error.value is not None else None,
            "reason": error.message,
            **context,
        },
    )
    return error_response(
        status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", str(error), request_id
    )


def not_found_response(request_id: str, error: Exception, **context: Any) -> JSONResponse:
    logger.warning(
        "Resource not found",
        extra={"request_id": request_id, **context},
    )
    return error_response(status.HTTP_404_NOT_FOUND, "NOT_FOUND", str(error), request_id)


def conflict_response(request_id: str, error: Exception, **context: Any) -> JSONResponse:
    logger.warning(
        "Resource conflict",
        extra={"request_id": request_id, **context},
    )
    return error_response(status.HTTP_409_CONFLICT, "CONFLICT", str(error), request_id)
