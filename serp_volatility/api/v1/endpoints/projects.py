"""Projects API endpoints.

Projects are the tenants every /api/v1/seo request is scoped to:
- GET /api/v1/projects - List projects with pagination
- POST /api/v1/projects - Create a project
- GET /api/v1/projects/{project_id} - Get a project by ID
"""

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.api.deps import (
    conflict_response,
    get_request_id,
    not_found_response,
)
from serp_volatility.core.database import get_session
from serp_volatility.core.logging import get_logger
from serp_volatility.schemas.common import DataResponse, QueryInt
from serp_volatility.schemas.project import (
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
)
from serp_volatility.services.project import (
    ProjectNotFoundError,
    ProjectService,
    ProjectSlugConflictError,
)

logger = get_logger(__name__)

router = APIRouter()


@router.get(
    "",
    response_model=DataResponse[ProjectListResponse],
    summary="List all projects",
    description="Retrieve a paginated list of all projects.",
)
async def list_projects(
    request: Request,
    limit: QueryInt = Query(default=100, ge=1, le=1000, description="Number of results"),
    offset: QueryInt = Query(default=0, ge=0, description="Number of results to skip"),
    session: AsyncSession = Depends(get_session),
) -> DataResponse[ProjectListResponse]:
    """List all projects with pagination."""
    request_id = get_request_id(request)
    logger.info(
        "List projects request",
        extra={"request_id": request_id, "limit": limit, "offset": offset},
    )

    service = ProjectService(session)
    projects, total = await service.list_projects(limit=limit, offset=offset)
    return DataResponse(
        data=ProjectListResponse(
            items=[ProjectResponse.model_validate(p) for p in projects],
            total=total,
            limit=limit,
            offset=offset,
        )
    )


@router.post(
    "",
    response_model=DataResponse[ProjectResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a project",
    description="Create a new project. Slugs are unique.",
    responses={
        409: {
            "description": "Slug already exists",
            "content": {
                "application/json": {
                    "example": {
                        "error": "Project slug already exists: acme",
                        "code": "CONFLICT",
                        "request_id": "<request_id>",
                    }
                }
            },
        },
    },
)
async def create_project(
    request: Request,
    data: ProjectCreate,
    session: AsyncSession = Depends(get_session),
) -> DataResponse[ProjectResponse] | JSONResponse:
    """Create a new project."""
    request_id = get_request_id(request)
    logger.info(
        "Create project request",
        extra={"request_id": request_id, "slug": data.slug},
    )

    service = ProjectService(session)
    try:
        project = await service.create_project(data)
    except ProjectSlugConflictError as e:
        return conflict_response(request_id, e, slug=e.slug)

    logger.info(
        "Project created successfully",
        extra={"request_id": request_id, "project_id": project.id},
    )
    return DataResponse(data=ProjectResponse.model_validate(project))


@router.get(
    "/{project_id}",
    response_model=DataResponse[ProjectResponse],
    summary="Get a project",
    description="Retrieve a project by its ID.",
    responses={
        404: {
            "description": "Project not found",
            "content": {
                "application/json": {
                    "example": {
                        "error": "Project not found: <uuid>",
                        "code": "NOT_FOUND",
                        "request_id": "<request_id>",
                    }
                }
            },
        },
    },
)
async def get_project(
    request: Request,
    project_id: str,
    session: AsyncSession = Depends(get_session),
) -> DataResponse[ProjectResponse] | JSONResponse:
    """Get a project by ID."""
    request_id = get_request_id(request)
    logger.debug(
        "Get project request",
        extra={"request_id": request_id, "project_id": project_id},
    )

    service = ProjectService(session)
    try:
        project = await service.get_project(project_id)
    except ProjectNotFoundError as e:
        return not_found_response(request_id, e, project_id=project_id)

    return DataResponse(data=ProjectResponse.model_validate(project))
