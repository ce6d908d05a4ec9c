"""API v1 router and endpoint organization."""

from fastapi import APIRouter

from serp_volatility.api.v1.endpoints import (
    keyword_targets,
    project_volatility,
    projects,
    serp_snapshots,
    volatility,
)

router = APIRouter(tags=["v1"])

# Include domain-specific routers
router.include_router(projects.router, prefix="/projects", tags=["Projects"])
router.include_router(
    keyword_targets.router,
    prefix="/seo/keyword-targets",
    tags=["Keyword Targets"],
)
router.include_router(
    volatility.router,
    prefix="/seo/keyword-targets",
    tags=["Keyword Volatility"],
)
router.include_router(serp_snapshots.router, prefix="/seo", tags=["SERP Snapshots"])
router.include_router(
    project_volatility.router,
    prefix="/seo",
    tags=["Project Volatility"],
)
