"""Models layer - SQLAlchemy ORM models.

Models define the database schema and relationships.
All models inherit from the Base class defined in core.database.
"""

from serp_volatility.core.database import Base
from serp_volatility.models.keyword_target import DeviceType, KeywordTarget
from serp_volatility.models.project import Project
from serp_volatility.models.serp_snapshot import (
    AIOverviewStatus,
    SerpSnapshot,
    SnapshotSource,
)

__all__ = [
    "AIOverviewStatus",
    "Base",
    "DeviceType",
    "KeywordTarget",
    "Project",
    "SerpSnapshot",
    "SnapshotSource",
]
