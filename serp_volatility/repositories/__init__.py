"""Repository layer for database operations.

Repositories handle all direct database interactions.
Services call repositories; API endpoints call services.
"""

from serp_volatility.repositories.keyword_target import KeywordTargetRepository
from serp_volatility.repositories.project import ProjectRepository
from serp_volatility.repositories.serp_snapshot import SerpSnapshotRepository

__all__ = [
    "KeywordTargetRepository",
    "ProjectRepository",
    "SerpSnapshotRepository",
]
