"""Services layer - Business logic and orchestration.

Services coordinate repositories and the pure volatility engine in
``serp_volatility.utils``. They own validation and the typed errors the
API layer translates into HTTP responses.
"""

from serp_volatility.services.keyword_target import (
    KeywordTargetConflictError,
    KeywordTargetNotFoundError,
    KeywordTargetService,
    KeywordTargetServiceError,
    KeywordTargetValidationError,
)
from serp_volatility.services.project import (
    ProjectNotFoundError,
    ProjectScopeError,
    ProjectService,
    ProjectServiceError,
    ProjectSlugConflictError,
)
from serp_volatility.services.serp_snapshot import (
    SerpSnapshotNotFoundError,
    SerpSnapshotService,
    SerpSnapshotServiceError,
    SerpSnapshotValidationError,
)
from serp_volatility.services.volatility import (
    VolatilityService,
    VolatilityServiceError,
    VolatilityValidationError,
)

__all__ = [
    # Keyword targets
    "KeywordTargetConflictError",
    "KeywordTargetNotFoundError",
    "KeywordTargetService",
    "KeywordTargetServiceError",
    "KeywordTargetValidationError",
    # Projects
    "ProjectNotFoundError",
    "ProjectScopeError",
    "ProjectService",
    "ProjectServiceError",
    "ProjectSlugConflictError",
    # SERP snapshots
    "SerpSnapshotNotFoundError",
    "SerpSnapshotService",
    "SerpSnapshotServiceError",
    "SerpSnapshotValidationError",
    # Volatility
    "VolatilityService",
    "VolatilityServiceError",
    "VolatilityValidationError",
]
