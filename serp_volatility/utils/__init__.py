"""Pure volatility engine.

Modules here take plain dataclasses and never touch the database, so
every computation is a deterministic function of its inputs.
"""

from serp_volatility.utils.alerts import (
    Alert,
    AlertEvaluator,
    AlertScan,
    ConcentrationAlert,
    RegimeTransitionAlert,
    SpikeAlert,
    TriggerType,
)
from serp_volatility.utils.attribution import AttributionEngine, UrlAttribution
from serp_volatility.utils.cursor import CursorCodec, CursorError, page_after
from serp_volatility.utils.feature_transitions import (
    FeatureTransition,
    TransitionMatrixBuilder,
)
from serp_volatility.utils.project_risk import ProjectRiskAggregator, ProjectRiskSummary
from serp_volatility.utils.serp_delta import SerpDelta, compute_serp_delta
from serp_volatility.utils.serp_extraction import (
    RankedResult,
    SnapshotRecord,
    ensure_utc,
    extract_serp,
)
from serp_volatility.utils.spikes import Spike, SpikeDetector
from serp_volatility.utils.volatility import (
    KeywordAnalysis,
    Maturity,
    PairScore,
    PairScorer,
    VolatilityAggregator,
    VolatilityRegime,
    VolatilityResult,
    analyze_keyword,
    classify_maturity,
    classify_regime,
)
from serp_volatility.utils.windowing import (
    SnapshotPair,
    WindowSelection,
    WindowValidationError,
    select_window,
    validate_window_days,
)

__all__ = [
    # Alerts
    "Alert",
    "AlertEvaluator",
    "AlertScan",
    "ConcentrationAlert",
    "RegimeTransitionAlert",
    "SpikeAlert",
    "TriggerType",
    # Attribution
    "AttributionEngine",
    "UrlAttribution",
    # Cursor
    "CursorCodec",
    "CursorError",
    "page_after",
    # Feature transitions
    "FeatureTransition",
    "TransitionMatrixBuilder",
    # Project risk
    "ProjectRiskAggregator",
    "ProjectRiskSummary",
    # SERP delta
    "SerpDelta",
    "compute_serp_delta",
    # Extraction
    "RankedResult",
    "SnapshotRecord",
    "ensure_utc",
    "extract_serp",
    # Spikes
    "Spike",
    "SpikeDetector",
    # Volatility
    "KeywordAnalysis",
    "Maturity",
    "PairScore",
    "PairScorer",
    "VolatilityAggregator",
    "VolatilityRegime",
    "VolatilityResult",
    "analyze_keyword",
    "classify_maturity",
    "classify_regime",
    # Windowing
    "SnapshotPair",
    "WindowSelection",
    "WindowValidationError",
    "select_window",
    "validate_window_days",
]
