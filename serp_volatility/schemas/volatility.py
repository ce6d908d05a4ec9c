"""Response schemas for volatility reads.

Every response except the ``computedAt`` timestamp is a deterministic
function of the stored snapshots and request parameters.
"""

from pydantic import Field

from serp_volatility.schemas.common import CamelModel, UtcDatetime


class VolatilityComponents(CamelModel):
    rank_volatility_component: float = Field(..., ge=0)
    ai_overview_component: float = Field(..., ge=0)
    feature_volatility_component: float = Field(..., ge=0)


class KeywordVolatilityResponse(VolatilityComponents):
    keyword_target_id: str
    query: str
    locale: str
    device: str
    window_days: int | None
    window_start_at: UtcDatetime | None
    alert_threshold: float
    exceeds_threshold: bool
    sample_size: int
    snapshot_count: int
    average_rank_shift: float
    max_rank_shift: int
    feature_volatility: int
    ai_overview_churn: int
    volatility_score: float = Field(..., ge=0, le=100)
    volatility_regime: str
    maturity: str
    computed_at: UtcDatetime


class UrlAttributionItem(CamelModel):
    url: str
    appearances: int
    total_abs_shift: int
    pairs_both_present: int
    average_shift: float
    first_seen: UtcDatetime | None
    last_seen: UtcDatetime | None


class VolatilityBreakdownResponse(CamelModel):
    keyword_target_id: str
    query: str
    window_days: int | None
    sample_size: int
    snapshot_count: int
    top_n: int
    url_count: int
    urls: list[UrlAttributionItem]
    computed_at: UtcDatetime


class SpikeItem(CamelModel):
    from_snapshot_id: str
    to_snapshot_id: str
    from_captured_at: UtcDatetime
    to_captured_at: UtcDatetime
    pair_volatility_score: float
    pair_rank_shift: float
    pair_max_shift: int
    pair_feature_change_count: int
    ai_flipped: bool


class VolatilitySpikesResponse(CamelModel):
    keyword_target_id: str
    query: str
    window_days: int | None
    sample_size: int
    total_pairs: int
    top_n: int
    spikes: list[SpikeItem]
    computed_at: UtcDatetime


class FeatureTransitionItem(CamelModel):
    from_feature_set: list[str]
    to_feature_set: list[str]
    count: int


class FeatureTransitionsResponse(CamelModel):
    keyword_target_id: str
    query: str
    window_days: int | None
    sample_size: int
    total_transitions: int
    distinct_transition_count: int
    transitions: list[FeatureTransitionItem]
    computed_at: UtcDatetime


class RegimeCounts(CamelModel):
    calm: int = 0
    shifting: int = 0
    unstable: int = 0
    chaotic: int = 0


class MaturityCounts(CamelModel):
    preliminary: int = 0
    developing: int = 0
    stable: int = 0


class RiskKeywordItem(CamelModel):
    keyword_target_id: str
    query: str
    volatility_score: float
    volatility_regime: str
    maturity: str


class VolatilitySummaryResponse(CamelModel):
    project_id: str
    window_days: int | None
    keyword_count: int
    active_keyword_count: int
    average_volatility: float
    max_volatility: float
    high_volatility_count: int
    medium_volatility_count: int
    low_volatility_count: int
    stable_count: int
    regime_counts: RegimeCounts
    maturity_counts: MaturityCounts
    weighted_project_volatility_score: float = Field(..., ge=0)
    volatility_concentration_ratio: float | None = Field(None, ge=0, le=1)
    top3_risk_keywords: list[RiskKeywordItem]
    computed_at: UtcDatetime


class VolatilityAlertItem(VolatilityComponents):
    keyword_target_id: str
    query: str
    locale: str
    device: str
    volatility_score: float
    volatility_regime: str
    maturity: str
    sample_size: int
    alert_threshold: float
    exceeds_threshold: bool = True


class VolatilityAlertsResponse(CamelModel):
    window_days: int | None
    alert_threshold: float
    min_maturity: str
    limit: int
    total_matched: int
    items: list[VolatilityAlertItem]
    next_cursor: str | None = None
    has_more: bool = False
    computed_at: UtcDatetime


class RankEntryItem(CamelModel):
    url: str
    rank: int | None
    title: str | None = None


class MovedEntryItem(CamelModel):
    url: str
    from_rank: int | None
    to_rank: int | None
    rank_delta: int | None
    title: str | None = None


class DeltaSummary(CamelModel):
    entered_count: int
    exited_count: int
    moved_count: int
    improved_count: int
    declined_count: int
    unchanged_count: int


class AIOverviewChange(CamelModel):
    changed: bool
    from_status: str
    to_status: str


class SerpDeltaBody(CamelModel):
    from_snapshot_id: str
    to_snapshot_id: str
    from_captured_at: UtcDatetime
    to_captured_at: UtcDatetime
    entered: list[RankEntryItem]
    exited: list[RankEntryItem]
    moved: list[MovedEntryItem]
    summary: DeltaSummary
    ai_overview: AIOverviewChange
    features_added: list[str]
    features_removed: list[str]
    same_timestamp: bool
    payload_parse_warning: bool


class SerpDeltaResponse(CamelModel):
    keyword_target_id: str
    query: str
    locale: str
    device: str
    insufficient_snapshots: bool
    snapshot_count: int
    delta: SerpDeltaBody | None
    computed_at: UtcDatetime
