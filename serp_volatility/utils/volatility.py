"""Pair scoring and keyword-level volatility aggregation.

Each snapshot pair is scored from three normalised sub-signals:

- Rank shift: per-URL ``|rankB - rankA|`` for URLs ranked in both
  snapshots. A URL ranked in only one snapshot (entered or exited) shifts
  by ``(depth + 1) - rank`` where depth is the deepest rank in the pair.
  Average shift is capped at 20 and max shift at 50 before normalising.
- AI overview flip: 1 when the AI overview status differs, else 0.
- Feature change: size of the symmetric difference of the feature sets,
  capped at 5.

pairVolatilityScore = 100 * (0.40 avg + 0.25 max + 0.20 flip + 0.15 feature)

The reported components are those same weighted contributions (rank =
avg + max), so they always add up to the score. A keyword's score and
components are the means over all pairs in the window.

Regimes (lower bound exclusive except at zero):
    [0, 20] calm, (20, 50] shifting, (50, 75] unstable, (75, 100] chaotic

Maturity by sample size:
    0-4 preliminary, 5-19 developing, 20+ stable
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from serp_volatility.core.logging import get_logger
from serp_volatility.utils.windowing import SnapshotPair, WindowSelection

logger = get_logger("volatility")

# Normalisation caps
AVERAGE_SHIFT_CAP = 20.0
MAX_SHIFT_CAP = 50.0
FEATURE_CHANGE_CAP = 5.0

# Weights (sum to 1.0)
WEIGHT_AVERAGE_SHIFT = 0.40
WEIGHT_MAX_SHIFT = 0.25
WEIGHT_AI_FLIP = 0.20
WEIGHT_FEATURE_CHANGE = 0.15

SCORE_SCALE = 100.0
SCORE_DECIMALS = 2
COMPONENT_DECIMALS = 4
AVERAGE_SHIFT_DECIMALS = 4

# Regime upper bounds (inclusive)
CALM_MAX_SCORE = 20.0
SHIFTING_MAX_SCORE = 50.0
UNSTABLE_MAX_SCORE = 75.0

# Maturity lower bounds on sample size
DEVELOPING_MIN_SAMPLE_SIZE = 5
STABLE_MIN_SAMPLE_SIZE = 20


class VolatilityRegime(str, Enum):
    """Qualitative volatility tier derived from a score."""

    CALM = "calm"
    SHIFTING = "shifting"
    UNSTABLE = "unstable"
    CHAOTIC = "chaotic"


class Maturity(str, Enum):
    """Confidence tier derived from sample size."""

    PRELIMINARY = "preliminary"
    DEVELOPING = "developing"
    STABLE = "stable"


REGIME_ORDER: dict[VolatilityRegime, int] = {
    VolatilityRegime.CALM: 0,
    VolatilityRegime.SHIFTING: 1,
    VolatilityRegime.UNSTABLE: 2,
    VolatilityRegime.CHAOTIC: 3,
}

MATURITY_ORDER: dict[Maturity, int] = {
    Maturity.PRELIMINARY: 0,
    Maturity.DEVELOPING: 1,
    Maturity.STABLE: 2,
}

VALID_MATURITIES = frozenset(m.value for m in Maturity)


def classify_regime(score: float) -> VolatilityRegime:
    if score <= CALM_MAX_SCORE:
        return VolatilityRegime.CALM
    if score <= SHIFTING_MAX_SCORE:
        return VolatilityRegime.SHIFTING
    if score <= UNSTABLE_MAX_SCORE:
        return VolatilityRegime.UNSTABLE
    return VolatilityRegime.CHAOTIC


def classify_maturity(sample_size: int) -> Maturity:
    if sample_size >= STABLE_MIN_SAMPLE_SIZE:
        return Maturity.STABLE
    if sample_size >= DEVELOPING_MIN_SAMPLE_SIZE:
        return Maturity.DEVELOPING
    return Maturity.PRELIMINARY


@dataclass(frozen=True)
class PairScore:
    """Scored snapshot pair.

    Component fields hold unrounded contributions on the 0-100 scale;
    rounded views are exposed as properties.
    """

    pair: SnapshotPair
    average_rank_shift: float
    max_rank_shift: int
    feature_change_count: int
    ai_flipped: bool
    rank_component_raw: float
    ai_component_raw: float
    feature_component_raw: float

    @property
    def score_raw(self) -> float:
        return self.rank_component_raw + self.ai_component_raw + self.feature_component_raw

    @property
    def pair_volatility_score(self) -> float:
        return round(self.score_raw, SCORE_DECIMALS)

    @property
    def rank_volatility_component(self) -> float:
        return round(self.rank_component_raw, COMPONENT_DECIMALS)

    @property
    def ai_overview_component(self) -> float:
        return round(self.ai_component_raw, COMPONENT_DECIMALS)

    @property
    def feature_volatility_component(self) -> float:
        return round(self.feature_component_raw, COMPONENT_DECIMALS)

    @property
    def regime(self) -> VolatilityRegime:
        return classify_regime(self.pair_volatility_score)


class PairScorer:
    """Scores one snapshot pair."""

    def rank_shifts(self, pair: SnapshotPair) -> list[int]:
        """Per-URL absolute shifts, entered/exited URLs included."""
        before = pair.previous.rank_map
        after = pair.current.rank_map
        if not before and not after:
            return []

        depth = max([*before.values(), *after.values()])
        drop_out_rank = depth + 1

        shifts: list[int] = []
        for url, rank in before.items():
            if url in after:
                shifts.append(abs(after[url] - rank))
            else:
                shifts.append(drop_out_rank - rank)
        for url, rank in after.items():
            if url not in before:
                shifts.append(drop_out_rank - rank)
        return shifts

    def score(self, pair: SnapshotPair) -> PairScore:
        shifts = self.rank_shifts(pair)
        average_shift = sum(shifts) / len(shifts) if shifts else 0.0
        max_shift = max(shifts) if shifts else 0

        feature_changes = len(
            set(pair.previous.features).symmetric_difference(pair.current.features)
        )
        ai_flipped = pair.previous.ai_overview_status != pair.current.ai_overview_status

        rank_component = SCORE_SCALE * (
            WEIGHT_AVERAGE_SHIFT * min(average_shift, AVERAGE_SHIFT_CAP) / AVERAGE_SHIFT_CAP
            + WEIGHT_MAX_SHIFT * min(max_shift, MAX_SHIFT_CAP) / MAX_SHIFT_CAP
        )
        ai_component = SCORE_SCALE * WEIGHT_AI_FLIP * (1.0 if ai_flipped else 0.0)
        feature_component = (
            SCORE_SCALE
            * WEIGHT_FEATURE_CHANGE
            * min(feature_changes, FEATURE_CHANGE_CAP)
            / FEATURE_CHANGE_CAP
        )

        return PairScore(
            pair=pair,
            average_rank_shift=average_shift,
            max_rank_shift=max_shift,
            feature_change_count=feature_changes,
            ai_flipped=ai_flipped,
            rank_component_raw=rank_component,
            ai_component_raw=ai_component,
            feature_component_raw=feature_component,
        )

    def score_all(self, pairs: list[SnapshotPair]) -> list[PairScore]:
        return [self.score(pair) for pair in pairs]


@dataclass(frozen=True)
class VolatilityResult:
    """Keyword-level volatility over one window."""

    sample_size: int
    snapshot_count: int
    volatility_score: float
    rank_volatility_component: float
    ai_overview_component: float
    feature_volatility_component: float
    average_rank_shift: float
    max_rank_shift: int
    feature_volatility: int
    ai_overview_churn: int
    regime: VolatilityRegime
    maturity: Maturity

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "sample_size": self.sample_size,
            "snapshot_count": self.snapshot_count,
            "volatility_score": self.volatility_score,
            "rank_volatility_component": self.rank_volatility_component,
            "ai_overview_component": self.ai_overview_component,
            "feature_volatility_component": self.feature_volatility_component,
            "average_rank_shift": self.average_rank_shift,
            "max_rank_shift": self.max_rank_shift,
            "feature_volatility": self.feature_volatility,
            "ai_overview_churn": self.ai_overview_churn,
            "volatility_regime": self.regime.value,
            "maturity": self.maturity.value,
        }


class VolatilityAggregator:
    """Reduces the pair scores of one window to a VolatilityResult."""

    def aggregate(
        self, pair_scores: list[PairScore], snapshot_count: int
    ) -> VolatilityResult:
        sample_size = len(pair_scores)
        if sample_size == 0:
            return VolatilityResult(
                sample_size=0,
                snapshot_count=snapshot_count,
                volatility_score=0.0,
                rank_volatility_component=0.0,
                ai_overview_component=0.0,
                feature_volatility_component=0.0,
                average_rank_shift=0.0,
                max_rank_shift=0,
                feature_volatility=0,
                ai_overview_churn=0,
                regime=VolatilityRegime.CALM,
                maturity=Maturity.PRELIMINARY,
            )

        rank_mean = sum(p.rank_component_raw for p in pair_scores) / sample_size
        ai_mean = sum(p.ai_component_raw for p in pair_scores) / sample_size
        feature_mean = sum(p.feature_component_raw for p in pair_scores) / sample_size
        score = round(rank_mean + ai_mean + feature_mean, SCORE_DECIMALS)

        return VolatilityResult(
            sample_size=sample_size,
            snapshot_count=snapshot_count,
            volatility_score=score,
            rank_volatility_component=round(rank_mean, COMPONENT_DECIMALS),
            ai_overview_component=round(ai_mean, COMPONENT_DECIMALS),
            feature_volatility_component=round(feature_mean, COMPONENT_DECIMALS),
            average_rank_shift=round(
                sum(p.average_rank_shift for p in pair_scores) / sample_size,
                AVERAGE_SHIFT_DECIMALS,
            ),
            max_rank_shift=max(p.max_rank_shift for p in pair_scores),
            feature_volatility=sum(p.feature_change_count for p in pair_scores),
            ai_overview_churn=sum(1 for p in pair_scores if p.ai_flipped),
            regime=classify_regime(score),
            maturity=classify_maturity(sample_size),
        )


@dataclass
class KeywordAnalysis:
    """Everything computed for one keyword target over one window."""

    keyword_target_id: str
    query: str
    locale: str
    device: str
    selection: WindowSelection
    pair_scores: list[PairScore]
    result: VolatilityResult


def analyze_keyword(
    keyword_target_id: str,
    query: str,
    locale: str,
    device: str,
    selection: WindowSelection,
    scorer: PairScorer | None = None,
    aggregator: VolatilityAggregator | None = None,
) -> KeywordAnalysis:
    """Score every pair of a window and aggregate the keyword result."""
    scorer = scorer or PairScorer()
    aggregator = aggregator or VolatilityAggregator()
    pair_scores = scorer.score_all(selection.pairs)
    result = aggregator.aggregate(pair_scores, snapshot_count=selection.snapshot_count)
    logger.debug(
        "Keyword volatility aggregated",
        extra={
            "keyword_target_id": keyword_target_id,
            "window_days": selection.window_days,
            "sample_size": result.sample_size,
            "volatility_score": result.volatility_score,
        },
    )
    return KeywordAnalysis(
        keyword_target_id=keyword_target_id,
        query=query,
        locale=locale,
        device=device,
        selection=selection,
        pair_scores=pair_scores,
        result=result,
    )
