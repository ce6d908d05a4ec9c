"""Spike detection: the most volatile snapshot pairs in a window.

Pairs are ranked by pairVolatilityScore descending. Ties keep capture
order (the sort is stable), so repeated reads return identical lists.
"""

from dataclasses import dataclass, field
from datetime import datetime

from serp_volatility.utils.volatility import PairScore

DEFAULT_SPIKE_TOP_N = 3
MAX_SPIKE_TOP_N = 10


@dataclass(frozen=True)
class Spike:
    from_snapshot_id: str
    to_snapshot_id: str
    from_captured_at: datetime
    to_captured_at: datetime
    pair_volatility_score: float
    pair_rank_shift: float
    pair_max_shift: int
    pair_feature_change_count: int
    ai_flipped: bool

    @classmethod
    def from_pair_score(cls, pair_score: PairScore) -> "Spike":
        pair = pair_score.pair
        return cls(
            from_snapshot_id=pair.previous.id,
            to_snapshot_id=pair.current.id,
            from_captured_at=pair.previous.captured_at,
            to_captured_at=pair.current.captured_at,
            pair_volatility_score=pair_score.pair_volatility_score,
            pair_rank_shift=round(pair_score.average_rank_shift, 4),
            pair_max_shift=pair_score.max_rank_shift,
            pair_feature_change_count=pair_score.feature_change_count,
            ai_flipped=pair_score.ai_flipped,
        )


@dataclass
class SpikeResult:
    spikes: list[Spike] = field(default_factory=list)
    total_pairs: int = 0
    top_n: int = DEFAULT_SPIKE_TOP_N


class SpikeDetector:
    def __init__(self, top_n: int = DEFAULT_SPIKE_TOP_N) -> None:
        if not 1 <= top_n <= MAX_SPIKE_TOP_N:
            raise ValueError(f"top_n must be between 1 and {MAX_SPIKE_TOP_N}")
        self.top_n = top_n

    def detect(self, pair_scores: list[PairScore]) -> SpikeResult:
        ranked = sorted(pair_scores, key=lambda p: -p.pair_volatility_score)
        return SpikeResult(
            spikes=[Spike.from_pair_score(p) for p in ranked[: self.top_n]],
            total_pairs=len(pair_scores),
            top_n=self.top_n,
        )
