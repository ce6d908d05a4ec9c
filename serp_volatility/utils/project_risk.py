"""Project-level risk aggregation over keyword volatility results.

Reduces every keyword target of a project to summary statistics:
regime and maturity distributions (each always summing to keywordCount),
fixed score bands, a sample-size weighted score, and the concentration
ratio of the three riskiest keywords.

The concentration ratio is null when total volatility is zero; otherwise
``sum(top-3 scores) / sum(all scores)`` in [0, 1].
"""

import time
from dataclasses import dataclass, field
from typing import Any

from serp_volatility.core.config import get_settings
from serp_volatility.core.logging import get_logger
from serp_volatility.utils.volatility import (
    KeywordAnalysis,
    Maturity,
    VolatilityRegime,
)

logger = get_logger("project_risk")

TOP_RISK_KEYWORD_COUNT = 3
CONCENTRATION_DECIMALS = 4

# Fixed score bands
HIGH_VOLATILITY_MIN_SCORE = 60.0
MEDIUM_VOLATILITY_MIN_SCORE = 30.0


@dataclass(frozen=True)
class RiskKeyword:
    keyword_target_id: str
    query: str
    volatility_score: float
    volatility_regime: VolatilityRegime
    maturity: Maturity

    def to_dict(self) -> dict[str, Any]:
        return {
            "keyword_target_id": self.keyword_target_id,
            "query": self.query,
            "volatility_score": self.volatility_score,
            "volatility_regime": self.volatility_regime.value,
            "maturity": self.maturity.value,
        }


@dataclass
class ProjectRiskSummary:
    """Project-wide volatility figures for one window.

    Attributes:
        keyword_count: Keyword targets in the project
        active_keyword_count: Keyword targets with a non-zero score
        average_volatility: Mean score over all keyword targets
        max_volatility: Highest keyword score
        regime_counts: calm/shifting/unstable/chaotic -> count
        maturity_counts: preliminary/developing/stable -> count
        weighted_project_volatility_score: Sample-size weighted mean score
        volatility_concentration_ratio: Top-3 share of total score, or None
        top3_risk_keywords: Up to three highest-scoring active keywords
    """

    keyword_count: int = 0
    active_keyword_count: int = 0
    average_volatility: float = 0.0
    max_volatility: float = 0.0
    high_volatility_count: int = 0
    medium_volatility_count: int = 0
    low_volatility_count: int = 0
    stable_count: int = 0
    regime_counts: dict[str, int] = field(default_factory=dict)
    maturity_counts: dict[str, int] = field(default_factory=dict)
    weighted_project_volatility_score: float = 0.0
    volatility_concentration_ratio: float | None = None
    top3_risk_keywords: list[RiskKeyword] = field(default_factory=list)


def rank_by_risk(keywords: list[KeywordAnalysis]) -> list[KeywordAnalysis]:
    """Order keywords by score descending, then query, then id."""
    return sorted(
        keywords,
        key=lambda k: (-k.result.volatility_score, k.query, k.keyword_target_id),
    )


def concentration_ratio(scores: list[float]) -> float | None:
    total = sum(scores)
    if total <= 0:
        return None
    top = sum(sorted(scores, reverse=True)[:TOP_RISK_KEYWORD_COUNT])
    return round(min(top / total, 1.0), CONCENTRATION_DECIMALS)


class ProjectRiskAggregator:
    """Summarises the volatility of every keyword target in a project."""

    def summarize(
        self, keywords: list[KeywordAnalysis], project_id: str | None = None
    ) -> ProjectRiskSummary:
        start_time = time.monotonic()

        regime_counts = {regime.value: 0 for regime in VolatilityRegime}
        maturity_counts = {maturity.value: 0 for maturity in Maturity}
        summary = ProjectRiskSummary(
            keyword_count=len(keywords),
            regime_counts=regime_counts,
            maturity_counts=maturity_counts,
        )
        if not keywords:
            return summary

        scores = [k.result.volatility_score for k in keywords]
        for keyword in keywords:
            result = keyword.result
            regime_counts[result.regime.value] += 1
            maturity_counts[result.maturity.value] += 1
            score = result.volatility_score
            if score >= HIGH_VOLATILITY_MIN_SCORE:
                summary.high_volatility_count += 1
            elif score >= MEDIUM_VOLATILITY_MIN_SCORE:
                summary.medium_volatility_count += 1
            elif score > 0:
                summary.low_volatility_count += 1
            else:
                summary.stable_count += 1

        active = [k for k in keywords if k.result.volatility_score > 0]
        summary.active_keyword_count = len(active)
        summary.average_volatility = round(sum(scores) / len(scores), 2)
        summary.max_volatility = max(scores)

        total_weight = sum(k.result.sample_size for k in keywords)
        if total_weight > 0:
            weighted = sum(
                k.result.volatility_score * k.result.sample_size for k in keywords
            )
            summary.weighted_project_volatility_score = round(weighted / total_weight, 2)

        summary.volatility_concentration_ratio = concentration_ratio(scores)
        summary.top3_risk_keywords = [
            RiskKeyword(
                keyword_target_id=k.keyword_target_id,
                query=k.query,
                volatility_score=k.result.volatility_score,
                volatility_regime=k.result.regime,
                maturity=k.result.maturity,
            )
            for k in rank_by_risk(active)[:TOP_RISK_KEYWORD_COUNT]
        ]

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > get_settings().volatility_slow_computation_threshold_ms:
            logger.warning(
                "Slow project risk aggregation",
                extra={
                    "project_id": project_id,
                    "keyword_count": len(keywords),
                    "duration_ms": round(duration_ms, 2),
                },
            )
        return summary
