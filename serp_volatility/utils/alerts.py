"""Compute-on-read alert evaluation for a project.

Three trigger kinds form a closed union:

- T1 regime transition: the regime of a keyword's last pair differs from
  the regime of the pair before it (needs at least three snapshots).
- T2 spike: a pair's score is strictly above the spike threshold.
- T3 concentration risk: the project's concentration ratio is strictly
  above the concentration threshold (never when the ratio is null).

Severity ranks T3 (7) above T2 (6) above T1 (1-5, by how far the regime
escalated). Alerts sort by severity desc, timestamp desc, trigger type,
keyword target id (project-level last), then to-snapshot id desc.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import assert_never

from serp_volatility.core.logging import get_logger, volatility_logger
from serp_volatility.utils.project_risk import ProjectRiskAggregator, RiskKeyword
from serp_volatility.utils.volatility import (
    REGIME_ORDER,
    KeywordAnalysis,
    VolatilityRegime,
)

logger = get_logger("alerts")

DEFAULT_SPIKE_THRESHOLD = 75.0
DEFAULT_CONCENTRATION_THRESHOLD = 0.80
DEFAULT_ALERT_LIMIT = 100
MAX_ALERT_LIMIT = 200

SPIKE_SEVERITY = 6
CONCENTRATION_SEVERITY = 7
DEESCALATION_SEVERITY = 1

# Minimum windowed snapshots for a regime comparison (two pairs)
MIN_SNAPSHOTS_FOR_TRANSITION = 3

_ESCALATION_SEVERITY: dict[tuple[VolatilityRegime, VolatilityRegime], int] = {
    (VolatilityRegime.CALM, VolatilityRegime.SHIFTING): 2,
    (VolatilityRegime.SHIFTING, VolatilityRegime.UNSTABLE): 3,
    (VolatilityRegime.CALM, VolatilityRegime.UNSTABLE): 4,
    (VolatilityRegime.UNSTABLE, VolatilityRegime.CHAOTIC): 4,
    (VolatilityRegime.SHIFTING, VolatilityRegime.CHAOTIC): 5,
    (VolatilityRegime.CALM, VolatilityRegime.CHAOTIC): 5,
}


class TriggerType(str, Enum):
    REGIME_TRANSITION = "T1"
    SPIKE = "T2"
    CONCENTRATION = "T3"


def regime_transition_severity(
    from_regime: VolatilityRegime, to_regime: VolatilityRegime
) -> int:
    if REGIME_ORDER[to_regime] <= REGIME_ORDER[from_regime]:
        return DEESCALATION_SEVERITY
    return _ESCALATION_SEVERITY[(from_regime, to_regime)]


@dataclass(frozen=True)
class RegimeTransitionAlert:
    keyword_target_id: str
    query: str
    locale: str
    device: str
    from_regime: VolatilityRegime
    to_regime: VolatilityRegime
    from_snapshot_id: str
    to_snapshot_id: str
    from_captured_at: datetime
    to_captured_at: datetime
    pair_volatility_score: float
    severity: int
    trigger_type: TriggerType = TriggerType.REGIME_TRANSITION


@dataclass(frozen=True)
class SpikeAlert:
    keyword_target_id: str
    query: str
    locale: str
    device: str
    from_snapshot_id: str
    to_snapshot_id: str
    from_captured_at: datetime
    to_captured_at: datetime
    pair_volatility_score: float
    threshold: float
    exceedance_margin: float
    severity: int = SPIKE_SEVERITY
    trigger_type: TriggerType = TriggerType.SPIKE


@dataclass(frozen=True)
class ConcentrationAlert:
    project_id: str
    volatility_concentration_ratio: float
    threshold: float
    top3_risk_keywords: tuple[RiskKeyword, ...]
    active_keyword_count: int
    captured_at: datetime
    severity: int = CONCENTRATION_SEVERITY
    trigger_type: TriggerType = TriggerType.CONCENTRATION


Alert = RegimeTransitionAlert | SpikeAlert | ConcentrationAlert


def alert_timestamp(alert: Alert) -> datetime:
    if isinstance(alert, RegimeTransitionAlert | SpikeAlert):
        return alert.to_captured_at
    if isinstance(alert, ConcentrationAlert):
        return alert.captured_at
    assert_never(alert)


def alert_keyword_target_id(alert: Alert) -> str | None:
    if isinstance(alert, RegimeTransitionAlert | SpikeAlert):
        return alert.keyword_target_id
    if isinstance(alert, ConcentrationAlert):
        return None
    assert_never(alert)


def alert_to_snapshot_id(alert: Alert) -> str | None:
    if isinstance(alert, RegimeTransitionAlert | SpikeAlert):
        return alert.to_snapshot_id
    if isinstance(alert, ConcentrationAlert):
        return None
    assert_never(alert)


def sort_alerts(alerts: list[Alert]) -> list[Alert]:
    """Deterministic alert order.

    Applied as successive stable sorts from the least significant key up.
    """
    ordered = sorted(alerts, key=lambda a: alert_to_snapshot_id(a) or "", reverse=True)
    ordered.sort(
        key=lambda a: (
            alert_keyword_target_id(a) is None,
            alert_keyword_target_id(a) or "",
        )
    )
    ordered.sort(key=lambda a: a.trigger_type.value)
    ordered.sort(key=alert_timestamp, reverse=True)
    ordered.sort(key=lambda a: a.severity, reverse=True)
    return ordered


@dataclass
class AlertScan:
    alerts: list[Alert] = field(default_factory=list)
    total_alerts: int = 0

    @property
    def alert_count(self) -> int:
        return len(self.alerts)


class AlertEvaluator:
    """Scans a project's keyword windows for T1/T2/T3 conditions."""

    def __init__(
        self,
        spike_threshold: float = DEFAULT_SPIKE_THRESHOLD,
        concentration_threshold: float = DEFAULT_CONCENTRATION_THRESHOLD,
    ) -> None:
        if not 0.0 <= spike_threshold <= 100.0:
            raise ValueError("spike_threshold must be between 0 and 100")
        if not 0.0 <= concentration_threshold <= 1.0:
            raise ValueError("concentration_threshold must be between 0 and 1")
        self.spike_threshold = spike_threshold
        self.concentration_threshold = concentration_threshold
        self._risk_aggregator = ProjectRiskAggregator()

    def regime_transition(self, keyword: KeywordAnalysis) -> RegimeTransitionAlert | None:
        if keyword.selection.snapshot_count < MIN_SNAPSHOTS_FOR_TRANSITION:
            return None
        previous, last = keyword.pair_scores[-2], keyword.pair_scores[-1]
        from_regime, to_regime = previous.regime, last.regime
        if from_regime == to_regime:
            return None
        return RegimeTransitionAlert(
            keyword_target_id=keyword.keyword_target_id,
            query=keyword.query,
            locale=keyword.locale,
            device=keyword.device,
            from_regime=from_regime,
            to_regime=to_regime,
            from_snapshot_id=last.pair.previous.id,
            to_snapshot_id=last.pair.current.id,
            from_captured_at=last.pair.previous.captured_at,
            to_captured_at=last.pair.current.captured_at,
            pair_volatility_score=last.pair_volatility_score,
            severity=regime_transition_severity(from_regime, to_regime),
        )

    def spikes(self, keyword: KeywordAnalysis) -> list[SpikeAlert]:
        alerts: list[SpikeAlert] = []
        seen: set[tuple[str, str, float]] = set()
        for pair_score in keyword.pair_scores:
            score = pair_score.pair_volatility_score
            if score <= self.spike_threshold:
                continue
            dedupe_key = (
                keyword.keyword_target_id,
                pair_score.pair.current.id,
                self.spike_threshold,
            )
            if dedupe_key in seen:
                continue
            seen.add(dedupe_key)
            alerts.append(
                SpikeAlert(
                    keyword_target_id=keyword.keyword_target_id,
                    query=keyword.query,
                    locale=keyword.locale,
                    device=keyword.device,
                    from_snapshot_id=pair_score.pair.previous.id,
                    to_snapshot_id=pair_score.pair.current.id,
                    from_captured_at=pair_score.pair.previous.captured_at,
                    to_captured_at=pair_score.pair.current.captured_at,
                    pair_volatility_score=score,
                    threshold=self.spike_threshold,
                    exceedance_margin=round(score - self.spike_threshold, 2),
                )
            )
        return alerts

    def concentration(
        self, project_id: str, keywords: list[KeywordAnalysis]
    ) -> ConcentrationAlert | None:
        summary = self._risk_aggregator.summarize(keywords, project_id=project_id)
        ratio = summary.volatility_concentration_ratio
        if ratio is None or ratio <= self.concentration_threshold:
            return None

        latest = [
            k.selection.latest_captured_at
            for k in keywords
            if k.selection.latest_captured_at is not None
        ]
        if not latest:
            return None
        return ConcentrationAlert(
            project_id=project_id,
            volatility_concentration_ratio=ratio,
            threshold=self.concentration_threshold,
            top3_risk_keywords=tuple(summary.top3_risk_keywords),
            active_keyword_count=summary.active_keyword_count,
            captured_at=max(latest),
        )

    def evaluate(
        self,
        project_id: str,
        keywords: list[KeywordAnalysis],
        limit: int = DEFAULT_ALERT_LIMIT,
        window_days: int = 0,
    ) -> AlertScan:
        """Evaluate every trigger over a project's keyword windows.

        Args:
            project_id: Tenant being scanned
            keywords: Analysed windows for every keyword target
            limit: Maximum alerts returned (after sorting)
            window_days: Window length, for logging only

        Returns:
            AlertScan with the sorted, capped alerts and the uncapped total
        """
        start_time = time.monotonic()
        alerts: list[Alert] = []
        for keyword in keywords:
            transition = self.regime_transition(keyword)
            if transition is not None:
                alerts.append(transition)
            alerts.extend(self.spikes(keyword))

        concentration = self.concentration(project_id, keywords)
        if concentration is not None:
            alerts.append(concentration)

        ordered = sort_alerts(alerts)

        counts: dict[str, int] = {t.value: 0 for t in TriggerType}
        for alert in ordered:
            counts[alert.trigger_type.value] += 1
        volatility_logger.alert_scan(
            project_id=project_id,
            window_days=window_days,
            keyword_count=len(keywords),
            counts_by_trigger=counts,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        return AlertScan(alerts=ordered[:limit], total_alerts=len(ordered))
