"""Schemas for the T1/T2/T3 alert union.

Each trigger kind is its own model with its own required fields; the
``triggerType`` literal discriminates them.
"""

from typing import Annotated, Literal, assert_never

from pydantic import Field

from serp_volatility.schemas.common import CamelModel, UtcDatetime
from serp_volatility.schemas.volatility import RiskKeywordItem
from serp_volatility.utils.alerts import (
    Alert,
    ConcentrationAlert,
    RegimeTransitionAlert,
    SpikeAlert,
)


class RegimeTransitionAlertItem(CamelModel):
    trigger_type: Literal["T1"] = "T1"
    severity: int = Field(..., ge=1, le=5)
    keyword_target_id: str
    query: str
    locale: str
    device: str
    from_regime: str
    to_regime: str
    from_snapshot_id: str
    to_snapshot_id: str
    from_captured_at: UtcDatetime
    to_captured_at: UtcDatetime
    pair_volatility_score: float


class SpikeAlertItem(CamelModel):
    trigger_type: Literal["T2"] = "T2"
    severity: int
    keyword_target_id: str
    query: str
    locale: str
    device: str
    from_snapshot_id: str
    to_snapshot_id: str
    from_captured_at: UtcDatetime
    to_captured_at: UtcDatetime
    pair_volatility_score: float
    threshold: float
    exceedance_margin: float


class ConcentrationAlertItem(CamelModel):
    trigger_type: Literal["T3"] = "T3"
    severity: int
    project_id: str
    volatility_concentration_ratio: float = Field(..., ge=0, le=1)
    threshold: float
    top3_risk_keywords: list[RiskKeywordItem]
    active_keyword_count: int
    captured_at: UtcDatetime


AlertItem = Annotated[
    RegimeTransitionAlertItem | SpikeAlertItem | ConcentrationAlertItem,
    Field(discriminator="trigger_type"),
]


class AlertsResponse(CamelModel):
    project_id: str
    window_days: int
    spike_threshold: float
    concentration_threshold: float
    limit: int
    alert_count: int
    total_alerts: int
    alerts: list[AlertItem]
    computed_at: UtcDatetime


def alert_item_from(alert: Alert) -> AlertItem:
    """Build the response model for one alert; every variant is handled."""
    if isinstance(alert, RegimeTransitionAlert):
        return RegimeTransitionAlertItem(
            severity=alert.severity,
            keyword_target_id=alert.keyword_target_id,
            query=alert.query,
            locale=alert.locale,
            device=alert.device,
            from_regime=alert.from_regime.value,
            to_regime=alert.to_regime.value,
            from_snapshot_id=alert.from_snapshot_id,
            to_snapshot_id=alert.to_snapshot_id,
            from_captured_at=alert.from_captured_at,
            to_captured_at=alert.to_captured_at,
            pair_volatility_score=alert.pair_volatility_score,
        )
    if isinstance(alert, SpikeAlert):
        return SpikeAlertItem(
            severity=alert.severity,
            keyword_target_id=alert.keyword_target_id,
            query=alert.query,
            locale=alert.locale,
            device=alert.device,
            from_snapshot_id=alert.from_snapshot_id,
            to_snapshot_id=alert.to_snapshot_id,
            from_captured_at=alert.from_captured_at,
            to_captured_at=alert.to_captured_at,
            pair_volatility_score=alert.pair_volatility_score,
            threshold=alert.threshold,
            exceedance_margin=alert.exceedance_margin,
        )
    if isinstance(alert, ConcentrationAlert):
        return ConcentrationAlertItem(
            severity=alert.severity,
            project_id=alert.project_id,
            volatility_concentration_ratio=alert.volatility_concentration_ratio,
            threshold=alert.threshold,
            top3_risk_keywords=[
                RiskKeywordItem(
                    keyword_target_id=k.keyword_target_id,
                    query=k.query,
                    volatility_score=k.volatility_score,
                    volatility_regime=k.volatility_regime.value,
                    maturity=k.maturity.value,
                )
                for k in alert.top3_risk_keywords
            ],
            active_keyword_count=alert.active_keyword_count,
            captured_at=alert.captured_at,
        )
    assert_never(alert)
