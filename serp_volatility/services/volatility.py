"""VolatilityService: compute-on-read volatility for keywords and projects.

Every operation loads snapshots through the repositories, reduces them to
SnapshotRecords and hands them to the pure engine in
``serp_volatility.utils``. Nothing computed here is persisted. The request
time is fixed once per call, so all windows in one response agree and the
only field that varies between identical calls is ``computedAt``.
"""

import time
from collections import defaultdict
from datetime import UTC, datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.logging import get_logger, volatility_logger
from serp_volatility.models.keyword_target import KeywordTarget
from serp_volatility.repositories.serp_snapshot import SerpSnapshotRepository
from serp_volatility.schemas.alerts import AlertsResponse, alert_item_from
from serp_volatility.schemas.volatility import (
    FeatureTransitionItem,
    FeatureTransitionsResponse,
    KeywordVolatilityResponse,
    MaturityCounts,
    RegimeCounts,
    RiskKeywordItem,
    SpikeItem,
    UrlAttributionItem,
    VolatilityAlertItem,
    VolatilityAlertsResponse,
    VolatilityBreakdownResponse,
    VolatilitySpikesResponse,
    VolatilitySummaryResponse,
)
from serp_volatility.services.keyword_target import KeywordTargetService
from serp_volatility.services.serp_snapshot import to_record
from serp_volatility.utils.alerts import (
    DEFAULT_ALERT_LIMIT,
    DEFAULT_CONCENTRATION_THRESHOLD,
    DEFAULT_SPIKE_THRESHOLD,
    AlertEvaluator,
)
from serp_volatility.utils.attribution import (
    DEFAULT_ATTRIBUTION_TOP_N,
    AttributionEngine,
)
from serp_volatility.utils.cursor import (
    VOLATILITY_ALERTS_CURSOR,
    CursorError,
    page_after,
)
from serp_volatility.utils.feature_transitions import TransitionMatrixBuilder
from serp_volatility.utils.project_risk import ProjectRiskAggregator
from serp_volatility.utils.serp_extraction import SnapshotRecord
from serp_volatility.utils.spikes import DEFAULT_SPIKE_TOP_N, SpikeDetector
from serp_volatility.utils.volatility import (
    MATURITY_ORDER,
    VALID_MATURITIES,
    KeywordAnalysis,
    Maturity,
    analyze_keyword,
)
from serp_volatility.utils.windowing import (
    MAX_ALERT_WINDOW_DAYS,
    MAX_WINDOW_DAYS,
    WindowValidationError,
    select_window,
    validate_window_days,
    window_start,
)

logger = get_logger(__name__)

DEFAULT_ALERT_THRESHOLD = 60.0
DEFAULT_MIN_MATURITY = Maturity.DEVELOPING.value
DEFAULT_VOLATILITY_ALERTS_LIMIT = 20
MAX_VOLATILITY_ALERTS_LIMIT = 50


class VolatilityServiceError(Exception):
    """Base exception for VolatilityService errors."""

    pass


class VolatilityValidationError(VolatilityServiceError):
    """Raised when a volatility request parameter is invalid."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for '{field}': {message}")


def _alerts_sort_key(keyword: KeywordAnalysis) -> tuple[float, str, str]:
    return (-keyword.result.volatility_score, keyword.query, keyword.keyword_target_id)


class VolatilityService:
    """Volatility reads for one keyword target or a whole project."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.targets = KeywordTargetService(session)
        self.snapshots = SerpSnapshotRepository(session)

    @staticmethod
    def _validate_window(
        window_days: Any, max_days: int = MAX_WINDOW_DAYS, required: bool = False
    ) -> int | None:
        try:
            return validate_window_days(window_days, max_days=max_days, required=required)
        except WindowValidationError as e:
            raise VolatilityValidationError(e.field, e.value, e.message) from e

    async def _analyze_target(
        self,
        project_id: str,
        keyword_target_id: str,
        window_days: int | None,
        now: datetime,
    ) -> KeywordAnalysis:
        target = await self.targets.get_target(project_id, keyword_target_id)
        snapshots = await self.snapshots.list_for_target(
            project_id,
            target.query,
            target.locale,
            target.device,
            since=window_start(now, window_days),
        )
        selection = select_window([to_record(s) for s in snapshots], window_days, now)
        return analyze_keyword(
            keyword_target_id=target.id,
            query=target.query,
            locale=target.locale,
            device=target.device,
            selection=selection,
        )

    async def _analyze_project(
        self, project_id: str, window_days: int | None, now: datetime
    ) -> list[KeywordAnalysis]:
        """Analyse every keyword target of a project over one window."""
        targets: list[KeywordTarget] = await self.targets.list_project_targets(project_id)
        snapshots = await self.snapshots.list_for_project(
            project_id, since=window_start(now, window_days)
        )

        by_natural_key: dict[tuple[str, str, str], list[SnapshotRecord]] = defaultdict(list)
        for snapshot in snapshots:
            by_natural_key[(snapshot.query, snapshot.locale, snapshot.device)].append(
                to_record(snapshot)
            )

        return [
            analyze_keyword(
                keyword_target_id=target.id,
                query=target.query,
                locale=target.locale,
                device=target.device,
                selection=select_window(
                    by_natural_key.get((target.query, target.locale, target.device), []),
                    window_days,
                    now,
                ),
            )
            for target in targets
        ]

    async def get_keyword_volatility(
        self,
        project_id: str,
        keyword_target_id: str,
        window_days: int | None = None,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
    ) -> KeywordVolatilityResponse:
        """Score, components, regime and maturity for one keyword target."""
        start_time = time.monotonic()
        now = datetime.now(UTC)
        window_days = self._validate_window(window_days)

        analysis = await self._analyze_target(project_id, keyword_target_id, window_days, now)
        result = analysis.result

        volatility_logger.computation_completed(
            operation="keyword_volatility",
            keyword_target_id=analysis.keyword_target_id,
            window_days=window_days,
            sample_size=result.sample_size,
            duration_ms=(time.monotonic() - start_time) * 1000,
            score=result.volatility_score,
        )
        return KeywordVolatilityResponse(
            keyword_target_id=analysis.keyword_target_id,
            query=analysis.query,
            locale=analysis.locale,
            device=analysis.device,
            window_days=window_days,
            window_start_at=analysis.selection.window_start,
            alert_threshold=alert_threshold,
            exceeds_threshold=(
                result.sample_size > 0 and result.volatility_score >= alert_threshold
            ),
            computed_at=now,
            **result.to_dict(),
        )

    async def get_breakdown(
        self,
        project_id: str,
        keyword_target_id: str,
        window_days: int | None = None,
        top_n: int = DEFAULT_ATTRIBUTION_TOP_N,
    ) -> VolatilityBreakdownResponse:
        """Per-URL attribution of rank movement."""
        start_time = time.monotonic()
        now = datetime.now(UTC)
        window_days = self._validate_window(window_days)
        try:
            engine = AttributionEngine(top_n=top_n)
        except ValueError as e:
            raise VolatilityValidationError("topN", top_n, str(e)) from e

        analysis = await self._analyze_target(project_id, keyword_target_id, window_days, now)
        attribution = engine.attribute(analysis.selection)

        volatility_logger.computation_completed(
            operation="volatility_breakdown",
            keyword_target_id=analysis.keyword_target_id,
            window_days=window_days,
            sample_size=attribution.sample_size,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        return VolatilityBreakdownResponse(
            keyword_target_id=analysis.keyword_target_id,
            query=analysis.query,
            window_days=window_days,
            sample_size=attribution.sample_size,
            snapshot_count=analysis.selection.snapshot_count,
            top_n=attribution.top_n,
            url_count=attribution.url_count,
            urls=[
                UrlAttributionItem.model_validate(entry.to_dict())
                for entry in attribution.urls
            ],
            computed_at=now,
        )

    async def get_spikes(
        self,
        project_id: str,
        keyword_target_id: str,
        window_days: int | None = None,
        top_n: int = DEFAULT_SPIKE_TOP_N,
    ) -> VolatilitySpikesResponse:
        """The most volatile snapshot pairs of one keyword target."""
        start_time = time.monotonic()
        now = datetime.now(UTC)
        window_days = self._validate_window(window_days)
        try:
            detector = SpikeDetector(top_n=top_n)
        except ValueError as e:
            raise VolatilityValidationError("topN", top_n, str(e)) from e

        analysis = await self._analyze_target(project_id, keyword_target_id, window_days, now)
        spikes = detector.detect(analysis.pair_scores)

        volatility_logger.computation_completed(
            operation="volatility_spikes",
            keyword_target_id=analysis.keyword_target_id,
            window_days=window_days,
            sample_size=analysis.result.sample_size,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        return VolatilitySpikesResponse(
            keyword_target_id=analysis.keyword_target_id,
            query=analysis.query,
            window_days=window_days,
            sample_size=analysis.result.sample_size,
            total_pairs=spikes.total_pairs,
            top_n=spikes.top_n,
            spikes=[
                SpikeItem(
                    from_snapshot_id=spike.from_snapshot_id,
                    to_snapshot_id=spike.to_snapshot_id,
                    from_captured_at=spike.from_captured_at,
                    to_captured_at=spike.to_captured_at,
                    pair_volatility_score=spike.pair_volatility_score,
                    pair_rank_shift=spike.pair_rank_shift,
                    pair_max_shift=spike.pair_max_shift,
                    pair_feature_change_count=spike.pair_feature_change_count,
                    ai_flipped=spike.ai_flipped,
                )
                for spike in spikes.spikes
            ],
            computed_at=now,
        )

    async def get_feature_transitions(
        self,
        project_id: str,
        keyword_target_id: str,
        window_days: int | None = None,
    ) -> FeatureTransitionsResponse:
        """Feature-set transition counts for one keyword target."""
        start_time = time.monotonic()
        now = datetime.now(UTC)
        window_days = self._validate_window(window_days)

        analysis = await self._analyze_target(project_id, keyword_target_id, window_days, now)
        matrix = TransitionMatrixBuilder().build(analysis.selection.pairs)

        volatility_logger.computation_completed(
            operation="feature_transitions",
            keyword_target_id=analysis.keyword_target_id,
            window_days=window_days,
            sample_size=analysis.selection.sample_size,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        return FeatureTransitionsResponse(
            keyword_target_id=analysis.keyword_target_id,
            query=analysis.query,
            window_days=window_days,
            sample_size=analysis.selection.sample_size,
            total_transitions=matrix.total_transitions,
            distinct_transition_count=matrix.distinct_transition_count,
            transitions=[
                FeatureTransitionItem(
                    from_feature_set=list(t.from_features),
                    to_feature_set=list(t.to_features),
                    count=t.count,
                )
                for t in matrix.transitions
            ],
            computed_at=now,
        )

    async def get_summary(
        self, project_id: str, window_days: int | None = None
    ) -> VolatilitySummaryResponse:
        """Project risk summary over every keyword target."""
        start_time = time.monotonic()
        now = datetime.now(UTC)
        window_days = self._validate_window(window_days)

        keywords = await self._analyze_project(project_id, window_days, now)
        summary = ProjectRiskAggregator().summarize(keywords, project_id=project_id)

        volatility_logger.computation_completed(
            operation="volatility_summary",
            keyword_target_id=None,
            window_days=window_days,
            sample_size=sum(k.result.sample_size for k in keywords),
            duration_ms=(time.monotonic() - start_time) * 1000,
            score=summary.weighted_project_volatility_score,
        )
        return VolatilitySummaryResponse(
            project_id=project_id,
            window_days=window_days,
            keyword_count=summary.keyword_count,
            active_keyword_count=summary.active_keyword_count,
            average_volatility=summary.average_volatility,
            max_volatility=summary.max_volatility,
            high_volatility_count=summary.high_volatility_count,
            medium_volatility_count=summary.medium_volatility_count,
            low_volatility_count=summary.low_volatility_count,
            stable_count=summary.stable_count,
            regime_counts=RegimeCounts(**summary.regime_counts),
            maturity_counts=MaturityCounts(**summary.maturity_counts),
            weighted_project_volatility_score=summary.weighted_project_volatility_score,
            volatility_concentration_ratio=summary.volatility_concentration_ratio,
            top3_risk_keywords=[
                RiskKeywordItem(**k.to_dict())
                for k in summary.top3_risk_keywords
            ],
            computed_at=now,
        )

    async def list_volatility_alerts(
        self,
        project_id: str,
        window_days: int | None = None,
        alert_threshold: float = DEFAULT_ALERT_THRESHOLD,
        min_maturity: str = DEFAULT_MIN_MATURITY,
        limit: int = DEFAULT_VOLATILITY_ALERTS_LIMIT,
        cursor: str | None = None,
    ) -> VolatilityAlertsResponse:
        """Keywords at or above the alert threshold, riskiest first.

        Raises:
            VolatilityValidationError: On a bad window, maturity or cursor
        """
        start_time = time.monotonic()
        now = datetime.now(UTC)
        window_days = self._validate_window(window_days)
        if min_maturity not in VALID_MATURITIES:
            logger.warning(
                "Validation failed: invalid minMaturity",
                extra={"field": "minMaturity", "value": min_maturity},
            )
            raise VolatilityValidationError(
                "minMaturity",
                min_maturity,
                f"Must be one of: {', '.join(sorted(VALID_MATURITIES))}",
            )

        after = None
        if cursor is not None:
            try:
                score, query, keyword_target_id = VOLATILITY_ALERTS_CURSOR.decode(cursor)
            except CursorError as e:
                volatility_logger.cursor_rejected("volatility-alerts", e.message)
                raise VolatilityValidationError("cursor", cursor, e.message) from e
            after = (-score, query, keyword_target_id)

        floor = MATURITY_ORDER[Maturity(min_maturity)]
        keywords = await self._analyze_project(project_id, window_days, now)
        matched = sorted(
            (
                k
                for k in keywords
                if k.result.sample_size > 0
                and k.result.volatility_score >= alert_threshold
                and MATURITY_ORDER[k.result.maturity] >= floor
            ),
            key=_alerts_sort_key,
        )
        page, has_more = page_after(matched, _alerts_sort_key, after, limit)

        next_cursor = None
        if has_more and page:
            last = page[-1]
            next_cursor = VOLATILITY_ALERTS_CURSOR.encode(
                last.result.volatility_score, last.query, last.keyword_target_id
            )

        volatility_logger.computation_completed(
            operation="volatility_alerts",
            keyword_target_id=None,
            window_days=window_days,
            sample_size=sum(k.result.sample_size for k in keywords),
            duration_ms=(time.monotonic() - start_time) * 1000,
        )
        return VolatilityAlertsResponse(
            window_days=window_days,
            alert_threshold=alert_threshold,
            min_maturity=min_maturity,
            limit=limit,
            total_matched=len(matched),
            items=[
                VolatilityAlertItem(
                    keyword_target_id=k.keyword_target_id,
                    query=k.query,
                    locale=k.locale,
                    device=k.device,
                    alert_threshold=alert_threshold,
                    **k.result.to_dict(),
                )
                for k in page
            ],
            next_cursor=next_cursor,
            has_more=has_more,
            computed_at=now,
        )

    async def evaluate_alerts(
        self,
        project_id: str,
        window_days: int | None,
        spike_threshold: float = DEFAULT_SPIKE_THRESHOLD,
        concentration_threshold: float = DEFAULT_CONCENTRATION_THRESHOLD,
        limit: int = DEFAULT_ALERT_LIMIT,
    ) -> AlertsResponse:
        """Run the T1/T2/T3 alert scan over the project.

        Raises:
            VolatilityValidationError: If windowDays is missing or not in 1-30
        """
        now = datetime.now(UTC)
        checked_window = self._validate_window(
            window_days, max_days=MAX_ALERT_WINDOW_DAYS, required=True
        )
        try:
            evaluator = AlertEvaluator(
                spike_threshold=spike_threshold,
                concentration_threshold=concentration_threshold,
            )
        except ValueError as e:
            raise VolatilityValidationError("threshold", None, str(e)) from e

        keywords = await self._analyze_project(project_id, checked_window, now)
        scan = evaluator.evaluate(
            project_id, keywords, limit=limit, window_days=checked_window
        )

        return AlertsResponse(
            project_id=project_id,
            window_days=checked_window,
            spike_threshold=spike_threshold,
            concentration_threshold=concentration_threshold,
            limit=limit,
            alert_count=scan.alert_count,
            total_alerts=scan.total_alerts,
            alerts=[alert_item_from(alert) for alert in scan.alerts],
            computed_at=now,
        )
