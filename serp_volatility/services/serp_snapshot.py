"""SerpSnapshotService: idempotent ingest, history pages and rank deltas.

Snapshots are append-only. Recording the same (query, locale, device,
capturedAt) twice returns the stored row; the caller learns whether a
row was created so the API can answer 201 or 200.
"""

import time
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from serp_volatility.core.config import get_settings
from serp_volatility.core.logging import get_logger, volatility_logger
from serp_volatility.models.keyword_target import KeywordTarget
from serp_volatility.models.serp_snapshot import SerpSnapshot
from serp_volatility.repositories.serp_snapshot import SerpSnapshotRepository
from serp_volatility.schemas.serp_snapshot import (
    SerpHistoryItem,
    SerpHistoryResponse,
    SerpSnapshotCreate,
    TopResult,
)
from serp_volatility.schemas.volatility import (
    AIOverviewChange,
    DeltaSummary,
    MovedEntryItem,
    RankEntryItem,
    SerpDeltaBody,
    SerpDeltaResponse,
)
from serp_volatility.services.keyword_target import KeywordTargetService
from serp_volatility.services.project import is_valid_uuid
from serp_volatility.utils.cursor import (
    SERP_HISTORY_CURSOR,
    SERP_SNAPSHOT_LIST_CURSOR,
    CursorCodec,
    CursorError,
)
from serp_volatility.utils.serp_delta import compute_serp_delta
from serp_volatility.utils.serp_extraction import SnapshotRecord, ensure_utc

logger = get_logger(__name__)

DEFAULT_HISTORY_LIMIT = 50
MAX_HISTORY_LIMIT = 200
DEFAULT_HISTORY_TOP_N = 10
MAX_HISTORY_TOP_N = 20


class SerpSnapshotServiceError(Exception):
    """Base exception for SerpSnapshotService errors."""

    pass


class SerpSnapshotNotFoundError(SerpSnapshotServiceError):
    """Raised when a snapshot is missing or belongs to another target."""

    def __init__(self, snapshot_id: str):
        self.snapshot_id = snapshot_id
        super().__init__("SERPSnapshot not found")


class SerpSnapshotValidationError(SerpSnapshotServiceError):
    """Raised when a request parameter is invalid."""

    def __init__(self, field: str, value: object, message: str):
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Validation failed for '{field}': {message}")


def to_record(snapshot: SerpSnapshot) -> SnapshotRecord:
    """Reduce a stored snapshot to the engine's view of it."""
    return SnapshotRecord.from_payload(
        snapshot_id=snapshot.id,
        captured_at=snapshot.captured_at,
        ai_overview_status=snapshot.ai_overview_status,
        raw_payload=snapshot.raw_payload,
    )


def _decode_cursor(
    codec: CursorCodec, cursor: str | None, endpoint: str
) -> tuple[datetime, str] | None:
    if cursor is None:
        return None
    try:
        captured_at, snapshot_id = codec.decode(cursor)
    except CursorError as e:
        volatility_logger.cursor_rejected(endpoint, e.message)
        raise SerpSnapshotValidationError("cursor", cursor, e.message) from e
    return captured_at, snapshot_id


class SerpSnapshotService:
    """Service for SerpSnapshot ingest and reads."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.repository = SerpSnapshotRepository(session)
        self.targets = KeywordTargetService(session)

    async def record_snapshot(
        self, project_id: str, data: SerpSnapshotCreate
    ) -> tuple[SerpSnapshot, bool]:
        """Store a snapshot unless the same capture already exists.

        Returns:
            Tuple of (snapshot, created)
        """
        captured_at = ensure_utc(data.captured_at)
        existing = await self.repository.get_by_natural_key(
            project_id, data.query, data.locale, data.device, captured_at
        )
        if existing is not None:
            logger.info(
                "Snapshot replay returned existing record",
                extra={"project_id": project_id, "snapshot_id": existing.id},
            )
            return existing, False

        try:
            snapshot = await self.repository.create(
                project_id=project_id,
                query=data.query,
                locale=data.locale,
                device=data.device,
                captured_at=captured_at,
                valid_at=data.valid_at,
                raw_payload=data.raw_payload,
                payload_schema_version=data.payload_schema_version,
                ai_overview_status=data.ai_overview_status,
                ai_overview_text=data.ai_overview_text,
                source=data.source,
                batch_ref=data.batch_ref,
            )
        except IntegrityError:
            # Concurrent writer won the insert
            await self.session.rollback()
            existing = await self.repository.get_by_natural_key(
                project_id, data.query, data.locale, data.device, captured_at
            )
            if existing is None:
                raise
            return existing, False

        logger.info(
            "Snapshot recorded",
            extra={
                "project_id": project_id,
                "snapshot_id": snapshot.id,
                "captured_at": captured_at.isoformat(),
            },
        )
        return snapshot, True

    async def list_snapshots(
        self,
        project_id: str,
        limit: int,
        cursor: str | None = None,
        keyword_target_id: str | None = None,
    ) -> tuple[list[SerpSnapshot], str | None, bool]:
        """One cursor page of a project's snapshots, newest first.

        Returns:
            Tuple of (snapshots, next_cursor, has_more)
        """
        before = _decode_cursor(SERP_SNAPSHOT_LIST_CURSOR, cursor, "serp-snapshots")
        natural_key = None
        if keyword_target_id is not None:
            target = await self.targets.get_target(project_id, keyword_target_id)
            natural_key = (target.query, target.locale, target.device)

        snapshots, has_more = await self.repository.list_page(
            project_id, limit=limit, before=before, natural_key=natural_key
        )
        next_cursor = None
        if has_more and snapshots:
            last = snapshots[-1]
            next_cursor = SERP_SNAPSHOT_LIST_CURSOR.encode(
                ensure_utc(last.captured_at), last.id
            )
        return snapshots, next_cursor, has_more

    async def load_records(
        self, target: KeywordTarget, since: datetime | None = None
    ) -> list[SnapshotRecord]:
        snapshots = await self.repository.list_for_target(
            target.project_id, target.query, target.locale, target.device, since=since
        )
        return [to_record(s) for s in snapshots]

    async def get_history(
        self,
        project_id: str,
        keyword_target_id: str,
        limit: int = DEFAULT_HISTORY_LIMIT,
        top_n: int = DEFAULT_HISTORY_TOP_N,
        include_payload: bool = False,
        cursor: str | None = None,
    ) -> SerpHistoryResponse:
        """Newest-first page of a target's snapshots with their top results."""
        start_time = time.monotonic()
        target = await self.targets.get_target(project_id, keyword_target_id)
        before = _decode_cursor(SERP_HISTORY_CURSOR, cursor, "serp-history")

        snapshots, has_more = await self.repository.list_page(
            project_id,
            limit=limit,
            before=before,
            natural_key=(target.query, target.locale, target.device),
        )

        items: list[SerpHistoryItem] = []
        for snapshot in snapshots:
            record = to_record(snapshot)
            items.append(
                SerpHistoryItem(
                    snapshot_id=snapshot.id,
                    captured_at=record.captured_at,
                    ai_overview_status=snapshot.ai_overview_status,
                    payload_parse_warning=record.parse_warning is not None,
                    top_results=[
                        TopResult(rank=r.rank, url=r.url) for r in record.results[:top_n]
                    ],
                    features=list(record.features),
                    raw_payload=snapshot.raw_payload if include_payload else None,
                )
            )

        next_cursor = None
        if has_more and items:
            next_cursor = SERP_HISTORY_CURSOR.encode(
                items[-1].captured_at, items[-1].snapshot_id
            )

        duration_ms = (time.monotonic() - start_time) * 1000
        if duration_ms > get_settings().volatility_slow_computation_threshold_ms:
            logger.warning(
                "Slow SERP history read",
                extra={
                    "project_id": project_id,
                    "keyword_target_id": keyword_target_id,
                    "duration_ms": round(duration_ms, 2),
                },
            )

        return SerpHistoryResponse(
            keyword_target_id=target.id,
            query=target.query,
            locale=target.locale,
            device=target.device,
            limit=limit,
            top_n=top_n,
            include_payload=include_payload,
            items=items,
            next_cursor=next_cursor,
            has_more=has_more,
        )

    async def get_delta(
        self,
        project_id: str,
        keyword_target_id: str,
        from_snapshot_id: str | None,
        to_snapshot_id: str | None,
        computed_at: datetime,
    ) -> SerpDeltaResponse:
        """Compare two snapshots of a target (default: the latest two).

        Raises:
            SerpSnapshotValidationError: If only one snapshot id is given
            SerpSnapshotNotFoundError: If a snapshot id is not of this target
        """
        if (from_snapshot_id is None) != (to_snapshot_id is None):
            raise SerpSnapshotValidationError(
                "fromSnapshotId",
                from_snapshot_id or to_snapshot_id,
                "fromSnapshotId and toSnapshotId must be supplied together",
            )
        for field, value in (
            ("fromSnapshotId", from_snapshot_id),
            ("toSnapshotId", to_snapshot_id),
        ):
            if value is not None and not is_valid_uuid(value):
                raise SerpSnapshotValidationError(field, value, "must be a valid UUID")

        target = await self.targets.get_target(project_id, keyword_target_id)
        records = await self.load_records(target)

        pair: tuple[SnapshotRecord, SnapshotRecord] | None = None
        if from_snapshot_id is not None and to_snapshot_id is not None:
            by_id = {r.id: r for r in records}
            for snapshot_id in (from_snapshot_id, to_snapshot_id):
                if snapshot_id not in by_id:
                    raise SerpSnapshotNotFoundError(snapshot_id)
            pair = (by_id[from_snapshot_id], by_id[to_snapshot_id])
        elif len(records) >= 2:
            pair = (records[-2], records[-1])

        body = None
        if pair is not None:
            delta = compute_serp_delta(*pair)
            body = SerpDeltaBody(
                from_snapshot_id=delta.from_snapshot.id,
                to_snapshot_id=delta.to_snapshot.id,
                from_captured_at=delta.from_snapshot.captured_at,
                to_captured_at=delta.to_snapshot.captured_at,
                entered=[
                    RankEntryItem(url=e.url, rank=e.rank, title=e.title)
                    for e in delta.entered
                ],
                exited=[
                    RankEntryItem(url=e.url, rank=e.rank, title=e.title)
                    for e in delta.exited
                ],
                moved=[
                    MovedEntryItem(
                        url=m.url,
                        from_rank=m.from_rank,
                        to_rank=m.to_rank,
                        rank_delta=m.rank_delta,
                        title=m.title,
                    )
                    for m in delta.moved
                ],
                summary=DeltaSummary(
                    entered_count=len(delta.entered),
                    exited_count=len(delta.exited),
                    moved_count=len(delta.moved),
                    improved_count=delta.improved_count,
                    declined_count=delta.declined_count,
                    unchanged_count=delta.unchanged_count,
                ),
                ai_overview=AIOverviewChange(
                    changed=delta.ai_overview_changed,
                    from_status=delta.from_snapshot.ai_overview_status,
                    to_status=delta.to_snapshot.ai_overview_status,
                ),
                features_added=delta.features_added,
                features_removed=delta.features_removed,
                same_timestamp=delta.same_timestamp,
                payload_parse_warning=delta.payload_parse_warning,
            )

        return SerpDeltaResponse(
            keyword_target_id=target.id,
            query=target.query,
            locale=target.locale,
            device=target.device,
            insufficient_snapshots=pair is None,
            snapshot_count=len(records),
            delta=body,
            computed_at=computed_at,
        )
