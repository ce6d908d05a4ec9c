"""Ranked-result and feature extraction from stored SERP payloads.

Two payload shapes are understood:
- Provider shape: ``items[]`` where ``type == "organic"`` entries are ranked
  results and every other ``type`` is an ancillary SERP feature.
- Simple shape: ``results[]`` with ``url``/``rank`` plus an optional
  ``features[]`` list of strings or ``{"type": ...}`` objects.

Results are ordered by rank ascending (unranked last) then URL; the first
occurrence of a URL wins. Feature tags are de-duplicated and sorted so two
snapshots with the same features always compare equal.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from serp_volatility.core.logging import get_logger

logger = get_logger("serp_extraction")

PARSE_WARNING_UNRECOGNIZED = "unrecognized_payload_shape"
PARSE_WARNING_NO_RESULTS = "no_ranked_results"

ORGANIC_ITEM_TYPE = "organic"


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime.

    Naive values are taken to already be UTC (SQLite drops offsets).
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


@dataclass(frozen=True)
class RankedResult:
    """One organic result on a captured page."""

    url: str
    rank: int | None
    title: str | None = None


@dataclass(frozen=True)
class ExtractedSerp:
    """Results and features pulled out of one raw payload."""

    results: tuple[RankedResult, ...] = ()
    features: tuple[str, ...] = ()
    parse_warning: str | None = None


@dataclass(frozen=True)
class SnapshotRecord:
    """A snapshot reduced to what the volatility engine reads.

    Attributes:
        id: Snapshot id (tie-break for identical capture times)
        captured_at: Aware UTC capture time
        ai_overview_status: present/absent/parse_error/unknown
        results: Ranked results in rank order
        features: Sorted ancillary feature tags
        parse_warning: Set when the payload could not be read cleanly
    """

    id: str
    captured_at: datetime
    ai_overview_status: str
    results: tuple[RankedResult, ...] = ()
    features: tuple[str, ...] = ()
    parse_warning: str | None = None
    _rank_map: dict[str, int] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "captured_at", ensure_utc(self.captured_at))
        ranks: dict[str, int] = {}
        for result in self.results:
            if result.rank is not None and result.url not in ranks:
                ranks[result.url] = result.rank
        object.__setattr__(self, "_rank_map", ranks)

    @property
    def rank_map(self) -> dict[str, int]:
        """URL -> rank for every result that carries a rank."""
        return self._rank_map

    @property
    def urls(self) -> set[str]:
        return {result.url for result in self.results}

    @classmethod
    def from_payload(
        cls,
        snapshot_id: str,
        captured_at: datetime,
        ai_overview_status: str,
        raw_payload: Any,
    ) -> "SnapshotRecord":
        extracted = extract_serp(raw_payload, snapshot_id=snapshot_id)
        return cls(
            id=snapshot_id,
            captured_at=captured_at,
            ai_overview_status=ai_overview_status,
            results=extracted.results,
            features=extracted.features,
            parse_warning=extracted.parse_warning,
        )


def _coerce_rank(*candidates: Any) -> int | None:
    """First candidate that is a positive whole number, else None."""
    for value in candidates:
        if isinstance(value, bool) or value is None:
            continue
        if isinstance(value, int) and value > 0:
            return value
        if isinstance(value, float) and value.is_integer() and value > 0:
            return int(value)
    return None


def _coerce_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _order_results(results: list[RankedResult]) -> tuple[RankedResult, ...]:
    ordered = sorted(
        results,
        key=lambda r: (r.rank is None, r.rank if r.rank is not None else 0, r.url),
    )
    seen: set[str] = set()
    unique: list[RankedResult] = []
    for result in ordered:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    return tuple(unique)


def _extract_items(items: list[Any]) -> ExtractedSerp:
    results: list[RankedResult] = []
    features: set[str] = set()
    for item in items:
        if not isinstance(item, dict):
            continue
        item_type = _coerce_text(item.get("type"))
        if item_type is None:
            continue
        if item_type != ORGANIC_ITEM_TYPE:
            features.add(item_type)
            continue
        url = _coerce_text(item.get("url"))
        if url is None:
            continue
        results.append(
            RankedResult(
                url=url,
                rank=_coerce_rank(
                    item.get("rank_absolute"),
                    item.get("rank_group"),
                    item.get("position"),
                ),
                title=_coerce_text(item.get("title")),
            )
        )
    return ExtractedSerp(
        results=_order_results(results),
        features=tuple(sorted(features)),
        parse_warning=None if results else PARSE_WARNING_NO_RESULTS,
    )


def _extract_results(payload: dict[str, Any]) -> ExtractedSerp:
    results: list[RankedResult] = []
    for entry in payload.get("results") or []:
        if not isinstance(entry, dict):
            continue
        url = _coerce_text(entry.get("url"))
        if url is None:
            continue
        results.append(
            RankedResult(
                url=url,
                rank=_coerce_rank(entry.get("rank"), entry.get("position")),
                title=_coerce_text(entry.get("title")),
            )
        )

    features: set[str] = set()
    raw_features = payload.get("features")
    if isinstance(raw_features, list):
        for feature in raw_features:
            if isinstance(feature, dict):
                feature = feature.get("type")
            tag = _coerce_text(feature)
            if tag is not None:
                features.add(tag)

    return ExtractedSerp(
        results=_order_results(results),
        features=tuple(sorted(features)),
        parse_warning=None if results else PARSE_WARNING_NO_RESULTS,
    )


def extract_serp(raw_payload: Any, snapshot_id: str | None = None) -> ExtractedSerp:
    """Extract ranked results and feature tags from a raw payload.

    Never raises on odd payloads: anything unreadable yields an empty
    extraction with a parse warning.
    """
    if isinstance(raw_payload, dict):
        if isinstance(raw_payload.get("items"), list):
            extracted = _extract_items(raw_payload["items"])
        elif isinstance(raw_payload.get("results"), list):
            extracted = _extract_results(raw_payload)
        else:
            extracted = ExtractedSerp(parse_warning=PARSE_WARNING_UNRECOGNIZED)
    else:
        extracted = ExtractedSerp(parse_warning=PARSE_WARNING_UNRECOGNIZED)

    if extracted.parse_warning is not None:
        logger.debug(
            "SERP payload extracted with warning",
            extra={
                "snapshot_id": snapshot_id,
                "parse_warning": extracted.parse_warning,
                "result_count": len(extracted.results),
            },
        )
    return extracted
