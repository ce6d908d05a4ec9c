"""Per-URL attribution of rank movement across a window.

For every URL seen in the windowed snapshots:
- appearances: number of snapshots listing the URL
- total_abs_shift: sum of |rankB - rankA| over pairs ranking it in both
- average_shift: total_abs_shift / pairs_both_present (not / appearances)
- first_seen / last_seen: earliest and latest capture listing the URL

Ordered by total_abs_shift descending, then URL ascending.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from serp_volatility.core.logging import get_logger
from serp_volatility.utils.windowing import WindowSelection

logger = get_logger("attribution")

DEFAULT_ATTRIBUTION_TOP_N = 20
MAX_ATTRIBUTION_TOP_N = 50


@dataclass
class UrlAttribution:
    """Rank movement attributed to one URL."""

    url: str
    appearances: int = 0
    total_abs_shift: int = 0
    pairs_both_present: int = 0
    first_seen: datetime | None = None
    last_seen: datetime | None = None

    @property
    def average_shift(self) -> float:
        if self.pairs_both_present == 0:
            return 0.0
        return round(self.total_abs_shift / self.pairs_both_present, 2)

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "appearances": self.appearances,
            "total_abs_shift": self.total_abs_shift,
            "pairs_both_present": self.pairs_both_present,
            "average_shift": self.average_shift,
            "first_seen": self.first_seen.isoformat() if self.first_seen else None,
            "last_seen": self.last_seen.isoformat() if self.last_seen else None,
        }


@dataclass
class AttributionResult:
    urls: list[UrlAttribution] = field(default_factory=list)
    url_count: int = 0
    sample_size: int = 0
    top_n: int = DEFAULT_ATTRIBUTION_TOP_N


class AttributionEngine:
    """Builds the per-URL breakdown for one keyword window."""

    def __init__(self, top_n: int = DEFAULT_ATTRIBUTION_TOP_N) -> None:
        if not 1 <= top_n <= MAX_ATTRIBUTION_TOP_N:
            raise ValueError(f"top_n must be between 1 and {MAX_ATTRIBUTION_TOP_N}")
        self._top_n = top_n

    @property
    def top_n(self) -> int:
        return self._top_n

    def attribute(self, selection: WindowSelection) -> AttributionResult:
        if selection.sample_size == 0:
            return AttributionResult(sample_size=0, top_n=self._top_n)

        by_url: dict[str, UrlAttribution] = {}

        for snapshot in selection.snapshots:
            for url in snapshot.urls:
                entry = by_url.get(url)
                if entry is None:
                    entry = by_url[url] = UrlAttribution(url=url)
                entry.appearances += 1
                # Snapshots arrive in capture order
                if entry.first_seen is None:
                    entry.first_seen = snapshot.captured_at
                entry.last_seen = snapshot.captured_at

        for pair in selection.pairs:
            before = pair.previous.rank_map
            after = pair.current.rank_map
            for url in before.keys() & after.keys():
                entry = by_url[url]
                entry.total_abs_shift += abs(after[url] - before[url])
                entry.pairs_both_present += 1

        ordered = sorted(by_url.values(), key=lambda e: (-e.total_abs_shift, e.url))
        logger.debug(
            "URL attribution computed",
            extra={
                "sample_size": selection.sample_size,
                "url_count": len(ordered),
                "top_n": self._top_n,
            },
        )
        return AttributionResult(
            urls=ordered[: self._top_n],
            url_count=len(ordered),
            sample_size=selection.sample_size,
            top_n=self._top_n,
        )
