"""Rank delta between two snapshots of one keyword target.

- entered: URLs only in the later snapshot, by rank ascending
- exited: URLs only in the earlier snapshot, by rank ascending
- moved: URLs in both; rank_delta = from_rank - to_rank (positive means
  the URL moved up), ordered by rank_delta descending then URL. A null
  rank on either side gives a null delta, sorted last.
"""

from dataclasses import dataclass, field

from serp_volatility.utils.serp_extraction import RankedResult, SnapshotRecord


@dataclass(frozen=True)
class RankEntry:
    url: str
    rank: int | None
    title: str | None = None


@dataclass(frozen=True)
class MovedEntry:
    url: str
    from_rank: int | None
    to_rank: int | None
    rank_delta: int | None
    title: str | None = None


@dataclass
class SerpDelta:
    from_snapshot: SnapshotRecord
    to_snapshot: SnapshotRecord
    moved: list[MovedEntry] = field(default_factory=list)
    entered: list[RankEntry] = field(default_factory=list)
    exited: list[RankEntry] = field(default_factory=list)
    features_added: list[str] = field(default_factory=list)
    features_removed: list[str] = field(default_factory=list)

    @property
    def improved_count(self) -> int:
        return sum(1 for m in self.moved if m.rank_delta is not None and m.rank_delta > 0)

    @property
    def declined_count(self) -> int:
        return sum(1 for m in self.moved if m.rank_delta is not None and m.rank_delta < 0)

    @property
    def unchanged_count(self) -> int:
        return sum(1 for m in self.moved if m.rank_delta == 0)

    @property
    def ai_overview_changed(self) -> bool:
        return self.from_snapshot.ai_overview_status != self.to_snapshot.ai_overview_status

    @property
    def same_timestamp(self) -> bool:
        return self.from_snapshot.captured_at == self.to_snapshot.captured_at

    @property
    def payload_parse_warning(self) -> bool:
        return (
            self.from_snapshot.parse_warning is not None
            or self.to_snapshot.parse_warning is not None
        )


def _by_rank(entry: RankEntry) -> tuple[bool, int, str]:
    return (entry.rank is None, entry.rank or 0, entry.url)


def _entry(result: RankedResult) -> RankEntry:
    return RankEntry(url=result.url, rank=result.rank, title=result.title)


def compute_serp_delta(
    from_snapshot: SnapshotRecord, to_snapshot: SnapshotRecord
) -> SerpDelta:
    before = {r.url: r for r in from_snapshot.results}
    after = {r.url: r for r in to_snapshot.results}

    entered = sorted((_entry(r) for url, r in after.items() if url not in before), key=_by_rank)
    exited = sorted((_entry(r) for url, r in before.items() if url not in after), key=_by_rank)

    moved: list[MovedEntry] = []
    for url, old in before.items():
        new = after.get(url)
        if new is None:
            continue
        delta = None
        if old.rank is not None and new.rank is not None:
            delta = old.rank - new.rank
        moved.append(
            MovedEntry(
                url=url,
                from_rank=old.rank,
                to_rank=new.rank,
                rank_delta=delta,
                title=new.title or old.title,
            )
        )
    moved.sort(
        key=lambda m: (m.rank_delta is None, -(m.rank_delta or 0), m.url)
    )

    old_features = set(from_snapshot.features)
    new_features = set(to_snapshot.features)
    return SerpDelta(
        from_snapshot=from_snapshot,
        to_snapshot=to_snapshot,
        moved=moved,
        entered=entered,
        exited=exited,
        features_added=sorted(new_features - old_features),
        features_removed=sorted(old_features - new_features),
    )
