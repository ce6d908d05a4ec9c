"""Feature-set transition matrix.

Every pair is classified by (sorted features before, sorted features
after). Counts per distinct transition always sum to the number of
pairs. Ordered by count descending, then the comma-joined "from" key,
then the comma-joined "to" key.
"""

from collections import Counter
from dataclasses import dataclass, field

from serp_volatility.utils.windowing import SnapshotPair


@dataclass(frozen=True)
class FeatureTransition:
    from_features: tuple[str, ...]
    to_features: tuple[str, ...]
    count: int

    @property
    def from_key(self) -> str:
        return ",".join(self.from_features)

    @property
    def to_key(self) -> str:
        return ",".join(self.to_features)


@dataclass
class TransitionMatrix:
    transitions: list[FeatureTransition] = field(default_factory=list)
    total_transitions: int = 0

    @property
    def distinct_transition_count(self) -> int:
        return len(self.transitions)


class TransitionMatrixBuilder:
    def build(self, pairs: list[SnapshotPair]) -> TransitionMatrix:
        counts: Counter[tuple[tuple[str, ...], tuple[str, ...]]] = Counter(
            (
                tuple(sorted(set(pair.previous.features))),
                tuple(sorted(set(pair.current.features))),
            )
            for pair in pairs
        )
        transitions = [
            FeatureTransition(from_features=before, to_features=after, count=count)
            for (before, after), count in counts.items()
        ]
        transitions.sort(key=lambda t: (-t.count, t.from_key, t.to_key))
        return TransitionMatrix(transitions=transitions, total_transitions=len(pairs))
