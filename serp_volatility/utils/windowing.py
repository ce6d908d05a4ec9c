"""Trailing-window selection and snapshot pairing.

A window keeps every snapshot captured at or after ``now - window_days``
(all history when no window is given), orders them by capture time with
the snapshot id as tie-break, and pairs each snapshot with the next one.
``sample_size`` is the number of pairs, so it never shrinks as the window
widens.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from serp_volatility.core.logging import get_logger
from serp_volatility.utils.serp_extraction import SnapshotRecord, ensure_utc

logger = get_logger("windowing")

MIN_WINDOW_DAYS = 1
MAX_WINDOW_DAYS = 365
MAX_ALERT_WINDOW_DAYS = 30

_DIGITS = re.compile(r"^\d+$")


class WindowValidationError(ValueError):
    """Raised when a window parameter is missing, malformed or out of range."""

    def __init__(self, field: str, value: Any, message: str) -> None:
        self.field = field
        self.value = value
        self.message = message
        super().__init__(f"Validation error for {field}: {message}")


def validate_window_days(
    value: Any,
    max_days: int = MAX_WINDOW_DAYS,
    required: bool = False,
    field: str = "windowDays",
) -> int | None:
    """Validate a window length in days.

    Accepts ints and digit-only strings. Booleans, floats, signs and
    anything outside ``[1, max_days]`` are rejected.
    """
    if value is None:
        if required:
            raise WindowValidationError(field, value, f"{field} is required")
        return None

    if isinstance(value, bool):
        raise WindowValidationError(field, value, f"{field} must be an integer")
    if isinstance(value, str):
        if not _DIGITS.match(value):
            raise WindowValidationError(field, value, f"{field} must be an integer")
        value = int(value)
    elif not isinstance(value, int):
        raise WindowValidationError(field, value, f"{field} must be an integer")

    if not MIN_WINDOW_DAYS <= value <= max_days:
        logger.warning(
            "Validation failed: window out of range",
            extra={"field": field, "value": value, "max_days": max_days},
        )
        raise WindowValidationError(
            field, value, f"{field} must be between {MIN_WINDOW_DAYS} and {max_days}"
        )
    return value


def window_start(now: datetime, window_days: int | None) -> datetime | None:
    """Earliest capture time inside the window, or None for all history."""
    if window_days is None:
        return None
    return ensure_utc(now) - timedelta(days=window_days)


@dataclass(frozen=True)
class SnapshotPair:
    """Two temporally adjacent snapshots of one keyword target."""

    previous: SnapshotRecord
    current: SnapshotRecord


@dataclass
class WindowSelection:
    """Snapshots inside a window and the consecutive pairs they form."""

    window_days: int | None
    window_start: datetime | None
    snapshots: list[SnapshotRecord] = field(default_factory=list)
    pairs: list[SnapshotPair] = field(default_factory=list)

    @property
    def snapshot_count(self) -> int:
        return len(self.snapshots)

    @property
    def sample_size(self) -> int:
        return len(self.pairs)

    @property
    def latest_captured_at(self) -> datetime | None:
        if not self.snapshots:
            return None
        return self.snapshots[-1].captured_at


def order_snapshots(snapshots: list[SnapshotRecord]) -> list[SnapshotRecord]:
    """Sort ascending by capture time, then id."""
    return sorted(snapshots, key=lambda s: (s.captured_at, s.id))


def pair_snapshots(ordered: list[SnapshotRecord]) -> list[SnapshotPair]:
    return [
        SnapshotPair(previous=ordered[i], current=ordered[i + 1])
        for i in range(len(ordered) - 1)
    ]


def select_window(
    snapshots: list[SnapshotRecord],
    window_days: int | None,
    now: datetime,
) -> WindowSelection:
    """Filter snapshots to the trailing window and pair them.

    Args:
        snapshots: Snapshots of one keyword target, in any order
        window_days: Validated window length, or None for all history
        now: Request time; fixed once per request so every computation
            in the request sees the same window

    Returns:
        WindowSelection with ordered snapshots and their pairs
    """
    start = window_start(now, window_days)
    if start is None:
        kept = list(snapshots)
    else:
        kept = [s for s in snapshots if s.captured_at >= start]

    ordered = order_snapshots(kept)
    return WindowSelection(
        window_days=window_days,
        window_start=start,
        snapshots=ordered,
        pairs=pair_snapshots(ordered),
    )
