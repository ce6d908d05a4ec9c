"""Opaque pagination cursors.

A cursor is URL-safe base64 (unpadded) of a compact JSON array
``[kind, value, ..., id]``: the sort key of the last item on a page.
``kind`` ties the cursor to the list that issued it, so a cursor from
one endpoint is rejected by another.

Pages are always computed as "items strictly after the cursor key in the
list's total order", so re-sending a cursor returns the same page and
advancing never repeats or skips an item.
"""

import base64
import binascii
import json
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any, TypeVar

from serp_volatility.utils.serp_extraction import ensure_utc

T = TypeVar("T")

MAX_CURSOR_LENGTH = 2048


class CursorError(ValueError):
    """Raised when a cursor cannot be decoded for the requested list."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class CursorCodec:
    """Encodes and decodes cursors of one kind.

    Example:
        codec = CursorCodec("serp-history", (datetime, str))
        token = codec.encode(snapshot.captured_at, snapshot.id)
        captured_at, snapshot_id = codec.decode(token)
    """

    def __init__(self, kind: str, field_types: Sequence[type]) -> None:
        self.kind = kind
        self.field_types = tuple(field_types)

    def encode(self, *values: Any) -> str:
        if len(values) != len(self.field_types):
            raise ValueError(
                f"{self.kind} cursor takes {len(self.field_types)} values, got {len(values)}"
            )
        parts: list[Any] = [self.kind]
        for value, expected in zip(values, self.field_types, strict=True):
            if expected is datetime:
                parts.append(ensure_utc(value).isoformat())
            else:
                parts.append(value)
        raw = json.dumps(parts, separators=(",", ":"), ensure_ascii=False)
        return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii").rstrip("=")

    def decode(self, cursor: str) -> tuple[Any, ...]:
        if not cursor or len(cursor) > MAX_CURSOR_LENGTH:
            raise CursorError("Invalid cursor")
        try:
            padded = cursor + "=" * (-len(cursor) % 4)
            raw = base64.urlsafe_b64decode(padded.encode("ascii"))
            parts = json.loads(raw.decode("utf-8"))
        except (binascii.Error, UnicodeError, ValueError) as e:
            raise CursorError("Invalid cursor") from e

        if not isinstance(parts, list) or len(parts) != len(self.field_types) + 1:
            raise CursorError("Invalid cursor")
        if parts[0] != self.kind:
            raise CursorError("Cursor does not belong to this list")

        decoded: list[Any] = []
        for value, expected in zip(parts[1:], self.field_types, strict=True):
            decoded.append(self._coerce(value, expected))
        return tuple(decoded)

    @staticmethod
    def _coerce(value: Any, expected: type) -> Any:
        if expected is datetime:
            if not isinstance(value, str):
                raise CursorError("Invalid cursor")
            try:
                parsed = datetime.fromisoformat(value)
            except ValueError as e:
                raise CursorError("Invalid cursor") from e
            if parsed.tzinfo is None:
                raise CursorError("Invalid cursor")
            return ensure_utc(parsed)
        if expected is float:
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise CursorError("Invalid cursor")
            return float(value)
        if expected is int:
            if isinstance(value, bool) or not isinstance(value, int):
                raise CursorError("Invalid cursor")
            return value
        if not isinstance(value, expected):
            raise CursorError("Invalid cursor")
        return value


def page_after(
    items: Sequence[T],
    sort_key: Callable[[T], Any],
    after: Any | None,
    limit: int,
) -> tuple[list[T], bool]:
    """Slice a list already sorted by ``sort_key`` ascending.

    Returns the first ``limit`` items whose key is strictly greater than
    ``after`` and whether more items follow.
    """
    if after is None:
        remaining = list(items)
    else:
        remaining = [item for item in items if sort_key(item) > after]
    return remaining[:limit], len(remaining) > limit


VOLATILITY_ALERTS_CURSOR = CursorCodec("volatility-alerts", (float, str, str))
SERP_HISTORY_CURSOR = CursorCodec("serp-history", (datetime, str))
SERP_SNAPSHOT_LIST_CURSOR = CursorCodec("serp-snapshots", (datetime, str))
KEYWORD_TARGET_LIST_CURSOR = CursorCodec("keyword-targets", (datetime, str))
