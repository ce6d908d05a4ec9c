"""Unit tests for opaque pagination cursors."""

import base64
import json
from datetime import UTC, datetime

import pytest

from serp_volatility.utils.cursor import (
    SERP_HISTORY_CURSOR,
    SERP_SNAPSHOT_LIST_CURSOR,
    VOLATILITY_ALERTS_CURSOR,
    CursorError,
    page_after,
)


def _raw_cursor(parts: object) -> str:
    raw = json.dumps(parts).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


class TestCursorCodec:
    """Tests for CursorCodec."""

    def test_round_trip(self) -> None:
        """Test encoded values decode to the same values."""
        captured_at = datetime(2026, 3, 1, 12, 30, tzinfo=UTC)
        token = SERP_HISTORY_CURSOR.encode(captured_at, "snap-1")

        assert "=" not in token
        assert SERP_HISTORY_CURSOR.decode(token) == (captured_at, "snap-1")

    def test_float_accepts_integers(self) -> None:
        """Test whole-number scores decode as floats."""
        token = _raw_cursor(["volatility-alerts", -40, "query", "id"])
        assert VOLATILITY_ALERTS_CURSOR.decode(token) == (-40.0, "query", "id")

    def test_kind_mismatch(self) -> None:
        """Test a cursor from one list is refused by another."""
        token = SERP_SNAPSHOT_LIST_CURSOR.encode(datetime(2026, 3, 1, tzinfo=UTC), "x")
        with pytest.raises(CursorError) as exc_info:
            SERP_HISTORY_CURSOR.decode(token)
        assert "does not belong" in exc_info.value.message

    @pytest.mark.parametrize(
        "token",
        [
            "",
            "!!!not-base64!!!",
            _raw_cursor({"kind": "serp-history"}),
            _raw_cursor(["serp-history", "2026-03-01T00:00:00+00:00"]),
            _raw_cursor(["serp-history", 12345, "snap-1"]),
            _raw_cursor(["serp-history", "2026-03-01T00:00:00", "snap-1"]),
            _raw_cursor(["serp-history", "yesterday", "snap-1"]),
            _raw_cursor(["serp-history", "2026-03-01T00:00:00+00:00", 7]),
            "a" * 5000,
        ],
    )
    def test_malformed(self, token: str) -> None:
        """Test garbage, wrong arity, wrong types and naive times are rejected."""
        with pytest.raises(CursorError):
            SERP_HISTORY_CURSOR.decode(token)

    def test_boolean_is_not_a_score(self) -> None:
        """Test booleans are not accepted as numbers."""
        with pytest.raises(CursorError):
            VOLATILITY_ALERTS_CURSOR.decode(_raw_cursor(["volatility-alerts", True, "q", "i"]))

    def test_encode_arity(self) -> None:
        """Test encoding with the wrong number of values fails loudly."""
        with pytest.raises(ValueError):
            SERP_HISTORY_CURSOR.encode("only-one")


class TestPageAfter:
    """Tests for page_after."""

    def test_walks_pages(self) -> None:
        """Test consecutive pages cover every item exactly once."""
        items = [1, 2, 3, 4, 5]

        page, has_more = page_after(items, lambda x: x, None, 2)
        assert (page, has_more) == ([1, 2], True)

        page, has_more = page_after(items, lambda x: x, 2, 2)
        assert (page, has_more) == ([3, 4], True)

        page, has_more = page_after(items, lambda x: x, 4, 2)
        assert (page, has_more) == ([5], False)

    def test_reusing_a_cursor_repeats_the_page(self) -> None:
        """Test pages are a pure function of the cursor."""
        items = [(1, "a"), (1, "b"), (2, "a")]
        first = page_after(items, lambda x: x, (1, "a"), 1)
        second = page_after(items, lambda x: x, (1, "a"), 1)
        assert first == second == ([(1, "b")], True)

    def test_exact_fit(self) -> None:
        """Test has_more is false when the page holds the rest."""
        assert page_after([1, 2], lambda x: x, None, 2) == ([1, 2], False)
