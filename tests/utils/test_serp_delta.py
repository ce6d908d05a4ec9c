"""Unit tests for snapshot-to-snapshot SERP deltas."""

from collections.abc import Callable

from serp_volatility.utils.serp_delta import compute_serp_delta
from serp_volatility.utils.serp_extraction import SnapshotRecord


class TestComputeSerpDelta:
    """Tests for compute_serp_delta."""

    def test_moves_entries_and_exits(
        self, record_factory: Callable[..., SnapshotRecord]
    ) -> None:
        """Test a, b, c followed by b, a, d."""
        delta = compute_serp_delta(
            record_factory("s1", 2, ["https://a.com", "https://b.com", "https://c.com"]),
            record_factory("s2", 1, ["https://b.com", "https://a.com", "https://d.com"]),
        )

        assert [(e.url, e.rank) for e in delta.entered] == [("https://d.com", 3)]
        assert [(e.url, e.rank) for e in delta.exited] == [("https://c.com", 3)]
        assert [(m.url, m.from_rank, m.to_rank, m.rank_delta) for m in delta.moved] == [
            ("https://b.com", 2, 1, 1),
            ("https://a.com", 1, 2, -1),
        ]
        assert delta.improved_count == 1
        assert delta.declined_count == 1
        assert delta.unchanged_count == 0
        assert delta.same_timestamp is False
        assert delta.payload_parse_warning is False

    def test_features_and_ai_overview(
        self, record_factory: Callable[..., SnapshotRecord]
    ) -> None:
        """Test feature additions/removals and AI overview change."""
        delta = compute_serp_delta(
            record_factory("s1", 2, ["https://a.com"], features=["video", "images"]),
            record_factory(
                "s2",
                1,
                ["https://a.com"],
                ai_overview_status="present",
                features=["images", "local_pack"],
            ),
        )
        assert delta.features_added == ["local_pack"]
        assert delta.features_removed == ["video"]
        assert delta.ai_overview_changed is True
        assert delta.unchanged_count == 1

    def test_same_snapshot(self, record_factory: Callable[..., SnapshotRecord]) -> None:
        """Test comparing a snapshot with itself."""
        record = record_factory("s1", 1, ["https://a.com", "https://b.com"])
        delta = compute_serp_delta(record, record)

        assert delta.same_timestamp is True
        assert delta.entered == []
        assert delta.exited == []
        assert delta.unchanged_count == 2

    def test_parse_warning(self, record_factory: Callable[..., SnapshotRecord]) -> None:
        """Test an empty page flags a parse warning."""
        delta = compute_serp_delta(
            record_factory("s1", 2, []),
            record_factory("s2", 1, ["https://a.com"]),
        )
        assert delta.payload_parse_warning is True
        assert [e.url for e in delta.entered] == ["https://a.com"]
