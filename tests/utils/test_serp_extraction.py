"""Unit tests for SERP payload extraction.

Tests cover:
- Provider items[] shape: organic results, rank fallbacks, feature tags
- Simple results[]/features[] shape
- Ordering and de-duplication of results
- Parse warnings for unreadable payloads
- SnapshotRecord helpers
"""

from datetime import UTC, datetime, timedelta, timezone

from serp_volatility.utils.serp_extraction import (
    PARSE_WARNING_NO_RESULTS,
    PARSE_WARNING_UNRECOGNIZED,
    RankedResult,
    SnapshotRecord,
    ensure_utc,
    extract_serp,
)


class TestEnsureUtc:
    """Tests for ensure_utc."""

    def test_naive_is_taken_as_utc(self) -> None:
        """Test naive datetimes are tagged as UTC without shifting."""
        result = ensure_utc(datetime(2026, 3, 1, 12, 0))
        assert result == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)

    def test_offset_is_converted(self) -> None:
        """Test aware datetimes are converted to UTC."""
        plus_two = timezone(timedelta(hours=2))
        result = ensure_utc(datetime(2026, 3, 1, 14, 0, tzinfo=plus_two))
        assert result == datetime(2026, 3, 1, 12, 0, tzinfo=UTC)
        assert result.utcoffset() == timedelta(0)


class TestProviderItems:
    """Tests for the items[] payload shape."""

    def test_organic_items_become_results(self) -> None:
        """Test organic items are ranked results and other types are features."""
        payload = {
            "items": [
                {"type": "organic", "url": "https://a.com", "rank_absolute": 2, "title": "A"},
                {"type": "ai_overview"},
                {"type": "organic", "url": "https://b.com", "rank_absolute": 1},
                {"type": "people_also_ask"},
            ]
        }
        extracted = extract_serp(payload)

        assert [r.url for r in extracted.results] == ["https://b.com", "https://a.com"]
        assert extracted.results[1].title == "A"
        assert extracted.features == ("ai_overview", "people_also_ask")
        assert extracted.parse_warning is None

    def test_rank_fallbacks(self) -> None:
        """Test rank_group then position are used when rank_absolute is missing."""
        payload = {
            "items": [
                {"type": "organic", "url": "https://a.com", "rank_group": 3},
                {"type": "organic", "url": "https://b.com", "position": 1},
                {"type": "organic", "url": "https://c.com", "rank_absolute": 0, "position": 2},
            ]
        }
        extracted = extract_serp(payload)

        assert [(r.url, r.rank) for r in extracted.results] == [
            ("https://b.com", 1),
            ("https://c.com", 2),
            ("https://a.com", 3),
        ]

    def test_items_without_organic_results_warn(self) -> None:
        """Test a page of only features carries a no-results warning."""
        extracted = extract_serp({"items": [{"type": "local_pack"}]})
        assert extracted.results == ()
        assert extracted.features == ("local_pack",)
        assert extracted.parse_warning == PARSE_WARNING_NO_RESULTS


class TestSimpleResults:
    """Tests for the results[]/features[] payload shape."""

    def test_results_and_features(self) -> None:
        """Test results are ranked and features accept strings or objects."""
        payload = {
            "results": [
                {"url": "https://a.com", "rank": 1},
                {"url": "https://b.com", "position": 2},
            ],
            "features": ["video", {"type": "ai_overview"}, "video"],
        }
        extracted = extract_serp(payload)

        assert [(r.url, r.rank) for r in extracted.results] == [
            ("https://a.com", 1),
            ("https://b.com", 2),
        ]
        assert extracted.features == ("ai_overview", "video")

    def test_duplicate_url_keeps_best_rank(self) -> None:
        """Test the first occurrence in rank order wins for repeated URLs."""
        payload = {
            "results": [
                {"url": "https://a.com", "rank": 4},
                {"url": "https://a.com", "rank": 2},
                {"url": "https://b.com", "rank": 1},
            ]
        }
        extracted = extract_serp(payload)
        assert [(r.url, r.rank) for r in extracted.results] == [
            ("https://b.com", 1),
            ("https://a.com", 2),
        ]

    def test_unranked_results_sort_last(self) -> None:
        """Test results without a rank follow ranked ones, by URL."""
        payload = {
            "results": [
                {"url": "https://z.com"},
                {"url": "https://y.com"},
                {"url": "https://a.com", "rank": 5},
            ]
        }
        extracted = extract_serp(payload)
        assert [r.url for r in extracted.results] == [
            "https://a.com",
            "https://y.com",
            "https://z.com",
        ]

    def test_entries_without_url_are_skipped(self) -> None:
        """Test malformed entries are dropped rather than raising."""
        payload = {"results": [{"rank": 1}, "junk", {"url": "  ", "rank": 2}]}
        extracted = extract_serp(payload)
        assert extracted.results == ()
        assert extracted.parse_warning == PARSE_WARNING_NO_RESULTS


class TestUnrecognizedPayloads:
    """Tests for payloads that cannot be read."""

    def test_unknown_shape(self) -> None:
        """Test an object without items or results is flagged."""
        extracted = extract_serp({"foo": "bar"})
        assert extracted.results == ()
        assert extracted.parse_warning == PARSE_WARNING_UNRECOGNIZED

    def test_non_dict_payload(self) -> None:
        """Test non-object payloads are flagged."""
        assert extract_serp(["not", "a", "dict"]).parse_warning == PARSE_WARNING_UNRECOGNIZED
        assert extract_serp(None).parse_warning == PARSE_WARNING_UNRECOGNIZED


class TestSnapshotRecord:
    """Tests for SnapshotRecord."""

    def test_from_payload(self) -> None:
        """Test records carry the extraction and a UTC capture time."""
        record = SnapshotRecord.from_payload(
            snapshot_id="s1",
            captured_at=datetime(2026, 3, 1, 12, 0),
            ai_overview_status="present",
            raw_payload={"results": [{"url": "https://a.com", "rank": 1}]},
        )
        assert record.captured_at.tzinfo is not None
        assert record.rank_map == {"https://a.com": 1}
        assert record.urls == {"https://a.com"}
        assert record.parse_warning is None

    def test_rank_map_skips_unranked(self) -> None:
        """Test results without a rank are listed but not ranked."""
        record = SnapshotRecord(
            id="s1",
            captured_at=datetime(2026, 3, 1, tzinfo=UTC),
            ai_overview_status="absent",
            results=(RankedResult("https://a.com", 1), RankedResult("https://b.com", None)),
        )
        assert record.rank_map == {"https://a.com": 1}
        assert record.urls == {"https://a.com", "https://b.com"}
