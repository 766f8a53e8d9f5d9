"""Tests for LcovAdapter (adapters/coverage/lcov_adapter.py)."""

from __future__ import annotations

import pytest

from badgefleet.adapters.coverage.lcov_adapter import (
    LcovAdapter,
    SegmentCoverage,
    parse_lcov,
    segment_keys,
)


def _lcov_file(path: str, found: int, hit: int) -> str:
    return f"SF:{path}\nLF:{found}\nLH:{hit}\nend_of_record\n"


def _segment(adapter: LcovAdapter, location: str, files: list[tuple[int, int]]) -> SegmentCoverage:
    content = "".join(_lcov_file(f"src/f{i}.ts", found, hit) for i, (found, hit) in enumerate(files))
    segment = adapter.parse_report(location, content)
    assert segment is not None
    return segment


# ── Sample tracefile ────────────────────────────────────────────

_DETAILED_LCOV = """\
TN:
SF:src/index.ts
FN:1,main
FN:8,helper
FNDA:3,main
FNDA:0,helper
DA:1,3
DA:2,3
DA:8,0
DA:9,0
BRDA:2,0,0,3
BRDA:2,0,1,-
end_of_record
"""


class TestLcovAdapterIdentity:
    def test_name(self) -> None:
        assert LcovAdapter().name == "lcov"

    def test_language(self) -> None:
        assert LcovAdapter().language == "typescript"

    def test_listing_defaults(self) -> None:
        assert LcovAdapter.listing_suffix == "lcov.info"
        assert LcovAdapter.default_listing is True


class TestParseLcov:
    def test_derives_counts_from_detail_records(self) -> None:
        (counts,) = parse_lcov(_DETAILED_LCOV)
        assert counts.path == "src/index.ts"
        assert (counts.lines.found, counts.lines.hit) == (4, 2)
        assert (counts.functions.found, counts.functions.hit) == (2, 1)
        assert (counts.branches.found, counts.branches.hit) == (2, 1)

    def test_summary_records_win(self) -> None:
        content = "SF:a.ts\nDA:1,1\nLF:10\nLH:7\nend_of_record\n"
        (counts,) = parse_lcov(content)
        assert (counts.lines.found, counts.lines.hit) == (10, 7)

    def test_malformed_values_are_skipped(self) -> None:
        content = "SF:a.ts\nDA:x,1\nDA:2,1\nend_of_record\n"
        (counts,) = parse_lcov(content)
        assert counts.lines.found == 1

    def test_missing_end_of_record_keeps_last_file(self) -> None:
        assert len(parse_lcov("SF:a.ts\nDA:1,1\n")) == 1

    def test_no_records(self) -> None:
        assert parse_lcov("TN:\n") == []


class TestSegmentCoverage:
    def test_branch_coverage_without_branches_is_full(self) -> None:
        segment = _segment(LcovAdapter(), "coverage/web/lcov.info", [(10, 5)])
        assert segment.branch_coverage == 100.0

    def test_function_coverage_without_functions_is_no_data(self) -> None:
        segment = _segment(LcovAdapter(), "coverage/web/lcov.info", [(10, 5)])
        assert segment.function_coverage is None

    def test_overall_is_mean_of_kinds_with_data(self) -> None:
        segment = LcovAdapter().parse_report("coverage/web/lcov.info", _DETAILED_LCOV)
        assert segment is not None
        assert segment.overall == pytest.approx((50.0 + 50.0 + 50.0) / 3)


class TestSegmentKeys:
    def test_parent_directory_name(self) -> None:
        keys = segment_keys(["coverage/web/lcov.info", "coverage/api/lcov.info"])
        assert keys == {"coverage/web/lcov.info": "web", "coverage/api/lcov.info": "api"}

    def test_collisions_widen_to_parent_path(self) -> None:
        keys = segment_keys(["apps/web/lcov.info", "libs/web/lcov.info", "coverage/api/lcov.info"])
        assert keys["apps/web/lcov.info"] == "apps/web"
        assert keys["libs/web/lcov.info"] == "libs/web"
        assert keys["coverage/api/lcov.info"] == "api"

    def test_top_level_segment_is_root(self) -> None:
        assert segment_keys(["lcov.info"]) == {"lcov.info": "(root)"}


class TestLcovAggregate:
    def test_file_weighted_line_coverage(self) -> None:
        adapter = LcovAdapter()
        big = _segment(adapter, "coverage/big/lcov.info", [(10, 9), (10, 9), (10, 9)])
        small = _segment(adapter, "coverage/small/lcov.info", [(10, 1)])
        result = adapter.aggregate([big, small])
        assert result.overall == pytest.approx(70.0)
        assert result.by_subunit == {"big": pytest.approx(90.0), "small": pytest.approx(10.0)}

    def test_segments_without_lines_do_not_weigh(self) -> None:
        adapter = LcovAdapter()
        full = _segment(adapter, "coverage/a/lcov.info", [(4, 4)])
        empty = _segment(adapter, "coverage/b/lcov.info", [(0, 0), (0, 0)])
        result = adapter.aggregate([full, empty])
        assert result.overall == 100.0
        assert result.by_subunit["b"] is None

    def test_order_independent(self) -> None:
        adapter = LcovAdapter()
        a = _segment(adapter, "coverage/a/lcov.info", [(10, 3)])
        b = _segment(adapter, "coverage/b/lcov.info", [(10, 8), (10, 2)])
        assert adapter.aggregate([a, b]) == adapter.aggregate([b, a])

    def test_empty_content_is_none(self) -> None:
        assert LcovAdapter().parse_report("coverage/x/lcov.info", "") is None


class TestLcovReportSummary:
    def test_reports_every_kind_and_segment_overall(self) -> None:
        adapter = LcovAdapter()
        segment = adapter.parse_report("coverage/web/lcov.info", _DETAILED_LCOV)
        assert segment is not None
        assert adapter.report_summary(segment) == {
            "location": "coverage/web/lcov.info",
            "files": 1,
            "line": 50.0,
            "function": 50.0,
            "branch": 50.0,
            "overall": pytest.approx(50.0),
        }

    def test_segment_without_functions(self) -> None:
        adapter = LcovAdapter()
        segment = _segment(adapter, "coverage/api/lcov.info", [(10, 5), (10, 10)])
        details = adapter.report_summary(segment)
        assert details["files"] == 2
        assert details["function"] is None
        assert details["overall"] == pytest.approx((75.0 + 100.0) / 2)
