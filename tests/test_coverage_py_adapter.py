"""Tests for CoveragePyAdapter (adapters/coverage/coverage_py_adapter.py)."""

from __future__ import annotations

from pathlib import Path

import pytest

from badgefleet.adapters.coverage.coverage_py_adapter import CoveragePyAdapter

# ── Sample summaries ────────────────────────────────────────────

_SUMMARY = """\
Name                 Stmts   Miss  Cover
----------------------------------------
app/__init__.py          2      0   100%
app/models.py           40     10    75%
----------------------------------------
TOTAL                   42     10    76%
"""

_BRANCH_SUMMARY = """\
Name              Stmts   Miss Branch BrPart   Cover
----------------------------------------------------
lib/core.py          50      5     10      2  88.33%
----------------------------------------------------
TOTAL                50      5     10      2  88.33%
"""


class TestCoveragePyAdapterIdentity:
    def test_name(self) -> None:
        assert CoveragePyAdapter().name == "coverage_py"

    def test_language(self) -> None:
        assert CoveragePyAdapter().language == "python"


class TestCoveragePyParseReport:
    def test_total_and_modules(self) -> None:
        summary = CoveragePyAdapter().parse_report("coverage/service.txt", _SUMMARY)
        assert summary is not None
        assert summary.name == "service"
        assert summary.overall == 76.0
        assert summary.modules == {"app/__init__.py": 100.0, "app/models.py": 75.0}

    def test_branch_columns(self) -> None:
        summary = CoveragePyAdapter().parse_report("worker.txt", _BRANCH_SUMMARY)
        assert summary is not None
        assert summary.overall == pytest.approx(88.33)
        assert summary.modules == {"lib/core.py": pytest.approx(88.33)}

    def test_missing_total_returns_none(self) -> None:
        assert CoveragePyAdapter().parse_report("x.txt", "Name Stmts\nno total here\n") is None

    def test_out_of_range_total_returns_none(self) -> None:
        assert CoveragePyAdapter().parse_report("x.txt", "TOTAL 1 0 250%\n") is None


class TestCoveragePyAggregate:
    def test_unweighted_mean(self) -> None:
        adapter = CoveragePyAdapter()
        a = adapter.parse_report("a.txt", "TOTAL 10 0 100%\n")
        b = adapter.parse_report("b.txt", "TOTAL 1000 1000 0%\n")
        assert a is not None
        assert b is not None
        result = adapter.aggregate([a, b])
        assert result.overall == 50.0
        assert result.by_subunit == {"a": 100.0, "b": 0.0}

    def test_no_files_is_no_data(self) -> None:
        result = CoveragePyAdapter().aggregate([])
        assert result.overall is None
        assert result.by_subunit == {}

    def test_duplicate_names_keep_first(self) -> None:
        adapter = CoveragePyAdapter()
        first = adapter.parse_report("x/a.txt", "TOTAL 1 0 80%\n")
        second = adapter.parse_report("y/a.txt", "TOTAL 1 0 20%\n")
        assert first is not None
        assert second is not None
        result = adapter.aggregate([first, second])
        assert result.by_subunit == {"a": 80.0}

    def test_parse_local_file(self, tmp_path: Path) -> None:
        report = tmp_path / "service.txt"
        report.write_text(_SUMMARY, encoding="utf-8")
        result = CoveragePyAdapter().parse_coverage_file(report)
        assert result.overall == 76.0
        assert result.by_subunit == {"service": 76.0}


class TestCoveragePyReportSummary:
    def test_includes_module_rows(self) -> None:
        adapter = CoveragePyAdapter()
        summary = adapter.parse_report("coverage/service.txt", _SUMMARY)
        assert summary is not None
        assert adapter.report_summary(summary) == {
            "name": "service",
            "overall": 76.0,
            "modules": {"app/__init__.py": 100.0, "app/models.py": 75.0},
        }
