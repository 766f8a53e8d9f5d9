"""LCOV coverage adapter for JavaScript/TypeScript (Istanbul, c8, Jest) reports.

A repository publishes one ``lcov.info`` segment per package. Each segment is
summarised by line, function and branch counts; the repository figure is the
segment line coverage weighted by the number of source files per segment.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from badgefleet.adapters.coverage.base import (
    MAX_PERCENT,
    AggregateResult,
    CoverageAdapter,
    CoverageCounts,
    Percent,
    mean_percent,
    weighted_mean_percent,
)
from badgefleet.adapters.coverage.go_cover_adapter import ROOT_SUBUNIT

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_LCOV_SF = "SF"
_LCOV_END = "end_of_record"
_LCOV_DA_PARTS = 2
_LCOV_BRDA_PARTS = 4

# Summary keys -> (kind, "found" | "hit")
_SUMMARY_KEYS = {
    "LF": ("lines", "found"),
    "LH": ("lines", "hit"),
    "FNF": ("functions", "found"),
    "FNH": ("functions", "hit"),
    "BRF": ("branches", "found"),
    "BRH": ("branches", "hit"),
}


@dataclass
class _LcovRecord:
    """Accumulator for one ``SF:`` ... ``end_of_record`` block."""

    path: str
    summary: dict[tuple[str, str], int] = field(default_factory=dict)
    da: dict[int, int] = field(default_factory=dict)
    fns: set[str] = field(default_factory=set)
    fnda: dict[str, int] = field(default_factory=dict)
    brda: dict[tuple[int, int, int], int] = field(default_factory=dict)

    def _counts(self, kind: str, derived: CoverageCounts) -> CoverageCounts:
        found = self.summary.get((kind, "found"))
        hit = self.summary.get((kind, "hit"))
        if found is None or hit is None:
            return derived
        return CoverageCounts(found=found, hit=min(hit, found))

    def to_file_counts(self) -> FileCounts:
        lines = CoverageCounts(
            found=len(self.da), hit=sum(1 for count in self.da.values() if count > 0)
        )
        names = self.fns | set(self.fnda)
        functions = CoverageCounts(
            found=len(names), hit=sum(1 for name in names if self.fnda.get(name, 0) > 0)
        )
        branches = CoverageCounts(
            found=len(self.brda), hit=sum(1 for taken in self.brda.values() if taken > 0)
        )
        return FileCounts(
            path=self.path,
            lines=self._counts("lines", lines),
            functions=self._counts("functions", functions),
            branches=self._counts("branches", branches),
        )


@dataclass
class FileCounts:
    """Found/hit counts for one logical source file of a segment."""

    path: str
    lines: CoverageCounts
    functions: CoverageCounts
    branches: CoverageCounts


@dataclass
class SegmentCoverage:
    """Coverage summary of one LCOV segment file."""

    location: str
    files: list[FileCounts] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.files)

    def _total(self, kind: str) -> CoverageCounts:
        total = CoverageCounts()
        for file_counts in self.files:
            total = total + getattr(file_counts, kind)
        return total

    @property
    def line_coverage(self) -> Percent:
        return self._total("lines").percent()

    @property
    def function_coverage(self) -> Percent:
        return self._total("functions").percent()

    @property
    def branch_coverage(self) -> float:
        """Branch percentage; a segment without branches counts as fully covered."""
        percent = self._total("branches").percent()
        return MAX_PERCENT if percent is None else percent

    @property
    def overall(self) -> Percent:
        """Unweighted mean of line, function and branch coverage."""
        return mean_percent([self.line_coverage, self.function_coverage, self.branch_coverage])


def parse_lcov(content: str) -> list[FileCounts]:
    """Parse LCOV tracefile text into per-file counts.

    Summary records (``LF``/``LH``, ``FNF``/``FNH``, ``BRF``/``BRH``) win;
    when one is missing its counts are derived from ``DA``, ``FN``/``FNDA``
    and ``BRDA`` records.
    """
    files: list[FileCounts] = []
    record: _LcovRecord | None = None

    for raw_line in content.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        if line == _LCOV_END:
            if record is not None:
                files.append(record.to_file_counts())
            record = None
            continue
        key, sep, value = line.partition(":")
        if not sep:
            continue
        value = value.strip()
        if key == _LCOV_SF:
            if record is not None:
                files.append(record.to_file_counts())
            record = _LcovRecord(path=value)
            continue
        if record is None:
            continue
        try:
            _apply_lcov_key(record, key, value)
        except ValueError:
            logger.debug("Skipping malformed LCOV line in %s: %s", record.path, line)

    if record is not None:
        files.append(record.to_file_counts())
    return files


def _apply_lcov_key(record: _LcovRecord, key: str, value: str) -> None:
    if key in _SUMMARY_KEYS:
        count = int(value)
        if count < 0:
            raise ValueError(value)
        record.summary[_SUMMARY_KEYS[key]] = count
    elif key == "DA":
        parts = value.split(",")
        if len(parts) >= _LCOV_DA_PARTS:
            line_number = int(parts[0])
            record.da[line_number] = max(record.da.get(line_number, 0), int(parts[1]))
    elif key == "FN":
        _, _, name = value.partition(",")
        if name:
            record.fns.add(name.strip())
    elif key == "FNDA":
        count_s, _, name = value.partition(",")
        if name:
            record.fnda[name.strip()] = int(count_s)
    elif key == "BRDA":
        parts = value.split(",")
        if len(parts) >= _LCOV_BRDA_PARTS:
            taken_s = parts[3].strip()
            taken = 0 if taken_s == "-" else int(taken_s)
            record.brda[(int(parts[0]), int(parts[1]), int(parts[2]))] = taken


def segment_keys(locations: Sequence[str]) -> dict[str, str]:
    """Map each segment location to a unique subunit key.

    The key is the segment's parent directory name. Keys shared by several
    locations are widened first to the full parent directory path, then to
    the full location, so that distinct segments never collapse onto one
    badge.
    """
    keys: dict[str, str] = {}
    for location in locations:
        parents = location.split("/")[:-1]
        keys[location] = parents[-1] if parents else ROOT_SUBUNIT

    for widen in (_parent_path, str):
        counts = Counter(keys.values())
        keys = {
            location: (widen(location) if counts[key] > 1 else key)
            for location, key in keys.items()
        }
    return keys


def _parent_path(location: str) -> str:
    parent, _, _ = location.rpartition("/")
    return parent or location


# ── Adapter ──────────────────────────────────────────────────────


class LcovAdapter(CoverageAdapter[SegmentCoverage]):
    """Adapter for per-package LCOV segments (``coverage/<pkg>/lcov.info``)."""

    listing_suffix = "lcov.info"
    default_listing = True

    @property
    def name(self) -> str:
        return "lcov"

    @property
    def language(self) -> str:
        return "typescript"

    def parse_report(self, location: str, content: str) -> SegmentCoverage | None:
        files = parse_lcov(content)
        if not files:
            logger.warning("No LCOV records found in %s", location)
            return None
        segment = SegmentCoverage(location=location, files=files)
        logger.debug(
            "Segment %s: line=%s function=%s branch=%.2f overall=%s files=%d",
            location,
            segment.line_coverage,
            segment.function_coverage,
            segment.branch_coverage,
            segment.overall,
            segment.file_count,
        )
        return segment

    def aggregate(self, reports: Sequence[SegmentCoverage]) -> AggregateResult:
        """Weight each segment's line coverage by its file count."""
        ordered = sorted(reports, key=lambda segment: segment.location)
        keys = segment_keys([segment.location for segment in ordered])
        overall = weighted_mean_percent(
            (segment.line_coverage, segment.file_count) for segment in ordered
        )
        return AggregateResult(
            overall=overall,
            by_subunit={keys[segment.location]: segment.line_coverage for segment in ordered},
        )

    def report_summary(self, report: SegmentCoverage) -> dict[str, Any]:
        """Line, function and branch figures of one segment with their mean."""
        return {
            "location": report.location,
            "files": report.file_count,
            "line": report.line_coverage,
            "function": report.function_coverage,
            "branch": report.branch_coverage,
            "overall": report.overall,
        }
