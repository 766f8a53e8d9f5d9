"""Coverage.py adapter for Python projects.

Parses the plain-text table printed by ``coverage report`` (or
``pytest --cov-report=term``)::

    Name                 Stmts   Miss  Cover
    ----------------------------------------
    app/__init__.py          2      0   100%
    app/models.py           40     10    75%
    ----------------------------------------
    TOTAL                   42     10    76%

Each tracked unit publishes one such ``<unit>.txt`` file; the repository
figure is the plain mean of the units' TOTAL percentages.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any

from badgefleet.adapters.coverage.base import (
    AggregateResult,
    CoverageAdapter,
    is_valid_percent,
    mean_percent,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_TOTAL_RE = re.compile(r"(\d+(?:\.\d+)?)%")

# "<module> <stmts> <miss> [<branch> <brpart>] <cover>%"
_MODULE_ROW_RE = re.compile(r"^([\w/.\-]+)\s+\d+\s+\d+(?:\s+\d+\s+\d+)?\s+(\d+(?:\.\d+)?)%")

# Header line, then the trailing separator and TOTAL lines
_HEADER_LINES = 1
_FOOTER_LINES = 2


@dataclass
class SummaryCoverage:
    """Coverage extracted from one textual summary file."""

    name: str
    overall: float
    modules: dict[str, float] = field(default_factory=dict)


# ── Adapter ──────────────────────────────────────────────────────


class CoveragePyAdapter(CoverageAdapter[SummaryCoverage]):
    """Adapter for coverage.py text reports, one ``.txt`` file per tracked unit."""

    listing_suffix = ".txt"
    default_listing = True

    @property
    def name(self) -> str:
        return "coverage_py"

    @property
    def language(self) -> str:
        return "python"

    def parse_report(self, location: str, content: str) -> SummaryCoverage | None:
        """Extract the TOTAL percentage and per-module rows from a summary.

        Returns None (and logs) when the last line carries no percentage.
        """
        lines = content.strip().split("\n")
        match = _TOTAL_RE.search(lines[-1])
        if not match:
            logger.error("Failed to extract overall coverage from %s", location)
            return None
        overall = float(match.group(1))
        if not is_valid_percent(overall):
            logger.error("Overall coverage out of range in %s: %s%%", location, match.group(1))
            return None

        modules: dict[str, float] = {}
        for line in lines[_HEADER_LINES : len(lines) - _FOOTER_LINES]:
            row = _MODULE_ROW_RE.match(line)
            if row:
                modules[row.group(1).strip()] = float(row.group(2))

        name = PurePosixPath(location).name.removesuffix(".txt")
        logger.debug("Summary %s: %.2f%% over %d module(s)", name, overall, len(modules))
        return SummaryCoverage(name=name, overall=overall, modules=modules)

    def aggregate(self, reports: Sequence[SummaryCoverage]) -> AggregateResult:
        """Average the per-file TOTAL percentages without weighting."""
        by_subunit: dict[str, float | None] = {}
        for report in sorted(reports, key=lambda summary: summary.name):
            if report.name in by_subunit:
                logger.warning("Duplicate coverage summary for %s; keeping the first", report.name)
                continue
            by_subunit[report.name] = report.overall
        return AggregateResult(overall=mean_percent(by_subunit.values()), by_subunit=by_subunit)

    def report_summary(self, report: SummaryCoverage) -> dict[str, Any]:
        return {"name": report.name, "overall": report.overall, "modules": dict(report.modules)}
