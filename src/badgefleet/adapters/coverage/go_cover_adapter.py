"""Go coverage adapter: parse ``go test -coverprofile`` statement profiles.

Each profile data line reads ``file:startLine.startCol,endLine.endCol numStmts count``.
Coverage is binary per block: a block whose count is positive contributes
its whole statement count as covered.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from badgefleet.adapters.coverage.base import AggregateResult, CoverageAdapter, CoverageCounts

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

_MODE_PREFIX = "mode:"
_MIN_TOKENS = 3
_COUNT_RE = re.compile(r"^\d+$")

DEFAULT_PATH_DEPTH_LIMIT = 5

ROOT_SUBUNIT = "(root)"
"""Key used for files that sit directly at the top of the profile paths."""


def subunit_for_path(file_path: str, depth_limit: int) -> str:
    """Reduce a profile file path to its sub-package key.

    The path is split on ``/``, truncated to ``depth_limit + 1`` segments,
    and the last remaining segment (normally the file name) is dropped.
    """
    segments = file_path.split("/")[: depth_limit + 1]
    key = "/".join(segments[:-1])
    return key or ROOT_SUBUNIT


@dataclass
class StatementProfile:
    """Statement counts of one cover profile, grouped by sub-package."""

    location: str
    packages: dict[str, CoverageCounts] = field(default_factory=dict)


# ── Adapter ──────────────────────────────────────────────────────


class GoCoverAdapter(CoverageAdapter[StatementProfile]):
    """Adapter for Go statement cover profiles (``coverage.out``)."""

    listing_suffix = ".out"

    def __init__(self, path_depth_limit: int = DEFAULT_PATH_DEPTH_LIMIT) -> None:
        if path_depth_limit < 1:
            msg = f"path_depth_limit must be at least 1 (got: {path_depth_limit})"
            raise ValueError(msg)
        self._path_depth_limit = path_depth_limit

    @property
    def name(self) -> str:
        return "go_cover"

    @property
    def language(self) -> str:
        return "go"

    @property
    def path_depth_limit(self) -> int:
        return self._path_depth_limit

    def parse_report(self, location: str, content: str) -> StatementProfile | None:
        """Parse a cover profile into per-package statement counts.

        Lines with fewer than three tokens or non-numeric counts are skipped.
        Returns None when no valid line remains.
        """
        profile = StatementProfile(location=location)
        skipped = 0

        for raw_line in content.split("\n"):
            line = raw_line.strip()
            if not line or line.startswith(_MODE_PREFIX):
                continue
            tokens = line.split()
            if len(tokens) < _MIN_TOKENS:
                skipped += 1
                continue
            statements_s, covered_s = tokens[-2], tokens[-1]
            if not (_COUNT_RE.match(statements_s) and _COUNT_RE.match(covered_s)):
                skipped += 1
                continue

            statements = int(statements_s)
            covered = int(covered_s)
            package = subunit_for_path(tokens[0], self._path_depth_limit)
            counts = CoverageCounts(found=statements, hit=statements if covered > 0 else 0)
            profile.packages[package] = profile.packages.get(package, CoverageCounts()) + counts

        if skipped:
            logger.debug("Skipped %d malformed line(s) in %s", skipped, location)
        if not profile.packages:
            logger.warning("No valid cover profile lines in %s", location)
            return None
        return profile

    def aggregate(self, reports: Sequence[StatementProfile]) -> AggregateResult:
        """Sum statement counts per package and across the repository."""
        packages: dict[str, CoverageCounts] = {}
        for report in reports:
            for package, counts in report.packages.items():
                packages[package] = packages.get(package, CoverageCounts()) + counts

        total = CoverageCounts()
        for counts in packages.values():
            total = total + counts

        return AggregateResult(
            overall=total.percent(),
            by_subunit={package: counts.percent() for package, counts in packages.items()},
        )

    def report_summary(self, report: StatementProfile) -> dict[str, Any]:
        return {
            "location": report.location,
            "packages": {package: counts.percent() for package, counts in report.packages.items()},
        }
