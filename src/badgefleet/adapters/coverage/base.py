"""Base classes and data models for coverage report adapters."""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeAlias, TypeVar

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

Percent: TypeAlias = float | None
"""A coverage percentage in ``[0, 100]``, or ``None`` when no data is available."""

MAX_PERCENT = 100.0

ReportT = TypeVar("ReportT")


@dataclass(frozen=True)
class CoverageCounts:
    """Found/hit counts for one measurable quantity (statements, lines, functions...)."""

    found: int = 0
    hit: int = 0

    def __post_init__(self) -> None:
        if self.found < 0 or self.hit < 0:
            msg = f"Coverage counts must be non-negative (found={self.found}, hit={self.hit})"
            raise ValueError(msg)
        if self.hit > self.found:
            msg = f"Covered count exceeds total (found={self.found}, hit={self.hit})"
            raise ValueError(msg)

    def __add__(self, other: CoverageCounts) -> CoverageCounts:
        return CoverageCounts(found=self.found + other.found, hit=self.hit + other.hit)

    def percent(self) -> Percent:
        """Return ``100 * hit / found``, or ``None`` when nothing was found."""
        if self.found == 0:
            return None
        return (self.hit / self.found) * MAX_PERCENT


def is_valid_percent(value: Percent) -> bool:
    """Return True for ``None`` or a finite float within ``[0, 100]``."""
    if value is None:
        return True
    return math.isfinite(value) and 0.0 <= value <= MAX_PERCENT


def mean_percent(values: Iterable[Percent]) -> Percent:
    """Unweighted mean of the values that carry data; ``None`` if none do."""
    present = [value for value in values if value is not None]
    if not present:
        return None
    return sum(present) / len(present)


def weighted_mean_percent(pairs: Iterable[tuple[Percent, int]]) -> Percent:
    """Weighted mean of ``(percent, weight)`` pairs, skipping pairs without data."""
    total_weight = 0
    weighted_sum = 0.0
    for value, weight in pairs:
        if value is None or weight <= 0:
            continue
        weighted_sum += value * weight
        total_weight += weight
    if total_weight == 0:
        return None
    return weighted_sum / total_weight


@dataclass
class AggregateResult:
    """Normalized coverage for one repository.

    This is the common model every format adapter reduces its native
    reports into.
    """

    overall: Percent = None
    """Repository-level percentage, ``None`` when no data was obtainable."""

    by_subunit: dict[str, Percent] = field(default_factory=dict)
    """Percentage per sub-package / sub-module key."""

    @property
    def has_data(self) -> bool:
        """Return True when the repository-level percentage is known."""
        return self.overall is not None


class CoverageAdapter(ABC, Generic[ReportT]):
    """Abstract base class for coverage report format adapters.

    Each concrete adapter turns the raw text of one fetched report file into
    a per-file contribution (``parse_report``) and combines any number of
    contributions into an ``AggregateResult`` (``aggregate``). Combination
    is order-independent so report files may be fetched concurrently.
    """

    listing_suffix: str = ""
    """File suffix selected from a directory listing for this format."""

    default_listing: bool = False
    """Whether a configured source URL is a directory listing by default."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Format identifier used as the configuration key (e.g. 'lcov')."""

    @property
    @abstractmethod
    def language(self) -> str:
        """Primary language whose tooling emits this format."""

    @abstractmethod
    def parse_report(self, location: str, content: str) -> ReportT | None:
        """Parse one report file.

        Args:
            location: Path of the report inside its source (used for naming).
            content: Raw report text.

        Returns:
            The file's contribution, or None when it holds no usable data.
        """

    @abstractmethod
    def aggregate(self, reports: Sequence[ReportT]) -> AggregateResult:
        """Combine per-file contributions into repository and subunit percentages."""

    def report_summary(self, report: ReportT) -> dict[str, Any]:  # noqa: ARG002
        """Format-specific details of one parsed report, for diagnostics output."""
        return {}

    def parse_coverage_file(self, coverage_file: Path) -> AggregateResult:
        """Parse a local report file into an ``AggregateResult``."""
        try:
            content = coverage_file.read_text(encoding="utf-8")
        except OSError as e:
            logger.error("Failed to read coverage file %s: %s", coverage_file, e)
            return AggregateResult()

        report = self.parse_report(coverage_file.as_posix(), content)
        if report is None:
            return AggregateResult()
        return self.aggregate([report])
