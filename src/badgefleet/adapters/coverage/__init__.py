"""Coverage report adapters for the unified aggregation model."""

from badgefleet.adapters.coverage.base import (
    AggregateResult,
    CoverageAdapter,
    CoverageCounts,
    Percent,
)
from badgefleet.adapters.coverage.coverage_py_adapter import CoveragePyAdapter
from badgefleet.adapters.coverage.go_cover_adapter import GoCoverAdapter
from badgefleet.adapters.coverage.lcov_adapter import LcovAdapter

__all__ = [
    "AggregateResult",
    "CoverageAdapter",
    "CoverageCounts",
    "CoveragePyAdapter",
    "GoCoverAdapter",
    "LcovAdapter",
    "Percent",
]
