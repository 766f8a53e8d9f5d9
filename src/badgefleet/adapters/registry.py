"""Adapter registry: map configured report formats to coverage adapters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from badgefleet.adapters.coverage.coverage_py_adapter import CoveragePyAdapter
from badgefleet.adapters.coverage.go_cover_adapter import GoCoverAdapter
from badgefleet.adapters.coverage.lcov_adapter import LcovAdapter

if TYPE_CHECKING:
    from badgefleet.adapters.coverage.base import CoverageAdapter
    from badgefleet.config import RepoConfig

logger = logging.getLogger(__name__)

_ADAPTERS: dict[str, type[CoverageAdapter[Any]]] = {
    "go_cover": GoCoverAdapter,
    "lcov": LcovAdapter,
    "coverage_py": CoveragePyAdapter,
}


class UnknownFormatError(ValueError):
    """Raised when a report format has no registered adapter."""


def list_formats() -> list[str]:
    """Return the names of all supported report formats."""
    return list(_ADAPTERS)


def get_adapter(format_name: str, *, path_depth_limit: int | None = None) -> CoverageAdapter[Any]:
    """Instantiate the adapter for *format_name*.

    Args:
        format_name: Format key as used in configuration (e.g. ``"go_cover"``).
        path_depth_limit: Sub-package depth for statement profiles; ignored
            by the other formats.

    Raises:
        UnknownFormatError: If the format is not supported.
    """
    adapter_class = _ADAPTERS.get(format_name)
    if adapter_class is None:
        raise UnknownFormatError(
            f"Unknown report format: {format_name} (expected one of: {', '.join(_ADAPTERS)})"
        )
    if adapter_class is GoCoverAdapter and path_depth_limit is not None:
        return GoCoverAdapter(path_depth_limit=path_depth_limit)
    return adapter_class()


def adapter_for_repo(repo: RepoConfig) -> CoverageAdapter[Any]:
    """Instantiate the adapter configured for *repo*."""
    logger.debug("Using %s adapter for %s", repo.format, repo.key)
    return get_adapter(repo.format, path_depth_limit=repo.path_depth_limit)
