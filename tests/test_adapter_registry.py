"""Tests for the report format adapter registry."""

from __future__ import annotations

import pytest

from badgefleet.adapters import UnknownFormatError, adapter_for_repo, get_adapter, list_formats
from badgefleet.adapters.coverage import CoveragePyAdapter, GoCoverAdapter, LcovAdapter
from badgefleet.config import RepoConfig


class TestRegistry:
    def test_list_formats(self) -> None:
        assert list_formats() == ["go_cover", "lcov", "coverage_py"]

    @pytest.mark.parametrize(
        ("name", "adapter_type"),
        [("go_cover", GoCoverAdapter), ("lcov", LcovAdapter), ("coverage_py", CoveragePyAdapter)],
    )
    def test_get_adapter(self, name: str, adapter_type: type) -> None:
        adapter = get_adapter(name)
        assert isinstance(adapter, adapter_type)
        assert adapter.name == name

    def test_unknown_format(self) -> None:
        with pytest.raises(UnknownFormatError, match="jacoco"):
            get_adapter("jacoco")

    def test_depth_applies_to_statement_profiles(self) -> None:
        adapter = get_adapter("go_cover", path_depth_limit=2)
        assert isinstance(adapter, GoCoverAdapter)
        assert adapter.path_depth_limit == 2

    def test_depth_ignored_for_other_formats(self) -> None:
        assert isinstance(get_adapter("lcov", path_depth_limit=2), LcovAdapter)

    def test_adapter_for_repo(self) -> None:
        repo = RepoConfig(key="api", format="go_cover", url="u", path_depth_limit=4)
        adapter = adapter_for_repo(repo)
        assert isinstance(adapter, GoCoverAdapter)
        assert adapter.path_depth_limit == 4
