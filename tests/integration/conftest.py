"""Shared fixtures for integration tests."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

# ── Marker registration ──────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    """Register the ``integration`` marker."""
    config.addinivalue_line("markers", "integration: integration tests")


# ── Git helpers ──────────────────────────────────────────────────


def git(cwd: Path, *args: str) -> str:
    """Run git in *cwd* and return stdout."""
    return subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    ).stdout


@pytest.fixture()
def git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    """Give commits made during the test a fixed author."""
    if shutil.which("git") is None:
        pytest.skip("git executable not available")
    for role in ("AUTHOR", "COMMITTER"):
        monkeypatch.setenv(f"GIT_{role}_NAME", "Coverage Bot")
        monkeypatch.setenv(f"GIT_{role}_EMAIL", "bot@example.com")


@pytest.fixture()
def badges_remote(tmp_path: Path, git_identity: None) -> Path:
    """A bare publishing repository seeded with one commit."""
    remote = tmp_path / "badges.git"
    git(tmp_path, "init", "--bare", str(remote))
    seed = tmp_path / "seed"
    git(tmp_path, "clone", str(remote), str(seed))
    (seed / "README.md").write_text("# Code Coverage\n\n", encoding="utf-8")
    git(seed, "add", "-A")
    git(seed, "commit", "-m", "init")
    git(seed, "push", "origin", "HEAD")
    return remote
