"""Git utilities for the badge publishing repository.

Thin wrappers over the ``git`` executable: clone or refresh the working
copy, detect changes, and commit and push them.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
from pathlib import Path
from urllib.parse import urlsplit, urlunsplit

logger = logging.getLogger(__name__)

_REDACTED = "***"


class GitOperationError(Exception):
    """Exception raised when git operations fail."""


def _git_executable() -> str:
    """Resolve the full path to the ``git`` executable."""
    return shutil.which("git") or "git"


def authenticated_url(url: str, token: str) -> str:
    """Embed *token* as the user part of an HTTPS clone URL.

    Non-HTTPS URLs and empty tokens are returned unchanged.
    """
    split = urlsplit(url)
    if not token or split.scheme != "https":
        return url
    host = split.hostname or ""
    if split.port:
        host = f"{host}:{split.port}"
    return urlunsplit((split.scheme, f"{token}@{host}", split.path, split.query, split.fragment))


def _redact(text: str, secret: str) -> str:
    return text.replace(secret, _REDACTED) if secret else text


def _run_git(args: list[str], *, cwd: Path | None = None, secret: str = "") -> str:
    """Run a git command and return its stdout.

    Raises:
        GitOperationError: If the command fails; *secret* is masked in the message.
    """
    try:
        result = subprocess.run(
            [_git_executable(), *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
        )
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        msg = f"git {args[0]} failed (exit {exc.returncode}): {_redact(detail, secret)}"
        # The CalledProcessError argv holds the authenticated URL.
        raise GitOperationError(msg) from None
    except FileNotFoundError as exc:
        raise GitOperationError("git executable not found") from exc
    return result.stdout


def clone_repo(url: str, dest: Path, *, token: str = "") -> None:
    """Clone *url* into *dest*, authenticating with *token* when given.

    Raises:
        GitOperationError: If the clone fails.
    """
    _run_git(["clone", authenticated_url(url, token), str(dest)], secret=token)
    logger.info("Cloned %s into %s", url, dest)


def pull(repo_path: Path) -> None:
    """Fast-forward the working copy from its upstream.

    Raises:
        GitOperationError: If the pull fails.
    """
    _run_git(["pull", "--ff-only"], cwd=repo_path)
    logger.info("Pulled latest changes in %s", repo_path)


def prepare_workdir(repo_path: Path, url: str, *, token: str = "") -> None:
    """Clone the publishing repository, or pull it when already checked out.

    Raises:
        GitOperationError: If cloning or pulling fails, or no URL is configured
            for a missing working copy.
    """
    if (repo_path / ".git").is_dir():
        pull(repo_path)
        return
    if not url:
        raise GitOperationError(
            f"{repo_path} is not a git working copy and no publish.repo_url is configured"
        )
    clone_repo(url, repo_path, token=token)


def has_changes(repo_path: Path) -> bool:
    """Return True when ``git status --porcelain`` reports anything.

    Raises:
        GitOperationError: If the status cannot be read.
    """
    return bool(_run_git(["status", "--porcelain"], cwd=repo_path).strip())


def add_all(repo_path: Path) -> None:
    """Stage every change in the working tree.

    Raises:
        GitOperationError: If the operation fails.
    """
    _run_git(["add", "-A"], cwd=repo_path)


def commit(repo_path: Path, message: str) -> str:
    """Commit staged changes.

    Returns:
        Commit SHA.

    Raises:
        GitOperationError: If the operation fails.
    """
    _run_git(["commit", "-m", message], cwd=repo_path)
    commit_sha = _run_git(["rev-parse", "HEAD"], cwd=repo_path).strip()
    logger.info("Created commit %s", commit_sha[:8])
    return commit_sha


def push(repo_path: Path) -> None:
    """Push the current branch to its upstream.

    Raises:
        GitOperationError: If the operation fails.
    """
    _run_git(["push"], cwd=repo_path)
    logger.info("Pushed %s", repo_path)


def publish_changes(repo_path: Path, message: str, *, push_changes: bool = True) -> str | None:
    """Stage, commit and push everything when the working tree changed.

    Returns:
        The new commit SHA, or None when there was nothing to publish.

    Raises:
        GitOperationError: If any git step fails.
    """
    if not has_changes(repo_path):
        logger.info("No badge changes to publish in %s", repo_path)
        return None
    add_all(repo_path)
    commit_sha = commit(repo_path, message)
    if push_changes:
        push(repo_path)
    return commit_sha
