"""Configuration parsing from ``.badgefleet.yml``."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from badgefleet.adapters.registry import UnknownFormatError, get_adapter, list_formats
from badgefleet.index import INDEX_FILENAME

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".badgefleet.yml"

_ENV_VAR_RE = re.compile(r"\$\{(\w+)\}")
_TOKEN_ENV_VAR = "GITHUB_TOKEN"
_REPO_KEY_RE = re.compile(r"^[\w.\-]+$")


class ConfigError(ValueError):
    """Raised when the configuration file cannot be interpreted."""


def _resolve_env_vars(value: str) -> str:
    """Replace ``${VAR_NAME}`` placeholders with environment variable values."""

    def _replace(match: re.Match[str]) -> str:
        var = match.group(1)
        resolved = os.environ.get(var)
        if resolved is None:
            logger.warning("Environment variable %s is not set (referenced in config)", var)
            return ""
        return resolved

    return _ENV_VAR_RE.sub(_replace, value)


def _resolve_dict(data: dict[str, Any]) -> dict[str, Any]:
    """Recursively resolve environment variables in a dictionary."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, str):
            result[key] = _resolve_env_vars(value)
        elif isinstance(value, dict):
            result[key] = _resolve_dict(value)
        elif isinstance(value, list):
            result[key] = [
                _resolve_env_vars(item) if isinstance(item, str) else item for item in value
            ]
        else:
            result[key] = value
    return result


@dataclass(frozen=True)
class RepoConfig:
    """One tracked repository and where its coverage reports live."""

    key: str
    """Repository identifier; names the badge directory."""

    format: str
    """Report format (``go_cover``, ``lcov`` or ``coverage_py``)."""

    url: str
    """Source location: a raw report file or a git-tree directory listing."""

    repo_link: str = ""
    """External repository URL written to the link marker file."""

    path_depth_limit: int | None = None
    """Sub-package depth for statement profiles (``go_cover`` only)."""

    listing: bool = False
    """Whether ``url`` returns a directory listing rather than one report."""

    requires_auth: bool = True
    """Whether fetching needs the access token."""


@dataclass
class PublishConfig:
    """Publishing repository settings."""

    repo_url: str = ""
    """HTTPS clone URL of the publishing repository."""

    workdir: str = "./public-badges-repo"
    """Local working copy of the publishing repository."""

    title: str = "Code Coverage"
    """Heading of the generated index document."""

    commit_message: str = "Update coverage badges"
    """Commit message used when badges changed."""

    cleanup: bool = True
    """Delete the working copy after publishing."""


@dataclass
class FetchConfig:
    """Report fetch settings."""

    timeout: float = 30.0
    """Per-request timeout in seconds."""

    max_concurrency: int = 4
    """Maximum number of repositories processed at once."""


@dataclass
class FleetConfig:
    """Top-level badgefleet configuration."""

    token: str = ""
    """Access token for private report locations (``${GITHUB_TOKEN}`` by default)."""

    publish: PublishConfig = field(default_factory=PublishConfig)
    fetch: FetchConfig = field(default_factory=FetchConfig)

    repos: list[RepoConfig] = field(default_factory=list)
    """Tracked repositories across all formats, in configuration order."""

    raw: dict[str, Any] = field(default_factory=dict)
    """Raw parsed YAML, after environment variable expansion."""

    def repos_by_format(self) -> dict[str, list[RepoConfig]]:
        """Group tracked repositories by report format."""
        grouped: dict[str, list[RepoConfig]] = {}
        for repo in self.repos:
            grouped.setdefault(repo.format, []).append(repo)
        return grouped


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    value = raw.get(name, {})
    return value if isinstance(value, dict) else {}


def _default_listing(format_name: str) -> bool:
    try:
        return get_adapter(format_name).default_listing
    except UnknownFormatError:
        return False


def _parse_repo(format_name: str, key: str, entry: Any) -> RepoConfig:
    if isinstance(entry, str):
        entry = {"url": entry}
    if not isinstance(entry, dict):
        raise ConfigError(f"repos.{format_name}.{key} must be a mapping")

    depth_raw = entry.get("path_depth_limit")
    try:
        depth = int(depth_raw) if depth_raw is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"repos.{format_name}.{key}.path_depth_limit must be an integer (got: {depth_raw!r})"
        ) from exc

    return RepoConfig(
        key=str(key),
        format=format_name,
        url=str(entry.get("url", "")).strip(),
        repo_link=str(entry.get("repo_link", "")).strip(),
        path_depth_limit=depth,
        listing=bool(entry.get("listing", _default_listing(format_name))),
        requires_auth=bool(entry.get("requires_auth", True)),
    )


def _parse_repos(raw: dict[str, Any]) -> list[RepoConfig]:
    repos: list[RepoConfig] = []
    for format_name, entries in _section(raw, "repos").items():
        if not isinstance(entries, dict):
            raise ConfigError(f"repos.{format_name} must map repository keys to settings")
        repos.extend(
            _parse_repo(str(format_name), str(key), entry) for key, entry in entries.items()
        )
    return repos


def config_path(path: str | Path) -> Path:
    """Return the config file for *path* (a file, or a directory holding one)."""
    candidate = Path(path)
    if candidate.is_dir():
        return candidate / CONFIG_FILENAME
    return candidate


def load_config(path: str | Path) -> FleetConfig:
    """Load and parse the complete ``.badgefleet.yml`` configuration.

    Falls back to defaults and environment variables when the file is
    missing or incomplete.

    Raises:
        ConfigError: If the file is not valid YAML or a section has the wrong shape.
    """
    yml = config_path(path)

    raw: dict[str, Any] = {}
    if yml.is_file():
        try:
            parsed = yaml.safe_load(yml.read_text(encoding="utf-8"))
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {yml}: {exc}") from exc
        if isinstance(parsed, dict):
            raw = _resolve_dict(parsed)
    else:
        logger.warning("Config file %s not found; using defaults", yml)

    publish_raw = _section(raw, "publish")
    publish = PublishConfig(
        repo_url=str(publish_raw.get("repo_url", "")).strip(),
        workdir=str(publish_raw.get("workdir", "./public-badges-repo")),
        title=str(publish_raw.get("title", "Code Coverage")),
        commit_message=str(publish_raw.get("commit_message", "Update coverage badges")),
        cleanup=bool(publish_raw.get("cleanup", True)),
    )

    fetch_raw = _section(raw, "fetch")
    try:
        fetch = FetchConfig(
            timeout=float(fetch_raw.get("timeout", 30.0)),
            max_concurrency=int(fetch_raw.get("max_concurrency", 4)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid fetch settings in {yml}: {exc}") from exc

    repos = _parse_repos(raw)

    token = str(raw.get("token") or os.environ.get(_TOKEN_ENV_VAR, "")).strip()

    return FleetConfig(token=token, publish=publish, fetch=fetch, repos=repos, raw=raw)


def _validate_repo(repo: RepoConfig) -> list[str]:
    errors: list[str] = []
    prefix = f"repos.{repo.format}.{repo.key}"

    if repo.format not in list_formats():
        errors.append(
            f"repos.{repo.format} is not a supported format "
            f"(expected one of: {', '.join(list_formats())})"
        )
    if not _REPO_KEY_RE.match(repo.key) or repo.key.startswith("."):
        errors.append(
            f"{prefix}: repository key must be a plain directory name not starting with '.'"
        )
    elif repo.key.lower() == INDEX_FILENAME.lower():
        errors.append(f"{prefix}: repository key {repo.key} is reserved for the index document")
    if not repo.url:
        errors.append(f"{prefix}.url is required")
    if repo.path_depth_limit is not None and repo.path_depth_limit < 1:
        errors.append(
            f"{prefix}.path_depth_limit must be at least 1 (got: {repo.path_depth_limit})"
        )

    return errors


def _validate_fetch_config(fetch: FetchConfig) -> list[str]:
    errors: list[str] = []

    if fetch.timeout <= 0:
        errors.append(f"fetch.timeout must be positive (got: {fetch.timeout})")
    if fetch.max_concurrency < 1:
        errors.append(f"fetch.max_concurrency must be at least 1 (got: {fetch.max_concurrency})")

    return errors


def validate_config(config: FleetConfig) -> list[str]:
    """Validate the configuration and return a list of error messages.

    Returns an empty list if the configuration is valid.
    """
    errors: list[str] = []

    if not config.publish.workdir:
        errors.append("publish.workdir is required")

    errors.extend(_validate_fetch_config(config.fetch))

    seen: dict[str, str] = {}
    for repo in config.repos:
        errors.extend(_validate_repo(repo))
        if repo.key in seen:
            errors.append(
                f"Repository key {repo.key} is configured under both "
                f"{seen[repo.key]} and {repo.format}"
            )
        else:
            seen[repo.key] = repo.format

    return errors
