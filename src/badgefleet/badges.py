"""Badge classification, naming and rendering.

Each repository gets one top-level badge named after its key plus one badge
per subunit. Subunit keys are slash-delimited paths; they are stored as flat
file names by replacing ``/`` with a marker that ``unescape_subunit`` turns
back into a slash for display.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import anybadge
from anybadge import config as anybadge_config

if TYPE_CHECKING:
    from badgefleet.adapters.coverage.base import AggregateResult, Percent
    from badgefleet.config import RepoConfig

logger = logging.getLogger(__name__)

# ── Constants ────────────────────────────────────────────────────

BADGE_LABEL = "coverage"
NO_DATA_STATUS = "❌"

SLASH_MARKER = "--SLASH--"
HOST_PREFIX = "github.com/"
BADGES_DIR = "badges"
BADGE_SUFFIX = ".svg"
REPO_LINK_FILENAME = ".repourl"

_GREEN_MIN = 75.0
_YELLOW_MIN = 50.0
_ORANGE_MIN = 25.0


class Tier(Enum):
    """Display tier of a coverage percentage; the value is the badge color."""

    GREEN = "#44cc11"
    YELLOW = "#dfb317"
    ORANGE = "#fe7d37"
    RED = "#e05d44"
    NO_DATA = "#9f9f9f"


def classify(percent: Percent) -> Tier:
    """Map a percentage to its display tier; ``None`` has its own tier."""
    if percent is None:
        return Tier.NO_DATA
    if percent >= _GREEN_MIN:
        return Tier.GREEN
    if percent >= _YELLOW_MIN:
        return Tier.YELLOW
    if percent >= _ORANGE_MIN:
        return Tier.ORANGE
    return Tier.RED


def format_status(percent: Percent) -> str:
    """Badge status text: two decimals and a percent sign, or the no-data cross."""
    if percent is None:
        return NO_DATA_STATUS
    return f"{percent:.2f}%"


def render_badge(percent: Percent, label: str = BADGE_LABEL) -> bytes:
    """Render an SVG badge for *percent*."""
    badge = anybadge.Badge(
        label=label,
        value=format_status(percent),
        default_color=classify(percent).value,
    )
    # Fixed mask id: identical inputs render identical bytes.
    badge.mask_str = f"{anybadge_config.MASK_ID_PREFIX}1"
    return badge.badge_svg_text.encode("utf-8")


# ── Naming ───────────────────────────────────────────────────────


class SubunitNameError(ValueError):
    """Raised when a subunit key cannot be turned into a reversible file name."""


def escape_subunit(key: str) -> str:
    """Turn a slash-delimited subunit key into a flat, reversible file name."""
    if SLASH_MARKER in key:
        raise SubunitNameError(f"Subunit key {key!r} already contains {SLASH_MARKER!r}")
    return key.replace("/", SLASH_MARKER)


def unescape_subunit(name: str) -> str:
    """Reverse ``escape_subunit``."""
    return name.replace(SLASH_MARKER, "/")


def subunit_badge_name(key: str) -> str:
    """File stem for a subunit badge: host prefix dropped, slashes escaped."""
    display = key.removeprefix(HOST_PREFIX) or key
    return escape_subunit(display)


def badge_path(repo_key: str, name: str) -> str:
    """Relative path of a badge inside the publishing repository."""
    return f"{repo_key}/{BADGES_DIR}/{name}{BADGE_SUFFIX}"


# ── Badge set ────────────────────────────────────────────────────


@dataclass(frozen=True)
class BadgeArtifact:
    """One rendered badge and where it goes."""

    path: str
    content: bytes


@dataclass
class BadgeSet:
    """All artifacts produced for one repository."""

    repo_key: str
    artifacts: list[BadgeArtifact] = field(default_factory=list)
    repo_link: str = ""
    """Contents of the link marker file; empty means no marker is written."""

    @property
    def paths(self) -> list[str]:
        return [artifact.path for artifact in self.artifacts]


def build_badge_set(repo: RepoConfig, result: AggregateResult | None) -> BadgeSet:
    """Render the repository badge and one badge per subunit.

    A ``None`` result (fetch failed, nothing parsed) yields a single
    no-data repository badge.
    """
    badge_set = BadgeSet(repo_key=repo.key, repo_link=repo.repo_link)
    overall = result.overall if result is not None else None
    badge_set.artifacts.append(
        BadgeArtifact(path=badge_path(repo.key, repo.key), content=render_badge(overall))
    )
    if result is None:
        return badge_set

    used = {repo.key}
    for key, percent in sorted(result.by_subunit.items()):
        try:
            name = subunit_badge_name(key)
        except SubunitNameError as exc:
            logger.warning("Skipping badge for %s in %s: %s", key, repo.key, exc)
            continue
        if name in used:
            logger.warning(
                "Subunit %s of %s maps to an existing badge name %s; suffixing",
                key,
                repo.key,
                name,
            )
            name = _unique_name(name, used)
        used.add(name)
        badge_set.artifacts.append(
            BadgeArtifact(path=badge_path(repo.key, name), content=render_badge(percent))
        )
    return badge_set


def _unique_name(name: str, used: set[str]) -> str:
    index = 2
    while f"{name}-{index}" in used:
        index += 1
    return f"{name}-{index}"
