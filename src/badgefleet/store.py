"""Badge persistence: write badge sets into the publishing repository layout.

Layout per repository::

    {repoKey}/badges/{repoKey}.svg
    {repoKey}/badges/{escaped subunit}.svg
    {repoKey}/.repourl
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from badgefleet.badges import BADGE_SUFFIX, BADGES_DIR, REPO_LINK_FILENAME

if TYPE_CHECKING:
    from collections.abc import Iterable

    from badgefleet.badges import BadgeSet

logger = logging.getLogger(__name__)


def badges_dir(root: str | Path, repo_key: str) -> Path:
    """Return the ``{repoKey}/badges`` directory under *root*."""
    return Path(root) / repo_key / BADGES_DIR


def read_repo_link(root: str | Path, repo_key: str) -> str:
    """Return the repository link marker contents, or ``""`` when absent."""
    marker = Path(root) / repo_key / REPO_LINK_FILENAME
    if not marker.is_file():
        return ""
    try:
        return marker.read_text(encoding="utf-8").strip()
    except OSError as exc:
        logger.warning("Failed to read %s: %s", marker, exc)
        return ""


def write_badge_set(root: str | Path, badge_set: BadgeSet) -> list[Path]:
    """Write one repository's badges and link marker.

    Badge files left over from earlier runs that are not part of
    *badge_set* are removed so the index reflects the current run.
    Returns the written badge paths.
    """
    base = Path(root)
    target_dir = badges_dir(base, badge_set.repo_key)
    target_dir.mkdir(parents=True, exist_ok=True)

    written: list[Path] = []
    for artifact in badge_set.artifacts:
        out = base / artifact.path
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(artifact.content)
        written.append(out)

    keep = {path.name for path in written}
    for stale in target_dir.glob(f"*{BADGE_SUFFIX}"):
        if stale.name not in keep:
            logger.debug("Removing stale badge %s", stale)
            stale.unlink()

    marker = base / badge_set.repo_key / REPO_LINK_FILENAME
    if badge_set.repo_link:
        marker.write_text(badge_set.repo_link, encoding="utf-8")
    elif marker.exists():
        marker.unlink()

    logger.info("Wrote %d badge(s) for %s", len(written), badge_set.repo_key)
    return written


def write_badge_sets(root: str | Path, badge_sets: Iterable[BadgeSet]) -> int:
    """Write every badge set under *root*; returns the number of badge files."""
    return sum(len(write_badge_set(root, badge_set)) for badge_set in badge_sets)
