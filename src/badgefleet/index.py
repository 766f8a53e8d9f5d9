"""Index document generation for the publishing repository (``README.md``)."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from pathlib import Path

from badgefleet.badges import BADGE_SUFFIX, BADGES_DIR, unescape_subunit
from badgefleet.store import badges_dir, read_repo_link

logger = logging.getLogger(__name__)

INDEX_FILENAME = "README.md"


@dataclass
class IndexEntry:
    """One repository as listed in the index."""

    repo_key: str
    repo_link: str = ""
    subunit_badges: list[str] = field(default_factory=list)
    """Subunit badge file names (escaped), sorted."""

    @property
    def badge_file(self) -> str:
        return f"{self.repo_key}{BADGE_SUFFIX}"


def collect_entries(root: str | Path) -> list[IndexEntry]:
    """Find every repository directory under *root* that has a top-level badge."""
    base = Path(root)
    entries: list[IndexEntry] = []
    for directory in sorted(base.iterdir(), key=lambda p: p.name):
        if directory.name.startswith(".") or not directory.is_dir():
            continue
        repo_key = directory.name
        badge_dir = badges_dir(base, repo_key)
        if not (badge_dir / f"{repo_key}{BADGE_SUFFIX}").is_file():
            continue
        subunits = sorted(
            path.name
            for path in badge_dir.glob(f"*{BADGE_SUFFIX}")
            if path.name != f"{repo_key}{BADGE_SUFFIX}"
        )
        entries.append(
            IndexEntry(
                repo_key=repo_key,
                repo_link=read_repo_link(base, repo_key),
                subunit_badges=subunits,
            )
        )
    return entries


def subunit_display_name(badge_file: str) -> str:
    """Turn a subunit badge file name back into its path for display."""
    return unescape_subunit(badge_file.removesuffix(BADGE_SUFFIX))


def render_entry(entry: IndexEntry) -> str:
    """Render the markdown/HTML block for one repository."""
    key = html.escape(entry.repo_key)
    parts = ["#### "]
    if entry.repo_link:
        parts.append(f'<a href="{html.escape(entry.repo_link, quote=True)}">{key}</a> ')
    else:
        parts.append(f"{key} ")
    top_src = f"./{key}/{BADGES_DIR}/{html.escape(entry.badge_file, quote=True)}"
    parts.append(f'<img style="padding-left: 10px;" src="{top_src}" alt="Coverage[{key}]" />\n\n')

    if len(entry.subunit_badges) > 1:
        parts.append("<details>\n<summary>package wise coverage</summary>\n<ul>\n")
        for badge_file in entry.subunit_badges:
            name = html.escape(subunit_display_name(badge_file))
            src = f"{key}/{BADGES_DIR}/{html.escape(badge_file, quote=True)}"
            parts.append(f'<li><strong>{name}</strong> <img src="{src}" alt="Coverage" /></li>\n')
        parts.append("</ul>\n</details>\n\n")

    return "".join(parts)


def build_index(root: str | Path, title: str) -> str:
    """Build the index document for every repository badge under *root*."""
    entries = collect_entries(root)
    return f"# {title}\n\n" + "".join(render_entry(entry) for entry in entries)


def write_index(root: str | Path, title: str) -> Path:
    """Write ``README.md`` at *root*; returns its path."""
    out = Path(root) / INDEX_FILENAME
    out.write_text(build_index(root, title), encoding="utf-8")
    logger.info("Index written to %s", out)
    return out
