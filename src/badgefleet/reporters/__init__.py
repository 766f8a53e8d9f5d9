"""Reporters for fleet run output."""

from __future__ import annotations

from badgefleet.reporters.terminal import reporter

__all__ = ["reporter"]
