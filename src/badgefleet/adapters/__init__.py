"""Report format adapters and their registry."""

from badgefleet.adapters.registry import (
    UnknownFormatError,
    adapter_for_repo,
    get_adapter,
    list_formats,
)

__all__ = [
    "UnknownFormatError",
    "adapter_for_repo",
    "get_adapter",
    "list_formats",
]
