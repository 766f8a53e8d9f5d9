"""Terminal reporter with rich output formatting."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.table import Table

from badgefleet.badges import Tier, classify, format_status, unescape_subunit
from badgefleet.driver import RepoStatus

if TYPE_CHECKING:
    from badgefleet.adapters.coverage.base import AggregateResult, Percent
    from badgefleet.driver import FleetResult

console = Console()

_TIER_STYLES = {
    Tier.GREEN: "green",
    Tier.YELLOW: "yellow",
    Tier.ORANGE: "dark_orange",
    Tier.RED: "red",
    Tier.NO_DATA: "dim",
}

_STATUS_LABELS = {
    RepoStatus.OK: "[green]ok[/green]",
    RepoStatus.NO_DATA: "[yellow]no data[/yellow]",
    RepoStatus.FAILED: "[red]failed[/red]",
}


def _styled_percent(percent: Percent, *, bold: bool = False) -> str:
    style = _TIER_STYLES[classify(percent)]
    if bold:
        style = f"bold {style}"
    return f"[{style}]{format_status(percent)}[/{style}]"


class CLIReporter:
    """Rich terminal output for fleet runs and single-report parsing."""

    def __init__(self) -> None:
        """Initialize the CLI reporter."""
        self.console = console

    def print_header(self, title: str) -> None:
        """Print a bold header."""
        self.console.print(f"\n[bold cyan]{title}[/bold cyan]\n")

    def print_success(self, message: str) -> None:
        """Print a success message."""
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        """Print an error message."""
        self.console.print(f"[red]✗[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print a warning message."""
        self.console.print(f"[yellow]⚠[/yellow] {message}")

    def print_info(self, message: str) -> None:
        """Print an info message."""
        self.console.print(f"[dim]{message}[/dim]")

    # ── Coverage tables ────────────────────────────────────────────────

    def print_aggregate(self, title: str, result: AggregateResult) -> None:
        """Print the per-subunit coverage of one aggregate plus its overall figure."""
        table = Table(title=title, title_style="bold cyan")
        table.add_column("Subunit", style="bold")
        table.add_column("Coverage", justify="right")

        for key, percent in sorted(result.by_subunit.items()):
            table.add_row(unescape_subunit(key), _styled_percent(percent))

        table.add_section()
        table.add_row("[bold]Overall[/bold]", _styled_percent(result.overall, bold=True))
        self.console.print(table)

    def print_fleet_summary(self, fleet: FleetResult) -> None:
        """Print one row per processed repository."""
        table = Table(title="Fleet Coverage", title_style="bold cyan")
        table.add_column("Repository", style="bold")
        table.add_column("Format")
        table.add_column("Coverage", justify="right")
        table.add_column("Subunits", justify="right")
        table.add_column("Status")

        for outcome in fleet.outcomes:
            result = outcome.result
            overall = result.overall if result is not None else None
            subunits = len(result.by_subunit) if result is not None else 0
            table.add_row(
                outcome.repo.key,
                outcome.repo.format,
                _styled_percent(overall),
                str(subunits),
                _STATUS_LABELS[outcome.status],
            )

        self.console.print(table)

        failed = fleet.by_status(RepoStatus.FAILED)
        no_data = fleet.by_status(RepoStatus.NO_DATA)
        if failed:
            self.print_error(f"{len(failed)} repositor{'y' if len(failed) == 1 else 'ies'} failed")
        if no_data:
            self.print_warning(
                f"{len(no_data)} repositor{'y' if len(no_data) == 1 else 'ies'} reported no data"
            )


reporter = CLIReporter()
