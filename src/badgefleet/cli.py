"""badgefleet CLI: top-level command group."""

from __future__ import annotations

import copy
import json
import logging
import shutil
from dataclasses import asdict
from pathlib import Path
from typing import Any

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler

from badgefleet import __version__
from badgefleet.adapters.coverage.base import AggregateResult
from badgefleet.adapters.registry import get_adapter, list_formats
from badgefleet.config import ConfigError, FleetConfig, config_path, load_config, validate_config
from badgefleet.driver import RepoStatus, run_fleet
from badgefleet.index import write_index
from badgefleet.reporters.terminal import reporter
from badgefleet.store import write_badge_sets
from badgefleet.utils.git import GitOperationError, prepare_workdir, publish_changes

logger = logging.getLogger(__name__)
console = Console()

# Masking thresholds
_MIN_MASKED_VALUE_LENGTH = 8
_SENSITIVE_KEYS = {"token"}


def _configure_logging(*, verbose: bool) -> None:
    """Route log records through rich; badgefleet loggers at INFO (DEBUG when verbose)."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=verbose)],
        force=True,
    )
    logging.getLogger("badgefleet").setLevel(logging.DEBUG if verbose else logging.INFO)


def _config_to_dict(config: FleetConfig) -> dict[str, Any]:
    """Convert FleetConfig to dictionary for display."""
    result = asdict(config)
    # Remove the raw field as it's redundant
    result.pop("raw", None)
    return result


def _mask_sensitive_values(config_dict: dict[str, Any]) -> dict[str, Any]:
    """Recursively mask sensitive values in configuration dict."""
    result = copy.deepcopy(config_dict)

    def _mask_dict(data: dict[str, Any]) -> None:
        for key, value in data.items():
            if key in _SENSITIVE_KEYS and isinstance(value, str) and value:
                # Show first 4 chars, mask the rest
                if len(value) > _MIN_MASKED_VALUE_LENGTH:
                    data[key] = f"{value[:4]}...{value[-4:]}"
                else:
                    data[key] = "***"
            elif isinstance(value, dict):
                _mask_dict(value)
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, dict):
                        _mask_dict(item)

    _mask_dict(result)
    return result


def _load_config_or_abort(path: str) -> FleetConfig:
    try:
        return load_config(path)
    except ConfigError as e:
        reporter.print_error(f"Failed to load configuration: {e}")
        raise SystemExit(1) from e


def _print_config_errors(errors: list[str]) -> None:
    reporter.print_error(f"Found {len(errors)} configuration error(s):")
    console.print()
    for idx, error in enumerate(errors, start=1):
        console.print(f"  {idx}. [red]{error}[/red]")
    console.print()


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.version_option(version=__version__, prog_name="badgefleet")
@click.pass_context
def cli(ctx: click.Context, *, verbose: bool) -> None:
    """badgefleet: coverage badges for a fleet of repositories."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose=verbose)


# ── run ────────────────────────────────────────────────────────────


@cli.command()
@click.option(
    "--config",
    "config_file",
    default=".",
    type=click.Path(exists=True, resolve_path=True),
    help="Config file, or a directory holding .badgefleet.yml.",
)
@click.option(
    "--workdir",
    default=None,
    type=click.Path(file_okay=False, resolve_path=True),
    help="Working copy of the publishing repository (overrides publish.workdir).",
)
@click.option(
    "--no-push",
    is_flag=True,
    help="Write badges and the index into the working directory without any git step.",
)
@click.option("--keep", is_flag=True, help="Keep the working copy after publishing.")
def run(config_file: str, workdir: str | None, *, no_push: bool, keep: bool) -> None:
    """Fetch every tracked report, render badges and publish them.

    A repository whose reports cannot be fetched or parsed gets a no-data
    badge; only configuration and publishing failures make the run fail.

    Example:
      badgefleet run --config .badgefleet.yml
      badgefleet run --no-push --workdir ./out
    """
    config = _load_config_or_abort(config_file)
    errors = validate_config(config)
    if errors:
        _print_config_errors(errors)
        raise SystemExit(1)

    root = Path(workdir or config.publish.workdir).resolve()
    reporter.print_header(f"badgefleet: {len(config.repos)} repositories")

    try:
        if no_push:
            root.mkdir(parents=True, exist_ok=True)
        else:
            prepare_workdir(root, config.publish.repo_url, token=config.token)

        fleet = run_fleet(config)
        reporter.print_fleet_summary(fleet)

        written = write_badge_sets(root, fleet.badge_sets)
        write_index(root, config.publish.title)
        reporter.print_success(f"Wrote {written} badge(s) and the index to {root}")

        if no_push:
            return
        commit_sha = publish_changes(root, config.publish.commit_message)
    except GitOperationError as e:
        reporter.print_error(f"Publishing failed: {e}")
        raise SystemExit(1) from e

    if commit_sha:
        reporter.print_success(f"Published commit {commit_sha[:8]}")
    else:
        reporter.print_info("Badges unchanged; nothing to publish.")

    if config.publish.cleanup and not keep:
        shutil.rmtree(root, ignore_errors=True)
        logger.debug("Removed working copy %s", root)

    if fleet.by_status(RepoStatus.FAILED):
        logger.warning("Some repositories failed; see the log above")


# ── parse ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("format_name", metavar="FORMAT", type=click.Choice(list_formats()))
@click.argument(
    "files",
    nargs=-1,
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--depth",
    default=None,
    type=click.IntRange(min=1),
    help="Sub-package depth for go_cover profiles.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output raw JSON instead of a table.")
def parse(format_name: str, files: tuple[Path, ...], depth: int | None, *, as_json: bool) -> None:
    """Aggregate local report files without any network access.

    Example:
      badgefleet parse go_cover coverage.out --depth 3
      badgefleet parse lcov web/lcov.info api/lcov.info
    """
    adapter = get_adapter(format_name, path_depth_limit=depth)
    reports = []
    for path in files:
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as e:
            reporter.print_error(f"Failed to read {path}: {e}")
            raise SystemExit(1) from e
        report = adapter.parse_report(path.as_posix(), content)
        if report is None:
            reporter.print_warning(f"No usable coverage data in {path}")
            continue
        reports.append(report)

    result = adapter.aggregate(reports) if reports else AggregateResult()

    if as_json:
        payload = asdict(result)
        payload["reports"] = [adapter.report_summary(report) for report in reports]
        click.echo(json.dumps(payload, indent=2, sort_keys=True))
        return
    for report in reports:
        logger.debug("Report details: %s", adapter.report_summary(report))
    reporter.print_aggregate(f"{adapter.name} ({adapter.language}) coverage", result)


# ── index ──────────────────────────────────────────────────────────


@cli.command()
@click.argument("directory", type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.option("--title", default="Code Coverage", show_default=True, help="Index heading.")
def index(directory: Path, title: str) -> None:
    """Rebuild README.md for an existing badge directory."""
    out = write_index(directory, title)
    reporter.print_success(f"Index written to {out}")


# ── config ─────────────────────────────────────────────────────────


@cli.group("config")
def config_group() -> None:
    """Inspect `.badgefleet.yml` configuration."""


@config_group.command("show")
@click.option(
    "--config",
    "config_file",
    default=".",
    type=click.Path(exists=True, resolve_path=True),
    help="Config file, or a directory holding .badgefleet.yml.",
)
@click.option("--json-output", "as_json", is_flag=True, help="Output as JSON instead of YAML.")
@click.option(
    "--no-mask",
    is_flag=True,
    help="Show the token unmasked (use with caution).",
)
def config_show(config_file: str, *, as_json: bool, no_mask: bool) -> None:
    """Display resolved configuration with the token masked.

    Example:
      badgefleet config show
      badgefleet config show --json-output
    """
    config = _load_config_or_abort(config_file)

    config_dict = _config_to_dict(config)
    if not no_mask:
        config_dict = _mask_sensitive_values(config_dict)

    if as_json:
        click.echo(json.dumps(config_dict, indent=2))
    else:
        console.print()
        console.print(f"[bold cyan]Configuration ({config_path(config_file)}):[/bold cyan]")
        console.print()
        click.echo(yaml.safe_dump(config_dict, sort_keys=False, default_flow_style=False))


@config_group.command("validate")
@click.option(
    "--config",
    "config_file",
    default=".",
    type=click.Path(exists=True, resolve_path=True),
    help="Config file, or a directory holding .badgefleet.yml.",
)
def config_validate(config_file: str) -> None:
    """Validate `.badgefleet.yml`.

    Example:
      badgefleet config validate --config .badgefleet.yml
    """
    config = _load_config_or_abort(config_file)
    errors = validate_config(config)

    if not errors:
        reporter.print_success("Configuration is valid!")
        console.print()
        by_format = ", ".join(
            f"{name}: {len(repos)}" for name, repos in sorted(config.repos_by_format().items())
        )
        console.print(f"[dim]{len(config.repos)} repositories configured ({by_format}).[/dim]")
        return

    _print_config_errors(errors)
    console.print("[dim]Fix these errors and run 'badgefleet config validate' again.[/dim]")
    raise SystemExit(1)


if __name__ == "__main__":
    cli()
