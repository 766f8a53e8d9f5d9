"""Fleet driver: fetch, parse and aggregate every tracked repository.

Repositories are processed concurrently (bounded by ``fetch.max_concurrency``)
and each one is isolated: a fetch or parse failure degrades that repository
to a no-data badge and never cancels the others.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import PurePosixPath
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from badgefleet.adapters.registry import adapter_for_repo
from badgefleet.badges import BadgeSet, build_badge_set
from badgefleet.utils.github import ReportClient, ReportFetchError, create_http_client

if TYPE_CHECKING:
    from badgefleet.adapters.coverage.base import AggregateResult, CoverageAdapter
    from badgefleet.config import FleetConfig, RepoConfig

logger = logging.getLogger(__name__)


class RepoStatus(Enum):
    OK = "ok"
    NO_DATA = "no_data"
    FAILED = "failed"


@dataclass
class RepoOutcome:
    """Result of processing one repository."""

    repo: RepoConfig
    status: RepoStatus
    result: AggregateResult | None = None
    badge_set: BadgeSet | None = None
    errors: list[str] = field(default_factory=list)


@dataclass
class FleetResult:
    """Outcomes of one fleet run, in configuration order."""

    outcomes: list[RepoOutcome] = field(default_factory=list)

    @property
    def badge_sets(self) -> list[BadgeSet]:
        return [outcome.badge_set for outcome in self.outcomes if outcome.badge_set is not None]

    def by_status(self, status: RepoStatus) -> list[RepoOutcome]:
        return [outcome for outcome in self.outcomes if outcome.status is status]


def _location_of(url: str) -> str:
    """Report location used for naming when a URL points at a single file."""
    return PurePosixPath(urlsplit(url).path).name or url


class FleetDriver:
    """Runs the parse/aggregate/badge pipeline for every configured repository."""

    def __init__(self, config: FleetConfig, client: ReportClient) -> None:
        self._config = config
        self._client = client
        self._semaphore = asyncio.Semaphore(max(1, config.fetch.max_concurrency))

    async def _fetch_report(
        self,
        adapter: CoverageAdapter[Any],
        repo: RepoConfig,
        location: str,
        url: str,
    ) -> Any | None:
        """Fetch and parse one report file of a listing; failures skip the file."""
        try:
            content = await self._client.fetch_text(url, requires_auth=repo.requires_auth)
        except ReportFetchError as exc:
            logger.error("Failed to fetch %s for %s: %s", location, repo.key, exc)
            return None
        return adapter.parse_report(location, content)

    async def collect(self, repo: RepoConfig) -> AggregateResult | None:
        """Fetch and aggregate the reports of *repo*.

        Returns None when no report could be fetched or parsed.

        Raises:
            ReportFetchError: If the report (or its listing) cannot be fetched.
        """
        adapter = adapter_for_repo(repo)

        if repo.listing:
            entries = await self._client.fetch_listing(
                repo.url, adapter.listing_suffix, requires_auth=repo.requires_auth
            )
            if not entries:
                logger.warning(
                    "No %s reports listed for %s at %s", adapter.listing_suffix, repo.key, repo.url
                )
                return None
            parsed = await asyncio.gather(
                *(self._fetch_report(adapter, repo, entry.path, entry.url) for entry in entries)
            )
            reports = [report for report in parsed if report is not None]
        else:
            content = await self._client.fetch_text(repo.url, requires_auth=repo.requires_auth)
            report = adapter.parse_report(_location_of(repo.url), content)
            reports = [report] if report is not None else []

        if not reports:
            logger.warning("No usable coverage data for %s", repo.key)
            return None
        return adapter.aggregate(reports)

    async def process_repo(self, repo: RepoConfig) -> RepoOutcome:
        """Process one repository; never raises."""
        async with self._semaphore:
            outcome = RepoOutcome(repo=repo, status=RepoStatus.NO_DATA)
            try:
                outcome.result = await self.collect(repo)
            except ReportFetchError as exc:
                logger.error("Failed to fetch coverage for %s: %s", repo.key, exc)
                outcome.errors.append(str(exc))
            except Exception as exc:
                logger.exception("Coverage processing failed for %s", repo.key)
                outcome.status = RepoStatus.FAILED
                outcome.errors.append(str(exc))

            if outcome.result is not None and outcome.result.has_data:
                outcome.status = RepoStatus.OK
                logger.info("Overall coverage for %s: %.2f%%", repo.key, outcome.result.overall)
            elif outcome.status is RepoStatus.NO_DATA:
                logger.info("No coverage data found for %s", repo.key)

            try:
                outcome.badge_set = build_badge_set(repo, outcome.result)
            except Exception as exc:
                logger.exception("Badge rendering failed for %s", repo.key)
                outcome.status = RepoStatus.FAILED
                outcome.errors.append(str(exc))
            return outcome

    async def run(self) -> FleetResult:
        """Process every configured repository concurrently."""
        repos = self._config.repos
        if not self._client.has_token and any(repo.requires_auth for repo in repos):
            logger.error(
                "GitHub token is not set; repositories requiring authentication will report no data"
            )
        logger.info("Processing %d repositories", len(repos))
        outcomes = await asyncio.gather(*(self.process_repo(repo) for repo in repos))
        return FleetResult(outcomes=list(outcomes))


async def run_fleet_async(config: FleetConfig) -> FleetResult:
    """Run the fleet with a fresh HTTP client."""
    async with create_http_client(config.fetch.timeout) as http:
        driver = FleetDriver(config, ReportClient(http, config.token))
        return await driver.run()


def run_fleet(config: FleetConfig) -> FleetResult:
    """Synchronous entry point for ``run_fleet_async``."""
    return asyncio.run(run_fleet_async(config))
