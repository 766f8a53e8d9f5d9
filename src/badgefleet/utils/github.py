"""GitHub report fetching for badgefleet.

Reports are read either as raw files (``raw.githubusercontent.com`` or the
contents/blob APIs with the raw media type) or discovered through a git-tree
listing (``/repos/{owner}/{repo}/git/trees/{ref}?recursive=1``).
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

import httpx

logger = logging.getLogger(__name__)

_RAW_MEDIA_TYPE = "application/vnd.github.v3.raw"
_JSON_MEDIA_TYPE = "application/vnd.github+json"
_API_VERSION = "2022-11-28"
_HTTP_SUCCESS_MIN = 200
_HTTP_SUCCESS_MAX = 300
_MAX_ERROR_BODY = 300


class ReportFetchError(Exception):
    """Raised when a coverage report or listing cannot be fetched."""

    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status_code = status_code


@dataclass(frozen=True)
class ListingEntry:
    """A report file discovered in a git-tree listing."""

    path: str
    """Path of the file inside the listed tree."""

    url: str
    """Blob API URL that serves the file contents."""


def create_http_client(timeout: float) -> httpx.AsyncClient:
    """Create the shared async HTTP client for one fleet run."""
    return httpx.AsyncClient(timeout=timeout, follow_redirects=True)


class ReportClient:
    """Authenticated reader for report files hosted on GitHub."""

    def __init__(self, client: httpx.AsyncClient, token: str = "") -> None:
        self._client = client
        self._token = token.strip()

    @property
    def has_token(self) -> bool:
        return bool(self._token)

    def _headers(self, url: str, *, accept: str, requires_auth: bool) -> dict[str, str]:
        headers = {"Accept": accept, "X-GitHub-Api-Version": _API_VERSION}
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        elif requires_auth:
            raise ReportFetchError(url, "GitHub token is not set")
        return headers

    async def _get(self, url: str, *, accept: str, requires_auth: bool) -> httpx.Response:
        headers = self._headers(url, accept=accept, requires_auth=requires_auth)
        try:
            response = await self._client.get(url, headers=headers)
        except httpx.TimeoutException as exc:
            raise ReportFetchError(url, f"Request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise ReportFetchError(url, f"Request failed: {exc}") from exc

        if response.status_code < _HTTP_SUCCESS_MIN or response.status_code >= _HTTP_SUCCESS_MAX:
            message = f"HTTP {response.status_code}"
            body = response.text.strip()[:_MAX_ERROR_BODY]
            if body:
                message = f"{message}: {body}"
            raise ReportFetchError(url, message, status_code=response.status_code)
        return response

    async def fetch_text(self, url: str, *, requires_auth: bool = True) -> str:
        """Fetch a raw report file.

        Raises:
            ReportFetchError: On a missing token, network error or non-2xx status.
        """
        response = await self._get(url, accept=_RAW_MEDIA_TYPE, requires_auth=requires_auth)
        logger.debug("Fetched %d bytes from %s", len(response.content), url)
        return response.text

    async def fetch_listing(
        self,
        url: str,
        suffix: str,
        *,
        requires_auth: bool = True,
    ) -> list[ListingEntry]:
        """List the files under a git tree whose path ends with *suffix*.

        Raises:
            ReportFetchError: If the listing cannot be fetched or is not a tree.
        """
        response = await self._get(url, accept=_JSON_MEDIA_TYPE, requires_auth=requires_auth)
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            raise ReportFetchError(url, "Directory listing is not valid JSON") from exc

        tree = body.get("tree") if isinstance(body, dict) else None
        if not isinstance(tree, list):
            raise ReportFetchError(url, "Directory listing has no 'tree' array")
        if body.get("truncated"):
            logger.warning("Directory listing %s is truncated; some reports may be missing", url)

        entries = [
            ListingEntry(path=str(item["path"]), url=str(item["url"]))
            for item in tree
            if isinstance(item, dict)
            and item.get("type", "blob") == "blob"
            and isinstance(item.get("path"), str)
            and item.get("url")
            and item["path"].endswith(suffix)
        ]
        logger.debug("Found %d %s file(s) in %s", len(entries), suffix, url)
        return entries
