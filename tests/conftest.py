"""Shared fixtures: a fake GitHub served through ``httpx.MockTransport``."""

from __future__ import annotations

from typing import Any

import httpx
import pytest

Route = str | int | dict[str, Any] | tuple[int, str] | Exception


class FakeGitHub:
    """Serves canned responses keyed by URL and records every request."""

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    def add(self, url: str, response: Route) -> None:
        self.routes[url] = response

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(str(request.url), 404)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route, text="Not Found" if route == 404 else "error")
        if isinstance(route, tuple):
            status, body = route
            return httpx.Response(status, text=body)
        if isinstance(route, dict):
            return httpx.Response(200, json=route)
        return httpx.Response(200, text=route)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture()
def fake_github() -> FakeGitHub:
    return FakeGitHub()


def tree_listing(base: str, paths: list[str], *, truncated: bool = False) -> dict[str, Any]:
    """Build a git-tree listing whose blob URLs live under *base*."""
    return {
        "sha": "abc",
        "truncated": truncated,
        "tree": [
            {"path": path, "type": "blob", "url": f"{base}/blobs/{index}"}
            for index, path in enumerate(paths)
        ],
    }
