"""
Shared pytest fixtures for license gate tests.

Provides common helpers for:
- Building dependency changes
- A recording in-memory resolver in place of GitHub
- Mocked GitHub license endpoints (httpx.MockTransport)
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import httpx
import pytest

SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if SRC_ROOT.is_dir():
    sys.path.insert(0, str(SRC_ROOT))

from license_gate.models import Change, ChangeType  # noqa: E402


# =============================================================================
# Change fixtures
# =============================================================================


def make_change(
    name: str = "widget",
    *,
    version: str = "1.0.0",
    manifest: str = "package-lock.json",
    change_type: ChangeType | str = ChangeType.ADDED,
    license: str | None = "MIT",
    source_repository_url: str | None = None,
) -> Change:
    return Change(
        name=name,
        version=version,
        manifest=manifest,
        change_type=ChangeType(change_type),
        license=license,
        source_repository_url=source_repository_url,
    )


@pytest.fixture
def change_factory() -> Callable[..., Change]:
    return make_change


# =============================================================================
# Resolver fixtures
# =============================================================================


class RecordingResolver:
    """In-memory resolver keyed by source repository URL."""

    def __init__(self, licenses: dict[str, str | None] | None = None) -> None:
        self.licenses = dict(licenses or {})
        self.batches: list[list[Change]] = []

    @property
    def looked_up(self) -> list[str | None]:
        return [change.source_repository_url for batch in self.batches for change in batch]

    async def resolve_changes(self, changes: Sequence[Change]) -> list[Change]:
        self.batches.append(list(changes))
        return [
            change.with_license(self.licenses.get(change.source_repository_url or ""))
            for change in changes
        ]


@pytest.fixture
def recording_resolver() -> Callable[..., RecordingResolver]:
    return RecordingResolver


# =============================================================================
# GitHub API fixtures
# =============================================================================


class GitHubLicenseApi:
    """Fake ``/repos/{owner}/{repo}/license`` endpoint for httpx.MockTransport."""

    def __init__(self, licenses: dict[str, Any] | None = None) -> None:
        self.licenses = dict(licenses or {})
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        if len(parts) != 4 or parts[0] != "repos" or parts[3] != "license":
            return httpx.Response(404, json={"message": "Not Found"})
        slug = f"{parts[1]}/{parts[2]}"
        entry = self.licenses.get(slug)
        if entry is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if isinstance(entry, httpx.Response):
            return httpx.Response(entry.status_code, headers=entry.headers, content=entry.content)
        return httpx.Response(
            200,
            json={"name": "LICENSE", "path": "LICENSE", "license": {"key": entry.lower(), "spdx_id": entry}},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


@pytest.fixture
def github_api() -> Callable[..., GitHubLicenseApi]:
    return GitHubLicenseApi
