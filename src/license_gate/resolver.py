"""Remote license resolution for changes whose license is missing or truncated."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Sequence
from typing import Protocol

from license_gate.github import GitHubLicenseClient, parse_github_url
from license_gate.logging_config import LogContext
from license_gate.models import Change

logger = logging.getLogger(__name__)


class ChangeResolver(Protocol):
    async def resolve_changes(self, changes: Sequence[Change]) -> list[Change]: ...


class LicenseResolver:
    """Looks up the license of each change's source repository on GitHub.

    ``resolve`` never raises: wrong hosts, malformed URLs and failed lookups all
    yield None. ``resolve_changes`` runs one lookup per change concurrently and
    returns new ``Change`` values in input order, each carrying the resolved
    license (or None).
    """

    def __init__(
        self,
        client: GitHubLicenseClient | None = None,
        *,
        max_concurrency: int | None = None,
    ) -> None:
        self.client = client or GitHubLicenseClient.from_env()
        self.max_concurrency = max_concurrency if max_concurrency and max_concurrency > 0 else None

    async def resolve(self, url: str | None) -> str | None:
        repo = parse_github_url(url)
        if repo is None:
            logger.debug("Skipping license lookup for non-GitHub source %r", url)
            return None
        result = await self.client.fetch_license(repo.owner, repo.name)
        if result.is_err:
            logger.debug("License lookup for %s failed: %s (%s)", repo.slug, result.error, result.message)
            return None
        return result.value

    async def resolve_change(self, change: Change) -> Change:
        return change.with_license(await self.resolve(change.source_repository_url))

    async def resolve_changes(self, changes: Sequence[Change]) -> list[Change]:
        if not changes:
            return []
        semaphore = asyncio.Semaphore(self.max_concurrency) if self.max_concurrency else None

        async def resolve_with_containment(change: Change) -> Change:
            with LogContext(dependency=f"{change.name}@{change.version}", manifest=change.manifest):
                try:
                    async with semaphore if semaphore is not None else contextlib.nullcontext():
                        return await self.resolve_change(change)
                except Exception as exc:
                    logger.warning("License lookup failed unexpectedly: %s", exc)
                    return change.with_license(None)

        async with self.client:
            resolved = await asyncio.gather(*(resolve_with_containment(c) for c in changes))
        found = sum(1 for change in resolved if change.license is not None)
        logger.info("Resolved %d of %d licenses from source repositories", found, len(resolved))
        return list(resolved)
