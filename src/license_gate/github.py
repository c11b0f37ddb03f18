"""GitHub repository license lookups.

Wraps ``GET /repos/{owner}/{repo}/license`` of the GitHub REST API. Every
failure is returned as an ``Err`` result rather than raised, so callers can
fan out many lookups without one bad repository aborting the batch.

Authentication comes from the ``GITHUB_TOKEN`` environment variable only.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from types import TracebackType
from typing import Any
from urllib.parse import urlsplit

import httpx

from license_gate.__version__ import __version__ as VERSION
from license_gate.network_utils import _with_retries
from license_gate.result import Err, Ok, Result
from license_gate.secrets import SecretStr, redact_headers

logger = logging.getLogger(__name__)

GITHUB_HOST = "github.com"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_READ_TIMEOUT = 60.0
_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class GitHubRepo:
    owner: str
    name: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_base: float = 2.0
    backoff_max: float = 30.0
    retry_on_403: bool = False


def parse_github_url(url: str | None) -> GitHubRepo | None:
    """Extract owner and repository from a ``https://github.com/<owner>/<repo>`` URL.

    User info and the scheme's default port are ignored. Returns None for other
    hosts and ports, malformed URLs and paths with fewer than two
    segments.
    """
    if not url:
        return None
    try:
        parsed = urlsplit(url)
        port = parsed.port
    except ValueError:
        return None
    if parsed.hostname != GITHUB_HOST:
        return None
    if port is not None and port != _DEFAULT_PORTS.get(parsed.scheme.lower()):
        return None
    components = parsed.path.split("/")
    if len(components) < 3:
        return None
    owner, name = components[1], components[2]
    if name.endswith(".git"):
        name = name[: -len(".git")]
    if not owner or not name:
        return None
    return GitHubRepo(owner=owner, name=name)


def build_user_agent(name: str = "license-gate", version: str = VERSION) -> str:
    return f"{name}/{version}"


class GitHubLicenseClient:
    """Async client for the repository license endpoint.

    Use it as an async context manager to share one connection pool across a
    batch of lookups; outside a context each lookup opens its own client.
    """

    def __init__(
        self,
        *,
        api_url: str = DEFAULT_API_URL,
        token: SecretStr | str | None = None,
        retry: RetryPolicy | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: httpx.Timeout | None = None,
    ) -> None:
        self.api_url = api_url.rstrip("/")
        self.token = token if isinstance(token, SecretStr) else SecretStr(token)
        self.retry = retry or RetryPolicy()
        self._transport = transport
        self._timeout = timeout or httpx.Timeout(
            DEFAULT_READ_TIMEOUT, connect=DEFAULT_CONNECT_TIMEOUT
        )
        self._client: httpx.AsyncClient | None = None

    @classmethod
    def from_env(cls, **kwargs: Any) -> GitHubLicenseClient:
        token = os.environ.get("GITHUB_TOKEN", "").strip()
        return cls(token=SecretStr(token or None), **kwargs)

    def _headers(self) -> dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": build_user_agent(),
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.token:
            headers["Authorization"] = f"Bearer {self.token.reveal()}"
        return headers

    def _build_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self._headers(),
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> GitHubLicenseClient:
        self._client = self._build_client()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    async def fetch_license(self, owner: str, repo: str) -> Result[str]:
        if self._client is not None:
            return await self._fetch(self._client, owner, repo)
        async with self._build_client() as client:
            return await self._fetch(client, owner, repo)

    async def _fetch(self, client: httpx.AsyncClient, owner: str, repo: str) -> Result[str]:
        url = f"{self.api_url}/repos/{owner}/{repo}/license"
        logger.debug("GET %s headers=%s", url, redact_headers(dict(client.headers)))

        async def _get() -> httpx.Response:
            response = await client.get(url)
            response.raise_for_status()
            return response

        def _on_retry(attempt: int, exc: Exception) -> None:
            logger.info("Retrying license lookup for %s/%s (attempt %d): %s", owner, repo, attempt, exc)

        try:
            response = await _with_retries(
                _get,
                max_attempts=self.retry.max_attempts,
                backoff_base=self.retry.backoff_base,
                backoff_max=self.retry.backoff_max,
                on_retry=_on_retry,
                retry_on_403=self.retry.retry_on_403,
            )
        except httpx.HTTPStatusError as exc:
            status_code = exc.response.status_code
            error = "not_found" if status_code == 404 else "http_status"
            return Err(error, f"GitHub returned HTTP {status_code}", status_code=status_code, url=url)
        except httpx.HTTPError as exc:
            return Err("transport_error", str(exc) or type(exc).__name__, url=url)

        try:
            payload = response.json()
        except ValueError as exc:
            return Err("invalid_json", f"Invalid JSON from GitHub API: {exc}", url=url)

        license_info = payload.get("license") if isinstance(payload, dict) else None
        spdx_id = license_info.get("spdx_id") if isinstance(license_info, dict) else None
        if not spdx_id:
            return Err("no_license", "repository has no detected license", url=url)
        return Ok(str(spdx_id), url=url)
