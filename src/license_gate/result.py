"""
license_gate/result.py

Result values for lookups that are allowed to fail.

Error Handling Convention:
--------------------------
1. **Exceptions** are raised for programmer/config errors:
   - ConfigValidationError: invalid gate configuration
   - ChangeParseError: a change list that cannot be read
   - ValueError: invalid arguments to functions

2. **Result types** (this module) are returned for recoverable runtime issues
   that must never abort a classification run:
   - GitHub API failures, timeouts, retries exhausted
   - repositories without a detected license
   - non-GitHub or malformed source repository URLs

3. Callers that need a plain value collapse the Result at their boundary
   (the license resolver maps every error to ``None``).

Usage:
------
    from license_gate.result import Result, Ok, Err

    async def fetch_license(owner: str, repo: str) -> Result[str]:
        try:
            response = await client.get(url)
        except httpx.TimeoutException:
            return Err("timeout", "license lookup timed out")
        return Ok(response.json()["license"]["spdx_id"])
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


@dataclass
class Result(Generic[T]):
    """
    Either a success (Ok) carrying a value or a failure (Err) carrying an error code.

    Attributes:
        status: "ok" for success, "error" for failure
        value: The success value (only meaningful when status="ok")
        error: Error code (only meaningful when status="error")
        message: Human-readable error message
        extras: Additional context (status_code, url, ...)
    """

    status: str
    value: T | None = None
    error: str | None = None
    message: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    @property
    def is_ok(self) -> bool:
        return self.status == "ok"

    @property
    def is_err(self) -> bool:
        return self.status == "error"


def Ok(value: T = None, **extras: Any) -> Result[T]:  # noqa: N802 - intentional PascalCase
    """Create a successful result."""
    return Result(status="ok", value=value, extras=extras)


def Err(error: str, message: str | None = None, **extras: Any) -> Result[Any]:  # noqa: N802
    """Create a failure result."""
    return Result(status="error", error=error, message=message, extras=extras)
