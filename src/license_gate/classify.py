"""Entry point of the license gate: classify dependency changes against a policy."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from license_gate.evaluation import Matcher, PolicyEvaluator, Verdict
from license_gate.grouping import group_changes
from license_gate.logging_config import LogContext
from license_gate.models import Change, ClassificationResult, LicensePolicy
from license_gate.resolver import ChangeResolver, LicenseResolver
from license_gate.spdx import satisfies

logger = logging.getLogger(__name__)

PolicyLike = LicensePolicy | Mapping[str, Any]


def _coerce_policy(policy: PolicyLike) -> LicensePolicy:
    if isinstance(policy, LicensePolicy):
        return policy
    return LicensePolicy.from_mapping(policy)


async def get_invalid_license_changes(
    changes: Sequence[Change],
    policy: PolicyLike,
    *,
    resolver: ChangeResolver | None = None,
    matcher: Matcher = satisfies,
) -> ClassificationResult:
    """Return the changes that do not conform to the license policy.

    Removed changes are ignored. Accepted changes do not appear in the result.
    When both ``allow`` and ``deny`` are given, ``deny`` is ignored.

    Args:
        changes: Dependency changes between two revisions.
        policy: ``LicensePolicy`` or a mapping with optional ``allow``/``deny`` lists.
        resolver: Looks up licenses of changes that lack one; defaults to GitHub.
        matcher: SPDX satisfaction predicate ``(license, expression) -> bool``.

    Returns:
        ClassificationResult with ``forbidden``, ``unresolved`` and ``unlicensed`` buckets.
    """
    license_policy = _coerce_policy(policy)
    if not license_policy.is_configured:
        logger.warning("No allow or deny list configured; every licensed change is accepted")

    grouped = await group_changes(changes, resolver or LicenseResolver())
    result = ClassificationResult(unlicensed=list(grouped.unlicensed))
    evaluator = PolicyEvaluator(license_policy, matcher=matcher)

    for change in grouped.licensed:
        with LogContext(dependency=f"{change.name}@{change.version}", manifest=change.manifest):
            verdict = evaluator.evaluate(change)
        if verdict is Verdict.UNLICENSED:
            result.unlicensed.append(change)
        elif verdict is Verdict.UNRESOLVED:
            result.unresolved.append(change)
        elif verdict is Verdict.FORBIDDEN:
            result.forbidden.append(change)

    logger.info(
        "License check: %d forbidden, %d unresolved, %d unlicensed (cache %s)",
        len(result.forbidden),
        len(result.unresolved),
        len(result.unlicensed),
        evaluator.cache_info(),
    )
    return result


def classify_changes(
    changes: Sequence[Change],
    policy: PolicyLike,
    *,
    resolver: ChangeResolver | None = None,
    matcher: Matcher = satisfies,
) -> ClassificationResult:
    """Synchronous wrapper around :func:`get_invalid_license_changes`."""
    return asyncio.run(
        get_invalid_license_changes(changes, policy, resolver=resolver, matcher=matcher)
    )
