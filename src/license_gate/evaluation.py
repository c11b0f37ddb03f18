"""Policy evaluation with a per-run validity cache."""

from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from license_gate.models import NOASSERTION, Change, LicensePolicy
from license_gate.spdx import SpdxExpressionError, satisfies

logger = logging.getLogger(__name__)

Matcher = Callable[[str, str], bool]


class Verdict(str, Enum):
    ACCEPTED = "accepted"
    FORBIDDEN = "forbidden"
    UNRESOLVED = "unresolved"
    UNLICENSED = "unlicensed"


class PolicyEvaluator:
    """Decides whether licensed changes satisfy an allow or deny policy.

    Results are cached per exact license string for the lifetime of the
    evaluator, which is one classification run. Only successful evaluations
    are cached; a license that makes the matcher raise is evaluated again the
    next time it is seen and reported as unresolved each time.
    """

    def __init__(self, policy: LicensePolicy, *, matcher: Matcher = satisfies) -> None:
        self.policy = policy
        self._matcher = matcher
        self._cache: dict[str, bool] = {}
        self.hits = 0
        self.misses = 0

    def is_valid(self, license: str) -> bool | None:
        """Return the cached or freshly computed validity, None when no policy applies.

        Raises:
            SpdxExpressionError: if the license or a policy entry is malformed.
        """
        if license in self._cache:
            self.hits += 1
            return self._cache[license]

        allow, deny = self.policy.allow, self.policy.deny
        if allow is not None:
            valid = any(self._matcher(license, expression) for expression in allow)
        elif deny is not None:
            valid = not any(self._matcher(license, expression) for expression in deny)
        else:
            return None

        self.misses += 1
        self._cache[license] = valid
        return valid

    def evaluate(self, change: Change) -> Verdict:
        license = change.license
        if license is None or license == NOASSERTION:
            return Verdict.UNLICENSED
        try:
            valid = self.is_valid(license)
        except SpdxExpressionError as exc:
            logger.debug("Could not evaluate license %r: %s", license, exc)
            return Verdict.UNRESOLVED
        if valid is False:
            return Verdict.FORBIDDEN
        return Verdict.ACCEPTED

    def cache_info(self) -> dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "size": len(self._cache)}
