from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from license_gate.models import Change
from license_gate.resolver import ChangeResolver
from license_gate.spdx import is_spdx_valid

logger = logging.getLogger(__name__)

# The dependency graph truncates license strings at this length.
TRUNCATED_LICENSE_LENGTH = 255


@dataclass
class GroupedChanges:
    licensed: list[Change] = field(default_factory=list)
    unlicensed: list[Change] = field(default_factory=list)


def is_truncated_license(license: str) -> bool:
    """True when ``license`` was cut off upstream and is no longer valid SPDX."""
    return len(license) == TRUNCATED_LICENSE_LENGTH and not is_spdx_valid(license)


def needs_remote_license(change: Change) -> bool:
    if change.source_repository_url is None:
        return False
    return change.license is None or is_truncated_license(change.license)


async def group_changes(changes: Sequence[Change], resolver: ChangeResolver) -> GroupedChanges:
    """Split non-removed changes into licensed and unlicensed groups.

    Changes without a usable license but with a source repository URL are
    resolved remotely as one batch and then regrouped by the result.
    """
    grouped = GroupedChanges()
    candidates: list[Change] = []

    for change in changes:
        if change.is_removed:
            continue
        if needs_remote_license(change):
            candidates.append(change)
        elif change.license is None:
            grouped.unlicensed.append(change)
        else:
            grouped.licensed.append(change)

    if candidates:
        logger.debug("Resolving licenses for %d change(s) remotely", len(candidates))
        for change in await resolver.resolve_changes(candidates):
            if change.license is None:
                grouped.unlicensed.append(change)
            else:
                grouped.licensed.append(change)

    return grouped
