"""Tests for license_gate.classify (end-to-end classification without the network)."""

from __future__ import annotations

import asyncio
from unittest.mock import Mock

from hypothesis import given, settings
from hypothesis import strategies as st

from conftest import RecordingResolver, make_change
from license_gate import classify_changes, get_invalid_license_changes
from license_gate.models import NOASSERTION, ChangeType, LicensePolicy
from license_gate.spdx import satisfies

REPO = "https://github.com/acme/widget"


def _names(changes) -> list[str]:
    return [change.name for change in changes]


class TestAllowList:
    def test_allowed_license_is_accepted(self) -> None:
        result = classify_changes([make_change(license="MIT")], {"allow": ["MIT"]}, resolver=RecordingResolver())
        assert result.forbidden == []
        assert result.unresolved == []
        assert result.unlicensed == []

    def test_license_outside_allow_list_is_forbidden(self) -> None:
        result = classify_changes(
            [make_change("gpl", license="GPL-3.0-only")],
            {"allow": ["MIT", "Apache-2.0"]},
            resolver=RecordingResolver(),
        )
        assert _names(result.forbidden) == ["gpl"]

    def test_deny_is_ignored_when_allow_is_set(self) -> None:
        result = classify_changes(
            [make_change(license="MIT")],
            {"allow": ["MIT"], "deny": ["MIT"]},
            resolver=RecordingResolver(),
        )
        assert result.forbidden == []


class TestDenyList:
    def test_denied_license_is_forbidden(self) -> None:
        result = classify_changes(
            [make_change("gpl", license="GPL-3.0-only"), make_change("mit", license="MIT")],
            LicensePolicy.from_lists(deny=["GPL-3.0-only"]),
            resolver=RecordingResolver(),
        )
        assert _names(result.forbidden) == ["gpl"]

    def test_or_later_deny_catches_newer_versions(self) -> None:
        result = classify_changes(
            [make_change(license="GPL-3.0-only")],
            {"deny": ["GPL-2.0-or-later"]},
            resolver=RecordingResolver(),
        )
        assert len(result.forbidden) == 1


class TestBuckets:
    def test_removed_changes_are_ignored(self) -> None:
        result = classify_changes(
            [make_change(license="GPL-3.0-only", change_type=ChangeType.REMOVED)],
            {"allow": ["MIT"]},
            resolver=RecordingResolver(),
        )
        assert result.buckets() == {"forbidden": [], "unresolved": [], "unlicensed": []}

    def test_invalid_expression_is_unresolved(self) -> None:
        result = classify_changes(
            [make_change("odd", license="Some Custom License!!")],
            {"allow": ["MIT"]},
            resolver=RecordingResolver(),
        )
        assert _names(result.unresolved) == ["odd"]
        assert result.forbidden == []

    def test_malformed_allow_entry_makes_change_unresolved(self) -> None:
        result = classify_changes(
            [make_change("mit", license="MIT")],
            {"allow": ["not a valid expression!!"]},
            resolver=RecordingResolver(),
        )
        assert _names(result.unresolved) == ["mit"]
        assert result.forbidden == []
        assert result.unlicensed == []

    def test_license_ref_in_allow_list_is_accepted(self) -> None:
        result = classify_changes(
            [make_change("custom", license="LicenseRef-acme"), make_change("other", license="LicenseRef-other")],
            {"allow": ["LicenseRef-acme", "MPL-1.1+"]},
            resolver=RecordingResolver(),
        )
        assert _names(result.forbidden) == ["other"]
        assert result.unresolved == []

    def test_noassertion_is_unlicensed(self) -> None:
        result = classify_changes(
            [make_change("unknown", license=NOASSERTION)],
            {"allow": ["MIT"]},
            resolver=RecordingResolver(),
        )
        assert _names(result.unlicensed) == ["unknown"]

    def test_unresolvable_change_is_unlicensed(self) -> None:
        resolver = RecordingResolver()
        result = classify_changes(
            [make_change("nolicense", license=None, source_repository_url=REPO)],
            {"allow": ["MIT"]},
            resolver=resolver,
        )
        assert _names(result.unlicensed) == ["nolicense"]
        assert resolver.looked_up == [REPO]

    def test_resolved_license_is_evaluated(self) -> None:
        result = classify_changes(
            [make_change("remote", license=None, source_repository_url=REPO)],
            {"allow": ["MIT"]},
            resolver=RecordingResolver({REPO: "GPL-3.0-only"}),
        )
        assert _names(result.forbidden) == ["remote"]
        assert result.forbidden[0].license == "GPL-3.0-only"

    def test_no_policy_accepts_every_licensed_change(self) -> None:
        result = classify_changes(
            [make_change(license="GPL-3.0-only"), make_change("bare", license=None)],
            {},
            resolver=RecordingResolver(),
        )
        assert result.forbidden == []
        assert _names(result.unlicensed) == ["bare"]


def test_matcher_runs_once_per_distinct_license() -> None:
    matcher = Mock(wraps=satisfies)
    changes = [make_change(f"pkg{i}", license="Apache-2.0") for i in range(5)]
    result = asyncio.run(
        get_invalid_license_changes(
            changes, {"allow": ["MIT"]}, resolver=RecordingResolver(), matcher=matcher
        )
    )
    assert len(result.forbidden) == 5
    assert matcher.call_count == 1


LICENSES = st.sampled_from(
    ["MIT", "Apache-2.0", "GPL-3.0-only", "GPL-2.0-or-later", "BSD-3-Clause", NOASSERTION, "bogus!!", None]
)

CHANGES = st.lists(
    st.builds(
        make_change,
        name=st.text(alphabet="abcdefgh", min_size=1, max_size=6),
        version=st.sampled_from(["1.0.0", "2.1.3"]),
        change_type=st.sampled_from(list(ChangeType)),
        license=LICENSES,
    ),
    max_size=12,
)

POLICIES = st.one_of(
    st.builds(LicensePolicy.from_lists, allow=st.lists(st.sampled_from(["MIT", "Apache-2.0"]), max_size=2)),
    st.builds(LicensePolicy.from_lists, deny=st.lists(st.sampled_from(["GPL-3.0-only", "MIT"]), max_size=2)),
)


@settings(max_examples=40, deadline=None)
@given(changes=CHANGES, policy=POLICIES)
def test_classification_invariants(changes, policy) -> None:
    first = classify_changes(changes, policy, resolver=RecordingResolver())
    second = classify_changes(changes, policy, resolver=RecordingResolver())

    flagged = [c for bucket in first.buckets().values() for c in bucket]
    assert all(not c.is_removed for c in flagged)
    assert len(flagged) == len({id(c) for c in flagged})
    assert first.to_dict() == second.to_dict()

    for change in first.unlicensed:
        assert change.license in (None, NOASSERTION)
    unlicensed_ids = {id(c) for c in first.unlicensed}
    for change in changes:
        if not change.is_removed and change.license in (None, NOASSERTION):
            assert id(change) in unlicensed_ids
