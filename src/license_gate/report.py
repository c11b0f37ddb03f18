from __future__ import annotations

from collections.abc import Iterable, Sequence

from license_gate.models import Change, ChangeType, ClassificationResult

FORBIDDEN_HEADER = "The following dependencies have incompatible licenses:"
UNRESOLVED_HEADER = (
    "The validity of the licenses of the dependencies below could not be determined. "
    "Ensure that they are valid SPDX licenses:"
)
UNLICENSED_HEADER = "We could not detect a license for the following dependencies:"
FORBIDDEN_FAILURE = "Dependency review detected incompatible licenses."
UNRESOLVED_FAILURE = "Dependency review could not detect the validity of all licenses."

_CHANGE_ICONS = {ChangeType.ADDED: "+", ChangeType.REMOVED: "-"}


def group_dependencies_by_manifest(changes: Iterable[Change]) -> dict[str, list[Change]]:
    """Group changes by manifest, keeping manifests in first-seen order."""
    grouped: dict[str, list[Change]] = {}
    for change in changes:
        grouped.setdefault(change.manifest, []).append(change)
    return grouped


def _license_lines(changes: Sequence[Change]) -> list[str]:
    return [f"{change.label} – License: {change.license}" for change in changes]


def failure_messages(result: ClassificationResult) -> list[str]:
    messages: list[str] = []
    if result.forbidden:
        messages.append(FORBIDDEN_FAILURE)
    if result.unresolved:
        messages.append(UNRESOLVED_FAILURE)
    return messages


def render_license_report(result: ClassificationResult) -> str:
    lines: list[str] = []
    if result.forbidden:
        lines += ["", FORBIDDEN_HEADER, *_license_lines(result.forbidden)]
    if result.unresolved:
        lines += ["", UNRESOLVED_HEADER, *_license_lines(result.unresolved)]
    if result.unlicensed:
        lines += ["", UNLICENSED_HEADER, *(change.label for change in result.unlicensed)]
    if not lines:
        return "All dependency licenses conform to the policy."
    return "\n".join(lines).lstrip("\n")


def render_scanned_dependency(change: Change) -> str:
    icon = _CHANGE_ICONS.get(change.change_type)
    if icon is None:
        raise ValueError(f"Unexpected change type: {change.change_type}")
    return f"{icon} {change.name}@{change.version}"


def render_scanned_dependencies(changes: Iterable[Change]) -> str:
    lines: list[str] = []
    for manifest, manifest_changes in group_dependencies_by_manifest(changes).items():
        lines.append(f"File: {manifest}")
        lines.extend(render_scanned_dependency(change) for change in manifest_changes)
    return "\n".join(lines)
