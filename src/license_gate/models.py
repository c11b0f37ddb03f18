"""Data model shared by the grouping, evaluation and reporting stages."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from license_gate.exceptions import ChangeParseError

NOASSERTION = "NOASSERTION"


class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class Change:
    """One dependency version added or removed between two manifest states."""

    name: str
    version: str
    manifest: str
    change_type: ChangeType
    license: str | None = None
    source_repository_url: str | None = None
    ecosystem: str | None = None
    package_url: str | None = None
    scope: str | None = None

    @property
    def is_removed(self) -> bool:
        return self.change_type is ChangeType.REMOVED

    @property
    def label(self) -> str:
        return f"{self.manifest} » {self.name}@{self.version}"

    def with_license(self, license: str | None) -> Change:
        return dataclasses.replace(self, license=license)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Change:
        try:
            change_type = ChangeType(str(data.get("change_type", "")))
        except ValueError as exc:
            raise ChangeParseError(
                f"Unexpected change type: {data.get('change_type')!r}",
                context={"name": data.get("name"), "change_type": data.get("change_type")},
            ) from exc
        missing = [key for key in ("name", "version", "manifest") if not data.get(key)]
        if missing:
            raise ChangeParseError(
                f"Change is missing required field(s): {', '.join(missing)}",
                context={"missing": missing, "name": data.get("name")},
            )
        return cls(
            name=str(data["name"]),
            version=str(data["version"]),
            manifest=str(data["manifest"]),
            change_type=change_type,
            license=_optional_str(data.get("license")),
            source_repository_url=_optional_str(data.get("source_repository_url")),
            ecosystem=_optional_str(data.get("ecosystem")),
            package_url=_optional_str(data.get("package_url")),
            scope=_optional_str(data.get("scope")),
        )

    def to_dict(self) -> dict[str, Any]:
        d = dataclasses.asdict(self)
        d["change_type"] = self.change_type.value
        return {key: value for key, value in d.items() if value is not None or key == "license"}


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)


@dataclass(frozen=True)
class LicensePolicy:
    """Allow or deny list of SPDX expressions.

    ``allow`` takes precedence: when it is set, ``deny`` is never consulted.
    ``None`` means "not configured", which is different from an empty list.
    """

    allow: tuple[str, ...] | None = None
    deny: tuple[str, ...] | None = None

    @classmethod
    def from_lists(
        cls, allow: Iterable[str] | None = None, deny: Iterable[str] | None = None
    ) -> LicensePolicy:
        return cls(
            allow=tuple(allow) if allow is not None else None,
            deny=tuple(deny) if deny is not None else None,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> LicensePolicy:
        return cls.from_lists(data.get("allow"), data.get("deny"))

    @property
    def is_configured(self) -> bool:
        return self.allow is not None or self.deny is not None


@dataclass
class ClassificationResult:
    """Problem buckets of one classification run; accepted changes are in none of them."""

    forbidden: list[Change] = field(default_factory=list)
    unresolved: list[Change] = field(default_factory=list)
    unlicensed: list[Change] = field(default_factory=list)

    @property
    def has_failures(self) -> bool:
        return bool(self.forbidden or self.unresolved)

    def buckets(self) -> dict[str, Sequence[Change]]:
        return {
            "forbidden": self.forbidden,
            "unresolved": self.unresolved,
            "unlicensed": self.unlicensed,
        }

    def to_dict(self) -> dict[str, list[dict[str, Any]]]:
        return {
            bucket: [change.to_dict() for change in changes]
            for bucket, changes in self.buckets().items()
        }
