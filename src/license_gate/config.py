from __future__ import annotations

import json
from dataclasses import dataclass, field
from functools import cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import Draft7Validator, FormatChecker

from license_gate.exceptions import ConfigValidationError, YamlParseError
from license_gate.github import DEFAULT_API_URL, RetryPolicy
from license_gate.models import LicensePolicy

SCHEMA_NAME = "license_gate"


@cache
def load_schema(schema_name: str) -> dict[str, Any]:
    schema_path = resources.files("license_gate").joinpath("schemas", f"{schema_name}.schema.json")
    try:
        return json.loads(schema_path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Schema not found: {schema_name}") from exc


def validate_config(config: Any, schema_name: str = SCHEMA_NAME, *, config_path: Path | None = None) -> None:
    schema = load_schema(schema_name)
    validator = Draft7Validator(schema, format_checker=FormatChecker())
    errors = sorted(validator.iter_errors(config), key=lambda exc: list(exc.path))
    if not errors:
        return
    location = str(config_path) if config_path else "<config>"
    lines = [f"Schema validation failed for {location} ({schema_name})."]
    error_details: list[dict[str, str]] = []
    for error in errors[:10]:
        path = ".".join(str(p) for p in error.path) if error.path else "<root>"
        lines.append(f"- {path}: {error.message}")
        error_details.append({"path": path, "message": error.message})
    if len(errors) > 10:
        lines.append(f"... and {len(errors) - 10} more errors.")
    raise ConfigValidationError(
        "\n".join(lines),
        context={
            "path": location,
            "schema": schema_name,
            "errors": error_details,
            "truncated": len(errors) > 10,
        },
    )


def read_yaml(path: Path, schema_name: str | None = None) -> Any:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigValidationError(
            f"Cannot read config {path}: {exc}", context={"path": str(path)}
        ) from exc
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise YamlParseError(
            f"YAML parse error in {path}: {exc}", context={"path": str(path)}
        ) from exc
    if data is None:
        data = {}
    if schema_name:
        validate_config(data, schema_name, config_path=path)
    return data


@dataclass(frozen=True)
class GateConfig:
    license_check: bool = True
    allow_licenses: tuple[str, ...] | None = None
    deny_licenses: tuple[str, ...] | None = None
    github_api_url: str = DEFAULT_API_URL
    max_concurrency: int = 0
    retry: RetryPolicy = field(default_factory=RetryPolicy)

    def policy(self) -> LicensePolicy:
        return LicensePolicy(allow=self.allow_licenses, deny=self.deny_licenses)

    @classmethod
    def from_dict(cls, data: dict[str, Any], *, config_path: Path | None = None) -> GateConfig:
        validate_config(data, config_path=config_path)
        allow = tuple(data.get("allow_licenses") or ()) or None
        deny = tuple(data.get("deny_licenses") or ()) or None
        if allow and deny:
            location = str(config_path) if config_path else "<config>"
            raise ConfigValidationError(
                f"{location}: allow_licenses and deny_licenses cannot both be set.",
                context={"path": location},
            )
        retry = data.get("retry") or {}
        return cls(
            license_check=bool(data.get("license_check", True)),
            allow_licenses=allow,
            deny_licenses=deny,
            github_api_url=str(data.get("github_api_url") or DEFAULT_API_URL),
            max_concurrency=int(data.get("max_concurrency") or 0),
            retry=RetryPolicy(**retry),
        )


def load_config(path: Path) -> GateConfig:
    data = read_yaml(path)
    if not isinstance(data, dict):
        raise ConfigValidationError(
            f"{path}: config must be a mapping, got {type(data).__name__}",
            context={"path": str(path)},
        )
    return GateConfig.from_dict(data, config_path=path)
