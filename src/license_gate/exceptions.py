from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass
class LicenseGateError(Exception):
    message: str
    code: str = "license_gate_error"
    context: dict[str, Any] = field(default_factory=dict)

    def __init__(self, message: str, *, code: str | None = None, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.code
        self.context = dict(context or {})

    def __str__(self) -> str:
        return self.message

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "error_code": self.code,
            "error_message": self.message,
            "error_context": self.context,
        }


class ConfigValidationError(LicenseGateError):
    code = "config_validation_error"


class YamlParseError(LicenseGateError):
    code = "yaml_parse_error"


class ChangeParseError(LicenseGateError):
    code = "change_parse_error"
