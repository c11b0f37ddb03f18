"""Dependency license gate: classify dependency changes against an SPDX license policy."""

from license_gate.__version__ import __version__
from license_gate.classify import classify_changes, get_invalid_license_changes
from license_gate.models import (
    Change,
    ChangeType,
    ClassificationResult,
    LicensePolicy,
)

__all__ = [
    "__version__",
    "Change",
    "ChangeType",
    "ClassificationResult",
    "LicensePolicy",
    "classify_changes",
    "get_invalid_license_changes",
]
