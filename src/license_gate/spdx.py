"""SPDX license validation and expression satisfaction.

Expressions are tokenized and parsed with ``license-expression``'s boolean
parser, then every symbol is checked against the SPDX grammar:

* ``license-id`` must be a key or alias of the bundled SPDX license list;
  aliases such as ``GPL-2.0+`` resolve to their canonical form
  (``GPL-2.0-or-later``),
* ``license-id+`` is accepted for any known ``license-id`` (``MPL-1.1+``),
* ``[DocumentRef-<id>:]LicenseRef-<id>`` is an opaque user-defined license,
* the right side of ``WITH`` must be a known exception or an
  ``[DocumentRef-<id>:]AdditionRef-<id>``.

Satisfaction semantics (``satisfies(candidate, expression)``):

* the candidate is expanded to disjunctive normal form; each OR branch is an
  alternative the consumer may choose,
* an alternative satisfies the expression when every license in it appears
  somewhere in the expression,
* a ``WITH`` exception only matches the same license with the same exception,
* ``-or-later`` and ``+`` on either side match other versions of the same
  license family in the direction they allow,
* references match only the same reference, case-insensitively.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from functools import cache
from typing import Any

from license_expression import (
    ExpressionError,
    ExpressionParseError,
    LicenseSymbol,
    LicenseWithExceptionSymbol,
    Licensing,
    get_spdx_licensing,
)

_IDSTRING = r"[A-Za-z0-9.\-]+"
_LICENSE_REF_RE = re.compile(rf"^(?:DocumentRef-{_IDSTRING}:)?LicenseRef-{_IDSTRING}$", re.IGNORECASE)
_ADDITION_REF_RE = re.compile(rf"^(?:DocumentRef-{_IDSTRING}:)?AdditionRef-{_IDSTRING}$", re.IGNORECASE)
_VERSIONED_KEY_RE = re.compile(r"^(?P<family>.+?)-(?P<version>\d+(?:\.\d+)*)$")
_OR_LATER_SUFFIXES = ("-or-later", "+")
_ONLY_SUFFIX = "-only"
_REF_PREFIXES = ("licenseref-", "documentref-")

_PARSE_ERRORS = (ExpressionError, ExpressionParseError, TypeError)


class SpdxExpressionError(ValueError):
    """Raised when a string is not a valid SPDX license expression."""

    def __init__(self, expression: str, detail: str) -> None:
        super().__init__(f"invalid SPDX expression {expression!r}: {detail}")
        self.expression = expression
        self.detail = detail


@dataclass(frozen=True)
class _Term:
    key: str
    exception: str | None = None


@dataclass(frozen=True)
class _Version:
    family: str
    version: tuple[int, ...]
    or_later: bool


@cache
def spdx_licensing() -> Licensing:
    """Licensing that knows the SPDX license list; used to look up single identifiers."""
    return get_spdx_licensing()


@cache
def expression_licensing() -> Licensing:
    """Licensing without known symbols: splits on operators and parentheses only."""
    return Licensing()


@cache
def _lookup_known(key: str) -> tuple[str, bool] | None:
    """Return ``(canonical key, is_exception)`` for a listed identifier, else None."""
    try:
        symbol = spdx_licensing().parse(key, validate=True)
    except _PARSE_ERRORS:
        return None
    if not isinstance(symbol, LicenseSymbol) or isinstance(symbol, LicenseWithExceptionSymbol):
        return None
    return symbol.key, bool(symbol.is_exception)


def _license_key(key: str) -> str:
    if _LICENSE_REF_RE.match(key):
        return key.lower()
    known = _lookup_known(key)
    if known is not None and not known[1]:
        return known[0].lower()
    if key.endswith("+"):
        base = _lookup_known(key[:-1])
        if base is not None and not base[1]:
            return f"{base[0].lower()}+"
    raise SpdxExpressionError(key, f"unknown license identifier {key!r}")


def _exception_key(key: str) -> str:
    if _ADDITION_REF_RE.match(key):
        return key.lower()
    known = _lookup_known(key)
    if known is None or not known[1]:
        raise SpdxExpressionError(key, f"unknown license exception {key!r}")
    return known[0].lower()


def parse_expression(expression: str) -> Any:
    text = (expression or "").strip()
    if not text:
        raise SpdxExpressionError(expression, "empty expression")
    try:
        parsed = expression_licensing().parse(text)
    except _PARSE_ERRORS as exc:
        # dangling operators can surface as TypeError from boolean.py
        raise SpdxExpressionError(expression, str(exc)) from exc
    if parsed is None:
        raise SpdxExpressionError(expression, "empty expression")
    try:
        _terms(parsed)
    except SpdxExpressionError as exc:
        raise SpdxExpressionError(expression, exc.detail) from exc
    return parsed


def is_spdx_valid(text: str) -> bool:
    """Return True when ``text`` is a valid SPDX identifier or expression."""
    try:
        parse_expression(text)
    except SpdxExpressionError:
        return False
    return True


def satisfies(candidate: str, expression: str) -> bool:
    """Return True when the ``candidate`` license satisfies ``expression``.

    Raises:
        SpdxExpressionError: if either side is not a valid SPDX expression.
    """
    alternatives = _alternatives(parse_expression(candidate))
    allowed = _terms(parse_expression(expression))
    return any(
        all(any(_compatible(term, other) for other in allowed) for term in alternative)
        for alternative in alternatives
    )


def _alternatives(expression: Any) -> list[list[_Term]]:
    licensing = expression_licensing()
    normalized = licensing.dnf(expression)
    branches = normalized.args if isinstance(normalized, licensing.OR) else (normalized,)
    return [_terms(branch) for branch in branches]


def _terms(expression: Any) -> list[_Term]:
    symbols = expression_licensing().license_symbols(expression, unique=True, decompose=False)
    return [_to_term(symbol) for symbol in symbols]


def _to_term(symbol: object) -> _Term:
    if isinstance(symbol, LicenseWithExceptionSymbol):
        return _Term(
            key=_license_key(symbol.license_symbol.key),
            exception=_exception_key(symbol.exception_symbol.key),
        )
    return _Term(key=_license_key(str(getattr(symbol, "key", symbol))))


def _compatible(candidate: _Term, allowed: _Term) -> bool:
    if candidate.exception != allowed.exception:
        return False
    if candidate.key == allowed.key:
        return True
    return _versions_overlap(_split_version(candidate.key), _split_version(allowed.key))


def _versions_overlap(candidate: _Version | None, allowed: _Version | None) -> bool:
    if candidate is None or allowed is None or candidate.family != allowed.family:
        return False
    if allowed.or_later and candidate.version >= allowed.version:
        return True
    return candidate.or_later and allowed.version >= candidate.version


def _split_version(key: str) -> _Version | None:
    if key.startswith(_REF_PREFIXES):
        return None
    or_later = False
    for suffix in _OR_LATER_SUFFIXES:
        if key.endswith(suffix):
            key = key[: -len(suffix)]
            or_later = True
            break
    else:
        if key.endswith(_ONLY_SUFFIX):
            key = key[: -len(_ONLY_SUFFIX)]
    match = _VERSIONED_KEY_RE.match(key)
    if not match:
        return None
    version = tuple(int(part) for part in match.group("version").split("."))
    return _Version(family=match.group("family"), version=_pad(version), or_later=or_later)


def _pad(version: Iterable[int]) -> tuple[int, ...]:
    parts = list(version)
    while len(parts) < 2:
        parts.append(0)
    return tuple(parts)
