"""Logging setup for the license gate.

Both formatters redact GitHub tokens and other secrets. Records emitted inside
a ``LogContext`` carry its fields: the text formatter appends them as
``key=value`` pairs, the JSON formatter nests them under ``context``. The CLI
opens a context per run and the resolver and classifier open one per
dependency, so a lookup or evaluation message names the change it is about.
"""

from __future__ import annotations

import contextvars
import json
import logging
import time
from typing import Any

from license_gate.secrets import redact_string, redact_structure

_CONFIGURED = False

_log_context: contextvars.ContextVar[dict[str, Any] | None] = contextvars.ContextVar(
    "license_gate_log_context", default=None
)


def get_log_context() -> dict[str, Any]:
    ctx = _log_context.get()
    return ctx.copy() if ctx else {}


class LogContext:
    """Context manager that adds fields to every record logged inside it.

    Nested contexts merge with the enclosing one. Each asyncio task sees the
    context it was created in, so per-change contexts opened inside
    ``asyncio.gather`` tasks do not leak into each other.
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields
        self._token: contextvars.Token | None = None

    def __enter__(self) -> LogContext:
        merged = get_log_context()
        merged.update(self.fields)
        self._token = _log_context.set(merged)
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            _log_context.reset(self._token)
            self._token = None


def _redacted_message(record: logging.LogRecord) -> str:
    msg = redact_structure(record.msg)
    args = redact_structure(record.args)
    if args:
        try:
            return redact_string(str(msg) % args)
        except (TypeError, ValueError):
            return redact_string(str(msg))
    return redact_string(str(msg))


def _context_suffix(context: dict[str, Any]) -> str:
    if not context:
        return ""
    pairs = " ".join(f"{key}={value}" for key, value in redact_structure(context).items())
    return f" [{pairs}]"


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__("%(asctime)s | %(levelname)s | %(name)s | %(message)s")
        self.converter = time.gmtime

    def formatMessage(self, record: logging.LogRecord) -> str:  # noqa: N802
        record.message = _redacted_message(record) + _context_suffix(get_log_context())
        return super().formatMessage(record)

    def format(self, record: logging.LogRecord) -> str:
        return redact_string(super().format(record))


class JsonFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__()
        self.converter = time.gmtime

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "message": _redacted_message(record),
        }
        error_code = getattr(record, "error_code", None)
        if error_code:
            payload["error_code"] = error_code
            payload["error_context"] = redact_structure(getattr(record, "error_context", {}))
        context = get_log_context()
        if context:
            payload["context"] = redact_structure(context)
        if record.exc_info:
            payload["exc_info"] = redact_string(self.formatException(record.exc_info))
        return json.dumps(payload, ensure_ascii=False, default=str)


def _resolve_level(level: str | int | None) -> int:
    if isinstance(level, int):
        return level
    if level is None:
        return logging.INFO
    return logging._nameToLevel.get(str(level).upper(), logging.INFO)


def configure_logging(*, level: str | int | None = None, fmt: str = "text") -> None:
    """Install one stderr handler on the root logger; later calls are no-ops."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger()
    root.setLevel(_resolve_level(level))
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter() if fmt.lower() == "json" else TextFormatter())
        root.addHandler(handler)
    # httpx logs every request at INFO; keep it to warnings unless debugging
    if root.level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)

    _CONFIGURED = True


def add_logging_args(parser: Any) -> None:
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        default="text",
        choices=["text", "json"],
        help="Logging format (default: text)",
    )
