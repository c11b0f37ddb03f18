"""Read dependency changes exported from the dependency-graph compare API."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from license_gate.exceptions import ChangeParseError
from license_gate.models import Change

logger = logging.getLogger(__name__)


def parse_changes(payload: Any, *, source: str = "<changes>") -> list[Change]:
    """Build ``Change`` values from a JSON array or an object with a ``changes`` list."""
    if isinstance(payload, Mapping):
        payload = payload.get("changes")
    if not isinstance(payload, list):
        raise ChangeParseError(
            f"{source}: expected a list of changes",
            context={"path": source},
        )
    changes: list[Change] = []
    for idx, item in enumerate(payload):
        if not isinstance(item, Mapping):
            raise ChangeParseError(
                f"{source}: change #{idx} is not an object",
                context={"path": source, "index": idx},
            )
        try:
            changes.append(Change.from_dict(item))
        except ChangeParseError as exc:
            exc.context.update({"path": source, "index": idx})
            raise
    return changes


def load_changes(path: Path) -> list[Change]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ChangeParseError(f"Cannot read changes file {path}: {exc}", context={"path": str(path)}) from exc
    except json.JSONDecodeError as exc:
        raise ChangeParseError(
            f"Invalid JSON in {path}: {exc}", context={"path": str(path), "line": exc.lineno}
        ) from exc
    changes = parse_changes(payload, source=str(path))
    logger.debug("Loaded %d change(s) from %s", len(changes), path)
    return changes
