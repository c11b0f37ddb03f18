#!/usr/bin/env python3
"""Command line entry point for the dependency license gate."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from license_gate.changes import load_changes
from license_gate.classify import classify_changes
from license_gate.config import GateConfig, load_config
from license_gate.exceptions import LicenseGateError
from license_gate.github import GitHubLicenseClient
from license_gate.logging_config import LogContext, add_logging_args, configure_logging
from license_gate.report import (
    failure_messages,
    render_license_report,
    render_scanned_dependencies,
)
from license_gate.resolver import LicenseResolver

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_POLICY_FAILURE = 1
EXIT_USAGE_ERROR = 2


def _parse_args(argv: list[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Check dependency changes against an allow or deny list of SPDX licenses."
    )
    parser.add_argument(
        "--changes",
        required=True,
        type=Path,
        help="JSON file with dependency changes (dependency-graph compare output).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML gate configuration (allow_licenses/deny_licenses, ...).",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the classification as JSON instead of a text report.",
    )
    parser.add_argument(
        "--show-scanned",
        action="store_true",
        help="Also list every scanned dependency change grouped by manifest.",
    )
    add_logging_args(parser)
    return parser.parse_args(argv)


def _build_resolver(config: GateConfig) -> LicenseResolver:
    client = GitHubLicenseClient.from_env(api_url=config.github_api_url, retry=config.retry)
    return LicenseResolver(client, max_concurrency=config.max_concurrency)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)
    configure_logging(level=args.log_level, fmt=args.log_format)

    try:
        config = load_config(args.config) if args.config else GateConfig()
        changes = load_changes(args.changes)
    except LicenseGateError as exc:
        logger.error("%s", exc.message, extra=exc.as_log_fields())
        return EXIT_USAGE_ERROR

    if args.show_scanned:
        print(render_scanned_dependencies(changes))

    if not config.license_check:
        logger.info("License check disabled by configuration")
        return EXIT_OK

    with LogContext(changes_file=str(args.changes), change_count=len(changes)):
        result = classify_changes(changes, config.policy(), resolver=_build_resolver(config))

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        print(render_license_report(result))

    messages = failure_messages(result)
    for message in messages:
        logger.error(message)
    return EXIT_POLICY_FAILURE if messages else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
