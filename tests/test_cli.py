"""Tests for the license-gate command line."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import RecordingResolver
from license_gate import cli
from license_gate.report import FORBIDDEN_HEADER

REPO = "https://github.com/acme/mystery"

CHANGES = [
    {"change_type": "added", "manifest": "package.json", "name": "left", "version": "1.0.0", "license": "MIT"},
    {"change_type": "added", "manifest": "package.json", "name": "gpl", "version": "3.1.0", "license": "GPL-3.0-only"},
    {
        "change_type": "added",
        "manifest": "package.json",
        "name": "mystery",
        "version": "0.0.1",
        "license": None,
        "source_repository_url": REPO,
    },
    {"change_type": "removed", "manifest": "package.json", "name": "old", "version": "0.9.0", "license": "AGPL-3.0-only"},
]


@pytest.fixture
def resolver(monkeypatch: pytest.MonkeyPatch) -> RecordingResolver:
    fake = RecordingResolver({REPO: "Apache-2.0"})
    monkeypatch.setattr(cli, "_build_resolver", lambda config: fake)
    monkeypatch.setattr("license_gate.logging_config._CONFIGURED", True)
    return fake


@pytest.fixture
def changes_file(tmp_path: Path) -> Path:
    path = tmp_path / "changes.json"
    path.write_text(json.dumps(CHANGES), encoding="utf-8")
    return path


def _config(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "gate.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_forbidden_license_fails(tmp_path: Path, changes_file: Path, resolver, capsys) -> None:
    config = _config(tmp_path, "allow_licenses: [MIT, Apache-2.0]\n")
    exit_code = cli.main(["--changes", str(changes_file), "--config", str(config)])
    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_POLICY_FAILURE
    assert FORBIDDEN_HEADER in out
    assert "package.json » gpl@3.1.0 – License: GPL-3.0-only" in out
    assert "old@0.9.0" not in out
    assert resolver.looked_up == [REPO]


def test_conforming_changes_pass(tmp_path: Path, changes_file: Path, resolver, capsys) -> None:
    config = _config(tmp_path, "deny_licenses: [AGPL-3.0-only]\n")
    assert cli.main(["--changes", str(changes_file), "--config", str(config)]) == cli.EXIT_OK
    assert "conform" in capsys.readouterr().out


def test_json_output(tmp_path: Path, changes_file: Path, resolver, capsys) -> None:
    config = _config(tmp_path, "allow_licenses: [MIT]\n")
    exit_code = cli.main(["--changes", str(changes_file), "--config", str(config), "--json"])
    payload = json.loads(capsys.readouterr().out)
    assert exit_code == cli.EXIT_POLICY_FAILURE
    assert [c["name"] for c in payload["forbidden"]] == ["gpl", "mystery"]
    assert payload["forbidden"][1]["license"] == "Apache-2.0"
    assert payload["unresolved"] == []


def test_show_scanned(tmp_path: Path, changes_file: Path, resolver, capsys) -> None:
    config = _config(tmp_path, "license_check: false\n")
    exit_code = cli.main(["--changes", str(changes_file), "--config", str(config), "--show-scanned"])
    out = capsys.readouterr().out
    assert exit_code == cli.EXIT_OK
    assert "File: package.json" in out
    assert "- old@0.9.0" in out
    assert resolver.batches == []


def test_without_config_accepts_everything(changes_file: Path, resolver, capsys) -> None:
    assert cli.main(["--changes", str(changes_file)]) == cli.EXIT_OK


def test_invalid_config_is_usage_error(tmp_path: Path, changes_file: Path, resolver) -> None:
    config = _config(tmp_path, "allow_licenses: MIT\n")
    assert cli.main(["--changes", str(changes_file), "--config", str(config)]) == cli.EXIT_USAGE_ERROR


def test_unreadable_changes_is_usage_error(tmp_path: Path, resolver) -> None:
    bad = tmp_path / "changes.json"
    bad.write_text("{not json", encoding="utf-8")
    assert cli.main(["--changes", str(bad)]) == cli.EXIT_USAGE_ERROR


def test_changes_argument_is_required() -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 2
