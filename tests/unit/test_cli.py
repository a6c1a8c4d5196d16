"""Tests for the ruleguard CLI."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from aumos_ruleguard.cli.main import cli


def write_ruleset(tmp_path: Path, name: str, body: str) -> str:
    path = tmp_path / name
    path.write_text(body, encoding="utf-8")
    return str(path)


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def safe_ruleset(tmp_path: Path) -> str:
    return write_ruleset(tmp_path, "safe.yaml", "permissions:\n  deny: [dangerous/*]\n  allow: [safe/*]\n")


@pytest.fixture()
def bypass_ruleset(tmp_path: Path) -> str:
    return write_ruleset(tmp_path, "bypass.yaml", "permissions:\n  deny: [exec]\n  allow: [exec]\n")


class TestValidateCommand:
    def test_valid_ruleset_exits_zero(self, runner: CliRunner, safe_ruleset: str) -> None:
        result = runner.invoke(cli, ["validate", safe_ruleset])
        assert result.exit_code == 0
        assert "VALID" in result.output

    def test_invalid_ruleset_exits_one(self, runner: CliRunner, bypass_ruleset: str) -> None:
        result = runner.invoke(cli, ["validate", bypass_ruleset])
        assert result.exit_code == 1
        assert "INVALID" in result.output

    def test_json_output(self, runner: CliRunner, bypass_ruleset: str) -> None:
        result = runner.invoke(cli, ["validate", bypass_ruleset, "--format", "json"])
        assert result.exit_code == 1
        payload = json.loads(result.stdout)
        assert payload["is_valid"] is False
        assert payload["conflicts"][0]["kind"] == "ALLOW_OVERRIDES_DENY"

    def test_settings_file(self, runner: CliRunner, safe_ruleset: str, tmp_path: Path) -> None:
        settings = write_ruleset(tmp_path, "ruleguard.yaml", "security:\n  require_deny_rules: true\n")
        result = runner.invoke(cli, ["validate", safe_ruleset, "--settings", settings, "--no-cache"])
        assert result.exit_code == 0

    def test_unreadable_ruleset(self, runner: CliRunner, tmp_path: Path) -> None:
        path = write_ruleset(tmp_path, "list.yaml", "- exec\n")
        result = runner.invoke(cli, ["validate", path])
        assert result.exit_code == 1


class TestStatsCommand:
    def test_prints_table(self, runner: CliRunner, safe_ruleset: str) -> None:
        result = runner.invoke(cli, ["stats", safe_ruleset])
        assert result.exit_code == 0
        assert "Total rules" in result.output
        assert "Estimated coverage" in result.output


class TestResolveCommand:
    def test_writes_resolved_ruleset(self, runner: CliRunner, bypass_ruleset: str, tmp_path: Path) -> None:
        output = tmp_path / "resolved.json"
        result = runner.invoke(cli, ["resolve", bypass_ruleset, "--output", str(output)])
        assert result.exit_code == 0
        assert "# Conflict Resolution Report" in result.output
        resolved = json.loads(output.read_text(encoding="utf-8"))
        assert resolved["permissions"]["deny"] == ["exec"]
        assert resolved["permissions"]["allow"] == []

    def test_json_report(self, runner: CliRunner, bypass_ruleset: str) -> None:
        result = runner.invoke(cli, ["resolve", bypass_ruleset, "--level", "moderate", "--format", "json"])
        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["changes"][0]["new_value"] == "safe/exec"


class TestVersionCommand:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "aumos-ruleguard" in result.output
