"""Tests for the Typer CLI and terminal notifications."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from loginflow import __version__
from loginflow.app import app
from loginflow.config import load_settings
from loginflow.models import Notification, NotificationKind
from loginflow.output import OutputFormat, OutputManager, OutputNotifier


@pytest.fixture
def cli_runner() -> CliRunner:
    return CliRunner()


class TestRootCommand:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_redirect(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "redirect", "/projects/42?tab=info"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "/login?redirect=%2Fprojects%2F42%3Ftab%3Dinfo"

    def test_redirect_special_route(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["--plain", "redirect", "/_invite123"])
        assert result.stdout.strip() == "/login/_invite123"


class TestConfigCommands:
    def test_set_and_show(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "mode_cache.ttl_seconds", "60"])
        assert result.exit_code == 0
        assert load_settings().mode_cache.ttl_seconds == 60

        cli_runner.invoke(app, ["config", "set", "user_secret", "hunter2"])
        result = cli_runner.invoke(app, ["--json", "-q", "config", "show"])
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["user_secret"] == "****"
        assert data["mode_cache"]["ttl_seconds"] == 60

    def test_set_unknown_key(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "nope", "1"])
        assert result.exit_code == 2

    def test_set_invalid_value(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["config", "set", "login_fallback", "sometimes"])
        assert result.exit_code == 2

    def test_reset(self, cli_runner: CliRunner, isolated_config: Path) -> None:
        cli_runner.invoke(app, ["config", "set", "header_prefix", "X-Acme"])
        result = cli_runner.invoke(app, ["config", "reset", "--force"])
        assert result.exit_code == 0
        assert load_settings().header_prefix == "X-Loginflow"


class TestOutputNotifier:
    def test_server_unavailable_goes_to_stderr(self, capsys) -> None:
        output = OutputManager(format=OutputFormat.PLAIN, no_color=True)
        OutputNotifier(output).notify(
            Notification(
                kind=NotificationKind.SERVER_UNAVAILABLE,
                title="Server Unavailable",
                body="down",
                action="Reload",
            )
        )
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Error: Server Unavailable: down" in captured.err
        assert "Reload" in captured.err

    def test_login_notice_is_a_warning(self, capsys) -> None:
        output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
        OutputNotifier(output).notify(
            Notification(kind=NotificationKind.LOGIN_NOTICE, body="Be nice")
        )
        assert "Warning: Be nice" in capsys.readouterr().err
