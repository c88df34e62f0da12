"""Tests for CLI commands."""
import logging
import pytest
import sys
import os
import yaml
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from click.testing import CliRunner
from main import cli
from utils.logger import DatabaseLogHandler, ROOT_LOGGER


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({
        "database": {"path": str(tmp_path / "trading.db")},
        "orchestrator": {"lock_path": str(tmp_path / "cycle.lock")},
        "alerts": {"channels": {"console": False, "file": str(tmp_path / "notifications.jsonl")}},
    }))
    yield str(path)
    root = logging.getLogger(ROOT_LOGGER)
    for handler in [h for h in root.handlers if isinstance(h, DatabaseLogHandler)]:
        root.removeHandler(handler)


def invoke(runner, config_file, *args):
    return runner.invoke(cli, ["--config", config_file, *args])


def test_cli_help(runner):
    result = runner.invoke(cli, ["--help"])
    assert result.exit_code == 0
    assert "Trading Cycle Orchestrator" in result.output
    for command in ("setup", "run", "schedule", "cleanup", "settings", "pairs", "notifications"):
        assert command in result.output


def test_cli_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "1.0.0" in result.output


def test_pairs_help(runner):
    result = runner.invoke(cli, ["pairs", "--help"])
    assert result.exit_code == 0
    for sub in ("list", "add", "enable", "disable"):
        assert sub in result.output


def test_setup_and_show_settings(runner, config_file):
    result = invoke(runner, config_file, "setup")
    assert result.exit_code == 0
    assert "Setup complete" in result.output

    result = invoke(runner, config_file, "settings", "show")
    assert result.exit_code == 0
    assert "trading_enabled" in result.output
    assert "OFF" in result.output


def test_settings_show_before_setup(runner, config_file):
    result = invoke(runner, config_file, "settings", "show")
    assert result.exit_code == 1


def test_settings_set(runner, config_file):
    invoke(runner, config_file, "setup")
    result = invoke(runner, config_file, "settings", "set", "emergency_stop", "on")
    assert result.exit_code == 0
    assert "emergency_stop = True" in result.output

    result = invoke(runner, config_file, "settings", "set", "max_daily_trades", "7")
    assert result.exit_code == 0
    assert "max_daily_trades = 7" in result.output


def test_settings_set_rejects_bad_input(runner, config_file):
    invoke(runner, config_file, "setup")
    assert invoke(runner, config_file, "settings", "set", "nope", "1").exit_code == 1
    assert invoke(runner, config_file, "settings", "set", "trading_enabled", "maybe").exit_code == 1


def test_pairs_lifecycle(runner, config_file):
    result = invoke(runner, config_file, "pairs", "add", "btcusdt", "--type", "futures", "--priority", "3")
    assert result.exit_code == 0
    assert "Added BTCUSDT (FUTURES)" in result.output

    assert invoke(runner, config_file, "pairs", "add", "BTCUSDT").exit_code == 1

    result = invoke(runner, config_file, "pairs", "list")
    assert result.exit_code == 0
    assert "BTCUSDT" in result.output
    assert "FUTURES" in result.output

    assert invoke(runner, config_file, "pairs", "disable", "BTCUSDT").exit_code == 0
    assert invoke(runner, config_file, "pairs", "enable", "DOGEUSDT").exit_code == 1


def test_run_without_settings_exits_nonzero(runner, config_file):
    result = invoke(runner, config_file, "run")
    assert result.exit_code == 1
    assert "ERRORED" in result.output

    result = invoke(runner, config_file, "notifications", "list")
    assert "Trading Bot Error" in result.output


def test_run_with_trading_disabled_skips(runner, config_file):
    invoke(runner, config_file, "setup")
    result = invoke(runner, config_file, "run")
    assert result.exit_code == 0
    assert "SKIPPED" in result.output
    assert "trading is disabled" in result.output


def test_run_with_bad_config_exits_nonzero(runner, tmp_path):
    result = runner.invoke(cli, ["--config", str(tmp_path / "missing.yaml"), "run"])
    assert result.exit_code == 1


def test_cleanup(runner, config_file):
    result = invoke(runner, config_file, "cleanup")
    assert result.exit_code == 0
    assert "read_notifications" in result.output
    assert "critical_logs" in result.output


def test_notifications_empty_and_read(runner, config_file):
    result = invoke(runner, config_file, "notifications", "list", "--unread")
    assert result.exit_code == 0
    assert "No notifications" in result.output
    assert invoke(runner, config_file, "notifications", "read", "42").exit_code == 1
