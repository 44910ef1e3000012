"""Tests for the pf lock commands and PIN gating of the store."""

import pytest
from click.testing import CliRunner

from projectflow.cli import main


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def locked(runner, mock_root):
    """Data root protected by PIN 123456."""
    result = runner.invoke(main, ["lock", "set", "--new-pin", "123456"])
    assert result.exit_code == 0, result.output
    return mock_root


def test_status_without_pin(runner, mock_root):
    result = runner.invoke(main, ["lock", "status"])
    assert "No PIN set" in result.output


def test_set_rejects_short_pin(runner, mock_root):
    result = runner.invoke(main, ["lock", "set", "--new-pin", "123"])
    assert result.exit_code == 2


def test_store_needs_pin(runner, locked):
    result = runner.invoke(main, ["--mode", "sqlite", "links", "list"], input="000000\n")
    assert result.exit_code == 1
    assert "Invalid PIN" in result.output


def test_pin_option_unlocks(runner, locked):
    result = runner.invoke(main, ["--mode", "sqlite", "--pin", "123456", "links", "list"])
    assert result.exit_code == 0
    assert "No links yet" in result.output


def test_pin_from_environment(runner, locked, monkeypatch):
    monkeypatch.setenv("PROJECTFLOW_PIN", "123456")
    result = runner.invoke(main, ["--mode", "sqlite", "links", "list"])
    assert result.exit_code == 0


def test_lockout_and_master_reset(runner, locked):
    for _ in range(5):
        runner.invoke(main, ["--mode", "sqlite", "--pin", "000000", "links", "list"])

    result = runner.invoke(main, ["--mode", "sqlite", "--pin", "123456", "links", "list"])
    assert result.exit_code == 1
    assert "Too many failed attempts" in result.output

    status = runner.invoke(main, ["lock", "status"])
    assert "Locked out" in status.output

    assert runner.invoke(main, ["lock", "reset", "--master", "111111"]).exit_code == 1
    assert runner.invoke(main, ["lock", "reset", "--master", "741852"]).exit_code == 0
    assert runner.invoke(main, ["--mode", "sqlite", "links", "list"]).exit_code == 0


def test_clear_requires_current_pin(runner, locked):
    result = runner.invoke(main, ["--pin", "123456", "lock", "clear"])
    assert result.exit_code == 0
    assert "No PIN set" in runner.invoke(main, ["lock", "status"]).output
