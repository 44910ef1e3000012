"""Tests for projectflow.config.commands CLI module."""

import json

import pytest
import yaml
from click.testing import CliRunner

from projectflow.config.commands import (
    config,
    convert_value,
    get_cmd,
    get_config_value,
    load_config,
    path_cmd,
    reset_cmd,
    save_config,
    set_cmd,
    set_config_value,
    show_cmd,
)
from projectflow.core.config import load_settings


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


# ---------------------------------------------------------------------------
# load_config / save_config tests
# ---------------------------------------------------------------------------


def test_load_config_no_file(mock_root):
    assert load_config() == {}


def test_load_config_json(mock_root):
    """Legacy JSON config files still load."""
    config_path = mock_root / ".projectflow" / "config.yaml"
    config_path.write_text(json.dumps({"backup": {"keep_days": 7}}))
    assert load_config()["backup"]["keep_days"] == 7


def test_save_config_creates_yaml(mock_root):
    save_config({"storage": {"mode": "sqlite"}})
    content = (mock_root / ".projectflow" / "config.yaml").read_text()
    assert yaml.safe_load(content) == {"storage": {"mode": "sqlite"}}


def test_set_and_get_config_value(mock_root):
    set_config_value("profile.name", "Ada")
    assert get_config_value("profile.name") == "Ada"
    assert get_config_value("profile.github", "none") == "none"


def test_set_value_is_seen_by_settings(mock_root):
    set_config_value("storage.mode", "sqlite")
    set_config_value("storage.durable_reorder", True)
    settings = load_settings()
    assert settings.storage_mode == "sqlite"
    assert settings.durable_reorder is True


# ---------------------------------------------------------------------------
# convert_value tests
# ---------------------------------------------------------------------------


def test_convert_value_types():
    assert convert_value("lock.max_attempts", "7") == 7
    assert convert_value("storage.durable_reorder", "yes") is True
    assert convert_value("profile.name", "Ada") == "Ada"


def test_convert_value_rejects_bad_choice():
    with pytest.raises(ValueError):
        convert_value("profile.color_theme", "neon")
    with pytest.raises(ValueError):
        convert_value("lock.max_attempts", "many")


# ---------------------------------------------------------------------------
# CLI tests
# ---------------------------------------------------------------------------


def test_config_group_help(runner):
    result = runner.invoke(config, ["--help"])
    assert result.exit_code == 0
    assert "Manage projectflow configuration" in result.output


def test_config_show_no_custom(runner, mock_root):
    result = runner.invoke(show_cmd, [])
    assert result.exit_code == 0
    assert "Using defaults" in result.output


def test_config_show_all(runner, mock_root):
    result = runner.invoke(show_cmd, ["--all"])
    assert result.exit_code == 0
    assert "Configuration" in result.output


def test_config_show_masks_master_pin(runner, mock_root):
    set_config_value("lock.master_pin", "424242")
    result = runner.invoke(show_cmd, [])
    assert result.exit_code == 0
    assert "424242" not in result.output


def test_config_get_default(runner, mock_root):
    result = runner.invoke(get_cmd, ["storage.mode"])
    assert result.exit_code == 0
    assert "local" in result.output
    assert "default" in result.output


def test_config_get_unknown(runner, mock_root):
    result = runner.invoke(get_cmd, ["nope.key"])
    assert "Unknown setting" in result.output


def test_config_set(runner, mock_root):
    result = runner.invoke(set_cmd, ["profile.color_theme", "ocean"])
    assert result.exit_code == 0
    assert get_config_value("profile.color_theme") == "ocean"


def test_config_set_invalid_choice(runner, mock_root):
    result = runner.invoke(set_cmd, ["storage.mode", "cloud"])
    assert "Invalid value" in result.output
    assert get_config_value("storage.mode") is None


def test_config_reset_key(runner, mock_root):
    set_config_value("profile.name", "Ada")
    result = runner.invoke(reset_cmd, ["profile.name"])
    assert result.exit_code == 0
    assert get_config_value("profile.name") is None


def test_config_reset_all(runner, mock_root):
    set_config_value("profile.name", "Ada")
    result = runner.invoke(reset_cmd, ["--all", "--force"])
    assert result.exit_code == 0
    assert not (mock_root / ".projectflow" / "config.yaml").exists()


def test_config_path(runner, mock_root):
    result = runner.invoke(path_cmd, [])
    assert result.exit_code == 0
    assert "config.yaml" in result.output
