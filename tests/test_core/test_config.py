"""Tests for projectflow.core.config module.

Covers:
  - get_global_config_path() with default and XDG_CONFIG_HOME
  - find_root() 3-tier resolution (env var > local walk > global config)
  - get_paths()
  - load_settings() defaults, file values, overrides, and validation
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from projectflow.core.config import (
    AppSettings,
    assign_key,
    drop_key,
    find_root,
    get_global_config_path,
    get_paths,
    load_settings,
    lookup_key,
    read_config_file,
)


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No env root and an empty global config location."""
    monkeypatch.delenv("PROJECTFLOW_ROOT", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))


# ---------------------------------------------------------------------------
# get_global_config_path
# ---------------------------------------------------------------------------

class TestGetGlobalConfigPath:
    """Tests for get_global_config_path()."""

    def test_default_path(self, monkeypatch):
        monkeypatch.delenv("XDG_CONFIG_HOME", raising=False)
        assert get_global_config_path() == Path.home() / ".config" / "projectflow" / "config.yaml"

    def test_xdg_config_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "custom"))
        assert get_global_config_path() == tmp_path / "custom" / "projectflow" / "config.yaml"


# ---------------------------------------------------------------------------
# read_config_file
# ---------------------------------------------------------------------------

class TestReadConfigFile:
    """Tests for read_config_file()."""

    def test_missing(self, tmp_path):
        assert read_config_file(tmp_path / "none.yaml") == {}

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("storage:\n  mode: sqlite\n")
        assert read_config_file(path) == {"storage": {"mode": "sqlite"}}

    def test_legacy_json(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text('{"profile": {"name": "Ada"}}')
        assert read_config_file(path) == {"profile": {"name": "Ada"}}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("storage: [unclosed\n")
        assert read_config_file(path) == {}


# ---------------------------------------------------------------------------
# find_root
# ---------------------------------------------------------------------------

class TestFindRoot:
    """Tests for find_root() resolution order."""

    def test_env_var_wins(self, clean_env, monkeypatch, tmp_path):
        env_root = tmp_path / "env"
        (env_root / ".projectflow").mkdir(parents=True)
        monkeypatch.setenv("PROJECTFLOW_ROOT", str(env_root))
        assert find_root(tmp_path) == env_root.resolve()

    def test_env_var_without_data_dir_raises(self, clean_env, monkeypatch, tmp_path):
        monkeypatch.setenv("PROJECTFLOW_ROOT", str(tmp_path))
        with pytest.raises(FileNotFoundError):
            find_root(tmp_path)

    def test_walks_up(self, clean_env, tmp_path):
        (tmp_path / ".projectflow").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_root(nested) == tmp_path.resolve()

    def test_global_config_root(self, clean_env, tmp_path):
        root = tmp_path / "data"
        (root / ".projectflow").mkdir(parents=True)
        config_path = get_global_config_path()
        config_path.parent.mkdir(parents=True)
        config_path.write_text(yaml.dump({"root": str(root)}))

        start = tmp_path / "elsewhere"
        start.mkdir()
        assert find_root(start) == root.resolve()

    def test_nothing_found_raises(self, clean_env, tmp_path):
        start = tmp_path / "empty"
        start.mkdir()
        with pytest.raises(FileNotFoundError, match="pf init"):
            find_root(start)


# ---------------------------------------------------------------------------
# get_paths / load_settings
# ---------------------------------------------------------------------------

class TestPathsAndSettings:
    """Tests for get_paths() and load_settings()."""

    def test_paths_under_data_dir(self, tmp_path):
        paths = get_paths(tmp_path)
        assert paths.data_dir == tmp_path / ".projectflow"
        assert paths.local_store.parent == paths.data_dir
        assert paths.database.name == "projectflow.db"
        assert paths.dashboard_cache.parent == paths.cache

    def test_defaults(self, tmp_path):
        settings = load_settings(get_paths(tmp_path))
        assert settings.storage_mode == "local"
        assert settings.profile_name == "Guest"
        assert settings.max_attempts == 5
        assert settings.durable_reorder is False

    def test_reads_config_file(self, mock_root):
        (mock_root / ".projectflow" / "config.yaml").write_text(
            "storage:\n  mode: sqlite\nprofile:\n  name: Ada\n  color_theme: ocean\n"
        )
        settings = load_settings()
        assert settings.storage_mode == "sqlite"
        assert settings.profile_name == "Ada"
        assert settings.color_theme == "ocean"

    def test_overrides_win_and_none_is_ignored(self, tmp_path):
        settings = load_settings(get_paths(tmp_path), storage_mode="sqlite", profile_name=None)
        assert settings.storage_mode == "sqlite"
        assert settings.profile_name == "Guest"

    def test_unknown_mode_raises(self):
        with pytest.raises(ValueError):
            AppSettings(storage_mode="cloud")

    def test_invalid_appearance_falls_back(self):
        settings = AppSettings(font="comic", layout="tiny", color_theme="neon")
        assert (settings.font, settings.layout, settings.color_theme) == ("sans", "comfortable", "light")


class TestDottedKeys:
    """Tests for lookup_key, assign_key and drop_key."""

    def test_assign_creates_tables(self):
        config = {"storage": "not a table"}
        assign_key(config, "storage.mode", "sqlite")
        assign_key(config, "profile.name", "Ada")
        assert config == {"storage": {"mode": "sqlite"}, "profile": {"name": "Ada"}}

    def test_lookup_default(self):
        config = {"profile": {"github": None}}
        assert lookup_key(config, "profile.github", "none") == "none"
        assert lookup_key(config, "lock.max_attempts", 5) == 5

    def test_drop(self):
        config = {"profile": {"name": "Ada", "font": "serif"}}
        assert drop_key(config, "profile.name") is True
        assert config == {"profile": {"font": "serif"}}
        assert drop_key(config, "profile.name") is False
        assert drop_key(config, "lock.master_pin") is False
