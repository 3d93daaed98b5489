"""Tests for TOML configuration loading and store path resolution."""

from pathlib import Path

import pytest

from tagmarks.config import (
    CONFIG_FILENAME,
    DEFAULT_LIMIT,
    DEFAULT_QUERY,
    StoreConfig,
    get_config_dir,
    get_store_path,
    load_config,
    load_or_create_config,
    save_config,
)


class TestConfigDir:
    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TAGMARKS_CONFIG_DIR", str(tmp_path / "cfg"))
        assert get_config_dir() == tmp_path / "cfg"

    def test_default_under_home(self, monkeypatch):
        monkeypatch.delenv("TAGMARKS_CONFIG_DIR", raising=False)
        assert get_config_dir() == Path.home() / ".tagmarks"


class TestLoadSave:
    def test_create_writes_defaults(self, tmp_path):
        config = load_or_create_config(tmp_path)
        assert (tmp_path / CONFIG_FILENAME).exists()
        assert config.default_query == DEFAULT_QUERY
        assert config.limit == DEFAULT_LIMIT
        assert config.bookmarks_path == tmp_path / "bookmarks"

    def test_round_trip(self, tmp_path):
        config = StoreConfig(path=tmp_path, default_query="is:tagged", limit=5,
                             store_path=Path("elsewhere"))
        save_config(config)
        loaded = load_config(tmp_path)
        assert loaded.default_query == "is:tagged"
        assert loaded.limit == 5
        assert loaded.store_path == Path("elsewhere")
        assert loaded.created == config.created

    def test_existing_config_not_overwritten(self, tmp_path):
        save_config(StoreConfig(path=tmp_path, limit=7))
        assert load_or_create_config(tmp_path).limit == 7

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path)

    def test_partial_file_uses_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('[store]\npath = "/srv/marks"\n')
        config = load_config(tmp_path)
        assert config.bookmarks_path == Path("/srv/marks")
        assert config.default_query == DEFAULT_QUERY

    def test_newer_version_rejected(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[store]\nversion = 99\n")
        with pytest.raises(ValueError, match="newer than supported"):
            load_config(tmp_path)

    @pytest.mark.parametrize("value", ["-1", '"ten"'])
    def test_invalid_limit(self, tmp_path, value):
        (tmp_path / CONFIG_FILENAME).write_text(f"[query]\nlimit = {value}\n")
        with pytest.raises(ValueError, match="query.limit"):
            load_config(tmp_path)


class TestStorePath:
    def test_override_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TAGMARKS_STORE_PATH", str(tmp_path / "env"))
        config = StoreConfig(path=tmp_path)
        assert get_store_path(config, tmp_path / "flag") == tmp_path / "flag"

    def test_env_before_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TAGMARKS_STORE_PATH", str(tmp_path / "env"))
        assert get_store_path(StoreConfig(path=tmp_path)) == tmp_path / "env"

    def test_config_default(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TAGMARKS_STORE_PATH", raising=False)
        assert get_store_path(StoreConfig(path=tmp_path)) == tmp_path / "bookmarks"
