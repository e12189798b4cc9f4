"""
Tests for configuration loading.
"""

import json
from pathlib import Path

import pytest
import toml
import yaml

from workspace_sync.utils.config import ConfigLoader, SyncConfig, load_config
from workspace_sync.utils.errors import ConfigurationError


class TestDefaults:
    """Test the built-in defaults."""

    def test_defaults(self):
        config = SyncConfig()

        assert config.server.host == "127.0.0.1"
        assert config.server.port == 8888
        assert config.sync.max_concurrent_reconciliations == 32
        assert config.sync.enable_indexing is True
        assert config.database.path.is_absolute()
        assert config.logging.level == "INFO"

    def test_log_level_is_normalized(self):
        assert SyncConfig(logging={"level": "debug"}).logging.level == "DEBUG"


class TestConfigLoader:
    """Test source merging and validation."""

    def test_file_formats(self, temp_dir):
        (temp_dir / "a.yaml").write_text(yaml.safe_dump({"server": {"port": 9001}}))
        (temp_dir / "b.json").write_text(json.dumps({"server": {"host": "0.0.0.0"}}))
        (temp_dir / "c.toml").write_text(toml.dumps({"sync": {"max_concurrent_reconciliations": 4}}))

        loader = ConfigLoader(environ={})
        loader.add_source(temp_dir / "a.yaml", priority=1)
        loader.add_source(temp_dir / "b.json", priority=2)
        loader.add_source(temp_dir / "c.toml", priority=3)
        config = loader.load()

        assert config.server.port == 9001
        assert config.server.host == "0.0.0.0"
        assert config.sync.max_concurrent_reconciliations == 4
        assert loader.get_config() is config

    def test_higher_priority_wins(self):
        loader = ConfigLoader(environ={})
        loader.add_source({"server": {"port": 2000}}, priority=20)
        loader.add_source({"server": {"port": 1000, "host": "::1"}}, priority=10)

        config = loader.load()

        assert config.server.port == 2000
        assert config.server.host == "::1"

    def test_environment_overrides_files(self):
        loader = ConfigLoader(environ={
            "WORKSPACE_SYNC_SERVER__PORT": "7000",
            "WORKSPACE_SYNC_DEBUG": "true",
            "WORKSPACE_SYNC_SYNC__ENABLE_INDEXING": "off",
            "WORKSPACE_SYNC_SYNC__SHUTDOWN_TIMEOUT": "2.5",
            "WORKSPACE_SYNC_SERVER__CORS_ALLOWED_ORIGINS": "http://a, http://b",
            "UNRELATED": "1",
        })
        loader.add_source({"server": {"port": 1000}}, priority=100)

        config = loader.load()

        assert config.server.port == 7000
        assert config.debug is True
        assert config.sync.enable_indexing is False
        assert config.sync.shutdown_timeout == 2.5
        assert config.server.cors_allowed_origins == ["http://a", "http://b"]

    def test_missing_file_is_skipped(self, temp_dir):
        loader = ConfigLoader(environ={})
        loader.add_source(temp_dir / "absent.yaml")

        assert loader.load().server.port == 8888

    def test_unknown_file_type(self, temp_dir):
        with pytest.raises(ConfigurationError):
            ConfigLoader(environ={}).add_source(temp_dir / "config.ini")

    def test_malformed_file(self, temp_dir):
        path = temp_dir / "bad.json"
        path.write_text("{not json")
        loader = ConfigLoader(environ={})
        loader.add_source(path)

        with pytest.raises(ConfigurationError) as exc_info:
            loader.load()
        assert "bad.json" in exc_info.value.message

    @pytest.mark.parametrize("data,field", [
        ({"server": {"port": 70000}}, "server.port"),
        ({"logging": {"level": "LOUD"}}, "logging.level"),
        ({"sync": {"max_concurrent_reconciliations": 0}}, "sync.max_concurrent_reconciliations"),
    ])
    def test_validation_errors(self, data, field):
        loader = ConfigLoader(environ={})
        loader.add_source(data)

        with pytest.raises(ConfigurationError) as exc_info:
            loader.load()
        assert field in exc_info.value.message

    def test_get_config_before_load(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader(environ={}).get_config()


class TestLoadConfig:
    """Test the standard-location helper."""

    def test_explicit_paths_and_overrides(self, temp_dir, monkeypatch):
        monkeypatch.chdir(temp_dir)
        monkeypatch.setenv("HOME", str(temp_dir))
        path = temp_dir / "custom.yaml"
        path.write_text(yaml.safe_dump({"server": {"port": 9100}, "database": {"path": "data/sync.db"}}))

        config = load_config(
            config_paths=[path],
            extra_config={"server": {"host": "0.0.0.0"}},
            environ={},
        )

        assert config.server.port == 9100
        assert config.server.host == "0.0.0.0"
        assert config.database.path == Path.cwd() / "data" / "sync.db"
