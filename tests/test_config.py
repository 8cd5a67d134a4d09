"""Tests for configuration loading"""

import json
import os
from pathlib import Path

import pytest

from filestream.config import Config, load_config
from filestream.errors import ConfigError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Keep FILESTREAM_* variables and .env files out of the tests"""
    for key in list(os.environ):
        if key.startswith('FILESTREAM_'):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


class TestConfig:
    """Test defaults and validation"""

    def test_defaults(self):
        config = Config()
        assert config.port == 8470
        assert config.chunk_size == 65536
        assert config.buffer_threshold == 1024 * 1024
        assert config.compression is True
        assert config.compression_level == 3
        assert config.codec == 'zstd'
        assert config.indexed_payloads is False
        assert config.validate() is config

    @pytest.mark.parametrize("field,value", [
        ('port', 0),
        ('port', 70000),
        ('chunk_size', 0),
        ('buffer_threshold', -1),
        ('drain_poll_interval', 0),
        ('codec', 'brotli'),
        ('compression_level', 23),
    ])
    def test_validate_rejects(self, field, value):
        config = Config()
        setattr(config, field, value)
        with pytest.raises(ConfigError):
            config.validate()


class TestConfigSources:
    """Test file and environment loading"""

    def test_from_missing_file(self, tmp_path):
        assert Config.from_file(tmp_path / "missing.json") == Config()

    def test_from_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "port": 9000,
            "output_dir": "/tmp/out",
            "chunk_size": 16384,
            "codec": "zlib",
            "compression_level": 6,
        }))

        config = Config.from_file(path)
        assert config.port == 9000
        assert config.output_dir == Path("/tmp/out")
        assert config.chunk_size == 16384
        assert config.codec == "zlib"
        assert config.compression_level == 6
        assert config.host == "0.0.0.0"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("FILESTREAM_PORT", "9100")
        monkeypatch.setenv("FILESTREAM_COMPRESSION", "false")
        monkeypatch.setenv("FILESTREAM_INDEXED_PAYLOADS", "yes")
        monkeypatch.setenv("FILESTREAM_DRAIN_TIMEOUT", "2.5")

        config = Config.from_env()
        assert config.port == 9100
        assert config.compression is False
        assert config.indexed_payloads is True
        assert config.drain_timeout == 2.5

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"port": 9000, "chunk_size": 16384}))
        monkeypatch.setenv("FILESTREAM_PORT", "9200")

        config = load_config(path)
        assert config.port == 9200
        assert config.chunk_size == 16384

    def test_load_config_validates(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"chunk_size": -5}))
        with pytest.raises(ConfigError):
            load_config(path)

    def test_save_and_reload(self, tmp_path):
        config = Config(port=9300, codec="zlib", drain_timeout=5.0)
        path = tmp_path / "saved.json"
        config.save(path)

        assert json.loads(path.read_text())["port"] == 9300
        assert Config.from_file(path) == config
