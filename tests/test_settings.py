"""
Tests for configuration loading and command line handling.

Run with: python -m pytest tests/test_settings.py -v
"""

import pytest

from netkv.config.settings import ConfigError, Settings, load_properties
from netkv.server import build_settings, parse_args


def write_properties(tmp_path, text: str) -> str:
    path = tmp_path / "netkv.properties"
    path.write_text(text, encoding="utf-8")
    return str(path)


class TestLoadProperties:

    def test_standard_keys(self, tmp_path):
        path = write_properties(tmp_path, "\n".join([
            "server.port=8888",
            "log.file.path=logs/server.log",
            "data.persist.file.path=data/store.aof",
        ]))
        config = load_properties(path, base=Settings())

        assert config.PORT == 8888
        assert config.LOG_FILE == "logs/server.log"
        assert config.DATA_FILE == "data/store.aof"

    def test_optional_keys_and_comments(self, tmp_path):
        path = write_properties(tmp_path, "\n".join([
            "# comment",
            "server.host=127.0.0.1",
            "server.workers=4",
            "data.persist.sync=flush",
            "unrelated.key=ignored",
        ]))
        config = load_properties(path, base=Settings())

        assert config.HOST == "127.0.0.1"
        assert config.WORKERS == 4
        assert config.SYNC_POLICY == "flush"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_properties(str(tmp_path / "absent.properties"))

    def test_bad_port(self, tmp_path):
        path = write_properties(tmp_path, "server.port=abc\n")
        with pytest.raises(ConfigError):
            load_properties(path)

    def test_port_out_of_range(self, tmp_path):
        path = write_properties(tmp_path, "server.port=70000\n")
        with pytest.raises(ConfigError):
            load_properties(path)

    def test_bad_sync_policy(self, tmp_path):
        path = write_properties(tmp_path, "data.persist.sync=sometimes\n")
        with pytest.raises(ConfigError):
            load_properties(path)


class TestBuildSettings:

    def test_flags_override_file(self, tmp_path):
        path = write_properties(tmp_path, "server.port=8888\nserver.workers=3\n")
        args = parse_args(["--config", path, "--port", "9999", "--debug"])
        config = build_settings(args)

        assert config.PORT == 9999
        assert config.WORKERS == 3
        assert config.DEBUG is True

    def test_defaults_without_flags(self):
        config = build_settings(parse_args([]))
        assert config.SYNC_POLICY in ("always", "flush")
        assert config.WORKERS >= 1

    def test_invalid_workers_flag(self):
        with pytest.raises(ConfigError):
            build_settings(parse_args(["--workers", "0"]))
