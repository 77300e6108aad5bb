"""
Tests for ShellConfig environment overrides and validation.
"""

import logging
from pathlib import Path

import pytest

from config import BINARIES_DIR, ConfigError, ShellConfig


@pytest.fixture
def clean_env(monkeypatch):
    for name in [
        "SHELL_BACKEND_BIN",
        "SHELL_BEHAVIORS_TARFILE",
        "SHELL_DATA_DIR",
        "SHELL_USERNAME",
        "SHELL_BACKEND_LOGLEVEL",
        "SHELL_DEBUG_LOG_LINES",
        "SHELL_CONTROL_HOST",
        "SHELL_CONTROL_PORT",
        "SHELL_DAT_SHARE_PORT",
        "SHELL_LOG_DIR",
        "SHELL_LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    def test_default_values(self, clean_env):
        clean_env.setenv("SHELL_USERNAME", "alice")

        config = ShellConfig()

        assert config.backend_binary == BINARIES_DIR / "webrecorder"
        assert config.behaviors_tarfile == BINARIES_DIR / "behaviors.tar.gz"
        assert config.data_dir == Path.home() / "Documents" / "Webrecorder-Data"
        assert config.username == "alice"
        assert config.backend_loglevel == "info"
        assert config.debug_log_lines == 500
        assert config.control_host == "127.0.0.1"
        assert config.control_port == 0
        assert config.internal_host == "localhost"
        assert config.allow_dat is True

    def test_no_dat_share_port_by_default(self, clean_env):
        assert ShellConfig().dat_share_port == 0


class TestEnvironmentOverrides:
    def test_paths_from_env(self, clean_env, tmp_path):
        clean_env.setenv("SHELL_BACKEND_BIN", str(tmp_path / "bin" / "backend"))
        clean_env.setenv("SHELL_DATA_DIR", str(tmp_path / "data"))

        config = ShellConfig()

        assert config.backend_binary == tmp_path / "bin" / "backend"
        assert config.data_dir == tmp_path / "data"

    def test_numeric_values_from_env(self, clean_env):
        clean_env.setenv("SHELL_DEBUG_LOG_LINES", "1000")
        clean_env.setenv("SHELL_CONTROL_PORT", "8765")

        config = ShellConfig()

        assert config.debug_log_lines == 1000
        assert config.control_port == 8765

    def test_invalid_int_falls_back_to_default(self, clean_env, caplog):
        clean_env.setenv("SHELL_DEBUG_LOG_LINES", "lots")

        with caplog.at_level(logging.WARNING, logger="config"):
            assert ShellConfig().debug_log_lines == 500

        assert "Invalid SHELL_DEBUG_LOG_LINES='lots'" in caplog.text

    def test_dat_share_port_from_env(self, clean_env):
        clean_env.setenv("SHELL_DAT_SHARE_PORT", "3282")

        assert ShellConfig().dat_share_port == 3282

    def test_debug_log_lines_clamped_to_one(self, clean_env):
        clean_env.setenv("SHELL_DEBUG_LOG_LINES", "-3")

        assert ShellConfig().debug_log_lines == 1


class TestValidation:
    def test_valid_config_returns_self(self, shell_config):
        assert shell_config.validate() is shell_config

    def test_collects_every_error(self, shell_config):
        shell_config.control_port = 70000
        shell_config.dat_share_port = -1
        shell_config.log_level = "LOUD"
        shell_config.username = ""

        with pytest.raises(ConfigError) as exc_info:
            shell_config.validate()

        message = str(exc_info.value)
        assert "control_port out of range: 70000" in message
        assert "dat_share_port out of range: -1" in message
        assert "Invalid log level: LOUD" in message
        assert "username must not be empty" in message

    def test_log_level_case_insensitive(self, shell_config):
        shell_config.log_level = "debug"

        shell_config.validate()
        assert shell_config.logging_config()["console_level"] == "DEBUG"

    def test_to_dict(self, shell_config):
        data = shell_config.to_dict()

        assert data["username"] == "alice"
        assert data["data_dir"] == str(shell_config.data_dir)
