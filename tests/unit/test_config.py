"""Tests for YAML configuration loading and logging setup."""

import logging

import pytest

from cipherkit.config import CipherKitConfig, configure_logging, load_config
from cipherkit.exceptions import ConfigError
from cipherkit.streams.sources import DEFAULT_CHUNK_SIZE


class TestLoadConfig:
    """Parsing and validation of cipherkit.yml files."""

    def test_defaults_without_a_file(self):
        config = load_config(None)
        assert config.scheme == "aes-256-gcm"
        assert config.chunk_size == DEFAULT_CHUNK_SIZE
        assert config.auth_data == ""

    def test_loads_values(self, tmp_path):
        path = tmp_path / "cipherkit.yml"
        path.write_text("scheme: aes-256-ctr\nchunk_size: 4096\nlog_level: info\n")

        config = load_config(str(path))
        assert config == CipherKitConfig(scheme="aes-256-ctr", chunk_size=4096, log_level="info")

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "cipherkit.yml"
        path.write_text("")
        assert load_config(str(path)) == CipherKitConfig()

    def test_scheme_options(self):
        config = CipherKitConfig(auth_data="volume-7", chunk_size=128)
        assert config.scheme_options() == {"chunk_size": 128, "auth_data": b"volume-7"}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Missing config file"):
            load_config(str(tmp_path / "nope.yml"))

    @pytest.mark.parametrize(
        "content, message",
        [
            ("scheme: [unclosed", "not valid YAML"),
            ("- just\n- a list\n", "must contain a mapping"),
            ("scheme: aes-256-ctr\ncolour: blue\n", "Unknown config keys"),
            ("scheme: rot13\n", "Unknown scheme"),
            ("chunk_size: 0\n", "chunk_size"),
            ("chunk_size: true\n", "chunk_size"),
            ("auth_data: 12\n", "auth_data"),
            ("log_level: LOUD\n", "log_level"),
        ],
    )
    def test_rejects_invalid_files(self, tmp_path, content, message):
        path = tmp_path / "cipherkit.yml"
        path.write_text(content)
        with pytest.raises(ConfigError, match=message):
            load_config(str(path))

    def test_config_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            CipherKitConfig(chunk_size=-1)


class TestConfigureLogging:
    """The -v count wins over the configured level."""

    @pytest.mark.parametrize(
        "verbose, config, expected",
        [
            (0, None, logging.WARNING),
            (0, CipherKitConfig(log_level="error"), logging.ERROR),
            (1, CipherKitConfig(log_level="error"), logging.INFO),
            (2, None, logging.DEBUG),
            (5, None, logging.DEBUG),
        ],
    )
    def test_levels(self, verbose, config, expected):
        assert configure_logging(verbose, config) == expected
