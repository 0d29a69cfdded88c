"""Tests for configuration loading and validation."""

import dataclasses
from pathlib import Path

import pytest

from nrdp2nagios.config import (
    AppConfig,
    ConfigError,
    check_dir_writable,
    load_config,
    parse_duration,
    validate_config,
)


class TestParseDuration:
    def test_single_units(self):
        assert parse_duration("30s") == 30
        assert parse_duration("10m") == 600
        assert parse_duration("6h") == 21600
        assert parse_duration("500ms") == pytest.approx(0.5)

    def test_compound(self):
        assert parse_duration("1h30m") == 5400
        assert parse_duration("1m30.5s") == pytest.approx(90.5)

    def test_zero(self):
        assert parse_duration("0") == 0

    @pytest.mark.parametrize("text", ["", "30", "abc", "5d", "1h 30m", "-5s"])
    def test_invalid(self, text):
        with pytest.raises(ConfigError):
            parse_duration(text)

    def test_non_string(self):
        with pytest.raises(ConfigError, match="not a string"):
            parse_duration(30)


class TestLoadConfig:
    def test_load_project_config(self):
        """Load the example nrdp2nagios.toml from the project root."""
        project_root = Path(__file__).parent.parent
        config = load_config(project_root / "nrdp2nagios.toml")

        assert config.server.listen_addr == ":8080"
        assert config.storage.output_dir == "/var/lib/nagios4/spool/checkresults"
        assert config.nagios.host_template == "linux-server"
        assert config.nagios.stale_threshold_seconds == 6 * 3600
        assert config.nagios.interval_seconds == 30

    def test_defaults_when_default_file_absent(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        config = load_config()
        assert config == AppConfig()

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="error reading"):
            load_config(tmp_path / "missing.toml")

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("[nagios\n")
        with pytest.raises(ConfigError, match="error parsing"):
            load_config(path)

    def test_partial_sections_keep_defaults(self, tmp_path):
        path = tmp_path / "partial.toml"
        path.write_text('[nagios]\nstale_threshold = "2h"\n')
        config = load_config(path)

        assert config.nagios.stale_threshold == "2h"
        assert config.nagios.generation_interval == "30s"
        assert config.storage.max_files == 1000

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "typo.toml"
        path.write_text('[nagios]\nstale_treshold = "2h"\n')
        with pytest.raises(ConfigError, match="stale_treshold"):
            load_config(path)

    @pytest.mark.parametrize("body, key", [
        ('[nagios]\ngeneration_interval = 30\n', "generation_interval"),
        ('[storage]\nmax_files = "x"\n', "max_files"),
        ('[storage]\nmax_files = true\n', "max_files"),
        ('[storage]\nmin_disk_space_percent = "5"\n', "min_disk_space_percent"),
        ('[logging]\nverbose = "yes"\n', "verbose"),
        ('[server]\nlisten_addr = 8080\n', "listen_addr"),
        ("database_path = 1\n", "database_path"),
    ])
    def test_wrong_value_type_rejected(self, tmp_path, body, key):
        path = tmp_path / "types.toml"
        path.write_text(body)
        with pytest.raises(ConfigError, match=key):
            load_config(path)

    def test_integer_accepted_for_float(self, tmp_path):
        path = tmp_path / "percent.toml"
        path.write_text("[storage]\nmin_disk_space_percent = 10\n")
        assert load_config(path).storage.min_disk_space_percent == 10


class TestListenAddr:
    def test_port_only(self):
        config = AppConfig()
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 8080

    def test_host_and_port(self):
        config = AppConfig()
        config.server.listen_addr = "127.0.0.1:9000"
        assert config.server.host == "127.0.0.1"
        assert config.server.port == 9000


class TestValidateConfig:
    def test_valid_config(self, config_file):
        config = load_config(config_file)
        validate_config(config)
        assert Path(config.nagios.output_dir).is_dir()

    def _invalid(self, config_file, section, **changes):
        config = load_config(config_file)
        if section:
            setattr(config, section, dataclasses.replace(getattr(config, section), **changes))
        else:
            config = dataclasses.replace(config, **changes)
        with pytest.raises(ConfigError):
            validate_config(config)

    def test_relative_spool_dir(self, config_file):
        self._invalid(config_file, "storage", output_dir="spool")

    def test_missing_spool_dir(self, config_file, tmp_path):
        self._invalid(config_file, "storage", output_dir=str(tmp_path / "nope"))

    def test_max_files_positive(self, config_file):
        self._invalid(config_file, "storage", max_files=0)

    def test_min_disk_space_range(self, config_file):
        self._invalid(config_file, "storage", min_disk_space_percent=100)

    def test_bad_log_level(self, config_file):
        self._invalid(config_file, "logging", level="verbose")

    def test_bad_listen_addr(self, config_file):
        self._invalid(config_file, "server", listen_addr="localhost:http")

    def test_missing_database_dir(self, config_file, tmp_path):
        self._invalid(config_file, None, database_path=str(tmp_path / "no" / "x.db"))

    def test_relative_nagios_dir(self, config_file):
        self._invalid(config_file, "nagios", output_dir="dynamic")

    def test_empty_templates(self, config_file):
        self._invalid(config_file, "nagios", host_template="")
        self._invalid(config_file, "nagios", service_template="")

    def test_bad_durations(self, config_file):
        self._invalid(config_file, "nagios", generation_interval="soon")
        self._invalid(config_file, "nagios", stale_threshold="0")
        self._invalid(config_file, "storage", pause_duration="10")

    def test_sub_second_stale_threshold(self, config_file):
        self._invalid(config_file, "nagios", stale_threshold="500ms")

    def test_one_second_stale_threshold_allowed(self, config_file):
        config = load_config(config_file)
        config.nagios.stale_threshold = "1s"
        validate_config(config)
        assert config.nagios.stale_threshold_seconds == 1


class TestCheckDirWritable:
    def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "a" / "b"
        check_dir_writable(target)
        assert target.is_dir()
        assert list(target.iterdir()) == []

    def test_file_is_not_directory(self, tmp_path):
        target = tmp_path / "file"
        target.write_text("x")
        with pytest.raises(ConfigError):
            check_dir_writable(target)
