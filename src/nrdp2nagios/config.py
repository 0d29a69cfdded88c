"""Load and validate service configuration from nrdp2nagios.toml."""

from __future__ import annotations

import os
import re
import time
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CONFIG_NAME = "nrdp2nagios.toml"
DEFAULT_DATABASE_PATH = "./nrdp_checks.db"

LOG_LEVELS = ("info", "debug", "trace")


class ConfigError(Exception):
    """Raised when the configuration cannot be loaded or is invalid."""


@dataclass
class ServerConfig:
    """HTTP listener settings."""

    listen_addr: str = ":8080"

    @property
    def host(self) -> str:
        host, _, _ = self.listen_addr.rpartition(":")
        return host.strip("[]") or "0.0.0.0"

    @property
    def port(self) -> int:
        _, _, port = self.listen_addr.rpartition(":")
        try:
            return int(port)
        except ValueError:
            raise ConfigError(f"invalid server listen_addr: {self.listen_addr!r}")


@dataclass
class StorageConfig:
    """Check-result spool directory settings.

    The spool directory is the Nagios check_result_path; every
    submitted result becomes one file there until Nagios reaps it.
    """

    output_dir: str = "/var/lib/nagios4/spool/checkresults"
    group_name: str = "nagios"
    max_files: int = 1000
    min_disk_space_percent: float = 5.0
    pause_duration: str = "10s"


@dataclass
class LoggingConfig:
    """Logging verbosity settings."""

    level: str = "info"
    verbose: bool = False
    show_raw: bool = False


@dataclass
class NagiosConfig:
    """Generated Nagios configuration settings.

    generation_interval and stale_threshold are duration strings
    such as "30s" or "6h"; see parse_duration().
    """

    output_dir: str = "/etc/nagios4/dynamic"
    host_template: str = "linux-server"
    service_template: str = "generic-service"
    generation_interval: str = "30s"
    stale_threshold: str = "6h"
    reload_command: str = ""
    pid_file: str = "/var/run/nagios.pid"

    @property
    def interval_seconds(self) -> float:
        return parse_duration(self.generation_interval)

    @property
    def stale_threshold_seconds(self) -> int:
        return int(parse_duration(self.stale_threshold))


@dataclass
class AppConfig:
    """Full configuration loaded from nrdp2nagios.toml."""

    database_path: str = DEFAULT_DATABASE_PATH
    server: ServerConfig = field(default_factory=ServerConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    nagios: NagiosConfig = field(default_factory=NagiosConfig)


_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a duration string like "1h30m" or "500ms" into seconds.

    Accepts a sequence of decimal numbers each followed by a unit
    (ns, us, ms, s, m, h). A bare "0" is allowed.

    Raises:
        ConfigError: If the string is not a valid duration.
    """
    if not isinstance(text, str):
        raise ConfigError(f"invalid duration: {text!r} is not a string")
    value = text.strip()
    if value == "0":
        return 0.0
    if not value:
        raise ConfigError(f"invalid duration: {text!r}")

    total = 0.0
    pos = 0
    while pos < len(value):
        match = _DURATION_PART.match(value, pos)
        if match is None:
            raise ConfigError(f"invalid duration: {text!r}")
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()
    return total


# Annotation strings (see the __future__ import) to accepted TOML value types.
_VALUE_TYPES = {
    "str": (str,),
    "int": (int,),
    "float": (int, float),
    "bool": (bool,),
}


def _check_type(value, annotation: str, where: str) -> None:
    expected = _VALUE_TYPES[annotation]
    # bool is a subclass of int.
    if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
        raise ConfigError(
            f"{where} must be {annotation}, got {type(value).__name__}: {value!r}"
        )


def _build_section(cls, data: dict, name: str):
    """Instantiate a section dataclass, rejecting unknown keys and wrong types."""
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table")
    fields = cls.__dataclass_fields__
    unknown = sorted(set(section) - set(fields))
    if unknown:
        raise ConfigError(f"unknown key(s) in [{name}]: {', '.join(unknown)}")
    for key, value in section.items():
        _check_type(value, fields[key].type, f"[{name}] {key}")
    return cls(**section)


def load_config(config_path: Path | str | None = None) -> AppConfig:
    """Load configuration from a TOML file.

    If config_path is None, looks for nrdp2nagios.toml in the current
    directory and falls back to the built-in defaults when it does not
    exist. An explicitly named file must exist.

    Raises:
        ConfigError: If the file is missing or cannot be parsed.
    """
    if config_path is None:
        config_path = Path(DEFAULT_CONFIG_NAME)
        if not config_path.exists():
            return AppConfig()
    else:
        config_path = Path(config_path)

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"error reading config file {config_path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"error parsing config file {config_path}: {e}") from e

    database_path = data.get("database_path", DEFAULT_DATABASE_PATH)
    _check_type(database_path, "str", "database_path")

    return AppConfig(
        database_path=database_path,
        server=_build_section(ServerConfig, data, "server"),
        storage=_build_section(StorageConfig, data, "storage"),
        logging=_build_section(LoggingConfig, data, "logging"),
        nagios=_build_section(NagiosConfig, data, "nagios"),
    )


def check_dir_writable(directory: Path | str) -> None:
    """Ensure a directory exists and is writable, creating it if absent.

    Raises:
        ConfigError: If the path is not a directory or cannot be written.
    """
    path = Path(directory)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ConfigError(f"failed to create directory {path}: {e}") from e
    if not path.is_dir():
        raise ConfigError(f"path {path} is not a directory")

    probe = path / f".writetest.{time.time_ns()}"
    try:
        probe.write_bytes(b"test")
    except OSError as e:
        raise ConfigError(f"directory {path} is not writable: {e}") from e
    probe.unlink(missing_ok=True)


def _check_duration(value: str, label: str, minimum: float = 0.0) -> None:
    try:
        seconds = parse_duration(value)
    except ConfigError as e:
        raise ConfigError(f"invalid {label}: {e}") from e
    if seconds <= 0:
        raise ConfigError(f"{label} must be positive: {value!r}")
    if seconds < minimum:
        raise ConfigError(f"{label} must be at least {minimum:g}s: {value!r}")


def validate_config(config: AppConfig) -> None:
    """Check that the configuration is usable before startup.

    Creates the default database directory and the Nagios output
    directory when they do not exist yet.

    Raises:
        ConfigError: On the first invalid setting found.
    """
    if not config.server.listen_addr:
        raise ConfigError("server listen_addr must be specified")
    if not 0 < config.server.port < 65536:
        raise ConfigError(f"invalid server listen_addr: {config.server.listen_addr!r}")

    storage = config.storage
    if not storage.output_dir:
        raise ConfigError("storage output_dir must be specified")
    if not os.path.isabs(storage.output_dir):
        raise ConfigError(
            f"storage output_dir must be an absolute path: {storage.output_dir}"
        )
    if not Path(storage.output_dir).is_dir():
        raise ConfigError(f"storage output_dir does not exist: {storage.output_dir}")
    if storage.max_files <= 0:
        raise ConfigError("storage max_files must be greater than 0")
    if not 0 < storage.min_disk_space_percent < 100:
        raise ConfigError("storage min_disk_space_percent must be between 0 and 100")
    _check_duration(storage.pause_duration, "storage pause_duration")

    if config.logging.level not in LOG_LEVELS:
        raise ConfigError(
            f"invalid logging level: {config.logging.level} "
            f"(must be {', '.join(LOG_LEVELS)})"
        )

    if not config.database_path:
        raise ConfigError("database_path must be specified")
    db_dir = Path(config.database_path).parent
    if not db_dir.exists():
        if config.database_path != DEFAULT_DATABASE_PATH:
            raise ConfigError(f"database directory does not exist: {db_dir}")
        db_dir.mkdir(parents=True, exist_ok=True)

    nagios = config.nagios
    if not nagios.output_dir:
        raise ConfigError("nagios output_dir must be specified")
    if not os.path.isabs(nagios.output_dir):
        raise ConfigError(
            f"nagios output_dir must be an absolute path: {nagios.output_dir}"
        )
    check_dir_writable(nagios.output_dir)
    if not nagios.host_template:
        raise ConfigError("nagios host_template must be specified")
    if not nagios.service_template:
        raise ConfigError("nagios service_template must be specified")
    _check_duration(nagios.generation_interval, "nagios generation_interval")
    # Freshness thresholds and prune cutoffs are whole seconds.
    _check_duration(nagios.stale_threshold, "nagios stale_threshold", minimum=1)
