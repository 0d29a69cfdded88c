"""Shared test fixtures for nrdp2nagios."""

import textwrap

import pytest

from nrdp2nagios.generators.nagios import RenderParams
from nrdp2nagios.ledger.store import LedgerStore


class FakeClock:
    """Manually advanced clock returning Unix seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def ledger(tmp_path):
    """A ledger backed by a fresh SQLite file."""
    store = LedgerStore(tmp_path / "ledger.db")
    yield store
    store.close()


@pytest.fixture
def render_params():
    return RenderParams(
        host_template="linux-server",
        service_template="generic-service",
        stale_threshold_seconds=3600,
    )


@pytest.fixture
def config_file(tmp_path):
    """Write a valid config whose directories all live under tmp_path."""
    spool = tmp_path / "spool"
    spool.mkdir()
    nagios = tmp_path / "nagios"
    nagios.mkdir()
    config = tmp_path / "nrdp2nagios.toml"
    config.write_text(textwrap.dedent(f"""\
        database_path = "{tmp_path / 'db' / 'ledger.db'}"

        [server]
        listen_addr = "127.0.0.1:18080"

        [storage]
        output_dir = "{spool}"
        group_name = ""
        max_files = 100
        min_disk_space_percent = 0.001
        pause_duration = "1s"

        [logging]
        level = "debug"

        [nagios]
        output_dir = "{nagios}"
        host_template = "linux-server"
        service_template = "generic-service"
        generation_interval = "30s"
        stale_threshold = "1h"
        pid_file = "{tmp_path / 'nagios.pid'}"
    """))
    (tmp_path / "db").mkdir()
    return config
