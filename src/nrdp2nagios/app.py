"""Wire configuration, ledger, spool, engine and reloader together."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable

from flask import Flask

from nrdp2nagios.config import AppConfig, parse_duration
from nrdp2nagios.generators.nagios import RenderParams
from nrdp2nagios.ledger.store import LedgerStore
from nrdp2nagios.metrics import MetricsMonitor
from nrdp2nagios.regen.engine import RegenerationEngine
from nrdp2nagios.regen.scheduler import PeriodicTrigger
from nrdp2nagios.regen.signal import ReloadSignal
from nrdp2nagios.reload import ReloadWatcher
from nrdp2nagios.server import create_app
from nrdp2nagios.spool.storage import SpoolStorage
from nrdp2nagios.spool.writer import SpoolWriter

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Everything a running service needs, built from one AppConfig.

    Background workers are created by build_context() but only run
    between start() and stop().
    """

    config: AppConfig
    ledger: LedgerStore
    storage: SpoolStorage
    spool: SpoolWriter
    reload_signal: ReloadSignal
    engine: RegenerationEngine
    trigger: PeriodicTrigger
    watcher: ReloadWatcher
    monitor: MetricsMonitor
    clock: Callable[[], float] = time.time
    _started: list = field(default_factory=list, repr=False)

    def create_app(self) -> Flask:
        return create_app(
            self.ledger,
            self.spool,
            show_raw=self.config.logging.show_raw,
            clock=self.clock,
        )

    def start(self) -> None:
        """Start the metrics monitor, reload watcher and regeneration trigger."""
        nagios = self.config.nagios
        logger.info(
            "Starting Nagios config generator (interval: %s, stale after: %s, output: %s)",
            nagios.generation_interval, nagios.stale_threshold, self.engine.output_path,
        )
        for worker in (self.monitor, self.watcher, self.trigger):
            worker.start()
            self._started.append(worker)

    def stop(self) -> None:
        """Stop background workers in reverse order and close the ledger."""
        while self._started:
            self._started.pop().stop()
        self.ledger.close()


def build_context(config: AppConfig, clock: Callable[[], float] = time.time) -> AppContext:
    """Build an AppContext from a validated configuration.

    Raises:
        LedgerError: If the database cannot be opened.
    """
    ledger = LedgerStore(config.database_path)
    storage = SpoolStorage(
        config.storage.output_dir,
        config.storage.max_files,
        config.storage.min_disk_space_percent,
    )
    spool = SpoolWriter(
        storage,
        group_name=config.storage.group_name,
        pause=parse_duration(config.storage.pause_duration),
    )
    reload_signal = ReloadSignal()
    nagios = config.nagios
    engine = RegenerationEngine(
        ledger,
        nagios.output_dir,
        RenderParams(
            host_template=nagios.host_template,
            service_template=nagios.service_template,
            stale_threshold_seconds=nagios.stale_threshold_seconds,
        ),
        reload_signal,
        clock=clock,
    )
    return AppContext(
        config=config,
        ledger=ledger,
        storage=storage,
        spool=spool,
        reload_signal=reload_signal,
        engine=engine,
        trigger=PeriodicTrigger(
            engine.run_cycle, nagios.interval_seconds, name="nagios-config-generator"
        ),
        watcher=ReloadWatcher(
            reload_signal,
            reload_command=nagios.reload_command,
            pid_file=nagios.pid_file,
        ),
        monitor=MetricsMonitor(interval=1.0, verbose=config.logging.verbose),
        clock=clock,
    )
