"""Regeneration engine: prune, fetch, render, compare, publish, notify.

Each cycle reconciles the ledger against the previously published
Nagios configuration file. The file is replaced atomically and only
when its content changes, and a reload signal is posted after every
successful replacement.
"""

from __future__ import annotations

import enum
import logging
import os
import tempfile
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from nrdp2nagios.generators.nagios import RenderParams, generate_nagios
from nrdp2nagios.ledger.store import LedgerError, LedgerStore
from nrdp2nagios.models.records import build_snapshot
from nrdp2nagios.regen.signal import ReloadSignal

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "nrdp_generated.cfg"


class CycleOutcome(enum.Enum):
    """How a regeneration cycle ended."""

    FETCH_FAILED = "fetch_failed"      # Ledger unreadable, nothing written
    EMPTY = "empty"                    # No active records, file left alone
    UNCHANGED = "unchanged"            # Rendered bytes equal the published file
    PUBLISH_FAILED = "publish_failed"  # Write or rename failed, old file kept
    PUBLISHED = "published"            # New file in place


@dataclass(frozen=True)
class CycleResult:
    """Summary of one regeneration cycle."""

    outcome: CycleOutcome
    hosts: int = 0
    services: int = 0
    pruned_hosts: int = 0
    pruned_services: int = 0
    notified: bool = False

    @property
    def published(self) -> bool:
        return self.outcome is CycleOutcome.PUBLISHED


def read_published(path: Path) -> bytes:
    """Return the published file's bytes; a missing file reads as empty."""
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return b""
    except OSError as e:
        logger.info("Error reading existing Nagios config %s for comparison: %s", path, e)
        return b""


def publish_atomically(path: Path, content: bytes) -> bool:
    """Replace path with content via a temporary sibling and a rename.

    The temporary file gets a unique name in the same directory, so the
    rename cannot cross filesystems and concurrent writers never share
    a temporary. Readers of path see either the old or the new content.
    Returns False (after removing the temporary) if anything failed.
    """
    try:
        fd, tmp_name = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as e:
        logger.info("Error creating temporary file for %s: %s", path, e)
        return False

    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_path, 0o644)
        os.replace(tmp_path, path)
    except OSError as e:
        logger.info("Error publishing Nagios config %s: %s", path, e)
        try:
            tmp_path.unlink(missing_ok=True)
        except OSError as remove_error:
            logger.info(
                "Error removing temporary file %s after failure: %s",
                tmp_path, remove_error,
            )
        return False
    return True


class RegenerationEngine:
    """Rebuilds the generated Nagios configuration from the ledger.

    Args:
        ledger: Store holding host and service last-seen times.
        output_dir: Directory the generated file is published into.
        params: Templates and stale threshold for rendering.
        reload_signal: Signal posted after each content change.
        clock: Returns the current Unix time; injectable for tests.
        filename: Name of the generated file inside output_dir.
    """

    def __init__(
        self,
        ledger: LedgerStore,
        output_dir: Path | str,
        params: RenderParams,
        reload_signal: ReloadSignal,
        clock: Callable[[], float] = time.time,
        filename: str = CONFIG_FILENAME,
    ) -> None:
        self.ledger = ledger
        self.output_path = Path(output_dir) / filename
        self.params = params
        self.reload_signal = reload_signal
        self.clock = clock
        self._cycle_lock = threading.Lock()

    @property
    def stale_threshold(self) -> int:
        return self.params.stale_threshold_seconds

    def render(self) -> str:
        """Render the current ledger contents without pruning or publishing."""
        return generate_nagios(
            build_snapshot(self.ledger.list_hosts(), self.ledger.list_services()),
            self.params,
        )

    def run_cycle(self) -> CycleResult:
        """Run one regeneration cycle to completion.

        Cycles are serialized; a second caller waits for the first.
        """
        with self._cycle_lock:
            return self._run_cycle()

    def _prune(self, cutoff: int) -> tuple[int, int]:
        try:
            pruned_hosts = self.ledger.delete_hosts_older_than(cutoff)
        except LedgerError as e:
            logger.info("Error deleting stale hosts: %s", e)
            pruned_hosts = 0
        try:
            pruned_services = self.ledger.delete_services_older_than(cutoff)
        except LedgerError as e:
            logger.info("Error deleting stale services: %s", e)
            pruned_services = 0

        if pruned_hosts or pruned_services:
            logger.info(
                "Pruned %d stale hosts and %d stale services older than %s",
                pruned_hosts,
                pruned_services,
                datetime.fromtimestamp(cutoff, tz=timezone.utc).isoformat(),
            )
        return pruned_hosts, pruned_services

    def _run_cycle(self) -> CycleResult:
        logger.debug("Running Nagios config generation cycle")

        cutoff = int(self.clock()) - self.stale_threshold
        pruned_hosts, pruned_services = self._prune(cutoff)
        pruned = {"pruned_hosts": pruned_hosts, "pruned_services": pruned_services}

        try:
            hosts = self.ledger.list_hosts()
        except LedgerError as e:
            logger.info("Error getting hosts from ledger after pruning: %s", e)
            return CycleResult(CycleOutcome.FETCH_FAILED, **pruned)
        try:
            services = self.ledger.list_services()
        except LedgerError as e:
            logger.info("Error getting services from ledger after pruning: %s", e)
            return CycleResult(CycleOutcome.FETCH_FAILED, **pruned)

        counts = {"hosts": len(hosts), "services": len(services), **pruned}
        snapshot = build_snapshot(hosts, services)
        if snapshot.is_empty:
            logger.debug("No active hosts or services in ledger, skipping config generation")
            return CycleResult(CycleOutcome.EMPTY, **counts)

        content = generate_nagios(snapshot, self.params)
        new_bytes = content.encode("utf-8")

        if new_bytes == read_published(self.output_path):
            logger.debug(
                "Generated Nagios config is identical to %s, skipping write and reload",
                self.output_path,
            )
            return CycleResult(CycleOutcome.UNCHANGED, **counts)

        if not publish_atomically(self.output_path, new_bytes):
            return CycleResult(CycleOutcome.PUBLISH_FAILED, **counts)

        logger.info(
            "Updated Nagios config %s (%d hosts, %d services)",
            self.output_path, len(hosts), len(services),
        )

        notified = self.reload_signal.try_send()
        if notified:
            logger.debug("Posted reload signal")
        else:
            logger.info("Reload signal already pending, dropping this one")

        return CycleResult(CycleOutcome.PUBLISHED, notified=notified, **counts)
