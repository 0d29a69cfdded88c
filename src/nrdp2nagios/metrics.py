"""Process metrics sampled periodically for debug logging."""

from __future__ import annotations

import logging
import os
import resource
import sys
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path

from nrdp2nagios.regen.scheduler import PeriodicTrigger

logger = logging.getLogger(__name__)

_FD_DIR = Path("/proc/self/fd")

# Changes at or above these deltas are logged in detail.
_OPEN_FILES_DELTA = 10
_THREADS_DELTA = 5


def format_bytes(size: float) -> str:
    """Format a byte count as 1.5K / 2.0M / 3.1G."""
    for unit, scale in (("G", 1 << 30), ("M", 1 << 20), ("K", 1 << 10)):
        if size >= scale:
            return f"{size / scale:.1f}{unit}"
    return f"{size:.0f}"


def _open_files(fd_dir: Path = _FD_DIR) -> dict[str, str]:
    """Map each open file descriptor to its target."""
    targets: dict[str, str] = {}
    try:
        entries = list(fd_dir.iterdir())
    except OSError:
        return targets
    for entry in entries:
        try:
            targets[entry.name] = os.readlink(entry)
        except OSError:
            continue
    return targets


def _max_rss_bytes() -> int:
    rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports kilobytes, macOS bytes.
    return rss if sys.platform == "darwin" else rss * 1024


@dataclass(frozen=True)
class SystemMetrics:
    """A point-in-time sample of process resource usage."""

    open_files: int
    threads: int
    max_rss: int
    timestamp: float
    fd_targets: dict[str, str] = field(default_factory=dict, compare=False)

    def __str__(self) -> str:
        return (
            f"files={self.open_files} threads={self.threads} "
            f"rss={format_bytes(self.max_rss)}"
        )

    def detail(self) -> str:
        lines = [str(self)]
        for fd, target in sorted(self.fd_targets.items(), key=lambda kv: int(kv[0])):
            lines.append(f"  fd {fd} -> {target}")
        return "\n".join(lines)

    def has_significant_changes(self, previous: SystemMetrics) -> bool:
        return (
            abs(self.open_files - previous.open_files) >= _OPEN_FILES_DELTA
            or abs(self.threads - previous.threads) >= _THREADS_DELTA
        )


def collect_metrics(fd_dir: Path = _FD_DIR) -> SystemMetrics:
    """Sample open descriptors, thread count and peak memory."""
    targets = _open_files(fd_dir)
    return SystemMetrics(
        open_files=len(targets),
        threads=threading.active_count(),
        max_rss=_max_rss_bytes(),
        timestamp=time.time(),
        fd_targets=targets,
    )


class MetricsMonitor:
    """Logs a metrics sample every interval at debug level.

    The detailed form (every descriptor target) is logged when verbose
    is set or when usage changed significantly since the last sample.
    """

    def __init__(self, interval: float = 1.0, verbose: bool = False) -> None:
        self.verbose = verbose
        self._last: SystemMetrics | None = None
        self._trigger = PeriodicTrigger(self.sample, interval, name="metrics-monitor")

    def sample(self) -> SystemMetrics:
        current = collect_metrics()
        changed = self._last is not None and current.has_significant_changes(self._last)
        if self.verbose or changed:
            logger.debug("%s", current.detail())
        else:
            logger.debug("%s", current)
        self._last = current
        return current

    def start(self) -> None:
        self._trigger.start()

    def stop(self, timeout: float | None = None) -> None:
        self._trigger.stop(timeout)
