"""Reload Nagios after the generated configuration changes.

A ReloadWatcher thread consumes the engine's ReloadSignal and either
runs the configured reload command or sends SIGHUP to the process
named in the Nagios PID file.
"""

from __future__ import annotations

import logging
import os
import shlex
import signal
import subprocess
import threading
from pathlib import Path

from nrdp2nagios.regen.signal import ReloadSignal

logger = logging.getLogger(__name__)


def run_reload_command(command: str, timeout: float = 60.0) -> bool:
    """Run a reload command such as "systemctl reload nagios4".

    Returns True if the command exited with status 0.
    """
    try:
        result = subprocess.run(
            shlex.split(command),
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except (OSError, ValueError, subprocess.TimeoutExpired) as e:
        logger.warning("Reload command %r failed to run: %s", command, e)
        return False

    if result.returncode != 0:
        logger.warning(
            "Reload command %r exited with status %d: %s",
            command, result.returncode, result.stderr.strip(),
        )
        return False
    logger.info("Reload command %r completed", command)
    return True


def read_pid_file(pid_file: Path | str) -> int | None:
    """Read a positive PID from pid_file, or return None with a warning."""
    path = Path(pid_file)
    try:
        content = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        logger.warning("Nagios PID file %s not found, cannot send reload signal", path)
        return None
    except OSError as e:
        logger.warning("Failed to read Nagios PID file %s: %s", path, e)
        return None

    try:
        pid = int(content)
    except ValueError:
        logger.warning("Failed to parse PID from %s (content: %r)", path, content)
        return None

    if pid <= 0:
        logger.warning("Invalid PID %d found in %s", pid, path)
        return None
    return pid


def signal_nagios_reload(pid_file: Path | str) -> bool:
    """Send SIGHUP to the Nagios process whose PID is in pid_file.

    Returns True if the signal was delivered.
    """
    pid = read_pid_file(pid_file)
    if pid is None:
        return False

    try:
        os.kill(pid, signal.SIGHUP)
    except ProcessLookupError:
        logger.warning("Process %d (from %s) not found, maybe it terminated?", pid, pid_file)
        return False
    except OSError as e:
        logger.warning("Failed to send SIGHUP to Nagios process %d: %s", pid, e)
        return False

    logger.info("Sent SIGHUP to Nagios process %d for configuration reload", pid)
    return True


class ReloadWatcher:
    """Thread that reloads Nagios each time the reload signal fires.

    If reload_command is set it is run; otherwise SIGHUP is sent to
    the PID in pid_file. Failures are logged and never stop the thread.
    """

    def __init__(
        self,
        reload_signal: ReloadSignal,
        reload_command: str = "",
        pid_file: Path | str = "/var/run/nagios.pid",
        poll_interval: float = 1.0,
    ) -> None:
        self.reload_signal = reload_signal
        self.reload_command = reload_command
        self.pid_file = Path(pid_file)
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def reload(self) -> bool:
        """Perform one reload using the configured method."""
        if self.reload_command:
            return run_reload_command(self.reload_command)
        return signal_nagios_reload(self.pid_file)

    def start(self) -> None:
        if self.reload_command:
            logger.info("Starting Nagios reload watcher (command: %s)", self.reload_command)
        else:
            logger.info("Starting Nagios reload watcher (PID file: %s)", self.pid_file)
        self._thread = threading.Thread(target=self._run, name="reload-watcher", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
        logger.info("Nagios reload watcher stopped")

    def _run(self) -> None:
        while not self._stop.is_set():
            if not self.reload_signal.wait(self.poll_interval):
                continue
            logger.info("Received Nagios config update signal, reloading")
            self.reload()
