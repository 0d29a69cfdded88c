"""Write check results into the Nagios check-result spool directory.

Nagios only picks up files named "c" plus six characters, and only
once a matching ".ok" marker file exists next to them.
"""

from __future__ import annotations

import email.utils
import grp
import logging
import os
import random
import time
from pathlib import Path
from typing import Callable

from nrdp2nagios.logs import TRACE
from nrdp2nagios.models.check import CheckResult
from nrdp2nagios.spool.storage import SpoolStorage, StorageError

logger = logging.getLogger(__name__)

_FILE_MODE = 0o770
_NAME_ATTEMPTS = 100


class SpoolError(Exception):
    """Raised when a check result could not be written to the spool."""


def format_check_result(result: CheckResult) -> str:
    """Render a check result in Nagios' passive check-result file format."""
    service_line = ""
    if result.is_service_check:
        service_line = f"service_description={result.service_name}\n"
    output = result.output.replace("\n", "\\n")

    return (
        "### NRDP Check ###\n"
        f"start_time={result.time}.0\n"
        f"# Time: {email.utils.formatdate(result.time, localtime=True)}\n"
        f"host_name={result.hostname}\n"
        f"{service_line}"
        "check_type=1\n"
        "early_timeout=1\n"
        "exited_ok=1\n"
        f"return_code={result.state}\n"
        f"output={output}\\n\n"
    )


def _remove_all(paths: list[Path]) -> None:
    for path in paths:
        path.unlink(missing_ok=True)


def _lookup_gid(group_name: str) -> int:
    try:
        return grp.getgrnam(group_name).gr_gid
    except KeyError:
        raise SpoolError(f"unknown group: {group_name!r}") from None


class SpoolWriter:
    """Writes one spool file (plus its .ok marker) per check result.

    Args:
        storage: Spool directory guard; also provides the directory.
        group_name: Group given to written files so Nagios can read
            and delete them. Empty leaves the group unchanged.
        pause: Seconds to wait between backlog checks while the
            directory holds too many files.
        sleep: Sleep function; injectable for tests.
    """

    def __init__(
        self,
        storage: SpoolStorage,
        group_name: str = "",
        pause: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.storage = storage
        self.group_name = group_name
        self.pause = pause
        self.sleep = sleep

    @property
    def output_dir(self) -> Path:
        return self.storage.output_dir

    def _create_unique(self, content: bytes) -> Path:
        """Create a new c?????? file exclusively and write content to it."""
        for _ in range(_NAME_ATTEMPTS):
            path = self.output_dir / f"c{random.randrange(1_000_000):06d}"
            try:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, _FILE_MODE)
            except FileExistsError:
                continue
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(content)
            except OSError:
                path.unlink(missing_ok=True)
                raise
            return path
        raise SpoolError(f"no free check result file name in {self.output_dir}")

    def _set_group(self, path: Path) -> None:
        if not self.group_name:
            return
        os.chown(path, -1, _lookup_gid(self.group_name))

    def _wait_for_backlog(self) -> None:
        while self.storage.too_many_files():
            logger.debug("Waiting for check result files to be processed")
            self.sleep(self.pause)

    def write(self, result: CheckResult) -> Path:
        """Write result to the spool and return the check result file path.

        Raises:
            SpoolError: If the spool is full or any file operation fails.
                Files created before the failure are removed.
        """
        try:
            self.storage.check_space()
            self._wait_for_backlog()
        except StorageError as e:
            raise SpoolError(f"storage check failed: {e}") from e

        written: list[Path] = []
        try:
            path = self._create_unique(format_check_result(result).encode("utf-8"))
            written.append(path)
            self._set_group(path)

            ok_path = path.with_name(path.name + ".ok")
            ok_path.touch(mode=_FILE_MODE, exist_ok=False)
            written.append(ok_path)
            self._set_group(ok_path)
        except SpoolError:
            _remove_all(written)
            raise
        except OSError as e:
            _remove_all(written)
            raise SpoolError(f"failed to write check result for {result.hostname}: {e}") from e

        logger.log(TRACE, "check_saved file=%s ok=%s", path.name, ok_path.name)
        return path
