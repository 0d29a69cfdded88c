"""Guards for the check-result spool directory: free space and backlog."""

from __future__ import annotations

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised when the spool directory cannot accept more results."""


class SpoolStorage:
    """Inspects the spool directory Nagios reads check results from.

    Args:
        output_dir: The Nagios check_result_path.
        max_files: Backlog size at which writers should pause.
        min_disk_space_percent: Minimum free space on the filesystem.
    """

    def __init__(
        self,
        output_dir: Path | str,
        max_files: int,
        min_disk_space_percent: float,
    ) -> None:
        self.output_dir = Path(output_dir)
        self.max_files = max_files
        self.min_disk_space_percent = min_disk_space_percent

    def _free_space(self) -> tuple[float, float, float]:
        """Return (total_bytes, free_bytes, free_percent)."""
        try:
            st = os.statvfs(self.output_dir)
        except OSError as e:
            raise StorageError(f"failed to get filesystem stats: {e}") from e
        total = float(st.f_blocks * st.f_frsize)
        free = float(st.f_bavail * st.f_frsize)
        percent = (free / total) * 100 if total else 0.0
        return total, free, percent

    def _count_files(self) -> int:
        try:
            with os.scandir(self.output_dir) as entries:
                return sum(1 for entry in entries if entry.is_file(follow_symlinks=False))
        except OSError as e:
            raise StorageError(f"failed to read directory {self.output_dir}: {e}") from e

    def check_space(self) -> None:
        """Raise StorageError if free space is below the minimum."""
        _, _, percent = self._free_space()
        if percent < self.min_disk_space_percent:
            raise StorageError(
                f"insufficient disk space: {percent:.1f}% free, "
                f"minimum required: {self.min_disk_space_percent:.1f}%"
            )
        logger.debug("Disk space check passed: %.1f%% free", percent)

    def too_many_files(self) -> bool:
        """True when the backlog has reached max_files regular files."""
        count = self._count_files()
        if count >= self.max_files:
            logger.debug("Too many files: %d (max: %d)", count, self.max_files)
            return True
        logger.debug("File count check passed: %d files", count)
        return False

    def ensure_writable(self) -> None:
        """Raise StorageError if a file cannot be created in the directory."""
        probe = self.output_dir / ".write_test"
        try:
            probe.write_bytes(b"")
            probe.unlink()
        except OSError as e:
            raise StorageError(f"directory {self.output_dir} is not writable: {e}") from e

    def stats(self) -> dict[str, float | int]:
        """Return space and backlog figures for logging."""
        total, free, percent = self._free_space()
        return {
            "total_space_bytes": total,
            "free_space_bytes": free,
            "free_space_percent": percent,
            "file_count": self._count_files(),
            "max_files": self.max_files,
        }
