"""Nagios check-result spool directory handling."""

from nrdp2nagios.spool.storage import SpoolStorage, StorageError
from nrdp2nagios.spool.writer import SpoolError, SpoolWriter

__all__ = ["SpoolError", "SpoolStorage", "SpoolWriter", "StorageError"]
