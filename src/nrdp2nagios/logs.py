"""Logging setup with an extra TRACE level below DEBUG."""

from __future__ import annotations

import logging
import sys

TRACE = 5
logging.addLevelName(TRACE, "TRACE")

_LEVELS = {
    "info": logging.INFO,
    "debug": logging.DEBUG,
    "trace": TRACE,
}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def level_for(name: str) -> int:
    """Map a configured level name (info, debug, trace) to a logging level."""
    try:
        return _LEVELS[name]
    except KeyError:
        raise ValueError(f"unknown log level: {name!r}") from None


def configure_logging(level: str = "info") -> None:
    """Send all log records at or above level to stdout.

    Safe to call more than once; the root handler is replaced, so the
    level can be raised after the configuration file has been read.
    """
    logging.basicConfig(
        level=level_for(level),
        format=LOG_FORMAT,
        stream=sys.stdout,
        force=True,
    )
