"""Persistent last-seen ledger for hosts and services."""

from nrdp2nagios.ledger.store import LedgerError, LedgerStore

__all__ = ["LedgerError", "LedgerStore"]
