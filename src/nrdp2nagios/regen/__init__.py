"""Periodic regeneration of the Nagios configuration from the ledger."""
