"""Data models for the check-result ledger and rendered configuration."""

from nrdp2nagios.models.check import CheckResult, state_label
from nrdp2nagios.models.records import HostRecord, RenderSnapshot, ServiceRecord

__all__ = [
    "CheckResult",
    "HostRecord",
    "RenderSnapshot",
    "ServiceRecord",
    "state_label",
]
