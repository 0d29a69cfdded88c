"""Ledger records and the per-cycle render snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable


@dataclass(frozen=True)
class HostRecord:
    """Last time a check result was received for a host."""

    hostname: str
    last_seen: int


@dataclass(frozen=True)
class ServiceRecord:
    """Last time a check result was received for a host's service."""

    hostname: str
    service_description: str
    last_seen: int


@dataclass(frozen=True)
class RenderSnapshot:
    """Grouped, ordered view of the active ledger for one render.

    hosts holds unique hostnames in ascending order. services_by_host
    maps a hostname to its services, unique by description and sorted
    ascending. Services may be grouped under hostnames that are not in
    hosts; the renderer never emits those.
    """

    hosts: tuple[str, ...] = ()
    services_by_host: dict[str, tuple[ServiceRecord, ...]] = field(
        default_factory=dict
    )

    @property
    def is_empty(self) -> bool:
        return not self.hosts and not self.services_by_host

    def services_for(self, hostname: str) -> tuple[ServiceRecord, ...]:
        return self.services_by_host.get(hostname, ())


def build_snapshot(
    hosts: Iterable[HostRecord],
    services: Iterable[ServiceRecord],
) -> RenderSnapshot:
    """Group services by hostname and order both levels.

    Duplicate hostnames, and duplicate (hostname, description) pairs,
    collapse to a single entry.
    """
    hostnames = tuple(sorted({h.hostname for h in hosts}))

    grouped: dict[str, dict[str, ServiceRecord]] = {}
    for svc in services:
        grouped.setdefault(svc.hostname, {})[svc.service_description] = svc

    services_by_host = {
        hostname: tuple(by_desc[desc] for desc in sorted(by_desc))
        for hostname, by_desc in sorted(grouped.items())
    }
    return RenderSnapshot(hosts=hostnames, services_by_host=services_by_host)
