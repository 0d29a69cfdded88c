"""Nagios monitoring configuration generator.

Produces host and passive service definitions for every host and
service currently present in the ledger.
"""

from __future__ import annotations

from dataclasses import dataclass

import jinja2

from nrdp2nagios.models.records import RenderSnapshot

_HOST_TEMPLATE = jinja2.Template("""\
define host {
    use                 {{ host_template }}
    host_name           {{ hostname }}
    alias               {{ hostname }}
}
""")

_SERVICE_TEMPLATE = jinja2.Template("""\
define service {
    use                     {{ service_template }}
    host_name               {{ hostname }}
    service_description     {{ description }}
    check_command           check_dummy!0!OK
    active_checks_enabled   0
    passive_checks_enabled  1
    check_freshness         1
    freshness_threshold     {{ freshness_threshold }}
    notification_interval   0
}
""")


@dataclass(frozen=True)
class RenderParams:
    """Values passed through to every rendered definition."""

    host_template: str
    service_template: str
    stale_threshold_seconds: int


def generate_nagios(snapshot: RenderSnapshot, params: RenderParams) -> str:
    """Generate Nagios definitions for the hosts and services in snapshot.

    Hosts are emitted in ascending order, each followed by its services
    in ascending order of description. Services grouped under a host
    that is not in snapshot.hosts are never emitted.
    """
    blocks: list[str] = []

    for hostname in sorted(snapshot.hosts):
        blocks.append(
            _HOST_TEMPLATE.render(
                host_template=params.host_template,
                hostname=hostname,
            )
        )
        services = sorted(
            snapshot.services_for(hostname),
            key=lambda s: s.service_description,
        )
        for svc in services:
            blocks.append(
                _SERVICE_TEMPLATE.render(
                    service_template=params.service_template,
                    hostname=hostname,
                    description=svc.service_description,
                    freshness_threshold=params.stale_threshold_seconds,
                )
            )

    # Jinja strips the template's trailing newline; every block ends
    # with "}\n" followed by a blank line.
    return "".join(f"{block}\n\n" for block in blocks)
