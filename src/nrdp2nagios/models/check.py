"""Check result model decoded from NRDP submissions."""

from __future__ import annotations

from dataclasses import dataclass

_STATE_LABELS = {
    0: "OK",
    1: "WARNING",
    2: "CRITICAL",
    3: "UNKNOWN",
}


def state_label(state: int) -> str:
    """Return the Nagios label for a numeric check state."""
    return _STATE_LABELS.get(state, f"STATE_{state}")


@dataclass(frozen=True)
class CheckResult:
    """A single passive check result.

    Attributes:
        hostname: Host the result belongs to.
        service_name: Service description, or "" for a host check.
        state: Numeric return code (0=OK .. 3=UNKNOWN).
        output: Plugin output text, may contain newlines.
        time: Unix timestamp (seconds) the check was executed.
    """

    hostname: str
    service_name: str = ""
    state: int = 0
    output: str = ""
    time: int = 0

    @property
    def is_service_check(self) -> bool:
        return bool(self.service_name)

    @property
    def label(self) -> str:
        return state_label(self.state)
