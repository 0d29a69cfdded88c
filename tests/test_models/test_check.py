"""Tests for the check result model."""

from nrdp2nagios.models.check import CheckResult, state_label


class TestStateLabel:
    def test_standard_states(self):
        assert state_label(0) == "OK"
        assert state_label(1) == "WARNING"
        assert state_label(2) == "CRITICAL"
        assert state_label(3) == "UNKNOWN"

    def test_nonstandard_state(self):
        assert state_label(7) == "STATE_7"
        assert state_label(-1) == "STATE_-1"


class TestCheckResult:
    def test_host_check(self):
        result = CheckResult(hostname="web1", state=0)
        assert not result.is_service_check
        assert result.label == "OK"

    def test_service_check(self):
        result = CheckResult(hostname="web1", service_name="HTTP", state=2)
        assert result.is_service_check
        assert result.label == "CRITICAL"
