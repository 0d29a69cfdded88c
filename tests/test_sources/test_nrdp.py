"""Tests for NRDP XMLDATA decoding."""

import logging
import textwrap

import pytest

from nrdp2nagios.models.check import CheckResult
from nrdp2nagios.sources.nrdp import (
    NRDPParseError,
    log_summary,
    parse_check_results,
    summarize_states,
)

SAMPLE = textwrap.dedent("""\
    <?xml version='1.0'?>
    <checkresults>
      <checkresult type="host">
        <hostname>web1</hostname>
        <state>0</state>
        <output>PING OK - Packet loss = 0%</output>
        <time>1700000000</time>
      </checkresult>
      <checkresult type="service">
        <hostname>web1</hostname>
        <servicename>HTTP</servicename>
        <state>2</state>
        <output>HTTP CRITICAL
    second line</output>
        <time>1700000001</time>
      </checkresult>
    </checkresults>
""")


class TestParseCheckResults:
    def test_parses_host_and_service_results(self):
        results = parse_check_results(SAMPLE)

        assert results == [
            CheckResult("web1", "", 0, "PING OK - Packet loss = 0%", 1700000000),
            CheckResult("web1", "HTTP", 2, "HTTP CRITICAL\nsecond line", 1700000001),
        ]

    def test_missing_numbers_default_to_zero(self):
        results = parse_check_results(
            "<checkresults><checkresult><hostname>h</hostname></checkresult></checkresults>"
        )
        assert results == [CheckResult("h")]

    def test_empty_batch(self):
        assert parse_check_results("<checkresults/>") == []

    def test_malformed_xml(self):
        with pytest.raises(NRDPParseError, match="malformed"):
            parse_check_results("<checkresults><checkresult>")

    def test_wrong_root(self):
        with pytest.raises(NRDPParseError, match="root"):
            parse_check_results("<results/>")

    def test_non_integer_state(self):
        xml = (
            "<checkresults><checkresult><hostname>h</hostname>"
            "<state>bad</state></checkresult></checkresults>"
        )
        with pytest.raises(NRDPParseError, match="state"):
            parse_check_results(xml)

    def test_missing_hostname(self):
        xml = "<checkresults><checkresult><state>0</state></checkresult></checkresults>"
        with pytest.raises(NRDPParseError, match="hostname"):
            parse_check_results(xml)

    @pytest.mark.parametrize("name", [
        "web1&#10;    check_command evil",
        "web1&#13;x",
        "web1&#9;x",
        "web1}",
        "{web1",
    ])
    def test_hostname_with_unsafe_characters(self, name):
        xml = f"<checkresults><checkresult><hostname>{name}</hostname></checkresult></checkresults>"
        with pytest.raises(NRDPParseError, match="hostname"):
            parse_check_results(xml)

    @pytest.mark.parametrize("name", [
        "HTTP&#10;}&#10;define command {",
        "HT&#13;TP",
        "HT&#9;TP",
        "HTTP {",
        "HTTP }",
    ])
    def test_service_name_with_unsafe_characters(self, name):
        xml = (
            "<checkresults><checkresult><hostname>web1</hostname>"
            f"<servicename>{name}</servicename></checkresult></checkresults>"
        )
        with pytest.raises(NRDPParseError, match="servicename"):
            parse_check_results(xml)

    def test_surrounding_whitespace_is_stripped(self):
        xml = (
            "<checkresults><checkresult><hostname>\n  web1 \n</hostname>"
            "<servicename> HTTP check </servicename></checkresult></checkresults>"
        )
        assert parse_check_results(xml) == [CheckResult("web1", "HTTP check")]


class TestSummary:
    def test_summarize_states(self):
        results = [
            CheckResult("h", state=0),
            CheckResult("h", state=0),
            CheckResult("h", state=2),
            CheckResult("h", state=9),
        ]
        assert summarize_states(results) == "OK=2,CRITICAL=1"

    def test_log_summary_info(self, caplog):
        caplog.set_level(logging.INFO, logger="nrdp2nagios.sources.nrdp")
        log_summary(parse_check_results(SAMPLE))

        assert "checks_received host=web1 total=2 states=OK=1,CRITICAL=1" in caplog.text
        assert "non_ok" not in caplog.text

    def test_log_summary_debug_lists_non_ok(self, caplog):
        caplog.set_level(logging.DEBUG, logger="nrdp2nagios.sources.nrdp")
        results = [CheckResult("h", "DISK", 1, "x" * 80)]
        log_summary(results)

        assert "non_ok=[DISK:WARNING:" in caplog.text
        assert "x" * 47 + "..." in caplog.text
        assert "x" * 48 not in caplog.text

    def test_log_summary_empty(self, caplog):
        caplog.set_level(logging.DEBUG)
        log_summary([])
        assert caplog.text == ""
