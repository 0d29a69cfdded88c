"""Source: decode NRDP check result submissions.

NRDP clients (send_nrdp.sh, send_nrdp.py, NCPA) POST a form field
named XMLDATA holding a document like:

    <checkresults>
      <checkresult type="service">
        <hostname>web1</hostname>
        <servicename>HTTP</servicename>
        <state>0</state>
        <output>HTTP OK</output>
        <time>1700000000</time>
      </checkresult>
    </checkresults>
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections import Counter

from nrdp2nagios.models.check import CheckResult, state_label

logger = logging.getLogger(__name__)

_OUTPUT_PREVIEW = 50


class NRDPParseError(ValueError):
    """Raised when XMLDATA is not a valid check result document."""


def _check_name(name: str, tag: str, index: int) -> str:
    """Reject names that could break out of a Nagios object definition."""
    for char in name:
        if ord(char) < 0x20 or char in "{}\x7f":
            raise NRDPParseError(
                f"checkresult {index}: <{tag}> contains invalid character {char!r}"
            )
    return name


def _text(elem: ET.Element, tag: str) -> str:
    child = elem.find(tag)
    if child is None or child.text is None:
        return ""
    return child.text


def _int(elem: ET.Element, tag: str, index: int) -> int:
    raw = _text(elem, tag).strip()
    if not raw:
        return 0
    try:
        return int(raw)
    except ValueError:
        raise NRDPParseError(
            f"checkresult {index}: <{tag}> is not an integer: {raw!r}"
        ) from None


def parse_check_results(xml_data: str) -> list[CheckResult]:
    """Parse an NRDP XMLDATA document into check results.

    Missing <state> and <time> elements read as 0 and a missing
    <servicename> marks a host check.

    Raises:
        NRDPParseError: If the XML is malformed, the root element is
            not <checkresults>, a number is not an integer, a result
            has no hostname, or a hostname or service name contains a
            control character or a brace.
    """
    try:
        root = ET.fromstring(xml_data)
    except ET.ParseError as e:
        raise NRDPParseError(f"malformed XML: {e}") from e

    if root.tag != "checkresults":
        raise NRDPParseError(f"expected <checkresults> root, got <{root.tag}>")

    results = []
    for index, elem in enumerate(root.findall("checkresult")):
        hostname = _text(elem, "hostname").strip()
        if not hostname:
            raise NRDPParseError(f"checkresult {index}: missing hostname")
        results.append(
            CheckResult(
                hostname=_check_name(hostname, "hostname", index),
                service_name=_check_name(
                    _text(elem, "servicename").strip(), "servicename", index
                ),
                state=_int(elem, "state", index),
                output=_text(elem, "output"),
                time=_int(elem, "time", index),
            )
        )
    return results


def summarize_states(results: list[CheckResult]) -> str:
    """Return counts per standard state, e.g. "OK=3,CRITICAL=1"."""
    counts = Counter(r.state for r in results)
    return ",".join(
        f"{state_label(state)}={counts[state]}"
        for state in range(4)
        if counts[state]
    )


def log_summary(results: list[CheckResult]) -> None:
    """Log one line describing a received batch.

    At debug level the non-OK results are listed as well, with their
    output truncated.
    """
    if not results:
        return

    message = (
        f"checks_received host={results[0].hostname} "
        f"total={len(results)} states={summarize_states(results)}"
    )

    if logger.isEnabledFor(logging.DEBUG):
        non_ok = []
        for r in results:
            if r.state == 0:
                continue
            output = r.output
            if len(output) > _OUTPUT_PREVIEW:
                output = output[:_OUTPUT_PREVIEW - 3] + "..."
            non_ok.append(f"{r.service_name or '-'}:{r.label}:{output!r}")
        if non_ok:
            message += " non_ok=[" + "; ".join(non_ok) + "]"

    logger.info(message)
