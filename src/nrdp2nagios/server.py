"""HTTP endpoint accepting NRDP check result submissions."""

from __future__ import annotations

import logging
import time
from typing import Callable

from flask import Flask, Response, request

from nrdp2nagios.ledger.store import LedgerError, LedgerStore
from nrdp2nagios.models.check import CheckResult
from nrdp2nagios.sources.nrdp import NRDPParseError, log_summary, parse_check_results
from nrdp2nagios.spool.writer import SpoolError, SpoolWriter

logger = logging.getLogger(__name__)


def _record_seen(ledger: LedgerStore, results: list[CheckResult], now: float) -> None:
    """Upsert last-seen times: each host once per batch, each named service."""
    seen_hosts: set[str] = set()
    for result in results:
        if result.hostname not in seen_hosts:
            seen_hosts.add(result.hostname)
            try:
                ledger.upsert_host(result.hostname, now)
            except LedgerError as e:
                logger.debug("Failed to update host %s in ledger: %s", result.hostname, e)

        if result.is_service_check:
            try:
                ledger.upsert_service(result.hostname, result.service_name, now)
            except LedgerError as e:
                logger.debug(
                    "Failed to update service %r for host %s in ledger: %s",
                    result.service_name, result.hostname, e,
                )


def create_app(
    ledger: LedgerStore,
    spool: SpoolWriter,
    show_raw: bool = False,
    clock: Callable[[], float] = time.time,
) -> Flask:
    """Build the Flask application serving NRDP submissions on any path.

    Hosts and services are stamped with the time the batch was
    received, not the check's own time field.
    """
    app = Flask(__name__)

    @app.route("/", defaults={"path": ""}, methods=["POST"])
    @app.route("/<path:path>", methods=["POST"])
    def submit(path: str) -> Response | tuple[str, int]:
        xml_data = request.form.get("XMLDATA", "")
        if not xml_data:
            logger.debug("Missing XMLDATA in request from %s", request.remote_addr)
            return "Missing XMLDATA in request", 400

        if show_raw:
            logger.debug("Raw XMLDATA: %s", xml_data)

        try:
            results = parse_check_results(xml_data)
        except NRDPParseError as e:
            logger.debug("Failed to parse XML data: %s", e)
            return "Failed to parse XML data", 400

        log_summary(results)
        _record_seen(ledger, results, clock())

        for result in results:
            try:
                spool.write(result)
            except SpoolError as e:
                logger.debug(
                    "Failed to process check result for %s - %s: %s",
                    result.hostname, result.service_name, e,
                )
                return "Failed to process check result", 500

        response = Response(status=200)
        response.headers["Connection"] = "close"
        return response

    return app
