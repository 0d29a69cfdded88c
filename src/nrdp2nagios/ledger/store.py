"""SQLite ledger of when each host and service last reported.

The ingestion endpoint upserts rows as check results arrive; the
regeneration engine prunes rows that have gone stale and reads the
rest back to render the Nagios configuration.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path

from nrdp2nagios.logs import TRACE
from nrdp2nagios.models.records import HostRecord, ServiceRecord

logger = logging.getLogger(__name__)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS hosts (
        hostname TEXT PRIMARY KEY,
        last_seen INTEGER NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS services (
        hostname TEXT NOT NULL,
        service_description TEXT NOT NULL,
        last_seen INTEGER NOT NULL,
        PRIMARY KEY (hostname, service_description)
    )
    """,
)


class LedgerError(Exception):
    """Raised when a ledger query fails."""


def _iso(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()


class LedgerStore:
    """Persistent last-seen table pair for hosts and services.

    Timestamps are stored as whole Unix seconds. Every operation runs
    in its own committed transaction. One connection is shared between
    threads and guarded by a lock, so writes to the same key are
    applied in the order they acquire it (last write wins).
    """

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)
        self._lock = threading.Lock()
        logger.debug("Initializing database at %s", self.db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self.db_path), check_same_thread=False)
        except (OSError, sqlite3.Error) as e:
            raise LedgerError(f"failed to open database {self.db_path}: {e}") from e

        try:
            with self._conn:
                for statement in _SCHEMA:
                    self._conn.execute(statement)
        except sqlite3.Error as e:
            self._conn.close()
            raise LedgerError(f"failed to initialize database schema: {e}") from e
        logger.info("Database initialized at %s", self.db_path)

    def _execute(self, query: str, params: tuple = ()) -> sqlite3.Cursor:
        with self._lock:
            with self._conn:
                return self._conn.execute(query, params)

    def _fetchall(self, query: str) -> list[tuple]:
        with self._lock:
            return self._conn.execute(query).fetchall()

    # ------------------------------------------------------------------
    # Upserts
    # ------------------------------------------------------------------

    def upsert_host(self, hostname: str, timestamp: float) -> None:
        """Set a host's last_seen, inserting the row if needed.

        An older timestamp still overwrites a newer one.
        """
        seen = int(timestamp)
        try:
            self._execute(
                "INSERT INTO hosts (hostname, last_seen) VALUES (?, ?) "
                "ON CONFLICT(hostname) DO UPDATE SET last_seen = excluded.last_seen",
                (hostname, seen),
            )
        except sqlite3.Error as e:
            raise LedgerError(f"failed to update host {hostname}: {e}") from e
        logger.log(TRACE, "Updated host %s last_seen to %d", hostname, seen)

    def upsert_service(
        self, hostname: str, service_description: str, timestamp: float
    ) -> None:
        """Set a service's last_seen, inserting the row if needed."""
        seen = int(timestamp)
        try:
            self._execute(
                "INSERT INTO services (hostname, service_description, last_seen) "
                "VALUES (?, ?, ?) "
                "ON CONFLICT(hostname, service_description) "
                "DO UPDATE SET last_seen = excluded.last_seen",
                (hostname, service_description, seen),
            )
        except sqlite3.Error as e:
            raise LedgerError(
                f"failed to update service {service_description!r} "
                f"on host {hostname}: {e}"
            ) from e
        logger.log(
            TRACE,
            "Updated service %r on host %s last_seen to %d",
            service_description, hostname, seen,
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list_hosts(self) -> list[HostRecord]:
        """Return all hosts ordered by hostname."""
        try:
            rows = self._fetchall(
                "SELECT hostname, last_seen FROM hosts ORDER BY hostname"
            )
        except sqlite3.Error as e:
            raise LedgerError(f"failed to query hosts: {e}") from e
        return [HostRecord(hostname=h, last_seen=seen) for h, seen in rows]

    def list_services(self) -> list[ServiceRecord]:
        """Return all services ordered by hostname, then description."""
        try:
            rows = self._fetchall(
                "SELECT hostname, service_description, last_seen FROM services "
                "ORDER BY hostname, service_description"
            )
        except sqlite3.Error as e:
            raise LedgerError(f"failed to query services: {e}") from e
        return [
            ServiceRecord(hostname=h, service_description=desc, last_seen=seen)
            for h, desc, seen in rows
        ]

    # ------------------------------------------------------------------
    # Pruning
    # ------------------------------------------------------------------

    def delete_hosts_older_than(self, cutoff: float) -> int:
        """Delete hosts with last_seen strictly before cutoff.

        Returns the number of rows removed.
        """
        return self._delete_older_than("hosts", int(cutoff))

    def delete_services_older_than(self, cutoff: float) -> int:
        """Delete services with last_seen strictly before cutoff."""
        return self._delete_older_than("services", int(cutoff))

    def _delete_older_than(self, table: str, cutoff: int) -> int:
        try:
            cursor = self._execute(
                f"DELETE FROM {table} WHERE last_seen < ?", (cutoff,)
            )
        except sqlite3.Error as e:
            raise LedgerError(f"failed to delete stale {table}: {e}") from e
        deleted = max(cursor.rowcount, 0)
        if deleted:
            logger.debug(
                "Deleted %d stale %s (older than %s)", deleted, table, _iso(cutoff)
            )
        return deleted

    def close(self) -> None:
        """Close the database connection."""
        logger.debug("Closing database connection")
        with self._lock:
            self._conn.close()
