"""
Embedded PostgreSQL server for local runs and tests.
Uses pgserver for pip-installable PostgreSQL binaries.
"""

import os

import pgserver

from attendance.backends.base import DEFAULT_TIMEOUT
from attendance.backends.postgres import PostgresBackend


DEFAULT_DATA_DIR = os.path.join(
    os.path.dirname(__file__), "..", ".pgdata", "attendance"
)


class SheetServer:
    """Manages an embedded PostgreSQL instance that backs PostgresBackend."""

    def __init__(self, data_dir=None):
        self.data_dir = os.path.abspath(data_dir or DEFAULT_DATA_DIR)
        self._pg = None

    def start(self):
        """Start the embedded server and create the sheet tables if needed."""
        os.makedirs(self.data_dir, exist_ok=True)
        self._pg = pgserver.get_server(self.data_dir)
        # Bootstrap once here so clients can skip it
        self.backend().close()
        return self

    # ── Public API ───────────────────────────────────────────────────

    def dsn(self):
        """libpq connection URI for this server."""
        return self._pg.get_uri()

    def backend(self, timeout=DEFAULT_TIMEOUT):
        """A new PostgresBackend connected to this server."""
        return PostgresBackend(self.dsn(), timeout=timeout)

    def stop(self):
        """Stop the embedded PostgreSQL server."""
        if self._pg:
            self._pg.cleanup()
            self._pg = None

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *args):
        self.stop()
