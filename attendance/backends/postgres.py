"""
PostgreSQL backend: a spreadsheet emulated with two tables.

    sheets       one row per table name (creation order = native order)
    sheet_rows   (sheet_id, row_no, cells TEXT[]); row 1 is the header

Appends take a per-sheet advisory transaction lock, so concurrent appends
never collide on row_no and append_row_if_absent is atomic: this is the
backend that turns the duplicate check into a real compare-and-append.
"""

import logging

import psycopg2
import psycopg2.errors

from attendance.backends.base import DEFAULT_TIMEOUT, SheetBackend
from attendance.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    TableExistsError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)


def bootstrap_schema(conn):
    """Create the sheets and sheet_rows tables. Idempotent."""
    with conn, conn.cursor() as cur:
        cur.execute("""
            CREATE TABLE IF NOT EXISTS sheets (
                sheet_id    SERIAL PRIMARY KEY,
                name        TEXT NOT NULL UNIQUE,
                created_at  TIMESTAMPTZ NOT NULL DEFAULT now()
            );
        """)
        # Append-only in practice; write_range may rewrite the header row
        cur.execute("""
            CREATE TABLE IF NOT EXISTS sheet_rows (
                sheet_id    INT NOT NULL REFERENCES sheets (sheet_id),
                row_no      INT NOT NULL CHECK (row_no >= 1),
                cells       TEXT[] NOT NULL,
                written_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
                PRIMARY KEY (sheet_id, row_no)
            );
        """)


class PostgresBackend(SheetBackend):
    """
    Connects with a libpq DSN. Every call runs in its own short transaction
    bounded by ``statement_timeout``.

    Usage:
        backend = PostgresBackend("postgresql://app@localhost/attendance")
        backend.create_table("Attendance")
        backend.close()
    """

    supports_conditional_append = True

    def __init__(self, dsn, timeout=DEFAULT_TIMEOUT, bootstrap=True):
        self.timeout = timeout
        try:
            self.conn = psycopg2.connect(
                dsn,
                connect_timeout=max(1, int(timeout)),
                options=f"-c statement_timeout={int(timeout * 1000)}",
            )
        except psycopg2.OperationalError as e:
            raise BackendUnavailableError(f"Cannot connect to PostgreSQL: {e}") from e
        if bootstrap:
            with self._call("bootstrap"):
                bootstrap_schema(self.conn)

    # ── Internal ─────────────────────────────────────────────────────

    def _call(self, action, table=None):
        return _TranslateErrors(self, action, table)

    def _sheet_id(self, cur, table, lock=False):
        cur.execute("SELECT sheet_id FROM sheets WHERE name = %s", (table,))
        row = cur.fetchone()
        if row is None:
            raise TableNotFoundError(table)
        if lock:
            cur.execute("SELECT pg_advisory_xact_lock(%s)", (row[0],))
        return row[0]

    @staticmethod
    def _insert_after_last(cur, sheet_id, row):
        cur.execute(
            """
            INSERT INTO sheet_rows (sheet_id, row_no, cells)
            SELECT %s, COALESCE(MAX(row_no), 0) + 1, %s
            FROM sheet_rows
            WHERE sheet_id = %s AND cells <> '{}'
            ON CONFLICT (sheet_id, row_no) DO UPDATE SET cells = EXCLUDED.cells
            """,
            (sheet_id, [str(v) for v in row], sheet_id),
        )

    # ── SheetBackend ─────────────────────────────────────────────────

    def list_tables(self):
        with self._call("list_tables"), self.conn, self.conn.cursor() as cur:
            cur.execute("SELECT name FROM sheets ORDER BY sheet_id")
            return [r[0] for r in cur.fetchall()]

    def create_table(self, name):
        with self._call("create_table", name), self.conn, self.conn.cursor() as cur:
            cur.execute("INSERT INTO sheets (name) VALUES (%s)", (name,))

    def read_range(self, table, start_row=1, end_row=None):
        with self._call("read_range", table), self.conn, self.conn.cursor() as cur:
            sheet_id = self._sheet_id(cur, table)
            cur.execute(
                """
                SELECT row_no, cells FROM sheet_rows
                WHERE sheet_id = %s AND row_no >= %s
                  AND (%s::int IS NULL OR row_no <= %s::int)
                ORDER BY row_no
                """,
                (sheet_id, start_row, end_row, end_row),
            )
            rows = []
            expected = start_row
            for row_no, cells in cur.fetchall():
                # Gaps read back as empty rows, as in a spreadsheet grid
                rows.extend([] for _ in range(row_no - expected))
                rows.append(list(cells))
                expected = row_no + 1
            return rows

    def write_range(self, table, start_row, rows):
        with self._call("write_range", table), self.conn, self.conn.cursor() as cur:
            sheet_id = self._sheet_id(cur, table, lock=True)
            for offset, row in enumerate(rows):
                cur.execute(
                    """
                    INSERT INTO sheet_rows (sheet_id, row_no, cells)
                    VALUES (%s, %s, %s)
                    ON CONFLICT (sheet_id, row_no)
                    DO UPDATE SET cells = EXCLUDED.cells, written_at = now()
                    """,
                    (sheet_id, start_row + offset, [str(v) for v in row]),
                )

    def append_row(self, table, row):
        with self._call("append_row", table), self.conn, self.conn.cursor() as cur:
            sheet_id = self._sheet_id(cur, table, lock=True)
            self._insert_after_last(cur, sheet_id, row)

    def append_row_if_absent(self, table, row, key_index):
        with self._call("append_row_if_absent", table), self.conn, self.conn.cursor() as cur:
            sheet_id = self._sheet_id(cur, table, lock=True)
            # TEXT[] is 1-based
            cur.execute(
                """
                SELECT 1 FROM sheet_rows
                WHERE sheet_id = %s AND row_no > 1 AND cells[%s] = %s
                LIMIT 1
                """,
                (sheet_id, key_index + 1, str(row[key_index])),
            )
            if cur.fetchone() is not None:
                return False
            self._insert_after_last(cur, sheet_id, row)
            return True

    def close(self):
        if not self.conn.closed:
            self.conn.close()


class _TranslateErrors:
    """Maps psycopg2 failures onto the store's error taxonomy."""

    def __init__(self, backend, action, table):
        self.backend = backend
        self.action = action
        self.table = table

    def __enter__(self):
        logger.debug("postgres %s table=%s", self.action, self.table)
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc is None:
            return False
        where = f"{self.action} on {self.table!r}"
        if isinstance(exc, psycopg2.errors.UniqueViolation) and self.action == "create_table":
            raise TableExistsError(self.table) from exc
        if isinstance(exc, psycopg2.errors.QueryCanceled):
            raise BackendTimeoutError(
                f"{where} timed out after {self.backend.timeout}s"
            ) from exc
        if isinstance(exc, psycopg2.Error):
            raise BackendUnavailableError(f"{where} failed: {exc}") from exc
        return False
