"""
Google Sheets backend via gspread.

One spreadsheet is the database; each worksheet is a table. Authentication
uses a service account (scope: spreadsheets). Every call goes through
``_call`` which maps gspread / requests / google-auth failures onto the
store's error taxonomy. gspread reports an unshared spreadsheet (HTTP 403)
as the builtin PermissionError, which is mapped the same way.

Google Sheets has no conditional append, so the duplicate check in front of
``append_row`` stays a check-then-act race on this backend.
"""

import contextlib
import logging
from typing import Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from attendance.backends.base import DEFAULT_TIMEOUT, SheetBackend
from attendance.columns import CANONICAL_COLUMNS
from attendance.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    TableExistsError,
    TableNotFoundError,
)

logger = logging.getLogger(__name__)

SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

# Grid size for newly created worksheets
NEW_SHEET_ROWS = 1000


def column_letter(index: int) -> str:
    """1-based column index -> A1 column letters (1 -> A, 27 -> AA)."""
    if index < 1:
        raise ValueError(f"Column index must be >= 1, got {index}")
    letters = ""
    while index:
        index, rem = divmod(index - 1, 26)
        letters = chr(ord("A") + rem) + letters
    return letters


def a1_range(table: str, start_row: int, end_row: Optional[int], width: int) -> str:
    """A1 range over the first *width* columns, e.g. ``'Attendance'!A2:I``."""
    last = column_letter(width)
    end = "" if end_row is None else str(end_row)
    quoted = table.replace("'", "''")
    return f"'{quoted}'!A{start_row}:{last}{end}"


class GoogleSheetsBackend(SheetBackend):
    """Tables are worksheets of one spreadsheet.

    Usage:
        backend = GoogleSheetsBackend.from_service_account(info, spreadsheet_id)
        backend.list_tables()
    """

    def __init__(self, client, spreadsheet_id, timeout=DEFAULT_TIMEOUT,
                 width=len(CANONICAL_COLUMNS)):
        self.spreadsheet_id = spreadsheet_id
        self.timeout = timeout
        self.width = width
        self._client = client
        self._client.set_timeout(timeout)
        self._book = None

    @classmethod
    def from_service_account(cls, info: dict, spreadsheet_id: str, **kwargs):
        """Authorize with a service-account info dict (the JSON key file contents)."""
        try:
            creds = Credentials.from_service_account_info(info, scopes=SCOPES)
        except (ValueError, GoogleAuthError) as e:
            raise BackendUnavailableError(f"Invalid service account credentials: {e}") from e
        return cls(gspread.authorize(creds), spreadsheet_id, **kwargs)

    # ── Internal ─────────────────────────────────────────────────────

    @contextlib.contextmanager
    def _call(self, action, table=None):
        logger.debug("sheets %s table=%s", action, table)
        try:
            yield
        except gspread.exceptions.WorksheetNotFound as e:
            raise TableNotFoundError(table) from e
        except requests.exceptions.Timeout as e:
            raise BackendTimeoutError(
                f"{action} on {table!r} timed out after {self.timeout}s"
            ) from e
        except gspread.exceptions.APIError as e:
            if action == "create_table" and "already exists" in str(e):
                raise TableExistsError(table) from e
            if "Unable to parse range" in str(e):
                # values_get on a worksheet that does not exist
                raise TableNotFoundError(table) from e
            raise BackendUnavailableError(f"{action} on {table!r} failed: {e}") from e
        except (gspread.exceptions.GSpreadException, PermissionError,
                requests.exceptions.RequestException, GoogleAuthError) as e:
            raise BackendUnavailableError(f"{action} on {table!r} failed: {e}") from e

    def _spreadsheet(self):
        if self._book is None:
            self._book = self._client.open_by_key(self.spreadsheet_id)
        return self._book

    def _worksheet(self, table):
        return self._spreadsheet().worksheet(table)

    # ── SheetBackend ─────────────────────────────────────────────────

    def list_tables(self):
        with self._call("list_tables"):
            return [ws.title for ws in self._spreadsheet().worksheets()]

    def create_table(self, name):
        with self._call("create_table", name):
            self._spreadsheet().add_worksheet(
                title=name, rows=NEW_SHEET_ROWS, cols=self.width
            )

    def read_range(self, table, start_row=1, end_row=None):
        with self._call("read_range", table):
            values = self._spreadsheet().values_get(
                a1_range(table, start_row, end_row, self.width)
            )
        return [[str(cell) for cell in row] for row in values.get("values", [])]

    def write_range(self, table, start_row, rows):
        with self._call("write_range", table):
            self._worksheet(table).update(
                range_name=f"A{start_row}",
                values=[[str(v) for v in row] for row in rows],
                value_input_option="RAW",
            )

    def append_row(self, table, row):
        with self._call("append_row", table):
            # RAW keeps numeric-looking System IDs as text
            self._worksheet(table).append_row(
                [str(v) for v in row],
                value_input_option="RAW",
                table_range="A1",
            )
