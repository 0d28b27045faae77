"""
SheetBackend ABC: the storage primitives the record store depends on.

A backend is a spreadsheet: a set of named tables, each an ordered list of
rows addressed from 1. Concrete implementations (Google Sheets, PostgreSQL,
in-memory) live in sibling modules; the store only ever sees this interface.

Every method is one fallible round trip. Implementations translate their own
library errors into attendance.errors:

- TableNotFoundError      named table is missing
- TableExistsError        create_table on a name already present
- BackendTimeoutError     the bounded per-call timeout elapsed
- BackendUnavailableError any other network / auth / backend failure
"""

from abc import ABC, abstractmethod
from typing import Optional

DEFAULT_TIMEOUT = 10.0


class SheetBackend(ABC):
    """Backend-swappable tabular storage."""

    #: True when append_row_if_absent is an atomic server-side operation.
    supports_conditional_append = False

    # ── Tables ───────────────────────────────────────────────────────

    @abstractmethod
    def list_tables(self) -> list:
        """Names of all tables, in backend-native order."""

    @abstractmethod
    def create_table(self, name: str) -> None:
        """Create an empty table. Raises TableExistsError if *name* is taken."""

    # ── Rows ─────────────────────────────────────────────────────────

    @abstractmethod
    def read_range(self, table: str, start_row: int = 1,
                   end_row: Optional[int] = None) -> list:
        """Rows *start_row*..*end_row* (1-based, inclusive) as lists of strings.

        ``end_row=None`` reads to the last row. Trailing empty cells may be
        trimmed, so callers must not rely on row width.
        """

    @abstractmethod
    def write_range(self, table: str, start_row: int, rows: list) -> None:
        """Overwrite rows starting at *start_row* with *rows*."""

    @abstractmethod
    def append_row(self, table: str, row: list) -> None:
        """Append *row* after the last non-empty row of *table*."""

    def append_row_if_absent(self, table: str, row: list, key_index: int) -> bool:
        """Append *row* unless a data row already holds ``row[key_index]``
        in that position. Returns False when the key was present.

        Only backends with ``supports_conditional_append`` implement this.
        """
        raise NotImplementedError(
            f"{type(self).__name__} has no conditional append"
        )

    # ── Lifecycle ────────────────────────────────────────────────────

    def close(self) -> None:
        """Release any connection held by the backend."""

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
