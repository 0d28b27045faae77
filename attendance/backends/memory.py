"""
In-process backend. Used by the test-suite and for dry runs of the CLI.
"""

import threading
from typing import Optional

from attendance.backends.base import SheetBackend
from attendance.errors import TableExistsError, TableNotFoundError


class MemoryBackend(SheetBackend):
    """Tables held as lists of rows in a dict (insertion-ordered).

    The lock stands in for the atomicity a real spreadsheet service gives a
    single request; it does not serialize check-then-act sequences made by
    the store across several calls.
    """

    supports_conditional_append = True

    def __init__(self, tables=None):
        self._tables: dict[str, list] = {}
        self._lock = threading.Lock()
        for name in tables or ():
            self._tables[name] = []

    def _rows(self, table):
        try:
            return self._tables[table]
        except KeyError:
            raise TableNotFoundError(table) from None

    def list_tables(self):
        with self._lock:
            return list(self._tables)

    def create_table(self, name):
        with self._lock:
            if name in self._tables:
                raise TableExistsError(name)
            self._tables[name] = []

    def read_range(self, table, start_row=1, end_row: Optional[int] = None):
        with self._lock:
            rows = self._rows(table)
            stop = len(rows) if end_row is None else end_row
            return [list(r) for r in rows[start_row - 1:stop]]

    def write_range(self, table, start_row, rows):
        with self._lock:
            existing = self._rows(table)
            for offset, row in enumerate(rows):
                index = start_row - 1 + offset
                while len(existing) <= index:
                    existing.append([])
                existing[index] = [str(v) for v in row]

    def append_row(self, table, row):
        with self._lock:
            self._append(self._rows(table), row)

    def append_row_if_absent(self, table, row, key_index):
        with self._lock:
            rows = self._rows(table)
            key = str(row[key_index])
            for existing in rows[1:]:
                if key_index < len(existing) and existing[key_index] == key:
                    return False
            self._append(rows, row)
            return True

    @staticmethod
    def _append(rows, row):
        # Like a spreadsheet append: land after the last non-empty row
        last = len(rows)
        while last and not any(rows[last - 1]):
            last -= 1
        del rows[last:]
        rows.append([str(v) for v in row])
