"""
Header management: every table's row 1 is the canonical column list.

ensure_header is a check-before-write. Two callers racing on an empty table
can both see it empty and both write row 1; since they write the same
values to the same cells, the result is still a single correct header.
"""

import logging

from attendance.columns import CANONICAL_COLUMNS

logger = logging.getLogger(__name__)


class SchemaManager:
    """Reads and initializes header rows on a SheetBackend."""

    def __init__(self, backend, columns=CANONICAL_COLUMNS):
        self.backend = backend
        self.columns = list(columns)

    def header_of(self, table):
        """Current header row of *table* ([] when row 1 is empty)."""
        rows = self.backend.read_range(table, 1, 1)
        return [c for c in rows[0]] if rows else []

    def ensure_header(self, table):
        """Write the canonical header to row 1 of *table* if row 1 is empty.

        Returns True when the header was written by this call. A non-empty
        header is left as-is, even if it differs from the canonical list.
        """
        existing = self.header_of(table)
        if any(existing):
            if existing != self.columns:
                logger.warning(
                    "Table %r has a non-canonical header %r", table, existing
                )
            return False
        self.backend.write_range(table, 1, [self.columns])
        logger.info("Wrote header row to table %r", table)
        return True
