"""
RecordStore: append-only attendance records over a SheetBackend.

Every record is written twice: to the master table, then to its category
table ``{Course}_{Section}``. The two writes are not a transaction. If the
category write fails after the master write, PartialWriteError is raised
and the master row is kept (there is no delete); reconcile() repairs it.
"""

import logging
from collections import Counter

from attendance.codec import decode, encode
from attendance.columns import FIELD_BY_COLUMN, KEY_INDEX, resolve_column
from attendance.errors import (
    BackendTimeoutError,
    DuplicateKeyError,
    IndeterminateWriteError,
    PartialWriteError,
    StoreError,
    TableNotFoundError,
)
from attendance.registry import (
    DEFAULT_MASTER_TABLE,
    DEFAULT_RESERVED_PREFIXES,
    TableRegistry,
    category_name,
)
from attendance.schema import SchemaManager

logger = logging.getLogger(__name__)


class RecordStore:
    """
    Reads and dual-writes Records.

    Holds no state besides its collaborators: no cache, no locks. Every
    method is one or more independent backend round trips.

    Usage:
        store = RecordStore(MemoryBackend())
        store.initialize()
        store.append(record)
        store.fetch_filtered("Attendance", {"Course": "B.Tech"})
    """

    def __init__(self, backend, master_table=DEFAULT_MASTER_TABLE,
                 reserved_prefixes=DEFAULT_RESERVED_PREFIXES):
        self.backend = backend
        self.master_table = master_table
        self.schema = SchemaManager(backend)
        self.registry = TableRegistry(
            backend, self.schema,
            master_table=master_table,
            reserved_prefixes=reserved_prefixes,
        )

    def initialize(self):
        """Create the master table on backends that start empty.

        A Google spreadsheet normally has it already; this is then a no-op.
        """
        created = self.registry.ensure_table(self.master_table)
        if not created:
            self.schema.ensure_header(self.master_table)
        return created

    # ── Reads ─────────────────────────────────────────────────────────

    def fetch_all(self, table) -> list:
        """Every data row of *table* as Records, in row (insertion) order.

        A missing table and an empty table both give [].
        """
        try:
            rows = self.backend.read_range(table, 1)
        except TableNotFoundError:
            return []
        if len(rows) <= 1:
            return []
        header = rows[0] if any(rows[0]) else self.schema.columns
        # Blank rows in the grid are not records
        return [decode(row, header) for row in rows[1:] if any(row)]

    def fetch_filtered(self, table, filters=None) -> list:
        """fetch_all(table) narrowed by exact, case-sensitive column matches.

        *filters* maps a column ("Course") or field name ("course") to the
        required value; all entries must match. None or "" values are
        ignored, as an omitted query parameter would be.
        """
        wanted = {}
        for key, value in (filters or {}).items():
            if value is None or value == "":
                continue
            wanted[resolve_column(key)] = str(value)
        records = self.fetch_all(table)
        if not wanted:
            return records
        return [r for r in records if _matches(r, wanted)]

    # ── Writes ────────────────────────────────────────────────────────

    def append(self, record, unique=False):
        """Write *record* to the master table and to its category table.

        With ``unique=True`` and a backend that supports it, the master
        write is a server-side conditional append on System ID and a
        DuplicateKeyError is raised if the key is already present.

        Raises:
            BackendUnavailableError: before the master write; nothing written.
            IndeterminateWriteError: a write timed out.
            PartialWriteError: master written, category write failed.
        """
        row = encode(record)
        category = category_name(record.course, record.section)

        self.schema.ensure_header(self.master_table)
        try:
            if unique and self.backend.supports_conditional_append:
                if not self.backend.append_row_if_absent(self.master_table, row, KEY_INDEX):
                    raise DuplicateKeyError(record.system_id)
            else:
                self.backend.append_row(self.master_table, row)
        except BackendTimeoutError as e:
            raise IndeterminateWriteError(record, self.master_table, cause=e) from e
        logger.info("Appended %s to %r", record.system_id, self.master_table)

        try:
            self.registry.ensure_table(category)
            self.backend.append_row(category, row)
        except BackendTimeoutError as e:
            raise IndeterminateWriteError(
                record, category, master_written=True, cause=e
            ) from e
        except StoreError as e:
            logger.warning(
                "Partial write: %s is in %r but not in %r (%s)",
                record.system_id, self.master_table, category, e,
            )
            raise PartialWriteError(record, row, self.master_table, category, cause=e) from e
        logger.info("Appended %s to %r", record.system_id, category)

    def reconcile(self) -> list:
        """Copy master rows that are missing from their category tables.

        Meant to be run by an operator after a PartialWriteError, never
        automatically. Returns the (table, record) pairs that were appended.
        """
        master = self.fetch_all(self.master_table)
        by_category = {}
        for record in master:
            by_category.setdefault(record.category, []).append(record)

        repaired = []
        for table, records in by_category.items():
            present = Counter(tuple(encode(r)) for r in self.fetch_all(table))
            for record in records:
                key = tuple(encode(record))
                if present[key]:
                    present[key] -= 1
                    continue
                self.registry.ensure_table(table)
                self.backend.append_row(table, encode(record))
                logger.info("Reconciled %s into %r", record.system_id, table)
                repaired.append((table, record))
        return repaired


def _matches(record, wanted):
    return all(getattr(record, FIELD_BY_COLUMN[c]) == v for c, v in wanted.items())
