"""
Typed failures surfaced by the record store.

The store never retries and never turns a partial failure into success;
the HTTP layer (or CLI) decides how each class maps to a status code.
"""


class StoreError(Exception):
    """Base class for every failure raised by the attendance store."""


class ValidationError(StoreError):
    """Rejected before any backend call. No side effect."""

    def __init__(self, message, fields=None):
        self.fields = list(fields or [])
        super().__init__(message)


class DuplicateKeyError(StoreError):
    """A record with this System ID is already in the master table."""

    def __init__(self, system_id):
        self.system_id = str(system_id)
        super().__init__(
            f"System ID {self.system_id} has already been registered for this event."
        )


class BackendUnavailableError(StoreError):
    """Network, auth or backend-side failure. Safe to retry at a higher layer."""


class BackendTimeoutError(BackendUnavailableError):
    """A backend call exceeded its bounded timeout."""


class TableNotFoundError(StoreError):
    """The named table does not exist in the backing spreadsheet."""

    def __init__(self, table):
        self.table = table
        super().__init__(f"Table {table!r} does not exist")


class TableExistsError(StoreError):
    """create_table was called for a name the backend already holds."""

    def __init__(self, table):
        self.table = table
        super().__init__(f"Table {table!r} already exists")


class PartialWriteError(StoreError):
    """The master write landed but the category write did not.

    The master table now holds a row that is missing from its category
    table. Nothing is rolled back; run ``RecordStore.reconcile()`` (or the
    ``attendance reconcile`` command) to copy the row across.
    """

    def __init__(self, record, row, written_table, failed_table, cause=None):
        self.record = record
        self.row = list(row)
        self.written_table = written_table
        self.failed_table = failed_table
        self.cause = cause
        super().__init__(
            f"Record {record.system_id} written to {written_table!r} "
            f"but not to {failed_table!r}: {cause}"
        )


class IndeterminateWriteError(StoreError):
    """A write timed out. It may or may not have been applied."""

    def __init__(self, record, table, master_written=False, cause=None):
        self.record = record
        self.table = table
        self.master_written = master_written
        self.cause = cause
        super().__init__(
            f"Write of record {record.system_id} to {table!r} timed out; "
            f"outcome unknown"
        )
