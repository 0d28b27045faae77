"""
Table registry: which tables exist, and lazy creation of category tables.

Tables are discovered from the backend by name on every call; nothing is
cached. ensure_table is check-then-create: two concurrent callers for the
same new category can both try to create it. Whatever the backend does
with the second create (reject it, or keep a duplicate) is accepted; a
rejection arrives as TableExistsError and is treated as success.
"""

import logging

from attendance.errors import TableExistsError

logger = logging.getLogger(__name__)

DEFAULT_MASTER_TABLE = "Attendance"
DEFAULT_RESERVED_PREFIXES = ("Sheet",)


def category_name(course, section) -> str:
    """Category table name: literal ``{course}_{section}``, unsanitized."""
    return f"{course}_{section}"


class TableRegistry:
    """String-keyed view over the backend's tables."""

    def __init__(self, backend, schema, master_table=DEFAULT_MASTER_TABLE,
                 reserved_prefixes=DEFAULT_RESERVED_PREFIXES):
        self.backend = backend
        self.schema = schema
        self.master_table = master_table
        self.reserved_prefixes = tuple(reserved_prefixes)

    def list_tables(self) -> list:
        """All table names in backend-native order."""
        return list(self.backend.list_tables())

    def exists(self, name) -> bool:
        return name in self.list_tables()

    def ensure_table(self, name) -> bool:
        """Create *name* unless it already exists, then ensure its header.

        The header is checked on every call, so a table whose creator failed
        or has not yet written row 1 gets its header before any data row.
        Returns True when this call created the table.
        """
        created = False
        if not self.exists(name):
            try:
                self.backend.create_table(name)
                created = True
                logger.info("Created table %r", name)
            except TableExistsError:
                logger.warning("Table %r was created concurrently", name)
        self.schema.ensure_header(name)
        return created

    def is_category_table(self, name) -> bool:
        if name == self.master_table:
            return False
        return not any(name.startswith(p) for p in self.reserved_prefixes)

    def list_category_tables(self) -> list:
        """Category table names, sorted lexicographically."""
        return sorted(n for n in self.list_tables() if self.is_category_table(n))
