"""
Duplicate guard: one registration per System ID.

is_duplicate is a full linear scan of the master table, O(n) per check,
with no index. Checking and appending are separate round trips, so two
concurrent submissions with the same System ID can both pass the check.
Use ``RecordStore.append(record, unique=True)`` to close that window on
backends that support a conditional append.
"""

from attendance.errors import DuplicateKeyError


class DuplicateGuard:
    """Uniqueness of the business key across the master table."""

    def __init__(self, store):
        self.store = store

    def is_duplicate(self, system_id) -> bool:
        key = str(system_id)
        return any(r.system_id == key for r in self.store.fetch_all(self.store.master_table))

    def check(self, system_id):
        """Raise DuplicateKeyError if *system_id* is already registered."""
        if self.is_duplicate(system_id):
            raise DuplicateKeyError(system_id)
