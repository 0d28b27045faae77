"""
Storage backends for the attendance store.

Google Sheets and PostgreSQL backends import their client libraries on
first use through build_backend (attendance.config), so the in-memory
backend works without them.
"""

from attendance.backends.base import DEFAULT_TIMEOUT, SheetBackend
from attendance.backends.memory import MemoryBackend
