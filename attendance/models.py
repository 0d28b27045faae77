"""
Attendance record: the only entity the store persists.
"""

from dataclasses import dataclass, fields
from typing import Optional


@dataclass(frozen=True)
class Record:
    """A single attendance submission.

    Built once at submission time and never updated. Every value is held
    as text; ``year`` may be omitted and is then stored as "".
    """
    timestamp: str = ""
    name: str = ""
    system_id: str = ""
    course: str = ""
    year: Optional[str] = ""
    section: str = ""
    group: str = ""
    email: str = ""
    event_name: str = ""

    def __post_init__(self):
        # Normalize to text so SystemID 1001 and "1001" are the same record
        for f in fields(self):
            value = getattr(self, f.name)
            object.__setattr__(self, f.name, "" if value is None else str(value))

    @property
    def category(self) -> str:
        """Category table name, ``{Course}_{Section}``."""
        return f"{self.course}_{self.section}"
