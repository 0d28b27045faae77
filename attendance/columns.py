"""
Canonical column catalog.

Every table (master and category) carries exactly these columns, in this
order, as its header row. ColumnDef ties the header text stored in the
spreadsheet to the Record attribute it fills.
"""

import dataclasses
from typing import Optional

from attendance.errors import ValidationError


@dataclasses.dataclass(frozen=True)
class ColumnDef:
    """One column of the canonical header."""

    name: str                   # header text as written to row 1
    field: str                  # Record attribute
    description: str = ""
    query_param: Optional[str] = None  # filter key accepted by list queries


COLUMNS = (
    ColumnDef("Timestamp", "timestamp",
              description="Server-side submission time, Asia/Kolkata"),
    ColumnDef("Name", "name", description="Attendee full name"),
    ColumnDef("System ID", "system_id",
              description="University system ID; business key, stored as text"),
    ColumnDef("Course", "course", description="Programme, e.g. B.Tech",
              query_param="course"),
    ColumnDef("Year", "year", description="Year of study",
              query_param="year"),
    ColumnDef("Section", "section", description="Single-letter section",
              query_param="section"),
    ColumnDef("Group", "group", description="Lab/tutorial group",
              query_param="group"),
    ColumnDef("Sharda Email", "email", description="Institutional email"),
    ColumnDef("Event Name", "event_name", description="Constant per deployment"),
)

CANONICAL_COLUMNS = tuple(c.name for c in COLUMNS)

FIELD_BY_COLUMN = {c.name: c.field for c in COLUMNS}
COLUMN_BY_FIELD = {c.field: c.name for c in COLUMNS}

QUERY_COLUMNS = tuple(c for c in COLUMNS if c.query_param)
QUERY_PARAMS = tuple(c.query_param for c in QUERY_COLUMNS)

# Position of the business key inside an encoded row
KEY_COLUMN = "System ID"
KEY_INDEX = CANONICAL_COLUMNS.index(KEY_COLUMN)


def resolve_column(key: str) -> str:
    """Map a header name ("Course") or field name ("course") to the header name.

    Raises ValidationError for keys that name no canonical column.
    """
    if key in FIELD_BY_COLUMN:
        return key
    if key in COLUMN_BY_FIELD:
        return COLUMN_BY_FIELD[key]
    raise ValidationError(f"Unknown column: {key!r}", fields=[key])
