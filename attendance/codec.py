"""
Record <-> positional row conversion.

Rows follow the canonical column order. Decoding goes by header name, so a
table whose physical columns carry extra headers still decodes; unknown
columns are ignored and missing cells become "".
"""

from attendance.columns import COLUMNS, CANONICAL_COLUMNS, FIELD_BY_COLUMN, resolve_column
from attendance.models import Record


def encode(record: Record) -> list:
    """Record -> row in canonical column order."""
    row = []
    for col in COLUMNS:
        value = getattr(record, col.field)
        row.append("" if value is None else str(value))
    return row


def decode(row, column_names=CANONICAL_COLUMNS) -> Record:
    """Row -> Record, pairing ``column_names[i]`` with ``row[i]``."""
    values = {}
    for i, column in enumerate(column_names):
        field = FIELD_BY_COLUMN.get(column)
        if field is None:
            continue
        cell = row[i] if i < len(row) else ""
        values[field] = "" if cell is None else str(cell)
    return Record(**values)


def record_to_dict(record: Record) -> dict:
    """Column-keyed dict, canonical order. This is the JSON shape list endpoints return."""
    return {col.name: getattr(record, col.field) for col in COLUMNS}


def record_from_dict(data: dict) -> Record:
    """Build a Record from a dict keyed by header names or field names."""
    values = {}
    for key, value in data.items():
        values[FIELD_BY_COLUMN[resolve_column(key)]] = value
    return Record(**values)
