"""
CSV exports of attendance records.

format_organized produces one block per (Course, Section):

    COURSE,B.Tech
    SECTION,A
    TOTAL STUDENTS,2

    "Timestamp","Name",...
    "19/10/2026, 10:01:02","Asha",...

with a blank line between blocks. Blocks are ordered by Course then
Section using plain string comparison ("B10" < "B2"); rows inside a block
keep their input (chronological) order.
"""

import csv
import io
from dataclasses import dataclass, field

from attendance.codec import encode
from attendance.columns import CANONICAL_COLUMNS


@dataclass
class CategoryGroup:
    """Records of one (Course, Section) pair, in input order."""
    course: str
    section: str
    records: list = field(default_factory=list)

    @property
    def key(self):
        return (self.course, self.section)

    @property
    def name(self):
        return f"{self.course}_{self.section}"

    def __len__(self):
        return len(self.records)


def _writer(buf):
    return csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")


def quote_row(values) -> str:
    """One CSV line, every field quoted, no line terminator."""
    buf = io.StringIO()
    _writer(buf).writerow(["" if v is None else v for v in values])
    return buf.getvalue()[:-1]



def group_by_category(records) -> list:
    """Group by (Course, Section) and order the groups by that pair."""
    groups = {}
    for record in records:
        key = (record.course, record.section)
        if key not in groups:
            groups[key] = CategoryGroup(record.course, record.section)
        groups[key].records.append(record)
    return [groups[k] for k in sorted(groups)]


def _write_table(buf, records):
    writer = _writer(buf)
    writer.writerow(CANONICAL_COLUMNS)
    writer.writerows(encode(r) for r in records)


def format_organized(groups) -> str:
    """Grouped export; *groups* as returned by group_by_category."""
    buf = io.StringIO()
    for i, group in enumerate(groups):
        if i:
            buf.write("\n")
        # Preamble lines are plain text, not quoted CSV
        buf.write(f"COURSE,{group.course}\n")
        buf.write(f"SECTION,{group.section}\n")
        buf.write(f"TOTAL STUDENTS,{len(group.records)}\n\n")
        _write_table(buf, group.records)
    return buf.getvalue()


def format_flat(records) -> str:
    """Header line plus one quoted row per record, no grouping."""
    buf = io.StringIO()
    _write_table(buf, records)
    return buf.getvalue()
