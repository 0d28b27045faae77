"""
Tests for the CSV export grouper and formatters.

Run with: pytest tests/test_export.py -v
"""

import csv
import io

from attendance.columns import CANONICAL_COLUMNS
from attendance.export import (
    format_flat,
    format_organized,
    group_by_category,
    quote_row,
)
from attendance.models import Record

HEADER_LINE = ",".join(f'"{c}"' for c in CANONICAL_COLUMNS)


def rec(sid, course, section, name=None):
    return Record(
        timestamp="19/10/2026, 09:00:00", name=name or f"S{sid}", system_id=str(sid),
        course=course, year="1", section=section, group="G1",
        email=f"{sid}@sharda.ac.in", event_name="Expo",
    )


# ── Quoting ──────────────────────────────────────────────────────────────────

class TestQuoting:
    def test_plain(self):
        assert quote_row(["abc"]) == '"abc"'

    def test_internal_quotes_doubled(self):
        assert quote_row(['say "hi"']) == '"say ""hi"""'

    def test_comma_and_empty(self):
        assert quote_row(["a,b", "", None]) == '"a,b","",""'


# ── Grouping ─────────────────────────────────────────────────────────────────

class TestGroupByCategory:
    def test_group_order(self):
        records = [
            rec(1, "M.Tech", "B"), rec(2, "B.Tech", "B"),
            rec(3, "M.Tech", "A"), rec(4, "B.Tech", "A"),
        ]
        groups = group_by_category(records)
        assert [g.key for g in groups] == [
            ("B.Tech", "A"), ("B.Tech", "B"), ("M.Tech", "A"), ("M.Tech", "B"),
        ]

    def test_within_group_insertion_order(self):
        records = [rec(9, "B.Tech", "A"), rec(1, "M.Tech", "A"), rec(5, "B.Tech", "A")]
        groups = group_by_category(records)
        assert [r.system_id for r in groups[0].records] == ["9", "5"]

    def test_plain_string_ordering(self):
        records = [rec(1, "B2", "A"), rec(2, "B10", "A")]
        assert [g.course for g in group_by_category(records)] == ["B10", "B2"]

    def test_group_name_and_len(self):
        (g,) = group_by_category([rec(1, "BCA", "C"), rec(2, "BCA", "C")])
        assert g.name == "BCA_C"
        assert len(g) == 2

    def test_empty(self):
        assert group_by_category([]) == []


# ── Formatting ───────────────────────────────────────────────────────────────

class TestFormatOrganized:
    def test_single_group_layout(self):
        out = format_organized(group_by_category([rec(1, "B.Tech", "A")]))
        assert out.splitlines() == [
            "COURSE,B.Tech",
            "SECTION,A",
            "TOTAL STUDENTS,1",
            "",
            HEADER_LINE,
            '"19/10/2026, 09:00:00","S1","1","B.Tech","1","A","G1","1@sharda.ac.in","Expo"',
        ]

    def test_blank_line_between_groups_only(self):
        out = format_organized(group_by_category([rec(1, "B.Tech", "A"), rec(2, "M.Tech", "B")]))
        lines = out.splitlines()
        assert lines[0] == "COURSE,B.Tech"
        i = lines.index("COURSE,M.Tech")
        assert lines[i - 1] == ""
        assert lines[i - 2] != ""
        assert out.endswith("\n")
        assert not out.endswith("\n\n")

    def test_counts(self):
        records = [rec(1, "B.Tech", "A"), rec(2, "B.Tech", "A"), rec(3, "M.Tech", "B")]
        lines = format_organized(group_by_category(records)).splitlines()
        assert [l for l in lines if l.startswith("TOTAL")] == [
            "TOTAL STUDENTS,2", "TOTAL STUDENTS,1",
        ]

    def test_quotes_in_names(self):
        out = format_organized(group_by_category([rec(1, "B.Tech", "A", name='Ana "AJ" Joy')]))
        assert '"Ana ""AJ"" Joy"' in out

    def test_no_groups(self):
        assert format_organized([]) == ""


class TestFormatFlat:
    def test_parses_back_with_csv_reader(self):
        tricky = rec(1, "B.Tech", "A", name='Ana "AJ", Joy\nRow')
        rows = list(csv.reader(io.StringIO(format_flat([tricky]))))
        assert rows[0] == list(CANONICAL_COLUMNS)
        assert rows[1][1] == 'Ana "AJ", Joy\nRow'
        assert len(rows) == 2

    def test_header_then_rows(self):
        out = format_flat([rec(2, "M.Tech", "B"), rec(1, "B.Tech", "A")])
        lines = out.splitlines()
        assert lines[0] == HEADER_LINE
        assert len(lines) == 3
        # No reordering in the flat export
        assert '"2"' in lines[1]
        assert '"1"' in lines[2]

    def test_empty_has_header(self):
        assert format_flat([]) == HEADER_LINE + "\n"
