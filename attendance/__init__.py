"""
Spreadsheet-backed attendance record store: a master table of every
submission plus per-Course_Section tables, over a swappable backend.
"""

from attendance.client import RecordStore
from attendance.models import Record
from attendance.service import AttendanceService
