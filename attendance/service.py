"""
AttendanceService: the operations the HTTP layer maps onto the store.

    POST /attendance                     -> submit
    GET  /attendance                     -> list_records
    GET  /attendance/categories          -> list_categories
    GET  /attendance/categories/{name}   -> category_records
    GET  /attendance/export              -> export_organized

Routing, status codes and the admin gate stay with the caller.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from attendance.client import RecordStore
from attendance.columns import QUERY_PARAMS
from attendance.config import DEFAULT_EMAIL_DOMAIN, DEFAULT_EVENT_NAME, DEFAULT_TIMEZONE
from attendance.errors import ValidationError
from attendance.export import format_flat, format_organized, group_by_category
from attendance.guard import DuplicateGuard
from attendance.models import Record

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("name", "system_id", "course", "year", "section", "group", "email")

# Accepted spellings of submission keys (the web form posts camelCase)
_PAYLOAD_ALIASES = {"systemId": "system_id"}

CSV_CONTENT_TYPE = "text/csv; charset=utf-8"

_SYSTEM_ID = re.compile(r"[0-9]+")

_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?*:|"<>]')

TIMESTAMP_FORMAT = "%d/%m/%Y, %H:%M:%S"


@dataclass
class ExportFile:
    filename: str
    content: str
    content_type: str = CSV_CONTENT_TYPE


class AttendanceService:
    """Validation, timestamping and export packaging around a RecordStore."""

    def __init__(self, store: RecordStore, event_name=DEFAULT_EVENT_NAME,
                 timezone=DEFAULT_TIMEZONE, email_domain=DEFAULT_EMAIL_DOMAIN,
                 clock: Optional[Callable[[], datetime]] = None):
        self.store = store
        self.guard = DuplicateGuard(store)
        self.event_name = event_name
        self.tz = ZoneInfo(timezone)
        self.email_domain = email_domain.lower()
        self._clock = clock or (lambda: datetime.now(self.tz))

    @classmethod
    def from_settings(cls, backend, settings):
        store = RecordStore(
            backend,
            master_table=settings.master_table,
            reserved_prefixes=settings.reserved_prefixes,
        )
        return cls(store, event_name=settings.event_name,
                   timezone=settings.timezone, email_domain=settings.email_domain)

    # ── Submission ───────────────────────────────────────────────────

    def validate(self, payload: dict) -> dict:
        """Normalized submission fields, or ValidationError. No backend call."""
        data = {}
        for key, value in payload.items():
            key = _PAYLOAD_ALIASES.get(key, key)
            data[key] = "" if value is None else str(value).strip()

        missing = [f for f in REQUIRED_FIELDS if not data.get(f)]
        if missing:
            raise ValidationError("All fields are required.", fields=missing)

        if not _SYSTEM_ID.fullmatch(data["system_id"]):
            raise ValidationError(
                f"System ID must be numeric, got {data['system_id']!r}",
                fields=["system_id"],
            )
        if not data["email"].lower().endswith(self.email_domain):
            raise ValidationError(
                f"Email must be a valid {self.email_domain} address",
                fields=["email"],
            )
        return {f: data[f] for f in REQUIRED_FIELDS}

    def now(self) -> datetime:
        """Current time in the configured zone (naive clocks are taken as local)."""
        now = self._clock()
        if now.tzinfo is not None:
            now = now.astimezone(self.tz)
        return now

    def timestamp(self) -> str:
        return self.now().strftime(TIMESTAMP_FORMAT)

    def submit(self, payload: dict) -> Record:
        """Validate, reject duplicates, stamp and append one submission.

        Raises ValidationError, DuplicateKeyError, or any error of
        RecordStore.append.
        """
        data = self.validate(payload)
        self.guard.check(data["system_id"])
        record = Record(timestamp=self.timestamp(), event_name=self.event_name, **data)
        self.store.append(record, unique=True)
        logger.info("Registered %s in %s", record.system_id, record.category)
        return record

    # ── Queries ──────────────────────────────────────────────────────

    def list_records(self, **filters) -> list:
        """Master-table records matching every given filter (course, year, section, group)."""
        unknown = sorted(set(filters) - set(QUERY_PARAMS))
        if unknown:
            raise ValidationError(f"Unsupported filter: {', '.join(unknown)}", fields=unknown)
        return self.store.fetch_filtered(self.store.master_table, filters)

    def list_categories(self) -> list:
        return self.store.registry.list_category_tables()

    def category_records(self, name, group=None) -> list:
        return self.store.fetch_filtered(name, {"group": group})

    # ── Exports ──────────────────────────────────────────────────────

    def _date_stamp(self, today):
        return (today or self.now().date()).isoformat()

    def export_organized(self, today: Optional[date] = None) -> ExportFile:
        records = self.store.fetch_all(self.store.master_table)
        return ExportFile(
            filename=f"attendance_organized_{self._date_stamp(today)}.csv",
            content=format_organized(group_by_category(records)),
        )

    def export_flat(self, today: Optional[date] = None, **filters) -> ExportFile:
        return ExportFile(
            filename=f"attendance_{self._date_stamp(today)}.csv",
            content=format_flat(self.list_records(**filters)),
        )

    def export_category(self, name, today: Optional[date] = None) -> ExportFile:
        """One class's records; the filename drops characters unsafe in paths."""
        safe = _UNSAFE_FILENAME_CHARS.sub("", name)
        return ExportFile(
            filename=f"attendance_{safe}_{self._date_stamp(today)}.csv",
            content=format_flat(self.store.fetch_all(name)),
        )
