"""
Configuration: constants, environment variables, backend selection.

Environment variables:
    ATTENDANCE_BACKEND            sheets | postgres | memory   (default: sheets)
    SPREADSHEET_ID                Google spreadsheet key (sheets backend)
    SHEET_NAME                    master table name           (default: Attendance)
    ATTENDANCE_EVENT_NAME         value of the Event Name column
    ATTENDANCE_TIMEOUT            per-call backend timeout, seconds (default: 10)
    ATTENDANCE_TIMEZONE           timestamp zone              (default: Asia/Kolkata)
    ATTENDANCE_RESERVED_PREFIXES  comma-separated table-name prefixes hidden
                                  from the category list      (default: Sheet)
    ATTENDANCE_EMAIL_DOMAIN       required email suffix       (default: sharda.ac.in)
    ATTENDANCE_PG_DSN             PostgreSQL DSN (postgres backend); when unset an
                                  embedded server is started in ATTENDANCE_PG_DATA_DIR
    ATTENDANCE_LOG_LEVEL          logging level for the CLI   (default: WARNING)
    GOOGLE_PROJECT_ID, GOOGLE_PRIVATE_KEY_ID, GOOGLE_PRIVATE_KEY,
    GOOGLE_CLIENT_EMAIL, GOOGLE_CLIENT_ID
                                  service-account credentials (sheets backend)
"""

import os
from dataclasses import dataclass, field
from typing import Optional

from attendance.backends.base import DEFAULT_TIMEOUT
from attendance.errors import ValidationError
from attendance.registry import DEFAULT_MASTER_TABLE, DEFAULT_RESERVED_PREFIXES

DEFAULT_EVENT_NAME = "Emerging Trends in AI, Security & Image Analysis"
DEFAULT_TIMEZONE = "Asia/Kolkata"
DEFAULT_EMAIL_DOMAIN = "sharda.ac.in"

BACKENDS = ("sheets", "postgres", "memory")

_GOOGLE_ENV = {
    "project_id": "GOOGLE_PROJECT_ID",
    "private_key_id": "GOOGLE_PRIVATE_KEY_ID",
    "private_key": "GOOGLE_PRIVATE_KEY",
    "client_email": "GOOGLE_CLIENT_EMAIL",
    "client_id": "GOOGLE_CLIENT_ID",
}


@dataclass
class Settings:
    backend: str = "sheets"
    spreadsheet_id: Optional[str] = None
    master_table: str = DEFAULT_MASTER_TABLE
    event_name: str = DEFAULT_EVENT_NAME
    timeout: float = DEFAULT_TIMEOUT
    timezone: str = DEFAULT_TIMEZONE
    email_domain: str = DEFAULT_EMAIL_DOMAIN
    reserved_prefixes: tuple = DEFAULT_RESERVED_PREFIXES
    pg_dsn: Optional[str] = None
    pg_data_dir: Optional[str] = None
    log_level: str = "WARNING"
    google: dict = field(default_factory=dict)

    @classmethod
    def from_env(cls, environ=None) -> "Settings":
        env = os.environ if environ is None else environ
        backend = env.get("ATTENDANCE_BACKEND", "sheets").strip().lower()
        if backend not in BACKENDS:
            raise ValidationError(
                f"ATTENDANCE_BACKEND must be one of {', '.join(BACKENDS)}, got {backend!r}",
                fields=["ATTENDANCE_BACKEND"],
            )
        raw_timeout = env.get("ATTENDANCE_TIMEOUT", str(DEFAULT_TIMEOUT))
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise ValidationError(
                f"ATTENDANCE_TIMEOUT must be a number, got {raw_timeout!r}",
                fields=["ATTENDANCE_TIMEOUT"],
            ) from None
        prefixes = env.get("ATTENDANCE_RESERVED_PREFIXES")
        return cls(
            backend=backend,
            spreadsheet_id=env.get("SPREADSHEET_ID") or None,
            master_table=env.get("SHEET_NAME") or DEFAULT_MASTER_TABLE,
            event_name=env.get("ATTENDANCE_EVENT_NAME") or DEFAULT_EVENT_NAME,
            timeout=timeout,
            timezone=env.get("ATTENDANCE_TIMEZONE") or DEFAULT_TIMEZONE,
            email_domain=env.get("ATTENDANCE_EMAIL_DOMAIN") or DEFAULT_EMAIL_DOMAIN,
            reserved_prefixes=(
                tuple(p.strip() for p in prefixes.split(",") if p.strip())
                if prefixes is not None else DEFAULT_RESERVED_PREFIXES
            ),
            pg_dsn=env.get("ATTENDANCE_PG_DSN") or None,
            pg_data_dir=env.get("ATTENDANCE_PG_DATA_DIR") or None,
            log_level=env.get("ATTENDANCE_LOG_LEVEL", "WARNING").upper(),
            google={k: env[v] for k, v in _GOOGLE_ENV.items() if env.get(v)},
        )

    def service_account_info(self) -> dict:
        """Service-account dict for google-auth, built from GOOGLE_* variables."""
        missing = [_GOOGLE_ENV[k] for k in ("private_key", "client_email")
                   if not self.google.get(k)]
        if missing:
            raise ValidationError(
                f"Missing Google credentials: {', '.join(missing)}", fields=missing
            )
        info = {
            "type": "service_account",
            "token_uri": "https://oauth2.googleapis.com/token",
            **self.google,
        }
        # .env files carry the PEM key with escaped newlines
        info["private_key"] = info["private_key"].replace("\\n", "\n")
        return info


def build_backend(settings: Settings):
    """Instantiate the backend named by ``settings.backend``.

    Returns ``(backend, server)``; *server* is the embedded SheetServer the
    caller must stop, or None.
    """
    if settings.backend == "memory":
        from attendance.backends.memory import MemoryBackend
        return MemoryBackend(), None

    if settings.backend == "postgres":
        from attendance.backends.postgres import PostgresBackend
        if settings.pg_dsn:
            return PostgresBackend(settings.pg_dsn, timeout=settings.timeout), None
        from attendance.server import SheetServer
        server = SheetServer(data_dir=settings.pg_data_dir).start()
        return server.backend(timeout=settings.timeout), server

    from attendance.backends.sheets import GoogleSheetsBackend
    if not settings.spreadsheet_id:
        raise ValidationError("SPREADSHEET_ID is not set", fields=["SPREADSHEET_ID"])
    return GoogleSheetsBackend.from_service_account(
        settings.service_account_info(),
        settings.spreadsheet_id,
        timeout=settings.timeout,
    ), None
