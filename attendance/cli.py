"""
Command-line access to the attendance store.

    attendance submit --name "Asha Rao" --system-id 2023001 --course B.Tech \
        --year 2 --section A --group G1 --email asha@ug.sharda.ac.in
    attendance list [--course B.Tech] [--year 2] [--section A] [--group G1]
    attendance categories
    attendance category B.Tech_A [--group G1]
    attendance export [--flat] [-o FILE]
    attendance reconcile

Backend and credentials come from the environment (see attendance.config).
"""

import argparse
import json
import logging
import sys

from attendance import config
from attendance.codec import record_to_dict
from attendance.columns import QUERY_COLUMNS, QUERY_PARAMS
from attendance.errors import (
    DuplicateKeyError,
    IndeterminateWriteError,
    PartialWriteError,
    StoreError,
    ValidationError,
)
from attendance.service import AttendanceService

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_BACKEND = 1
EXIT_VALIDATION = 2
EXIT_DUPLICATE = 3
EXIT_INCONSISTENT = 4


def build_parser():
    parser = argparse.ArgumentParser(prog="attendance", description="Event attendance store")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("submit", help="Register one attendee")
    p.add_argument("--name", required=True)
    p.add_argument("--system-id", required=True)
    p.add_argument("--course", required=True)
    p.add_argument("--year", required=True)
    p.add_argument("--section", required=True)
    p.add_argument("--group", required=True)
    p.add_argument("--email", required=True)

    p = sub.add_parser("list", help="Records of the master table, optionally filtered")
    for column in QUERY_COLUMNS:
        p.add_argument(f"--{column.query_param}", help=column.description)

    sub.add_parser("categories", help="Course_Section tables")

    p = sub.add_parser("category", help="Records of one Course_Section table")
    p.add_argument("name")
    p.add_argument("--group")

    p = sub.add_parser("export", help="Write a CSV export")
    p.add_argument("--flat", action="store_true", help="single table, no grouping")
    p.add_argument("--category", help="export one Course_Section table")
    p.add_argument("-o", "--output", help="file path (default: dated filename)")

    sub.add_parser("reconcile", help="Copy master rows missing from category tables")
    return parser


def _print_records(records):
    rows = [record_to_dict(r) for r in records]
    print(json.dumps({"count": len(rows), "data": rows}, indent=2, ensure_ascii=False))


def run(args, service):
    if args.command == "submit":
        record = service.submit({
            "name": args.name, "system_id": args.system_id, "course": args.course,
            "year": args.year, "section": args.section, "group": args.group,
            "email": args.email,
        })
        print(f"Attendance submitted for {record.system_id} ({record.category}).")
    elif args.command == "list":
        _print_records(service.list_records(
            **{name: getattr(args, name) for name in QUERY_PARAMS}
        ))
    elif args.command == "categories":
        names = service.list_categories()
        print(json.dumps({"count": len(names), "data": names}, indent=2))
    elif args.command == "category":
        _print_records(service.category_records(args.name, group=args.group))
    elif args.command == "export":
        if args.category:
            export = service.export_category(args.category)
        elif args.flat:
            export = service.export_flat()
        else:
            export = service.export_organized()
        path = args.output or export.filename
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(export.content)
        print(f"Wrote {path}")
    elif args.command == "reconcile":
        repaired = service.store.reconcile()
        for table, record in repaired:
            print(f"  {record.system_id} -> {table}")
        print(f"Reconciled {len(repaired)} row(s).")
    return EXIT_OK


def main(argv=None, environ=None):
    args = build_parser().parse_args(argv)
    try:
        settings = config.Settings.from_env(environ)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_VALIDATION
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    server = None
    try:
        backend, server = config.build_backend(settings)
        with backend:
            service = AttendanceService.from_settings(backend, settings)
            if settings.backend != "sheets":
                service.store.initialize()
            return run(args, service)
    except ValidationError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_VALIDATION
    except DuplicateKeyError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_DUPLICATE
    except (PartialWriteError, IndeterminateWriteError) as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_INCONSISTENT
    except StoreError as e:
        logger.debug("backend failure", exc_info=True)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_BACKEND
    finally:
        if server is not None:
            server.stop()


if __name__ == "__main__":
    sys.exit(main())
