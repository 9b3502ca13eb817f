"""Command-line entry point: generate a schedule from a CSV input directory."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from roster_core import AllocationError, generate_plan, load_input, month_bounds
from roster_core.io import persist_to_db, render_xlsx, write_output

from .config import load_env

logger = logging.getLogger(__name__)


def _parse_month(value: str) -> tuple[int, int]:
    year, sep, month = value.partition("-")
    if not sep or not year.isdigit() or not month.isdigit():
        raise argparse.ArgumentTypeError(f"expected YYYY-MM, got {value!r}")
    return int(year), int(month)


def _resolve_range(args, meta: dict) -> tuple[str, str]:
    if args.month:
        start, end = month_bounds(*args.month)
        return start.isoformat(), end.isoformat()
    range_from = args.range_from or meta.get("range_from")
    range_to = args.range_to or meta.get("range_to")
    if not range_from or not range_to:
        raise ValueError("No date range: pass --month or --from/--to, or set range_from/range_to in meta.json")
    return range_from, range_to


def cmd_generate(args) -> int:
    doctors, stations, excluded_ids, meta = load_input(args.input)
    excluded_ids = excluded_ids | set(args.exclude or [])
    range_from, range_to = _resolve_range(args, meta)

    plan = generate_plan(
        range_from=range_from,
        range_to=range_to,
        doctors=doctors,
        stations=stations,
        excluded_ids=excluded_ids,
        name=meta.get("name", ""),
    )
    m = plan["metrics"]
    print(f"Plan {plan['plan_id']}: {range_from} .. {range_to}")
    print(f"  Filled: {m['filled_slots']}/{m['total_slots']} ({m['fill_rate']}%)")
    if m["unfilled_slots"]:
        stations_open = sorted({u["station_id"] for u in plan["unfilled"]})
        print(f"  Unfilled: {m['unfilled_slots']} slot(s) at {', '.join(stations_open)}")

    out_dir = Path(args.output)
    for path in write_output(plan, out_dir).values():
        print(f"  Wrote {path}")
    if args.xlsx:
        print(f"  Wrote {render_xlsx(plan, out_dir / 'plan.xlsx')}")

    db_path = args.db or os.getenv("ROSTER_DB_PATH")
    if db_path:
        schedule_id = persist_to_db(plan, Path(db_path))
        print(f"  Stored as schedule {schedule_id} in {db_path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="station-roster",
        description="Station roster: night and weekend shifts for hospital stations",
    )
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument("--log-level", default=None, help="Logging level (default: ROSTER_LOG_LEVEL or INFO)")
    sub = parser.add_subparsers(dest="command", help="Command")

    p_gen = sub.add_parser("generate", help="Generate a schedule from an input directory")
    p_gen.add_argument("--input", required=True, type=Path, help="Directory with meta.json, doctors.csv, stations.csv")
    p_gen.add_argument("--output", required=True, type=Path, help="Directory for CSV and metrics output")
    p_gen.add_argument("--from", dest="range_from", default=None, help="First day (YYYY-MM-DD)")
    p_gen.add_argument("--to", dest="range_to", default=None, help="Last day (YYYY-MM-DD)")
    p_gen.add_argument("--month", type=_parse_month, default=None, help="Whole calendar month (YYYY-MM)")
    p_gen.add_argument("--exclude", nargs="*", default=[], metavar="DOCTOR_ID", help="Doctors to leave out")
    p_gen.add_argument("--xlsx", action="store_true", help="Also render plan.xlsx")
    p_gen.add_argument("--db", default=None, help="SQLite file to store the schedule in")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1
    if args.command == "generate" and args.month and (args.range_from or args.range_to):
        parser.error("--month cannot be combined with --from/--to")

    load_env(args.env_file)
    level = (args.log_level or os.getenv("ROSTER_LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    dispatch = {
        "generate": cmd_generate,
    }
    try:
        return dispatch[args.command](args)
    except (AllocationError, FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":
    sys.exit(main())
