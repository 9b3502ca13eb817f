from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Sequence
from datetime import date
from typing import Any
from uuid import uuid4

from .constraints import eligible_doctors, ensure_unique_ids
from .errors import NoAvailableDoctors, NoStations
from .models import (
    WEEKDAY,
    WEEKEND,
    AllocationResult,
    Doctor,
    LoadLedger,
    Shift,
    Station,
    UnfilledSlot,
)
from .time_utils import iter_days, now_utc_iso, parse_iso_date, shift_hours, shift_kind, shift_window

logger = logging.getLogger(__name__)


def resolve_doctor_pool(doctors: Sequence[Doctor], excluded_ids: Iterable[str] = ()) -> list[Doctor]:
    """All doctors minus the excluded ones, input order preserved."""
    excluded = {str(v) for v in excluded_ids}
    known = {d.id for d in doctors}
    unknown = sorted(excluded - known)
    if unknown:
        logger.debug("Ignoring unknown excluded doctor ids: %s", ", ".join(unknown))
    return [d for d in doctors if d.id not in excluded]


def select_doctor(eligible: Sequence[Doctor], ledger: LoadLedger, day: date) -> Doctor:
    """Pick the least-loaded doctor and book the day against them.

    sorted() is stable, so equal loads keep the eligible list's order.
    """
    if not eligible:
        raise ValueError("select_doctor needs at least one eligible doctor")
    ranked = sorted(eligible, key=lambda doc: ledger.count(doc.id))
    chosen = ranked[0]
    ledger.record(chosen.id, day)
    return chosen


def emit_shift(day: date, station: Station, doctor: Doctor) -> Shift:
    start, end = shift_window(day)
    return Shift(
        station_id=station.id,
        doctor_id=doctor.id,
        date=day,
        start=start,
        end=end,
        kind=shift_kind(day),
    )


def generate_schedule(
    start: date,
    end: date,
    doctors: Sequence[Doctor],
    stations: Sequence[Station],
    excluded_ids: Iterable[str] = (),
) -> AllocationResult:
    """Assign one doctor per station per day over [start, end].

    Days are walked in ascending order and stations in the given order; the
    ledger is updated after every pick so the next station on the same day
    sees the new load. Preconditions are checked before any work and raise an
    AllocationError subclass; once they pass the run always completes.
    """
    days = iter_days(start, end)
    ensure_unique_ids(doctors, "doctor")
    ensure_unique_ids(stations, "station")

    pool = resolve_doctor_pool(doctors, excluded_ids)
    if not pool:
        raise NoAvailableDoctors("No doctors available after exclusions")
    if not stations:
        raise NoStations("No stations to staff")

    ledger = LoadLedger()
    result = AllocationResult()
    eligible_by_station = {station.id: eligible_doctors(station, pool) for station in stations}

    for day in days:
        for station in stations:
            eligible = eligible_by_station[station.id]
            if not eligible:
                logger.debug("No eligible doctor for %s on %s", station.id, day.isoformat())
                result.unfilled.append(UnfilledSlot(station_id=station.id, date=day, kind=shift_kind(day)))
                continue
            doctor = select_doctor(eligible, ledger, day)
            logger.debug(
                "%s %s -> %s (load %d)", day.isoformat(), station.id, doctor.id, ledger.count(doctor.id)
            )
            result.shifts.append(emit_shift(day, station, doctor))

    logger.info(
        "Generated %d shifts for %d days x %d stations (%d unfilled)",
        len(result.shifts),
        len(days),
        len(stations),
        result.unfilled_count,
    )
    return result


def doctor_summary(result: AllocationResult, doctors: Sequence[Doctor]) -> list[dict[str, Any]]:
    """Per-doctor shift counts; every doctor gets a row, including those with none."""
    rows: dict[str, dict[str, Any]] = {}
    for doc in doctors:
        rows[doc.id] = {
            "doctor_id": doc.id,
            "doctor_name": doc.name,
            "group": doc.group,
            "total_shifts": 0,
            "weekday_shifts": 0,
            "weekend_shifts": 0,
            "hours": 0.0,
        }

    for shift in result.shifts:
        row = rows.get(shift.doctor_id)
        if row is None:
            continue
        row["total_shifts"] += 1
        if shift.kind == WEEKEND:
            row["weekend_shifts"] += 1
        else:
            row["weekday_shifts"] += 1
        row["hours"] += shift_hours(shift.start, shift.end)

    summary = list(rows.values())
    for row in summary:
        row["hours"] = round(row["hours"], 2)
    summary.sort(key=lambda row: row["total_shifts"], reverse=True)
    return summary


def generate_plan(
    *,
    range_from: str | date,
    range_to: str | date,
    doctors: Sequence[Doctor],
    stations: Sequence[Station],
    excluded_ids: Iterable[str] = (),
    name: str = "",
) -> dict[str, Any]:
    """Run generate_schedule() and package the result as a JSON-ready plan dict."""
    start = parse_iso_date(range_from)
    end = parse_iso_date(range_to)
    excluded = sorted({str(v) for v in excluded_ids})

    result = generate_schedule(start, end, doctors, stations, excluded)

    doctor_by_id = {d.id: d for d in doctors}
    station_by_id = {s.id: s for s in stations}

    shifts = []
    for shift in result.shifts:
        row = shift.to_dict()
        row["station_name"] = station_by_id[shift.station_id].name
        row["doctor_name"] = doctor_by_id[shift.doctor_id].name
        row["hours"] = round(shift_hours(shift.start, shift.end), 2)
        shifts.append(row)

    unfilled = []
    for slot in result.unfilled:
        row = slot.to_dict()
        row["station_name"] = station_by_id[slot.station_id].name
        unfilled.append(row)

    pool = resolve_doctor_pool(doctors, excluded)
    kind_counts = Counter(s.kind for s in result.shifts)

    return {
        "plan_id": f"plan-{uuid4().hex[:12]}",
        "generated_at": now_utc_iso(),
        "name": name,
        "range": {"from": start.isoformat(), "to": end.isoformat()},
        "excluded_doctor_ids": excluded,
        "stations": [
            {"station_id": s.id, "name": s.name, "allowed_groups": sorted(s.allowed_groups)}
            for s in stations
        ],
        "shifts": shifts,
        "unfilled": unfilled,
        "metrics": {
            "total_slots": result.total_slots,
            "filled_slots": len(result.shifts),
            "unfilled_slots": result.unfilled_count,
            "fill_rate": result.fill_rate,
            "kind_counts": {WEEKDAY: kind_counts.get(WEEKDAY, 0), WEEKEND: kind_counts.get(WEEKEND, 0)},
        },
        "fairness": doctor_summary(result, pool),
    }
