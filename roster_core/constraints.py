"""Group eligibility and post-hoc validation for shift lists.

The allocator only ever assigns a doctor whose group the station accepts.
validate_shifts() re-checks a finished shift list against the same rules so
externally edited or imported schedules can be audited.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Any

from .errors import DuplicateIdentifier
from .models import Doctor, Shift, Station
from .time_utils import shift_kind, shift_window


def eligible_doctors(station: Station, pool: Sequence[Doctor]) -> list[Doctor]:
    """Doctors from pool whose group the station accepts, in pool order."""
    return [doc for doc in pool if station.accepts(doc.group)]


def ensure_unique_ids(items: Iterable[Doctor | Station], label: str) -> None:
    counts = Counter(item.id for item in items)
    dupes = sorted(item_id for item_id, n in counts.items() if n > 1)
    if dupes:
        raise DuplicateIdentifier(f"Duplicate {label} ids: {', '.join(dupes)}")


# ---- Post-hoc validation ---------------------------------------------------

def validate_shifts(
    shifts: Sequence[Shift],
    doctors: Sequence[Doctor],
    stations: Sequence[Station],
) -> list[dict[str, Any]]:
    """Validate a shift list against eligibility and window rules.

    Returns a list of violation dicts, one per violated rule:
        {station_id, doctor_id, date, violation, detail}
    """
    violations: list[dict[str, Any]] = []
    doctor_by_id = {d.id: d for d in doctors}
    station_by_id = {s.id: s for s in stations}
    seen_slots: set[tuple[str, str]] = set()

    def _add(shift: Shift, violation: str, detail: str) -> None:
        violations.append({
            "station_id": shift.station_id,
            "doctor_id": shift.doctor_id,
            "date": shift.date.isoformat(),
            "violation": violation,
            "detail": detail,
        })

    for shift in shifts:
        doctor = doctor_by_id.get(shift.doctor_id)
        station = station_by_id.get(shift.station_id)

        if doctor is None:
            _add(shift, "unknown_doctor", f"Doctor {shift.doctor_id} not found")
        if station is None:
            _add(shift, "unknown_station", f"Station {shift.station_id} not found")
        if doctor is not None and station is not None and not station.accepts(doctor.group):
            allowed = ", ".join(str(g) for g in sorted(station.allowed_groups)) or "none"
            _add(
                shift,
                "group_not_allowed",
                f"Group {doctor.group} not accepted by {station.name} (allowed: {allowed})",
            )

        slot = (shift.station_id, shift.date.isoformat())
        if slot in seen_slots:
            _add(shift, "duplicate_station_day", "More than one shift for this station on this date")
        seen_slots.add(slot)

        expected_kind = shift_kind(shift.date)
        if shift.kind != expected_kind:
            _add(shift, "wrong_kind", f"Expected {expected_kind}, got {shift.kind}")
        if (shift.start, shift.end) != shift_window(shift.date):
            _add(
                shift,
                "wrong_window",
                f"Window {shift.start.isoformat()} - {shift.end.isoformat()} does not match {expected_kind} rule",
            )

    return violations
