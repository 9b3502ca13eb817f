from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

WEEKDAY = "weekday"
WEEKEND = "weekend"

UNFILLED_NO_ELIGIBLE = "no_eligible_doctor"


@dataclass(frozen=True)
class Doctor:
    id: str
    name: str
    group: int
    email: str = ""
    specialty: str = ""


@dataclass(frozen=True)
class Station:
    id: str
    name: str
    allowed_groups: frozenset[int] = frozenset()

    def accepts(self, group: int) -> bool:
        return group in self.allowed_groups


@dataclass(frozen=True)
class Shift:
    station_id: str
    doctor_id: str
    date: date
    start: datetime
    end: datetime
    kind: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "station_id": self.station_id,
            "doctor_id": self.doctor_id,
            "date": self.date.isoformat(),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "kind": self.kind,
        }


@dataclass(frozen=True)
class UnfilledSlot:
    station_id: str
    date: date
    kind: str
    reason: str = UNFILLED_NO_ELIGIBLE

    def to_dict(self) -> dict[str, Any]:
        return {
            "station_id": self.station_id,
            "date": self.date.isoformat(),
            "kind": self.kind,
            "reason": self.reason,
        }


@dataclass
class AllocationResult:
    """Shifts emitted by one run plus the (station, day) pairs nobody could cover."""

    shifts: list[Shift] = field(default_factory=list)
    unfilled: list[UnfilledSlot] = field(default_factory=list)

    @property
    def unfilled_count(self) -> int:
        return len(self.unfilled)

    @property
    def total_slots(self) -> int:
        return len(self.shifts) + len(self.unfilled)

    @property
    def fill_rate(self) -> float:
        if not self.total_slots:
            return 0.0
        return round(len(self.shifts) / self.total_slots * 100, 1)


@dataclass
class LoadLedger:
    """Dates assigned to each doctor within a single generation run.

    Owned by the run that creates it; never shared across runs.
    """

    assigned_dates: dict[str, list[date]] = field(default_factory=dict)

    def count(self, doctor_id: str) -> int:
        return len(self.assigned_dates.get(doctor_id, []))

    def record(self, doctor_id: str, day: date) -> None:
        self.assigned_dates.setdefault(doctor_id, []).append(day)

    def dates_for(self, doctor_id: str) -> list[date]:
        return list(self.assigned_dates.get(doctor_id, []))

    def counts(self) -> dict[str, int]:
        return {doctor_id: len(days) for doctor_id, days in self.assigned_dates.items()}
