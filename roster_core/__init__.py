"""Shift allocation core: assigns doctors to station shifts over a date range."""

from .allocator import (
    doctor_summary,
    emit_shift,
    generate_plan,
    generate_schedule,
    resolve_doctor_pool,
    select_doctor,
)
from .constraints import eligible_doctors, validate_shifts
from .errors import (
    AllocationError,
    DuplicateIdentifier,
    InvalidRange,
    NoAvailableDoctors,
    NoStations,
)
from .models import AllocationResult, Doctor, LoadLedger, Shift, Station, UnfilledSlot
from .time_utils import iter_days, month_bounds, shift_kind, shift_window

# io layer: render_xlsx and persist_to_db import openpyxl/sqlite3 lazily
from .io import load_input, persist_to_db, render_xlsx, write_output

__all__ = [
    "AllocationError",
    "AllocationResult",
    "Doctor",
    "DuplicateIdentifier",
    "InvalidRange",
    "LoadLedger",
    "NoAvailableDoctors",
    "NoStations",
    "Shift",
    "Station",
    "UnfilledSlot",
    "doctor_summary",
    "eligible_doctors",
    "emit_shift",
    "generate_plan",
    "generate_schedule",
    "iter_days",
    "load_input",
    "month_bounds",
    "persist_to_db",
    "render_xlsx",
    "resolve_doctor_pool",
    "select_doctor",
    "shift_kind",
    "shift_window",
    "validate_shifts",
    "write_output",
]
