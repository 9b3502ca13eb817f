"""Column constants, pipe splitting and group parsing for CSV I/O."""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Input CSV column names
# ---------------------------------------------------------------------------

DOCTORS_COLS = [
    "doctor_id",
    "name",
    "group",
    "email",
    "specialty",
]

# email and specialty may be left out
DOCTORS_REQUIRED = DOCTORS_COLS[:3]

STATIONS_COLS = [
    "station_id",
    "name",
    "allowed_groups",
]

EXCLUDED_COLS = [
    "doctor_id",
]

# ---------------------------------------------------------------------------
# Output CSV column names
# ---------------------------------------------------------------------------

SHIFTS_COLS = [
    "date",
    "kind",
    "station_id",
    "station_name",
    "doctor_id",
    "doctor_name",
    "start",
    "end",
    "hours",
]

UNFILLED_COLS = [
    "date",
    "kind",
    "station_id",
    "station_name",
    "reason",
]

FAIRNESS_COLS = [
    "doctor_id",
    "doctor_name",
    "group",
    "total_shifts",
    "weekday_shifts",
    "weekend_shifts",
    "hours",
]

# ---------------------------------------------------------------------------
# Pipe-separated field helpers
# ---------------------------------------------------------------------------

PIPE = "|"


def pipe_split(value: str | None) -> list[str]:
    """Split a pipe-separated string into a list. Empty/None -> empty list."""
    if not value or not str(value).strip():
        return []
    return [v.strip() for v in str(value).split(PIPE) if v.strip()]


# ---------------------------------------------------------------------------
# Type coercion helpers for reading CSV values
# ---------------------------------------------------------------------------


def to_group(value: str | int | None) -> int:
    """Parse a group number. Groups are positive integers; anything else is an error."""
    text = "" if value is None else str(value).strip()
    try:
        group = int(text)
    except ValueError:
        raise ValueError(f"Invalid group number: {value!r}") from None
    if group < 1:
        raise ValueError(f"Group number must be positive, got {group}")
    return group


def to_groups(value: str | None) -> frozenset[int]:
    """Parse a pipe-separated group list such as '1|2|3'."""
    return frozenset(to_group(part) for part in pipe_split(value))
