"""Read a CSV input directory into the doctors/stations that generate_schedule() expects."""

from __future__ import annotations

import csv
import json
from pathlib import Path

from roster_core.models import Doctor, Station

from .schemas import DOCTORS_REQUIRED, EXCLUDED_COLS, STATIONS_COLS, to_group, to_groups


def load_input(directory: Path) -> tuple[list[Doctor], list[Station], set[str], dict]:
    """Read CSV input dir -> (doctors, stations, excluded_ids, meta_dict).

    Station order in stations.csv is the order the allocator walks them.
    Raises FileNotFoundError if required files are missing and ValueError
    for rows that cannot be parsed.
    """
    d = Path(directory)

    # -- meta.json --------------------------------------------------------------
    meta_dict = _read_json(d / "meta.json")

    # -- doctors.csv ------------------------------------------------------------
    doctors = []
    for line_no, row in enumerate(_read_csv(d / "doctors.csv", DOCTORS_REQUIRED), 2):
        try:
            group = to_group(row.get("group"))
        except ValueError as exc:
            raise ValueError(f"doctors.csv line {line_no}: {exc}") from exc
        doctors.append(
            Doctor(
                id=row["doctor_id"].strip(),
                name=(row.get("name") or "").strip(),
                group=group,
                email=(row.get("email") or "").strip(),
                specialty=(row.get("specialty") or "").strip(),
            )
        )

    # -- stations.csv -----------------------------------------------------------
    stations = []
    for line_no, row in enumerate(_read_csv(d / "stations.csv", STATIONS_COLS), 2):
        try:
            allowed = to_groups(row.get("allowed_groups"))
        except ValueError as exc:
            raise ValueError(f"stations.csv line {line_no}: {exc}") from exc
        stations.append(
            Station(
                id=row["station_id"].strip(),
                name=(row.get("name") or "").strip(),
                allowed_groups=allowed,
            )
        )

    # -- excluded.csv (optional) ------------------------------------------------
    excluded_ids: set[str] = set()
    excluded_path = d / "excluded.csv"
    if excluded_path.exists():
        excluded_ids = {
            row["doctor_id"].strip()
            for row in _read_csv(excluded_path, EXCLUDED_COLS)
            if (row.get("doctor_id") or "").strip()
        }

    return doctors, stations, excluded_ids, meta_dict


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict:
    """Read and parse a JSON file."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def _read_csv(path: Path, required: list[str]) -> list[dict[str, str]]:
    """Read a CSV file into a list of dicts, checking the header first."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        missing = [c for c in required if c not in (reader.fieldnames or [])]
        if missing:
            raise ValueError(f"{path.name} is missing columns: {', '.join(missing)}")
        return list(reader)
