from __future__ import annotations

from typing import Any
from uuid import uuid4

from roster_core.io.schemas import to_group
from roster_core.models import Doctor, Station
from roster_core.time_utils import now_utc_iso


def _doctor_row(doc: Doctor) -> dict[str, Any]:
    return {
        "doctor_id": doc.id,
        "name": doc.name,
        "group": doc.group,
        "email": doc.email,
        "specialty": doc.specialty,
    }


def _station_row(station: Station) -> dict[str, Any]:
    return {
        "station_id": station.id,
        "name": station.name,
        "allowed_groups": sorted(station.allowed_groups),
    }


def build_snapshot(doctors: list[Doctor], stations: list[Station], *, source: str = "") -> dict[str, Any]:
    """Freeze the fetched doctors and stations into a JSON-ready snapshot.

    Station order is kept exactly as fetched since it drives allocation order.
    """
    groups = sorted({d.group for d in doctors})
    return {
        "snapshot_id": f"snap-{uuid4().hex[:12]}",
        "generated_at": now_utc_iso(),
        "source": source,
        "doctors": [_doctor_row(d) for d in doctors],
        "stations": [_station_row(s) for s in stations],
        "metadata": {
            "counts": {"doctors": len(doctors), "stations": len(stations)},
            "groups": groups,
            "unstaffable_stations": [s.id for s in stations if not s.allowed_groups],
        },
    }


def snapshot_inputs(snapshot: dict[str, Any]) -> tuple[list[Doctor], list[Station]]:
    """Rebuild allocator inputs from a stored snapshot."""
    doctors = [
        Doctor(
            id=str(row["doctor_id"]),
            name=str(row.get("name", "")),
            group=to_group(row.get("group")),
            email=str(row.get("email") or ""),
            specialty=str(row.get("specialty") or ""),
        )
        for row in snapshot.get("doctors", [])
    ]
    stations = [
        Station(
            id=str(row["station_id"]),
            name=str(row.get("name", "")),
            allowed_groups=frozenset(to_group(g) for g in row.get("allowed_groups", [])),
        )
        for row in snapshot.get("stations", [])
    ]
    return doctors, stations
