"""Write CSV row data and an enriched metrics.json from generate_plan() output.

metrics.json contains aggregated KPIs only; the row-level data lives in
shifts.csv, unfilled.csv and fairness.csv (and in plan.xlsx when rendered).
"""

from __future__ import annotations

import csv
import json
from collections import Counter
from datetime import date
from pathlib import Path
from typing import Any

from .schemas import FAIRNESS_COLS, SHIFTS_COLS, UNFILLED_COLS

# ---------------------------------------------------------------------------
# Lightweight helpers
# ---------------------------------------------------------------------------

_WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]


def _gini(values: list[float]) -> float:
    """Gini coefficient: 0 = perfect equality, 1 = total concentration."""
    if not values or all(v == 0 for v in values):
        return 0.0
    s = sorted(values)
    n = len(s)
    total = sum(s)
    if total == 0:
        return 0.0
    cum = sum((i + 1) * v for i, v in enumerate(s))
    return round((2 * cum) / (n * total) - (n + 1) / n, 4)


def _weekday(iso_date: str) -> str:
    try:
        return _WEEKDAYS[date.fromisoformat(iso_date).weekday()]
    except ValueError:
        return "?"


def _assess(fill: dict, load: dict) -> list[dict]:
    """Generate traffic-light assessment bullets."""
    bullets: list[dict] = []
    pct = fill.get("pct", 0)

    # Fill rate
    if pct >= 100:
        bullets.append({"level": "green", "text": "Every station covered on every day"})
    elif pct >= 90:
        bullets.append({"level": "yellow", "text": "Some station days uncovered -- check station groups"})
    else:
        bullets.append({"level": "red", "text": "Coverage low -- no eligible doctors for several stations"})

    # Load spread
    spread = load.get("spread", 0)
    if spread > 1:
        bullets.append({
            "level": "yellow",
            "text": f"Load spread {spread} shifts -- group restrictions concentrate work",
        })
    elif load.get("per_doctor"):
        bullets.append({"level": "green", "text": "Load balanced within one shift"})

    # Idle doctors
    idle = load.get("idle", 0)
    if idle:
        bullets.append({"level": "yellow", "text": f"{idle} available doctor(s) received no shift"})

    return bullets


def _write_csv(path: Path, columns: list[str], rows: list[dict[str, Any]]) -> None:
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)


# ---------------------------------------------------------------------------
# Build enriched metrics dict
# ---------------------------------------------------------------------------

def _build_enriched_metrics(plan: dict) -> dict:
    """Build the metrics.json structure from a plan dict."""
    m = plan.get("metrics", {})
    shifts = plan.get("shifts", [])
    unfilled = plan.get("unfilled", [])
    fairness_list = plan.get("fairness", [])

    # -- Fill rate breakdown --------------------------------------------------
    by_kind: dict[str, dict[str, int]] = {
        "weekday": {"filled": 0, "open": 0},
        "weekend": {"filled": 0, "open": 0},
    }
    by_weekday: dict[str, dict[str, int]] = {}
    by_station: dict[str, dict[str, Any]] = {}

    for s in plan.get("stations", []):
        by_station[s["station_id"]] = {"name": s.get("name", ""), "filled": 0, "open": 0}

    for row, bucket in [(s, "filled") for s in shifts] + [(u, "open") for u in unfilled]:
        by_kind.setdefault(row.get("kind", "?"), {"filled": 0, "open": 0})[bucket] += 1
        wd = _weekday(row.get("date", ""))
        by_weekday.setdefault(wd, {"filled": 0, "open": 0})[bucket] += 1
        station = by_station.setdefault(
            row.get("station_id", ""),
            {"name": row.get("station_name", ""), "filled": 0, "open": 0},
        )
        station[bucket] += 1

    fill_rate = {
        "total_slots": m.get("total_slots", len(shifts) + len(unfilled)),
        "filled": m.get("filled_slots", len(shifts)),
        "unfilled": m.get("unfilled_slots", len(unfilled)),
        "pct": m.get("fill_rate", 0.0),
        "by_kind": by_kind,
        "by_weekday": by_weekday,
        "by_station": by_station,
    }

    # -- Load -----------------------------------------------------------------
    counts = [f.get("total_shifts", 0) for f in fairness_list]
    per_doctor = [
        {
            "doctor_id": f.get("doctor_id"),
            "name": f.get("doctor_name"),
            "group": f.get("group"),
            "total_shifts": f.get("total_shifts", 0),
            "weekend_shifts": f.get("weekend_shifts", 0),
            "hours": f.get("hours", 0),
        }
        for f in fairness_list
    ]
    load = {
        "doctors": len(counts),
        "active": sum(1 for c in counts if c > 0),
        "idle": sum(1 for c in counts if c == 0),
        "min_shifts": min(counts) if counts else 0,
        "max_shifts": max(counts) if counts else 0,
        "spread": (max(counts) - min(counts)) if counts else 0,
        "gini": _gini([float(c) for c in counts]),
        "per_doctor": per_doctor,
    }

    # -- Open by day ----------------------------------------------------------
    open_counter = Counter(u.get("date", "") for u in unfilled)
    open_by_day = [{"date": d, "open": n} for d, n in sorted(open_counter.items())]

    return {
        "plan_id": plan.get("plan_id", ""),
        "generated_at": plan.get("generated_at", ""),
        "name": plan.get("name", ""),
        "range_from": plan.get("range", {}).get("from", ""),
        "range_to": plan.get("range", {}).get("to", ""),
        "excluded_doctor_ids": plan.get("excluded_doctor_ids", []),
        "fill_rate": fill_rate,
        "load": load,
        "assessment": _assess(fill_rate, load),
        "open_by_day": open_by_day,
    }


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def write_output(plan: dict, directory: Path) -> dict[str, Path]:
    """Write shifts.csv, unfilled.csv, fairness.csv and metrics.json.

    Returns {file name: Path}.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    paths = {
        "shifts.csv": directory / "shifts.csv",
        "unfilled.csv": directory / "unfilled.csv",
        "fairness.csv": directory / "fairness.csv",
        "metrics.json": directory / "metrics.json",
    }

    _write_csv(paths["shifts.csv"], SHIFTS_COLS, plan.get("shifts", []))
    _write_csv(paths["unfilled.csv"], UNFILLED_COLS, plan.get("unfilled", []))
    _write_csv(paths["fairness.csv"], FAIRNESS_COLS, plan.get("fairness", []))

    metrics = _build_enriched_metrics(plan)
    paths["metrics.json"].write_text(
        json.dumps(metrics, indent=2, ensure_ascii=False, default=str) + "\n",
        encoding="utf-8",
    )

    return paths
