"""Lightweight plan evaluation.

Computes quality metrics from a plan dict as produced by generate_plan().
All functions are pure dict-in / dict-out.
"""

from __future__ import annotations

import statistics
from collections import Counter, defaultdict
from typing import Any

from roster_core.models import WEEKEND

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _gini(values: list[float]) -> float:
    """Gini coefficient for a list of non-negative values."""
    if not values or all(v == 0 for v in values):
        return 0.0
    sorted_vals = sorted(values)
    n = len(sorted_vals)
    cumulative = sum((i + 1) * v for i, v in enumerate(sorted_vals))
    total = sum(sorted_vals)
    return (2 * cumulative) / (n * total) - (n + 1) / n


def _stats(values: list[float]) -> dict[str, float]:
    """Basic distribution statistics."""
    if not values:
        return {"mean": 0, "median": 0, "std": 0, "min": 0, "max": 0}
    return {
        "mean": round(statistics.mean(values), 2),
        "median": round(statistics.median(values), 2),
        "std": round(statistics.stdev(values), 2) if len(values) > 1 else 0.0,
        "min": round(min(values), 2),
        "max": round(max(values), 2),
    }


def _per_doctor(plan: dict[str, Any], field: str) -> dict[str, float]:
    """Value of `field` per doctor, zero rows included when the plan carries them."""
    values: dict[str, float] = {}
    for row in plan.get("fairness", []):
        values[row["doctor_id"]] = float(row.get(field, 0))
    if values:
        return values
    # Plans without a fairness table: derive from the shift rows.
    counts: dict[str, float] = defaultdict(float)
    for s in plan.get("shifts", []):
        if field == "total_shifts":
            counts[s["doctor_id"]] += 1
        elif field == "weekend_shifts" and s.get("kind") == WEEKEND:
            counts[s["doctor_id"]] += 1
        elif field == "hours":
            counts[s["doctor_id"]] += float(s.get("hours", 0))
        else:
            counts.setdefault(s["doctor_id"], 0.0)
    return dict(counts)


# ---------------------------------------------------------------------------
# Metric functions
# ---------------------------------------------------------------------------


def _unfilled_analysis(unfilled: list[dict[str, Any]]) -> dict[str, Any]:
    """Unfilled slots grouped by reason, station, kind and date."""
    if not unfilled:
        return {"count": 0}

    return {
        "count": len(unfilled),
        "reason_distribution": dict(Counter(u.get("reason", "unknown") for u in unfilled).most_common()),
        "by_station": dict(Counter(u.get("station_id", "unknown") for u in unfilled).most_common()),
        "by_kind": dict(Counter(u.get("kind", "unknown") for u in unfilled).most_common()),
        "by_date": dict(sorted(Counter(u.get("date", "unknown") for u in unfilled).items())),
    }


def _coverage_heatmap(
    shifts: list[dict[str, Any]],
    unfilled: list[dict[str, Any]],
) -> list[dict[str, Any]]:
    """Date x station coverage grid."""
    grid: dict[tuple[str, str], str] = {}
    for s in shifts:
        grid[(s.get("date", ""), s.get("station_id", ""))] = "filled"
    for u in unfilled:
        grid.setdefault((u.get("date", ""), u.get("station_id", "")), "unfilled")
    return [
        {"date": dt, "station_id": sid, "status": status}
        for (dt, sid), status in sorted(grid.items())
    ]


def _fairness(plan: dict[str, Any]) -> dict[str, Any]:
    """Gini, spread and std_dev over shift counts, plus hours per doctor."""
    counts = _per_doctor(plan, "total_shifts")
    hours = _per_doctor(plan, "hours")
    count_list = list(counts.values())

    per_doctor = [
        {
            "doctor_id": doc_id,
            "total_shifts": int(n),
            "hours": round(hours.get(doc_id, 0.0), 2),
        }
        for doc_id, n in sorted(counts.items(), key=lambda kv: -kv[1])
    ]

    return {
        "doctor_count": len(counts),
        "gini": round(_gini(count_list), 4),
        "spread": int(max(count_list) - min(count_list)) if count_list else 0,
        "std_dev": round(statistics.stdev(count_list), 2) if len(count_list) > 1 else 0.0,
        "shifts": _stats(count_list),
        "hours": _stats(list(hours.values())),
        "per_doctor": per_doctor,
    }


def _weekend_distribution(plan: dict[str, Any]) -> dict[str, Any]:
    """How weekend shifts are spread across doctors."""
    weekend = _per_doctor(plan, "weekend_shifts")
    values = list(weekend.values())
    return {
        "total": int(sum(values)),
        "doctors_with_weekend": sum(1 for v in values if v > 0),
        "spread": int(max(values) - min(values)) if values else 0,
        "gini": round(_gini(values), 4),
    }


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def evaluate_plan_lite(plan: dict[str, Any]) -> dict[str, Any]:
    """Compute quality metrics for a plan dict.

    Returns a flat result dict suitable for MCP tool output.
    """
    shifts = plan.get("shifts", [])
    unfilled = plan.get("unfilled", [])
    plan_metrics = plan.get("metrics", {})

    total = plan_metrics.get("total_slots", len(shifts) + len(unfilled))
    filled = plan_metrics.get("filled_slots", len(shifts))
    fill_rate = plan_metrics.get("fill_rate", round(filled / max(1, total) * 100, 1))

    return {
        "meta": {
            "plan_id": plan.get("plan_id"),
            "name": plan.get("name"),
            "range": plan.get("range"),
            "generated_at": plan.get("generated_at"),
            "snapshot_id": plan.get("snapshot_id"),
        },
        "fill_rate": {
            "total_slots": total,
            "filled": filled,
            "unfilled": plan_metrics.get("unfilled_slots", len(unfilled)),
            "fill_rate_pct": fill_rate,
        },
        "shift_kinds": dict(Counter(s.get("kind", "unknown") for s in shifts).most_common()),
        "unfilled_analysis": _unfilled_analysis(unfilled),
        "coverage_heatmap": _coverage_heatmap(shifts, unfilled),
        "fairness": _fairness(plan),
        "weekend_distribution": _weekend_distribution(plan),
    }
