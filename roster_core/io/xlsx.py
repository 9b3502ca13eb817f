"""Render a plan to a multi-sheet XLSX workbook."""

from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import Any

from .schemas import FAIRNESS_COLS, SHIFTS_COLS, UNFILLED_COLS

_WEEKDAY_SHORT = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

OPEN_LABEL = "(open)"


def _get_openpyxl():
    try:
        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill
        return Workbook, Font, PatternFill
    except ImportError as exc:
        raise ImportError("openpyxl is required for XLSX export: pip install openpyxl") from exc


def _style_headers(worksheets):
    """Apply bold + blue fill to header row of each worksheet."""
    _, Font, PatternFill = _get_openpyxl()
    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    for ws in worksheets:
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill


def _weekday_short(iso_date: str) -> str:
    try:
        return _WEEKDAY_SHORT[date.fromisoformat(iso_date).weekday()]
    except ValueError:
        return ""


def _write_table(ws, columns: list[str], rows: list[dict[str, Any]]) -> None:
    ws.append(columns)
    for row in rows:
        ws.append([row.get(c, "") for c in columns])


def _plan_dates(plan: dict[str, Any]) -> list[str]:
    dates = {s["date"] for s in plan.get("shifts", [])}
    dates.update(u["date"] for u in plan.get("unfilled", []))
    return sorted(dates)


def _write_calendar_sheet(ws, plan: dict[str, Any]) -> None:
    """Date x station grid with the assigned doctor's name in each cell."""
    _, _, PatternFill = _get_openpyxl()
    weekend_fill = PatternFill(start_color="F2F2F2", end_color="F2F2F2", fill_type="solid")
    open_fill = PatternFill(start_color="F8CBAD", end_color="F8CBAD", fill_type="solid")

    stations = plan.get("stations", [])
    if not stations:
        seen: dict[str, str] = {}
        for row in plan.get("shifts", []) + plan.get("unfilled", []):
            seen.setdefault(row["station_id"], row.get("station_name", ""))
        stations = [{"station_id": sid, "name": name} for sid, name in seen.items()]

    ws.append(["date", "weekday", "kind"] + [s.get("name") or s["station_id"] for s in stations])

    grid: dict[tuple[str, str], str] = {}
    kinds: dict[str, str] = {}
    for s in plan.get("shifts", []):
        grid[(s["date"], s["station_id"])] = s.get("doctor_name") or s["doctor_id"]
        kinds[s["date"]] = s.get("kind", "")
    for u in plan.get("unfilled", []):
        grid[(u["date"], u["station_id"])] = OPEN_LABEL
        kinds[u["date"]] = u.get("kind", "")

    for row_idx, iso_d in enumerate(_plan_dates(plan), 2):
        values = [iso_d, _weekday_short(iso_d), kinds.get(iso_d, "")]
        values += [grid.get((iso_d, s["station_id"]), "") for s in stations]
        ws.append(values)

        if kinds.get(iso_d) == "weekend":
            for cell in ws[row_idx]:
                cell.fill = weekend_fill
        for col_idx, val in enumerate(values, 1):
            if val == OPEN_LABEL:
                ws.cell(row=row_idx, column=col_idx).fill = open_fill

    ws.freeze_panes = "D2"


def render_xlsx(plan: dict[str, Any], path: Path) -> Path:
    """Write plan.xlsx with Calendar, Shifts, Unfilled and Doctors sheets."""
    Workbook, _, _ = _get_openpyxl()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    wb = Workbook()
    ws_calendar = wb.active
    ws_calendar.title = "Calendar"
    _write_calendar_sheet(ws_calendar, plan)

    ws_shifts = wb.create_sheet("Shifts")
    _write_table(ws_shifts, SHIFTS_COLS, plan.get("shifts", []))

    ws_unfilled = wb.create_sheet("Unfilled")
    _write_table(ws_unfilled, UNFILLED_COLS, plan.get("unfilled", []))

    ws_doctors = wb.create_sheet("Doctors")
    _write_table(ws_doctors, FAIRNESS_COLS, plan.get("fairness", []))

    _style_headers([ws_calendar, ws_shifts, ws_unfilled, ws_doctors])
    for ws in (ws_shifts, ws_unfilled, ws_doctors):
        ws.freeze_panes = "A2"

    wb.save(str(path))
    return path
