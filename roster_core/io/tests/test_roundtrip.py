"""Roundtrip test: load_input -> generate_plan -> write_output / render_xlsx / persist_to_db."""

from __future__ import annotations

import csv
import json
import shutil
import sqlite3
from pathlib import Path

import pytest

from roster_core.allocator import generate_plan
from roster_core.io import persist_to_db, render_xlsx
from roster_core.io.reader import load_input
from roster_core.io.writer import write_output

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "minimal"


@pytest.fixture
def minimal_input():
    """Load the minimal fixture as (doctors, stations, excluded_ids, meta)."""
    return load_input(FIXTURES_DIR)


@pytest.fixture
def plan(minimal_input):
    """Run generate_plan on the minimal fixture."""
    doctors, stations, excluded, meta = minimal_input
    return generate_plan(
        range_from=meta["range_from"],
        range_to=meta["range_to"],
        doctors=doctors,
        stations=stations,
        excluded_ids=excluded,
        name=meta.get("name", ""),
    )


def _read_rows(path: Path) -> list[dict[str, str]]:
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))


class TestLoadInput:
    def test_loads_doctors(self, minimal_input):
        doctors, _, _, _ = minimal_input
        assert [d.id for d in doctors] == ["D-001", "D-002", "D-003", "D-004", "D-005"]
        assert doctors[0].name == "Dr. John Doe"
        assert doctors[0].group == 1
        assert doctors[0].specialty == "Cardiology"

    def test_station_order_and_groups(self, minimal_input):
        _, stations, _, _ = minimal_input
        assert [s.id for s in stations] == ["ST-1", "ST-2", "ST-3", "ST-4", "ST-5", "ST-6", "ST-7"]
        assert stations[0].name == "Réanimation"
        assert stations[2].allowed_groups == frozenset({1, 2, 3})
        assert stations[6].allowed_groups == frozenset({7})

    def test_loads_excluded(self, minimal_input):
        _, _, excluded, _ = minimal_input
        assert excluded == {"D-005"}

    def test_loads_meta(self, minimal_input):
        _, _, _, meta = minimal_input
        assert meta["range_from"] == "2026-03-02"
        assert meta["range_to"] == "2026-03-08"

    def test_excluded_is_optional(self, tmp_path):
        for name in ("meta.json", "doctors.csv", "stations.csv"):
            shutil.copy(FIXTURES_DIR / name, tmp_path / name)
        _, _, excluded, _ = load_input(tmp_path)
        assert excluded == set()

    def test_missing_required_file(self, tmp_path):
        shutil.copy(FIXTURES_DIR / "meta.json", tmp_path / "meta.json")
        with pytest.raises(FileNotFoundError, match="doctors.csv"):
            load_input(tmp_path)

    def test_bad_group_names_line(self, tmp_path):
        for name in ("meta.json", "stations.csv"):
            shutil.copy(FIXTURES_DIR / name, tmp_path / name)
        (tmp_path / "doctors.csv").write_text(
            "doctor_id,name,group\nD-1,Dr. One,1\nD-2,Dr. Two,zero\n", encoding="utf-8"
        )
        with pytest.raises(ValueError, match="doctors.csv line 3"):
            load_input(tmp_path)

    def test_missing_column(self, tmp_path):
        for name in ("meta.json", "doctors.csv"):
            shutil.copy(FIXTURES_DIR / name, tmp_path / name)
        (tmp_path / "stations.csv").write_text("station_id,name\nST-1,Urgence\n", encoding="utf-8")
        with pytest.raises(ValueError, match="stations.csv is missing columns: allowed_groups"):
            load_input(tmp_path)


class TestGeneratePlan:
    def test_slot_count(self, plan):
        m = plan["metrics"]
        assert m["total_slots"] == 7 * 7
        assert m["unfilled_slots"] == 7
        assert m["filled_slots"] == 42

    def test_excluded_doctor_absent(self, plan):
        assert all(s["doctor_id"] != "D-005" for s in plan["shifts"])
        assert plan["excluded_doctor_ids"] == ["D-005"]

    def test_unfilled_station(self, plan):
        assert {u["station_id"] for u in plan["unfilled"]} == {"ST-7"}


class TestWriteOutput:
    def test_writes_all_files(self, plan, tmp_path):
        paths = write_output(plan, tmp_path / "out")
        assert set(paths) == {"shifts.csv", "unfilled.csv", "fairness.csv", "metrics.json"}
        for path in paths.values():
            assert path.exists()

    def test_shift_rows(self, plan, tmp_path):
        paths = write_output(plan, tmp_path / "out")
        rows = _read_rows(paths["shifts.csv"])
        assert len(rows) == len(plan["shifts"])
        first = rows[0]
        assert first["date"] == "2026-03-02"
        assert first["kind"] == "weekday"
        assert first["start"] == "2026-03-02T16:00:00"
        assert first["end"] == "2026-03-03T09:00:00"

    def test_unfilled_rows(self, plan, tmp_path):
        paths = write_output(plan, tmp_path / "out")
        rows = _read_rows(paths["unfilled.csv"])
        assert len(rows) == 7
        assert {r["reason"] for r in rows} == {"no_eligible_doctor"}

    def test_metrics_fill_rate(self, plan, tmp_path):
        paths = write_output(plan, tmp_path / "out")
        metrics = json.loads(paths["metrics.json"].read_text(encoding="utf-8"))
        fr = metrics["fill_rate"]
        assert fr["filled"] + fr["unfilled"] == fr["total_slots"]
        assert fr["by_station"]["ST-7"] == {"name": "Pédiatrie", "filled": 0, "open": 7}
        assert fr["by_kind"]["weekend"]["filled"] == 2 * 6
        assert fr["by_weekday"]["Sat"] == {"filled": 6, "open": 1}

    def test_metrics_load(self, plan, tmp_path):
        paths = write_output(plan, tmp_path / "out")
        metrics = json.loads(paths["metrics.json"].read_text(encoding="utf-8"))
        load = metrics["load"]
        assert load["doctors"] == 4
        assert sum(d["total_shifts"] for d in load["per_doctor"]) == 42
        assert load["spread"] == load["max_shifts"] - load["min_shifts"]
        assert 0.0 <= load["gini"] <= 1.0

    def test_metrics_assessment(self, plan, tmp_path):
        paths = write_output(plan, tmp_path / "out")
        metrics = json.loads(paths["metrics.json"].read_text(encoding="utf-8"))
        assert metrics["assessment"]
        for bullet in metrics["assessment"]:
            assert bullet["level"] in ("green", "yellow", "red")
        assert len(metrics["open_by_day"]) == 7


class TestRenderXlsx:
    def test_sheets_and_calendar(self, plan, tmp_path):
        from openpyxl import load_workbook

        path = render_xlsx(plan, tmp_path / "plan.xlsx")
        wb = load_workbook(path)
        assert wb.sheetnames == ["Calendar", "Shifts", "Unfilled", "Doctors"]

        cal = wb["Calendar"]
        header = [c.value for c in cal[1]]
        assert header[:3] == ["date", "weekday", "kind"]
        assert header[3:] == ["Réanimation", "Weaning", "Urgence", "Périphérie", "Visite MedI", "Visite MedH", "Pédiatrie"]
        assert cal.max_row == 1 + 7
        assert cal.cell(row=2, column=10).value == "(open)"

        assert wb["Shifts"].max_row == 1 + 42
        assert wb["Unfilled"].max_row == 1 + 7


class TestPersistToDb:
    def test_inserts_rows(self, plan, tmp_path):
        db_path = tmp_path / "roster.db"
        schedule_id = persist_to_db(plan, db_path)

        conn = sqlite3.connect(str(db_path))
        try:
            count = conn.execute(
                "SELECT COUNT(*) FROM shifts WHERE schedule_id = ?", (schedule_id,)
            ).fetchone()[0]
            unfilled = conn.execute(
                "SELECT unfilled_slots FROM schedules WHERE id = ?", (schedule_id,)
            ).fetchone()[0]
            kinds = {row[0] for row in conn.execute("SELECT DISTINCT type FROM shifts")}
        finally:
            conn.close()

        assert count == 42
        assert unfilled == 7
        assert kinds == {"weekday", "weekend"}

    def test_second_run_appends(self, plan, tmp_path):
        db_path = tmp_path / "roster.db"
        first = persist_to_db(plan, db_path)
        second = persist_to_db(plan, db_path)
        assert second == first + 1
