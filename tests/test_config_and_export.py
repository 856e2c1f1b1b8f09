import json
from datetime import datetime

import pytest
from openpyxl import Workbook, load_workbook

import main
from config_loader import build_config, load_config
from errors import ConfigError
from exporter import ExcelStyler, assignment_dataframe, entries_dataframe, load_dataframe
from models import UNASSIGNED, Capacity, Run
from smoothing import greedy_smooth_assign
from timetable_parser import parse_rows_to_entries
from week_helpers import add_days_iso, monday_ymd, week_label

# ----------------------------------------------
# 1️⃣ Week helpers
# ----------------------------------------------
def test_monday_ymd():
    assert monday_ymd("2025-01-08") == "2025-01-06"
    assert monday_ymd("2025-01-06") == "2025-01-06"
    assert monday_ymd("2025-01-12") == "2025-01-06"

def test_week_label_and_add_days():
    assert week_label("2025-01-06") == "Week of 6 Jan 2025"
    assert add_days_iso("2025-01-06", 6) == "2025-01-12"
    assert add_days_iso("2024-12-30", 7) == "2025-01-06"

# ----------------------------------------------
# 2️⃣ Config loading
# ----------------------------------------------
def test_load_config_defaults(monkeypatch):
    # Simulate missing config.json
    monkeypatch.setattr("builtins.open", lambda *a, **k: (_ for _ in ()).throw(FileNotFoundError()))
    config = load_config()
    assert config.class_totals == {}
    assert config.teachers == []
    assert config.capacities == {}

def test_load_config_file(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "class_totals": {"Jan25FT": 24},
        "eligible_by_course": {"prf": ["Madri", "Connor"]},
        "course_profile": {
            "API": {"name": "API Development", "number": 3, "teacher": "Aisha", "weeks": 6},
            "PRF": {"name": "Programming", "number": 1, "teacher": "Someone", "weeks": 4},
        },
        "fallback_teachers": ["Madri"],
        "capacity": {"Madri": 40, "Connor": {"weekly_slots": 30}, "Aisha": {"weeklySlots": 20}},
    }))
    config = load_config(path)
    assert config.eligible_by_course == {"PRF": ["Madri", "Connor"], "API": ["Aisha"]}
    assert config.teachers == ["Madri", "Connor", "Aisha"]
    assert config.capacities == {"Madri": Capacity(40), "Connor": Capacity(30), "Aisha": Capacity(20)}

def test_load_config_bad_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")
    with pytest.raises(ConfigError):
        load_config(path)

@pytest.mark.parametrize("raw", [
    {"capacity": {"Madri": "lots"}},
    {"class_totals": {"Jan25FT": "many"}},
    {"eligible_by_course": {"PRF": "Madri"}},
    ["not", "a", "dict"],
])
def test_build_config_rejects_wrong_types(raw):
    with pytest.raises(ConfigError):
        build_config(raw)

# ----------------------------------------------
# 3️⃣ Export
# ----------------------------------------------
def _result():
    runs = [
        Run(id="Jan25FT|PRF", class_id="Jan25FT", course_code="PRF",
            weeks=("2025-01-06", "2025-01-13"), weight=20, eligible=("T",)),
        Run(id="Mar25PT|API", class_id="Mar25PT", course_code="API",
            weeks=("2025-01-13",), weight=5, eligible=()),
    ]
    return greedy_smooth_assign(runs, ["T"], {})

def test_dataframes():
    res = _result()
    df = assignment_dataframe(res)
    assert list(df["Teacher"]) == ["T", UNASSIGNED]
    assert list(df["Ends"]) == ["2025-01-19", "2025-01-19"]

    load = load_dataframe(res)
    assert list(load.columns) == ["Week of 6 Jan 2025", "Week of 13 Jan 2025"]
    assert load.loc["T"].tolist() == [20, 20]

    entries = parse_rows_to_entries([["Week Start", "Calendar Week", "Jan25FT"], ["2025-01-06", "2", "1. PRF"]])
    edf = entries_dataframe(entries)
    assert edf.loc[0, "course_code"] == "PRF"
    assert bool(edf.loc[0, "is_start"])

def test_style_and_save(tmp_path):
    out = tmp_path / "assignments.xlsx"
    ExcelStyler().style_and_save(_result(), out)
    wb = load_workbook(out)
    assert wb.sheetnames == ["Assignments", "Load"]
    ws = wb["Assignments"]
    assert [c.value for c in ws[1]] == ["Class", "Course", "Teacher", "Weeks", "Students/Week", "First Week", "Ends"]
    assert ws.cell(row=3, column=3).value == UNASSIGNED
    assert ws.cell(row=3, column=1).fill.start_color.rgb.endswith("FA8072")
    assert wb["Load"].cell(row=2, column=1).value == "T"

# ----------------------------------------------
# 4️⃣ Command line
# ----------------------------------------------
def _write_inputs(tmp_path, header):
    wb = Workbook()
    ws = wb.active
    ws.append(header)
    ws.append([datetime(2025, 1, 6), "Week 2", "1. PRF"])
    ws.append([datetime(2025, 1, 13), "Week 3", "2. PRF"])
    tt = tmp_path / "timetable.xlsx"
    wb.save(tt)
    cfg = tmp_path / "config.json"
    cfg.write_text(json.dumps({
        "class_totals": {"Jan25FT": 24},
        "eligible_by_course": {"PRF": ["Madri"]},
        "capacity": {"Madri": 30},
    }))
    return tt, cfg

def test_main_writes_assignments(tmp_path, capsys):
    tt, cfg = _write_inputs(tmp_path, ["Week Start", "Calendar Week", "Jan25FT"])
    out = tmp_path / "out.xlsx"
    assert main.main([str(tt), "--config", str(cfg), "--out", str(out)]) == 0
    assert out.exists()
    printed = capsys.readouterr().out
    assert "Parsed 2 entries into 1 runs" in printed
    assert "Madri" in printed

def test_main_reports_structural_error(tmp_path, capsys):
    tt, cfg = _write_inputs(tmp_path, ["Week Start", "Jan25FT", "Notes"])
    out = tmp_path / "out.xlsx"
    assert main.main([str(tt), "--config", str(cfg), "--out", str(out)]) == 1
    assert "Required headers not found" in capsys.readouterr().err
    assert not out.exists()

def test_main_reports_unreadable_workbook(tmp_path, capsys):
    _, cfg = _write_inputs(tmp_path, ["Week Start", "Calendar Week", "Jan25FT"])
    tt = tmp_path / "notes.xlsx"
    tt.write_text("Week Start,Calendar Week,Jan25FT\n")
    out = tmp_path / "out.xlsx"
    assert main.main([str(tt), "--config", str(cfg), "--out", str(out)]) == 1
    assert "Could not read workbook" in capsys.readouterr().err
    assert not out.exists()
