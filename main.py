import argparse
import sys
from pathlib import Path

from config_loader import CONFIG_FILE, load_config
from errors import ConfigError, WorkbookStructureError
from exporter import ExcelStyler
from smoothing import assignment_table, build_runs, greedy_smooth_assign
from timetable_parser import parse_excel_to_entries

DEFAULT_OUT = "assignments.xlsx"

def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Assign teachers to the course runs of a weekly timetable workbook.")
    parser.add_argument("timetable", type=Path, help="timetable .xlsx (Week Start, Calendar Week, class columns)")
    parser.add_argument("--config", type=Path, default=CONFIG_FILE, help="JSON with class totals, eligibility and capacity")
    parser.add_argument("--out", type=Path, default=Path(DEFAULT_OUT), help="output workbook")
    return parser.parse_args(argv)

def run(timetable, config_path=CONFIG_FILE, out=DEFAULT_OUT):
    config = load_config(config_path)
    entries = parse_excel_to_entries(timetable)
    runs = build_runs(entries, config.class_totals, config.eligible_by_course, config.fallback_teachers)
    result = greedy_smooth_assign(runs, config.teachers, config.capacities)
    ExcelStyler().style_and_save(result, out)
    return entries, result

def main(argv=None):
    args = parse_args(argv)
    try:
        entries, result = run(args.timetable, args.config, args.out)
    except (WorkbookStructureError, ConfigError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Parsed {len(entries)} entries into {len(result.runs)} runs")
    for row in assignment_table(result):
        print(f"  {row.class_id:<10} {row.course_code:<8} {row.teacher:<16} {row.weeks:>3} wk  {row.students_per_week:g}/wk")
    unassigned = result.unassigned
    if unassigned:
        print(f"Unassigned runs: {len(unassigned)} ({', '.join(r.id for r in unassigned[:10])}{' ...' if len(unassigned) > 10 else ''})")
    print(f"Saved: {args.out}")
    return 0

if __name__ == "__main__":
    sys.exit(main())
