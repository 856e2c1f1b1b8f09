# timetable_parser.py -- Weekly timetable workbook -> ordered list of Entry
# Requires: openpyxl, pandas, loguru
import io
import math
import re
import zipfile
from datetime import date
from pathlib import Path

import pandas as pd
from loguru import logger
from openpyxl import load_workbook
from openpyxl.utils.datetime import CALENDAR_MAC_1904, CALENDAR_WINDOWS_1900, from_excel
from openpyxl.utils.exceptions import InvalidFileException

from errors import WorkbookStructureError
from models import EMPTY, INTAKES, MODES, DateCell, EmptyCell, Entry, NumberCell, cell_text, classify_cell
from week_helpers import monday_ymd

# ---------------------------
# Constants
# ---------------------------
HEADER_SCAN_ROWS = 100
SAMPLE_ROWS = 10

CLASS_HEADER_RE = re.compile(rf"^({'|'.join(INTAKES)})(\d{{2}})({'|'.join(MODES)})$", re.IGNORECASE)
# "12. PME" or "12 PME"
CELL_RE = re.compile(r"^(\d+)[.\s]+\s*([A-Za-z0-9]+)$")

WEEK_START_RE = re.compile(r"^week\s*start$", re.IGNORECASE)
START_RE = re.compile(r"^start$", re.IGNORECASE)
CALENDAR_WEEK_RE = re.compile(r"^calendar\s*week$", re.IGNORECASE)
WEEK_RE = re.compile(r"^week$", re.IGNORECASE)

MONTH_ABBR = {m: i for i, m in enumerate(
    ["jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"], start=1)}

# Tried in order, first strict match wins: (name, pattern, group order)
DATE_FORMATS = [
    ("YYYY/MM/DD", re.compile(r"^(\d{4})/(\d{2})/(\d{2})$"), "ymd"),
    ("YYYY-MM-DD", re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"), "ymd"),
    ("DD/MM/YYYY", re.compile(r"^(\d{2})/(\d{2})/(\d{4})$"), "dmy"),
    ("D/M/YYYY", re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$"), "dmy"),
    ("DD-MMM-YYYY", re.compile(r"^(\d{2})-([A-Za-z]{3})-(\d{4})$"), "dmy"),
    ("D-MMM-YYYY", re.compile(r"^(\d{1,2})-([A-Za-z]{3})-(\d{4})$"), "dmy"),
]

# ---------------------------
# Cell helpers
# ---------------------------
def parse_class_id(class_id):
    m = CLASS_HEADER_RE.match(class_id)
    if not m:
        return None
    return {
        "intake": m.group(1).capitalize(),
        "year": int(m.group(2)),
        "mode": m.group(3).upper(),
    }

def parse_cell(cell):
    """Return (course_week, course_code) for a "<week>. <code>" cell, else None."""
    s = cell_text(classify_cell(cell))
    if not s:
        return None
    m = CELL_RE.match(s)
    if not m:
        return None
    return int(m.group(1)), m.group(2).upper()

def parse_calendar_week(cell):
    digits = re.sub(r"\D+", "", cell_text(classify_cell(cell)))
    return int(digits) if digits else math.nan

# ---------------------------
# Date normalization
# ---------------------------
def _strict_date(s):
    for _, pattern, order in DATE_FORMATS:
        m = pattern.match(s)
        if not m:
            continue
        a, b, c = m.groups()
        if order == "ymd":
            year, month, day = a, b, c
        else:
            day, month, year = a, b, c
        if not month.isdigit():
            month = MONTH_ABBR.get(month.lower())
            if month is None:
                continue
        try:
            return date(int(year), int(month), int(day))
        except ValueError:
            continue
    return None

def _lenient_date(s):
    ts = pd.to_datetime(s, errors="coerce")
    if pd.isna(ts):
        return None
    return ts.date()

def _serial_date(value, date1904):
    if not math.isfinite(value):
        return None
    epoch = CALENDAR_MAC_1904 if date1904 else CALENDAR_WINDOWS_1900
    try:
        dt = from_excel(value, epoch=epoch)
    except (ValueError, OverflowError):
        return None
    # serials below 1 are times of day, not dates
    if not hasattr(dt, "date"):
        return None
    return dt.date()

def to_ymd(value, date1904=False):
    """
    Normalize a week-start cell to "YYYY-MM-DD".
    Native dates are formatted directly, numbers are spreadsheet serials
    (1900 or 1904 epoch), text goes through DATE_FORMATS then a lenient parse.
    Returns "" when nothing works.
    """
    cell = classify_cell(value)
    if isinstance(cell, EmptyCell):
        return ""
    if isinstance(cell, DateCell):
        d = cell.value
    elif isinstance(cell, NumberCell):
        d = _serial_date(cell.value, date1904)
    else:
        s = cell_text(cell)
        if not s:
            return ""
        d = _strict_date(s) or _lenient_date(s)
    return d.strftime("%Y-%m-%d") if d else ""

# ---------------------------
# Header detection
# ---------------------------
def _row_texts(row):
    return [cell_text(c) for c in row]

def _find_key(texts, primary, fallback):
    for t in texts:
        if primary.match(t):
            return t
    for t in texts:
        if fallback.match(t):
            return t
    return None

def find_header_row(rows):
    """
    Index of the first row (within HEADER_SCAN_ROWS) that has both a week-start
    and a calendar-week header cell. `rows` holds (sheet row number, cells) pairs.

    A row with only one of the two is remembered; if no complete header row
    exists the error names that row's headers so the missing column is obvious.
    """
    partial = None
    for i, (_, row) in enumerate(rows[:HEADER_SCAN_ROWS]):
        texts = _row_texts(row)
        has_start = _find_key(texts, WEEK_START_RE, START_RE) is not None
        has_week = _find_key(texts, CALENDAR_WEEK_RE, WEEK_RE) is not None
        if has_start and has_week:
            return i
        if partial is None and (has_start or has_week):
            partial = i
    sample = "\n".join(" | ".join(_row_texts(r)) for _, r in rows[:SAMPLE_ROWS])
    if partial is not None:
        line_no, row = rows[partial]
        header = _row_texts(row)
        raise WorkbookStructureError(
            f"Required headers not found on row {line_no}. Found: {', '.join(header)}",
            sample=sample,
            headers=header,
        )
    raise WorkbookStructureError(
        f'Could not locate header row with "Week Start" and "Calendar Week". Sample rows:\n{sample}',
        sample=sample,
    )

# ---------------------------
# Main parse
# ---------------------------
def _normalize_rows(rows):
    """Non-blank rows as (1-based sheet row number, cells)."""
    out = []
    for line_no, row in enumerate(rows, start=1):
        cells = [classify_cell(v) for v in (row or [])]
        if any(not isinstance(c, EmptyCell) for c in cells):
            out.append((line_no, cells))
    return out

def _flag_groups(prelim):
    # prelim is in sheet order; a repeated week keeps its first row
    groups = {}
    for e in prelim:
        by_date = groups.setdefault((e["class_id"], e["course_code"]), {})
        by_date.setdefault(e["date"], e)

    result = []
    for by_date in groups.values():
        items = sorted(by_date.values(), key=lambda e: e["date"])
        last = len(items) - 1
        for i, e in enumerate(items):
            result.append(Entry(is_start=(i == 0), is_assessment=(i == last), **e))
    result.sort(key=lambda e: (e.class_id, e.date))
    return result

def parse_rows_to_entries(rows, date1904=False):
    """
    Parse a sheet given as rows of cell values into Entry objects.

    Raises WorkbookStructureError when the sheet is empty, no header row is
    found, the week-start / calendar-week columns are missing, or there are no
    class columns. Row and cell level problems are skipped.
    """
    rows = _normalize_rows(rows)
    if not rows:
        raise WorkbookStructureError("Sheet appears to be empty.")

    header_idx = find_header_row(rows)
    header_line, header_row = rows[header_idx]
    header = _row_texts(header_row)

    week_start_key = _find_key(header, WEEK_START_RE, START_RE)
    cal_week_key = _find_key(header, CALENDAR_WEEK_RE, WEEK_RE)
    if not week_start_key or not cal_week_key:
        raise WorkbookStructureError(
            f"Required headers not found on row {header_line}. Found: {', '.join(header)}",
            headers=header,
        )
    week_start_col = header.index(week_start_key)
    cal_week_col = header.index(cal_week_key)

    # by column index, so a repeated class header keeps every column
    class_cols = [(i, h) for i, h in enumerate(header) if CLASS_HEADER_RE.match(h)]
    if not class_cols:
        raise WorkbookStructureError(
            f"No class columns matched (Jan|Mar|Aug|Oct)<yy>(FT|PT) on row {header_line}. "
            f"Found: {', '.join(header)}",
            headers=header,
        )

    def cell_at(row, i):
        return row[i] if i < len(row) else EMPTY

    prelim = []
    for line_no, row in rows[header_idx + 1:]:
        week_start = cell_at(row, week_start_col)
        if isinstance(week_start, EmptyCell):
            continue
        ymd = to_ymd(week_start, date1904)
        if not ymd:
            logger.debug("Row {}: unreadable week start {!r}, skipped", line_no, cell_text(week_start))
            continue
        if monday_ymd(ymd) != ymd:
            logger.debug("Row {}: week start {} is not a Monday", line_no, ymd)

        calendar_week = parse_calendar_week(cell_at(row, cal_week_col))

        for col, class_key in class_cols:
            parsed = parse_cell(cell_at(row, col))
            if parsed is None:
                continue
            cls = parse_class_id(class_key)
            course_week, course_code = parsed
            prelim.append({
                "date": ymd,
                "calendar_week": calendar_week,
                "class_id": class_key,
                "intake": cls["intake"],
                "year": cls["year"],
                "mode": cls["mode"],
                "course_code": course_code,
                "course_week": course_week,
            })

    entries = _flag_groups(prelim)
    logger.info("Parsed {} entries across {} class columns", len(entries), len(class_cols))
    return entries

# ---------------------------
# Workbook reading
# ---------------------------
def read_workbook_rows(source):
    """
    Load the first worksheet of an .xlsx file as a list of value rows.
    `source` may be a path, raw bytes or a binary file object.
    Returns (rows, date1904).
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    elif isinstance(source, Path):
        source = str(source)
    try:
        wb = load_workbook(source, read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError) as e:
        # not an .xlsx package, or one missing its workbook parts
        raise WorkbookStructureError(f"Could not read workbook: {e}") from e
    try:
        if not wb.worksheets:
            raise WorkbookStructureError("No sheets found.")
        ws = wb.worksheets[0]
        rows = [list(r) for r in ws.iter_rows(values_only=True)]
        date1904 = wb.epoch == CALENDAR_MAC_1904
    finally:
        wb.close()
    return rows, date1904

def parse_excel_to_entries(path):
    rows, date1904 = read_workbook_rows(path)
    return parse_rows_to_entries(rows, date1904)

def parse_excel_from_bytes(data):
    rows, date1904 = read_workbook_rows(data)
    return parse_rows_to_entries(rows, date1904)
