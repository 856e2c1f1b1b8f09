import math
from dataclasses import dataclass, field
from datetime import date, datetime

UNASSIGNED = "(unassigned)"
INTAKES = ("Jan", "Mar", "Aug", "Oct")
MODES = ("FT", "PT")

# ---------------------------
# Raw cell values
# ---------------------------
@dataclass(frozen=True)
class TextCell:
    value: str

@dataclass(frozen=True)
class NumberCell:
    value: float

@dataclass(frozen=True)
class DateCell:
    value: date

@dataclass(frozen=True)
class EmptyCell:
    pass

EMPTY = EmptyCell()

def classify_cell(raw):
    """
    Turn a scalar read from a sheet into one of TextCell / NumberCell / DateCell / EmptyCell.
    Booleans are not numbers here; a TRUE cell reads as text.
    """
    if raw is None:
        return EMPTY
    if isinstance(raw, (TextCell, NumberCell, DateCell, EmptyCell)):
        return raw
    if isinstance(raw, datetime):
        return DateCell(raw.date())
    if isinstance(raw, date):
        return DateCell(raw)
    if isinstance(raw, bool):
        return TextCell(str(raw))
    if isinstance(raw, (int, float)):
        if isinstance(raw, float) and math.isnan(raw):
            return EMPTY
        return NumberCell(float(raw))
    s = str(raw)
    if s == "":
        return EMPTY
    return TextCell(s)

def cell_text(cell):
    """Trimmed text of a cell with inner whitespace collapsed."""
    if isinstance(cell, EmptyCell):
        return ""
    if isinstance(cell, DateCell):
        return cell.value.isoformat()
    if isinstance(cell, NumberCell):
        v = cell.value
        return str(int(v)) if v.is_integer() else str(v)
    return " ".join(cell.value.split())

# ---------------------------
# Pipeline records
# ---------------------------
@dataclass(frozen=True)
class Entry:
    date: str
    calendar_week: float
    class_id: str
    intake: str
    year: int
    mode: str
    course_code: str
    course_week: int
    is_start: bool = False
    is_assessment: bool = False

@dataclass(frozen=True)
class Run:
    id: str
    class_id: str
    course_code: str
    weeks: tuple
    weight: float
    eligible: tuple

    @property
    def impact(self):
        return self.weight * len(self.weeks)

@dataclass(frozen=True)
class Capacity:
    weekly_slots: float

@dataclass
class AssignResult:
    assign: dict = field(default_factory=dict)   # run id -> teacher or UNASSIGNED
    load: dict = field(default_factory=dict)     # teacher -> {week: load}
    runs: list = field(default_factory=list)

    @property
    def unassigned(self):
        return [r for r in self.runs if self.assign.get(r.id) == UNASSIGNED]

@dataclass(frozen=True)
class AssignmentRow:
    class_id: str
    course_code: str
    teacher: str
    weeks: int
    students_per_week: float
