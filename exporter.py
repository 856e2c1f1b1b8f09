import pandas as pd
from openpyxl import load_workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from models import UNASSIGNED
from smoothing import assignment_table
from week_helpers import add_days_iso, week_label

ASSIGNMENT_COLUMNS = ["Class", "Course", "Teacher", "Weeks", "Students/Week", "First Week", "Ends"]
HEADER_FILL = "FFD700"
UNASSIGNED_FILL = "FA8072"

# ---------------------------
# DataFrame views
# ---------------------------
def entries_dataframe(entries):
    return pd.DataFrame([vars(e) for e in entries], columns=[
        "date", "calendar_week", "class_id", "intake", "year", "mode",
        "course_code", "course_week", "is_start", "is_assessment",
    ])

def assignment_dataframe(result):
    rows = []
    for run, row in zip(result.runs, assignment_table(result)):
        rows.append([
            row.class_id, row.course_code, row.teacher, row.weeks, row.students_per_week,
            run.weeks[0], add_days_iso(run.weeks[-1], 6),
        ])
    return pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)

def load_dataframe(result):
    """Teacher x week matrix of load, weeks as "Week of ..." labels in date order."""
    weeks = sorted({w for loads in result.load.values() for w in loads})
    teachers = sorted(result.load)
    df = pd.DataFrame(0.0, index=teachers, columns=weeks)
    for t, loads in result.load.items():
        for w, v in loads.items():
            df.at[t, w] = v
    df.columns = [week_label(w) for w in weeks]
    df.index.name = "Teacher"
    return df

# ---------------------------
# Excel output
# ---------------------------
class ExcelStyler:
    def __init__(self):
        self.border = Border(left=Side(style='thin'), right=Side(style='thin'), top=Side(style='thin'), bottom=Side(style='thin'))
        self.alignment = Alignment(horizontal="center", vertical="center", wrap_text=True)
        self.header_font = Font(bold=True)
        self.header_fill = PatternFill(start_color=HEADER_FILL, end_color=HEADER_FILL, fill_type="solid")
        self.unassigned_fill = PatternFill(start_color=UNASSIGNED_FILL, end_color=UNASSIGNED_FILL, fill_type="solid")

    def _style_sheet(self, ws, width=16):
        for row in ws.iter_rows(min_row=1, max_row=ws.max_row, max_col=ws.max_column):
            for cell in row:
                cell.border = self.border
                cell.alignment = self.alignment
        for cell in ws[1]:
            cell.font = self.header_font
            cell.fill = self.header_fill
        for col in range(1, ws.max_column + 1):
            ws.column_dimensions[get_column_letter(col)].width = width

    def _mark_unassigned(self, ws):
        teacher_col = ASSIGNMENT_COLUMNS.index("Teacher") + 1
        for r in range(2, ws.max_row + 1):
            if ws.cell(row=r, column=teacher_col).value == UNASSIGNED:
                for c in range(1, ws.max_column + 1):
                    ws.cell(row=r, column=c).fill = self.unassigned_fill

    def style_and_save(self, result, filepath):
        with pd.ExcelWriter(filepath, engine="openpyxl") as writer:
            assignment_dataframe(result).to_excel(writer, sheet_name="Assignments", index=False)
            load_dataframe(result).to_excel(writer, sheet_name="Load", index=True)
        wb = load_workbook(filepath)
        self._style_sheet(wb["Assignments"])
        self._mark_unassigned(wb["Assignments"])
        self._style_sheet(wb["Load"], width=20)
        wb.save(filepath)
