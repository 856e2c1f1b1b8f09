"""Error types raised while reading timetables and scheduler configuration.

Cell-level problems in a timetable (blank week rows, unreadable dates, cells
that are not "<week>. <code>") are skipped, not raised. Only a sheet whose
overall shape cannot be understood raises WorkbookStructureError.
"""


class WorkbookStructureError(ValueError):
    """Raised when a workbook does not have the expected timetable shape.

    Attributes:
        sample: first rows of the sheet joined with " | " (header not found)
        headers: header names found on the detected header row
    """

    def __init__(self, message, sample="", headers=None):
        self.sample = sample
        self.headers = list(headers or [])
        super().__init__(message)


class ConfigError(ValueError):
    """Raised when the scheduler configuration file cannot be used."""
