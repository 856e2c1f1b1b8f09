from datetime import datetime, timedelta

ISO_FMT = "%Y-%m-%d"

# ---------------------------
# Week helpers (ISO YYYY-MM-DD strings, weeks start on Monday)
# ---------------------------
def parse_iso(ymd):
    return datetime.strptime(ymd, ISO_FMT).date()

def monday_ymd(ymd):
    """Monday of the week containing the ISO date `ymd`."""
    d = parse_iso(ymd)
    return (d - timedelta(days=d.weekday())).strftime(ISO_FMT)

def week_label(ymd):
    d = parse_iso(ymd)
    return f"Week of {d.day} {d.strftime('%b %Y')}"

def add_days_iso(ymd, days):
    return (parse_iso(ymd) + timedelta(days=days)).strftime(ISO_FMT)
