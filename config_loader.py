import json
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from errors import ConfigError
from models import Capacity

DATA_DIR = Path("data")
CONFIG_FILE = DATA_DIR / "config.json"

DEFAULT_CONFIG = {
    "class_totals": {},
    "eligible_by_course": {},
    "course_profile": {},
    "fallback_teachers": [],
    "teachers": None,
    "capacity": {},
}

@dataclass
class SchedulerConfig:
    class_totals: dict = field(default_factory=dict)
    eligible_by_course: dict = field(default_factory=dict)
    fallback_teachers: list = field(default_factory=list)
    teachers: list = field(default_factory=list)
    capacities: dict = field(default_factory=dict)

# ---------------------------
# Field parsers
# ---------------------------
def _expect(value, kind, key):
    if not isinstance(value, kind):
        raise ConfigError(f"'{key}' must be a {kind.__name__}, got {type(value).__name__}")
    return value

def _names(values, key):
    return [str(v).strip() for v in _expect(values, list, key) if str(v).strip()]

def parse_capacity(teacher, value):
    """A capacity is either a number or {"weekly_slots": n} ({"weeklySlots": n} also accepted)."""
    if isinstance(value, dict):
        value = value.get("weekly_slots", value.get("weeklySlots"))
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Capacity for '{teacher}' must be a number, got {value!r}")
    return Capacity(weekly_slots=float(value))

def merge_course_profile(eligible_by_course, course_profile):
    """
    Courses listed only in the course profile ({code: {"teacher": ...}}) get
    that teacher as their eligible list.
    """
    merged = {code: list(ts) for code, ts in eligible_by_course.items()}
    for code, course in course_profile.items():
        teacher = str(_expect(course, dict, f"course_profile.{code}").get("teacher") or "").strip()
        if not teacher or merged.get(code):
            continue
        merged.setdefault(code, []).append(teacher)
    return merged

def roster_from(eligible_by_course, fallback_teachers):
    roster = []
    for names in list(eligible_by_course.values()) + [fallback_teachers]:
        for n in names:
            if n not in roster:
                roster.append(n)
    return roster

# ---------------------------
# Loading
# ---------------------------
def build_config(raw):
    raw = {**DEFAULT_CONFIG, **_expect(raw, dict, "config")}

    class_totals = {}
    for cls, total in _expect(raw["class_totals"], dict, "class_totals").items():
        if isinstance(total, bool) or not isinstance(total, (int, float)):
            raise ConfigError(f"Class total for '{cls}' must be a number, got {total!r}")
        class_totals[str(cls)] = total

    eligible = {
        str(code).strip().upper(): _names(names, f"eligible_by_course.{code}")
        for code, names in _expect(raw["eligible_by_course"], dict, "eligible_by_course").items()
    }
    profile = {
        str(code).strip().upper(): course
        for code, course in _expect(raw["course_profile"], dict, "course_profile").items()
    }
    eligible = merge_course_profile(eligible, profile)
    fallback = _names(raw["fallback_teachers"], "fallback_teachers")

    teachers = raw["teachers"]
    teachers = _names(teachers, "teachers") if teachers is not None else roster_from(eligible, fallback)

    capacities = {
        str(t): parse_capacity(t, v)
        for t, v in _expect(raw["capacity"], dict, "capacity").items()
    }

    return SchedulerConfig(
        class_totals=class_totals,
        eligible_by_course=eligible,
        fallback_teachers=fallback,
        teachers=teachers,
        capacities=capacities,
    )

def load_config(path=CONFIG_FILE):
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        logger.warning("Config file {} not found, using defaults", path)
        raw = dict(DEFAULT_CONFIG)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Config file {path} is not valid JSON: {e}") from e
    return build_config(raw)
