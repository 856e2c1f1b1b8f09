# smoothing.py -- Group entries into runs and spread them across teachers
# Requires: loguru
import math

from loguru import logger

from models import UNASSIGNED, AssignmentRow, AssignResult, Run

# Score = PEAK_WEIGHT * peak load after assignment + DELTA_WEIGHT * load added.
# Heuristic weights, tune freely.
PEAK_WEIGHT = 2.0
DELTA_WEIGHT = 0.1

# ---------------------------
# Runs
# ---------------------------
def run_id(class_id, course_code):
    return f"{class_id}|{course_code}"

def _by_impact(runs):
    # hardest first (big and long); sorted() is stable so equal runs keep their order
    return sorted(runs, key=lambda r: r.impact, reverse=True)

def build_runs(entries, class_totals, eligible_by_course, fallback_teachers=()):
    """
    Build one Run per (class, course) pair found in `entries`.

    class_totals: class id -> students per week, matched case-insensitively
    eligible_by_course: course code -> teachers allowed to teach it
    fallback_teachers: used when a course has no (or an empty) eligible list

    Runs come back ordered for greedy_smooth_assign (largest weight * weeks first).
    """
    totals = {str(k).upper(): v for k, v in class_totals.items()}

    groups = {}
    for e in entries:
        groups.setdefault((e.class_id, e.course_code), set()).add(e.date)

    runs = []
    for (class_id, course_code), dates in groups.items():
        eligible = eligible_by_course.get(course_code) or list(fallback_teachers)
        runs.append(Run(
            id=run_id(class_id, course_code),
            class_id=class_id,
            course_code=course_code,
            weeks=tuple(sorted(dates)),
            weight=float(totals.get(class_id.upper(), 0) or 0),
            eligible=tuple(eligible),
        ))
    return _by_impact(runs)

# ---------------------------
# Load table
# ---------------------------
class LoadTable:
    """Per-teacher weekly load for one smoothing pass. Cells are only ever added to."""

    def __init__(self):
        self.load = {}

    def get(self, teacher, week):
        return self.load.get(teacher, {}).get(week, 0)

    def add(self, teacher, week, value):
        weeks = self.load.setdefault(teacher, {})
        weeks[week] = weeks.get(week, 0) + value

    def peak(self, teacher):
        return max(self.load.get(teacher, {}).values(), default=0)

    def fits(self, teacher, run, capacities):
        cap = capacities.get(teacher)
        limit = cap.weekly_slots if cap is not None else math.inf
        return all(self.get(teacher, w) + run.weight <= limit for w in run.weeks)

    def score(self, teacher, run, peak_weight=PEAK_WEIGHT, delta_weight=DELTA_WEIGHT):
        """Score of giving `run` to `teacher` (lower is better), without changing the table."""
        post_peak = self.peak(teacher)
        delta_sum = 0
        for w in run.weeks:
            before = self.get(teacher, w)
            after = before + run.weight
            post_peak = max(post_peak, after)
            delta_sum += abs(after - before)
        return peak_weight * post_peak + delta_weight * delta_sum

# ---------------------------
# Greedy smoother
# ---------------------------
def greedy_smooth_assign(runs, teachers, capacities, peak_weight=PEAK_WEIGHT, delta_weight=DELTA_WEIGHT):
    """
    Assign each run to one eligible teacher, biggest runs first.

    A teacher is a candidate only if they are in `teachers` and every week of
    the run stays within their Capacity (no entry in `capacities` = no limit).
    The candidate with the lowest score wins; on a tie the one listed first in
    run.eligible is kept. Runs without a candidate get UNASSIGNED and add no load.
    Decisions are never revisited.
    """
    roster = set(teachers)
    table = LoadTable()
    result = AssignResult(load=table.load, runs=_by_impact(runs))

    for run in result.runs:
        best, best_score = None, math.inf
        for teacher in run.eligible:
            if teacher not in roster:
                continue
            if not table.fits(teacher, run, capacities):
                continue
            s = table.score(teacher, run, peak_weight, delta_weight)
            if s < best_score:
                best, best_score = teacher, s

        if best is None:
            result.assign[run.id] = UNASSIGNED
            logger.warning("No teacher available for {} ({} weeks, weight {})", run.id, len(run.weeks), run.weight)
            continue

        result.assign[run.id] = best
        for w in run.weeks:
            table.add(best, w, run.weight)
        logger.debug("{} -> {} (score {:.1f})", run.id, best, best_score)

    logger.info("Assigned {} of {} runs", len(result.runs) - len(result.unassigned), len(result.runs))
    return result

def assignment_table(result):
    """Flat rows for display: one per run, in processing order."""
    return [
        AssignmentRow(
            class_id=r.class_id,
            course_code=r.course_code,
            teacher=result.assign.get(r.id, UNASSIGNED),
            weeks=len(r.weeks),
            students_per_week=r.weight,
        )
        for r in result.runs
    ]
