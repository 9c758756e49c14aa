"""
Attendance rules — the daily state machine plus shift, lateness, break and
task-time arithmetic.

Everything here is pure: callers pass in timestamps and stored values, and
get back numbers or a ``DomainError``. The endpoints own the database work.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from datetime import date, datetime, time, timedelta, tzinfo

from portal.core.clock import ensure_utc
from portal.core.exceptions import DomainError, StateTransitionError, TaskValidationError


# ── State machine ───────────────────────────────────────────────────
class AttendanceState(str, enum.Enum):
    NOT_CHECKED_IN = "not_checked_in"
    WORKING = "working"
    ON_BREAK = "on_break"
    IN_PRAYER = "in_prayer"
    CHECKED_OUT = "checked_out"


class AttendanceAction(str, enum.Enum):
    CHECK_IN = "check_in"
    START_BREAK = "start_break"
    END_BREAK = "end_break"
    START_PRAYER = "start_prayer"
    END_PRAYER = "end_prayer"
    CHECK_OUT = "check_out"


_S = AttendanceState
_A = AttendanceAction

_TRANSITIONS: dict[tuple[AttendanceState, AttendanceAction], AttendanceState] = {
    (_S.NOT_CHECKED_IN, _A.CHECK_IN): _S.WORKING,
    (_S.WORKING, _A.START_BREAK): _S.ON_BREAK,
    (_S.ON_BREAK, _A.END_BREAK): _S.WORKING,
    (_S.WORKING, _A.START_PRAYER): _S.IN_PRAYER,
    (_S.IN_PRAYER, _A.END_PRAYER): _S.WORKING,
    (_S.WORKING, _A.CHECK_OUT): _S.CHECKED_OUT,
}


def _rejection_message(state: AttendanceState, action: AttendanceAction) -> str:
    if state is _S.CHECKED_OUT:
        return "Already checked out today"
    if state is _S.NOT_CHECKED_IN:
        return "Not checked in today"
    if action is _A.CHECK_IN:
        return "Already checked in today"
    if action is _A.CHECK_OUT:
        if state is _S.ON_BREAK:
            return "Cannot check out while on a break"
        return "Cannot check out while on a namaz break"
    if action is _A.END_BREAK:
        return "No active break to end"
    if action is _A.END_PRAYER:
        return "No active namaz break to end"
    # Starting a break of either kind while one is already running
    if state is _S.ON_BREAK:
        return "Already on a break"
    return "Already on a namaz break"


def transition(state: AttendanceState, action: AttendanceAction) -> AttendanceState:
    """Return the state reached by *action*, or raise ``StateTransitionError``."""
    try:
        return _TRANSITIONS[(state, action)]
    except KeyError:
        raise StateTransitionError(_rejection_message(state, action), state.value) from None


def state_of(stored: str | None) -> AttendanceState:
    """A day without a record has not been checked into yet."""
    if stored is None:
        return _S.NOT_CHECKED_IN
    return AttendanceState(stored)


def ensure_day_open(state: AttendanceState) -> None:
    """Tasks can only be edited between check-in and check-out."""
    if state is _S.NOT_CHECKED_IN:
        raise StateTransitionError("Not checked in today", state.value)
    if state is _S.CHECKED_OUT:
        raise StateTransitionError("Already checked out today", state.value)


# ── Shifts ──────────────────────────────────────────────────────────
SHIFT_TIMES: dict[str, tuple[str, str]] = {
    "morning": ("08:00", "16:00"),
    "evening": ("16:00", "24:00"),
    "night": ("00:00", "08:00"),
}
VALID_SHIFTS = (*SHIFT_TIMES, "random")

_HHMM_RE = re.compile(r"^([01]\d|2[0-4]):([0-5]\d)$")


def parse_hhmm(value: str) -> int:
    """Minutes after midnight for an ``HH:MM`` string (``24:00`` allowed)."""
    match = _HHMM_RE.match(value or "")
    if not match:
        raise DomainError(f"Invalid time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours == 24 and minutes:
        raise DomainError(f"Invalid time {value!r}, expected HH:MM")
    return hours * 60 + minutes


def resolve_shift(
    shift: str, custom_start: str | None = None, custom_end: str | None = None
) -> tuple[str, str]:
    if shift == "random":
        if not custom_start or not custom_end:
            raise DomainError("Custom start and end times are required for a random shift")
        if parse_hhmm(custom_end) <= parse_hhmm(custom_start):
            raise DomainError("Shift end time must be after start time")
        return custom_start, custom_end
    if shift not in SHIFT_TIMES:
        raise DomainError(f"Unknown shift: {shift}")
    return SHIFT_TIMES[shift]


def shift_bounds(day: date, start: str, end: str, tz: tzinfo) -> tuple[datetime, datetime]:
    midnight = datetime.combine(day, time.min, tzinfo=tz)
    return (
        midnight + timedelta(minutes=parse_hhmm(start)),
        midnight + timedelta(minutes=parse_hhmm(end)),
    )


def _whole_minutes(delta: timedelta) -> int:
    return int(delta.total_seconds() // 60)


def classify_check_in(
    check_in: datetime, shift_start: datetime, grace_minutes: int
) -> tuple[str, int]:
    """Return ``(status, late_minutes)`` where status is early / on-time / late."""
    check_in = ensure_utc(check_in)
    if check_in < shift_start:
        return "early", 0
    if check_in <= shift_start + timedelta(minutes=grace_minutes):
        return "on-time", 0
    return "late", _whole_minutes(check_in - shift_start)


def early_check_out_minutes(
    check_out: datetime, shift_end: datetime, grace_minutes: int
) -> int:
    """Minutes before shift end, or 0 when inside the grace window."""
    check_out = ensure_utc(check_out)
    if check_out >= shift_end - timedelta(minutes=grace_minutes):
        return 0
    return _whole_minutes(shift_end - check_out)


# ── Breaks ──────────────────────────────────────────────────────────
BREAK_TYPES = ("lunch", "tea", "general", "meeting", "personal", "emergency")
NAMAZ_TYPES = ("fajr", "zuhr", "asr", "maghrib", "isha")


def duration_minutes(start: datetime, end: datetime) -> int:
    return max(0, round((ensure_utc(end) - ensure_utc(start)).total_seconds() / 60))


def ensure_break_allowance(used_minutes: int, limit_minutes: int, label: str = "break") -> None:
    if used_minutes >= limit_minutes:
        raise DomainError(
            f"Daily {label} limit of {limit_minutes} minutes reached ({used_minutes} used)"
        )


def ensure_namaz_available(namaz_type: str, taken: Iterable[str]) -> None:
    if namaz_type in set(taken):
        raise DomainError(f"{namaz_type.capitalize()} namaz break already taken today")


def worked_minutes(
    check_in: datetime,
    until: datetime,
    breaks: Iterable[tuple[datetime, datetime | None]],
) -> int:
    """Gross time minus every break, with running breaks counted up to *until*."""
    until = ensure_utc(until)
    gross = (until - ensure_utc(check_in)).total_seconds()
    paused = 0.0
    for start, end in breaks:
        stop = ensure_utc(end) if end is not None else until
        paused += max(0.0, (stop - ensure_utc(start)).total_seconds())
    return max(0, int((gross - paused) // 60))


def overtime_minutes(worked: int, standard_minutes: int) -> int:
    return max(0, worked - standard_minutes)


# ── Tasks ───────────────────────────────────────────────────────────
TASK_CATEGORIES = (
    "development",
    "design",
    "testing",
    "documentation",
    "meeting",
    "review",
    "research",
    "planning",
    "support",
    "other",
)
TASK_PRIORITIES = ("low", "medium", "high", "urgent")


def task_errors(index: int, description: str, time_spent: int, limit_minutes: int) -> list[str]:
    errors = []
    if not (description or "").strip():
        errors.append(f"Task {index}: description is required")
    if time_spent <= 0:
        errors.append(f"Task {index}: time spent must be greater than zero")
    elif time_spent > limit_minutes:
        errors.append(f"Task {index}: time spent cannot exceed {limit_minutes} minutes")
    return errors


def allowed_variance(worked: int) -> int:
    return max(60, round(worked * 0.25))


def validate_tasks(
    tasks: list[tuple[str, int]],
    worked: int,
    *,
    limit_minutes: int = 600,
    min_total_minutes: int = 30,
) -> None:
    """Check the day's ``(description, minutes)`` pairs against worked time.

    All problems are collected and raised together as one ``TaskValidationError``.
    """
    if not tasks:
        raise TaskValidationError(["At least one task is required to check out"])

    errors: list[str] = []
    for index, (description, spent) in enumerate(tasks, start=1):
        errors.extend(task_errors(index, description, spent, limit_minutes))

    total = sum(spent for _, spent in tasks)
    variance = allowed_variance(worked)
    if total > worked + variance:
        errors.append(
            f"Total task time ({total} min) exceeds worked time ({worked} min) "
            f"by more than {variance} minutes"
        )
    elif total < worked - variance:
        errors.append(
            f"Total task time ({total} min) is short of worked time ({worked} min) "
            f"by more than {variance} minutes"
        )
    if total < min_total_minutes:
        errors.append(f"Total task time must be at least {min_total_minutes} minutes")

    if errors:
        raise TaskValidationError(errors)


# ── Statistics ──────────────────────────────────────────────────────
def working_days(start: date, end: date) -> int:
    """Weekdays between *start* and *end*, both inclusive."""
    if end < start:
        return 0
    days = 0
    current = start
    while current <= end:
        if current.weekday() < 5:
            days += 1
        current += timedelta(days=1)
    return days


def attendance_percentage(present_days: int, total_working_days: int) -> float:
    if total_working_days <= 0:
        return 0.0
    return round(min(present_days, total_working_days) / total_working_days * 100, 1)


def punctuality_score(present_days: int, late_days: int) -> float:
    if present_days <= 0:
        return 0.0
    return round((present_days - late_days) / present_days * 100, 1)
