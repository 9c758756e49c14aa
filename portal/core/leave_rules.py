"""
Leave workflow rules: day counting, balance arithmetic, and which status
changes (edit, cancel, review) are allowed.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, tzinfo

from portal.core.clock import ensure_utc
from portal.core.exceptions import DomainError

LEAVE_TYPES = (
    "annual",
    "sick",
    "casual",
    "maternity",
    "paternity",
    "unpaid",
    "compensatory",
    "bereavement",
    "sabbatical",
    "half-day",
    "short-leave",
    "time-off-in-lieu",
    "jury-duty",
    "volunteer",
    "religious",
)
LEAVE_STATUSES = (
    "pending",
    "in-review",
    "awaiting-documents",
    "approved",
    "rejected",
    "cancelled",
)

PARTIAL_DAY_TYPES = frozenset({"half-day", "short-leave"})
OPEN_STATUSES = frozenset({"pending", "in-review", "awaiting-documents"})
ACTIVE_STATUSES = OPEN_STATUSES | {"approved"}
FINAL_STATUSES = frozenset({"approved", "rejected", "cancelled"})
REVIEW_STATUSES = ("in-review", "awaiting-documents", "approved", "rejected")

# Yearly allocation per tracked type; anything absent is untracked.
DEFAULT_ALLOCATIONS: dict[str, float] = {
    "annual": 20,
    "sick": 12,
    "casual": 10,
    "maternity": 90,
    "paternity": 14,
    "compensatory": 5,
    "bereavement": 5,
}

MAX_LEAVE_DAYS = 365
CANCELLATION_NOTICE = timedelta(hours=24)


def count_leave_days(leave_type: str, start: date, end: date) -> float:
    if end < start:
        raise DomainError("End date must be on or after the start date")
    if leave_type in PARTIAL_DAY_TYPES:
        if start != end:
            raise DomainError("Half-day and short leave must start and end on the same day")
        return 0.5
    days = (end - start).days + 1
    if days > MAX_LEAVE_DAYS:
        raise DomainError(f"Leave cannot exceed {MAX_LEAVE_DAYS} days")
    return float(days)


def ranges_overlap(a_start: date, a_end: date, b_start: date, b_end: date) -> bool:
    return a_start <= b_end and b_start <= a_end


def is_tracked(leave_type: str) -> bool:
    return leave_type in DEFAULT_ALLOCATIONS


def remaining_days(allocated: float, used: float) -> float:
    return max(0.0, allocated - used)


def ensure_balance(leave_type: str, requested: float, allocated: float, used: float) -> None:
    left = remaining_days(allocated, used)
    if requested > left:
        raise DomainError(
            f"Insufficient {leave_type} leave balance: {left:g} day(s) remaining, "
            f"{requested:g} requested"
        )


def ensure_editable(status: str) -> None:
    if status != "pending":
        raise DomainError("Only pending leave applications can be edited")


def ensure_cancellable(status: str, start: date, now: datetime, tz: tzinfo) -> None:
    """Open requests can always be withdrawn; approved ones need 24h notice."""
    if status in OPEN_STATUSES:
        return
    if status == "approved":
        starts_at = datetime.combine(start, time.min, tzinfo=tz)
        if starts_at - ensure_utc(now) > CANCELLATION_NOTICE:
            return
        raise DomainError(
            "Approved leave can only be cancelled more than 24 hours before it starts"
        )
    raise DomainError(f"Cannot cancel a leave application that is {status}")


def ensure_reviewable(current: str, new: str) -> None:
    if current in FINAL_STATUSES:
        raise DomainError(f"Leave application is already {current}")
    if new not in REVIEW_STATUSES:
        raise DomainError(f"Invalid review status: {new}")
    if new == current:
        raise DomainError(f"Leave application is already {current}")
