"""
Profile rules: completion scoring, employee codes, years of service,
date-order checks for history entries, and privacy filtering.
"""

from __future__ import annotations

import math
import re
from collections.abc import Mapping
from datetime import date
from typing import Any

from portal.core.exceptions import DomainError

EMPLOYMENT_TYPES = (
    "full-time",
    "part-time",
    "contract",
    "internship",
    "freelance",
    "temporary",
)
PROFILE_VISIBILITIES = ("public", "private")

# The twelfth completion item is "has at least one education entry".
COMPLETION_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "mobile",
    "date_of_joining",
    "designation",
    "department",
    "employment_type",
    "date_of_birth",
    "bio",
    "skills",
)
COMPLETE_THRESHOLD = 80

MOBILE_RE = re.compile(r"^\+?\d{10,15}$")


def ensure_names(first_name: str | None, last_name: str | None) -> None:
    if not (first_name or "").strip() or not (last_name or "").strip():
        raise DomainError("First name and last name are required")


def display_name(first_name: str, last_name: str) -> str:
    return f"{first_name.strip()} {last_name.strip()}"


def employee_code(year: int, existing_profiles: int) -> str:
    return f"EMP{year}{existing_profiles + 1:04d}"


def completion_percentage(values: Mapping[str, Any], has_education: bool) -> int:
    filled = sum(1 for field in COMPLETION_FIELDS if values.get(field))
    if has_education:
        filled += 1
    return round(filled / (len(COMPLETION_FIELDS) + 1) * 100)


def is_complete(percentage: int) -> bool:
    return percentage >= COMPLETE_THRESHOLD


def years_of_service(joined: date | None, today: date) -> int:
    if joined is None or joined > today:
        return 0
    return math.floor((today - joined).days / 365.25)


def ensure_date_order(
    start: date | None, end: date | None, *, open_ended: bool, label: str
) -> None:
    """*end* must not precede *start* unless the entry is still running."""
    if open_ended or start is None or end is None:
        return
    if end < start:
        raise DomainError(f"{label} end date cannot be before its start date")


# Fields blanked for other viewers when the owner hides them.
_PRIVACY_FIELDS = {
    "show_email": ("email",),
    "show_mobile": ("mobile",),
    "show_birthday": ("date_of_birth",),
    "show_work_anniversary": ("date_of_joining", "years_of_service"),
}


def apply_privacy(data: dict[str, Any], flags: Mapping[str, bool]) -> dict[str, Any]:
    visible = dict(data)
    for flag, fields in _PRIVACY_FIELDS.items():
        if not flags.get(flag, True):
            for field in fields:
                visible[field] = None
    return visible
