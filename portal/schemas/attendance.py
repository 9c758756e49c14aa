"""Pydantic schemas for attendance, breaks, tasks and the settings row."""

from __future__ import annotations

import datetime as dt
import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from portal.core.attendance_rules import (BREAK_TYPES, NAMAZ_TYPES,
                                          TASK_CATEGORIES, TASK_PRIORITIES,
                                          VALID_SHIFTS)

_HHMM_RE = re.compile(r"^([01]\d|2[0-4]):[0-5]\d$")
_OFFSET_RE = re.compile(r"^[+-](0\d|1[0-4]):[0-5]\d$")


def _one_of(value: str, allowed: tuple[str, ...], label: str) -> str:
    value = value.strip().lower()
    if value not in allowed:
        raise ValueError(f"{label} must be one of: {', '.join(allowed)}")
    return value


# ── Check-in / Check-out ────────────────────────────────────────────
class CheckInRequest(BaseModel):
    shift: str = "morning"
    custom_start_time: str | None = None
    custom_end_time: str | None = None
    late_reason: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("shift")
    @classmethod
    def _shift(cls, v: str) -> str:
        return _one_of(v, VALID_SHIFTS, "Shift")

    @field_validator("custom_start_time", "custom_end_time")
    @classmethod
    def _hhmm(cls, v: str | None) -> str | None:
        if v is not None and not _HHMM_RE.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class TaskCreate(BaseModel):
    description: str = Field(default="", max_length=1000)
    time_spent: int = 0
    category: str = "other"
    priority: str = "medium"
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str) -> str:
        return _one_of(v, TASK_CATEGORIES, "Category")

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str) -> str:
        return _one_of(v, TASK_PRIORITIES, "Priority")


class TaskUpdate(BaseModel):
    description: str | None = Field(default=None, max_length=1000)
    time_spent: int | None = None
    category: str | None = None
    priority: str | None = None
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("category")
    @classmethod
    def _category(cls, v: str | None) -> str | None:
        return None if v is None else _one_of(v, TASK_CATEGORIES, "Category")

    @field_validator("priority")
    @classmethod
    def _priority(cls, v: str | None) -> str | None:
        return None if v is None else _one_of(v, TASK_PRIORITIES, "Priority")


class CheckOutRequest(BaseModel):
    tasks: list[TaskCreate] = Field(default_factory=list)
    early_reason: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=1000)


# ── Breaks ──────────────────────────────────────────────────────────
class BreakStartRequest(BaseModel):
    break_type: str = "general"
    reason: str | None = Field(default=None, max_length=500)

    @field_validator("break_type")
    @classmethod
    def _break_type(cls, v: str) -> str:
        return _one_of(v, BREAK_TYPES, "Break type")


class NamazStartRequest(BaseModel):
    namaz_type: str

    @field_validator("namaz_type")
    @classmethod
    def _namaz_type(cls, v: str) -> str:
        return _one_of(v, NAMAZ_TYPES, "Namaz type")


class BreakRead(BaseModel):
    id: int
    kind: str
    break_type: str | None
    namaz_type: str | None
    reason: str | None
    start_time: datetime
    end_time: datetime | None
    duration_minutes: int

    model_config = {"from_attributes": True}


class TaskRead(BaseModel):
    id: int
    description: str
    time_spent: int
    category: str
    priority: str
    notes: str | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class BreakSummary(BaseModel):
    state: str
    breaks: list[BreakRead]
    break_minutes_used: int
    break_minutes_remaining: int
    namaz_minutes_used: int
    namaz_minutes_remaining: int
    namaz_taken: list[str]


# ── Attendance record ───────────────────────────────────────────────
class AttendanceRead(BaseModel):
    id: int
    employee_id: int
    date: str
    state: str
    shift: str
    shift_start: str
    shift_end: str
    check_in: datetime
    check_in_status: str
    late_minutes: int
    late_reason: str | None
    check_in_location: str | None
    check_out: datetime | None
    is_early_check_out: bool
    early_minutes: int
    early_reason: str | None
    check_out_location: str | None
    worked_minutes: int
    break_minutes: int
    namaz_minutes: int
    overtime_minutes: int
    overtime_status: str | None
    notes: str | None
    breaks: list[BreakRead] = Field(default_factory=list)
    tasks: list[TaskRead] = Field(default_factory=list)

    model_config = {"from_attributes": True}


class TodayStatusResponse(BaseModel):
    date: str
    state: str
    is_checked_in: bool
    is_on_break: bool
    is_in_prayer: bool
    is_checked_out: bool
    worked_minutes: int
    record: AttendanceRead | None = None


class AttendanceHistoryResponse(BaseModel):
    records: list[AttendanceRead]
    total: int
    page: int
    limit: int
    total_pages: int


class MonthlyStats(BaseModel):
    working_days: int
    present_days: int
    absent_days: int
    late_days: int
    early_check_outs: int
    total_worked_minutes: int
    average_worked_minutes: int
    overtime_minutes: int
    attendance_percentage: float


class MonthlyAttendanceResponse(BaseModel):
    year: int
    month: int
    records: list[AttendanceRead]
    stats: MonthlyStats


class PeriodStats(BaseModel):
    days_present: int
    late_days: int
    worked_minutes: int
    overtime_minutes: int


class AttendanceStatsResponse(BaseModel):
    today_state: str
    today_worked_minutes: int
    week: PeriodStats
    month: PeriodStats
    attendance_percentage: float
    punctuality_score: float


class OvertimeReviewRequest(BaseModel):
    status: str

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        return _one_of(v, ("approved", "rejected"), "Overtime status")


# ── Manual records & corrections ────────────────────────────────────
class ManualAttendanceCreate(BaseModel):
    """A past day entered after the fact. Check-in defaults to shift start."""

    date: dt.date
    shift: str
    employee_id: int | None = None
    custom_start_time: str | None = None
    custom_end_time: str | None = None
    check_in: datetime | None = None
    check_out: datetime | None = None
    late_reason: str | None = Field(default=None, max_length=500)
    early_reason: str | None = Field(default=None, max_length=500)
    location: str | None = Field(default=None, max_length=200)
    notes: str | None = Field(default=None, max_length=1000)
    tasks: list[TaskCreate] = Field(default_factory=list)

    @field_validator("shift")
    @classmethod
    def _shift(cls, v: str) -> str:
        return _one_of(v, VALID_SHIFTS, "Shift")

    @field_validator("custom_start_time", "custom_end_time")
    @classmethod
    def _hhmm(cls, v: str | None) -> str | None:
        if v is not None and not _HHMM_RE.match(v):
            raise ValueError("Time must be in HH:MM format")
        return v


class AttendanceUpdate(BaseModel):
    check_in: datetime | None = None
    check_out: datetime | None = None
    late_reason: str | None = Field(default=None, max_length=500)
    early_reason: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


# ── Attendance Settings ────────────────────────────────────────────
class AttendanceSettingsRead(BaseModel):
    grace_minutes: int
    timezone_offset: str
    max_break_minutes: int
    max_namaz_minutes: int
    standard_work_minutes: int
    task_time_limit_minutes: int
    min_task_minutes: int

    model_config = {"from_attributes": True}


class AttendanceSettingsUpdate(BaseModel):
    grace_minutes: int | None = Field(default=None, ge=0, le=240)
    timezone_offset: str | None = None
    max_break_minutes: int | None = Field(default=None, ge=0, le=720)
    max_namaz_minutes: int | None = Field(default=None, ge=0, le=720)
    standard_work_minutes: int | None = Field(default=None, ge=60, le=1440)
    task_time_limit_minutes: int | None = Field(default=None, ge=1, le=1440)
    min_task_minutes: int | None = Field(default=None, ge=0, le=1440)

    @field_validator("timezone_offset")
    @classmethod
    def _offset(cls, v: str | None) -> str | None:
        if v is not None and not _OFFSET_RE.match(v):
            raise ValueError("Timezone offset must look like +05:00")
        return v
