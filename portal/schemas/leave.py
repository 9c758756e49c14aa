"""Pydantic schemas for leave applications, reviews and balances."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from portal.core.leave_rules import LEAVE_TYPES, REVIEW_STATUSES


def _leave_type(v: str) -> str:
    v = v.strip().lower()
    if v not in LEAVE_TYPES:
        raise ValueError(f"Leave type must be one of: {', '.join(LEAVE_TYPES)}")
    return v


class LeaveCreate(BaseModel):
    leave_type: str
    start_date: date
    end_date: date
    reason: str = Field(max_length=1000)
    emergency_contact: str | None = Field(default=None, max_length=20)
    handover_notes: str | None = Field(default=None, max_length=2000)

    @field_validator("leave_type")
    @classmethod
    def _type(cls, v: str) -> str:
        return _leave_type(v)

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Reason must not be empty")
        return v


class LeaveUpdate(BaseModel):
    leave_type: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    reason: str | None = Field(default=None, max_length=1000)
    emergency_contact: str | None = Field(default=None, max_length=20)
    handover_notes: str | None = Field(default=None, max_length=2000)

    @field_validator("leave_type")
    @classmethod
    def _type(cls, v: str | None) -> str | None:
        return None if v is None else _leave_type(v)

    @field_validator("reason")
    @classmethod
    def _reason(cls, v: str | None) -> str | None:
        if v is not None and not v.strip():
            raise ValueError("Reason must not be empty")
        return v.strip() if v else v


class LeaveReviewRequest(BaseModel):
    status: str
    comments: str | None = Field(default=None, max_length=500)

    @field_validator("status")
    @classmethod
    def _status(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in REVIEW_STATUSES:
            raise ValueError(f"Status must be one of: {', '.join(REVIEW_STATUSES)}")
        return v


class LeaveRead(BaseModel):
    id: int
    employee_id: int
    leave_type: str
    start_date: date
    end_date: date
    total_days: float
    reason: str
    status: str
    emergency_contact: str | None
    handover_notes: str | None
    reviewed_by: int | None
    reviewed_at: datetime | None
    review_comments: str | None
    cancelled_at: datetime | None
    created_at: datetime | None

    model_config = {"from_attributes": True}


class LeaveListResponse(BaseModel):
    leaves: list[LeaveRead]
    total: int
    page: int
    limit: int
    total_pages: int


class LeaveStatsResponse(BaseModel):
    total: int
    pending: int
    approved: int
    rejected: int
    cancelled: int
    upcoming: int
    days_taken: float


class LeaveBalanceItem(BaseModel):
    leave_type: str
    allocated: float
    used: float
    remaining: float


class LeaveBalanceResponse(BaseModel):
    year: int
    balances: list[LeaveBalanceItem]
