"""
Leave models — applications moving through the approval workflow, and the
per-year balance rows they draw from.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (Column, Date, DateTime, Float, ForeignKey, Index,
                        Integer, String, UniqueConstraint)

from portal.db.base import Base


class LeaveApplication(Base):
    __tablename__ = "leave_applications"
    __table_args__ = (
        Index("ix_leave_employee_status", "employee_id", "status"),
        Index("ix_leave_employee_dates", "employee_id", "start_date", "end_date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    leave_type: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    start_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    end_date: date = Column(Date, nullable=False)  # type: ignore[assignment]
    total_days: float = Column(Float, nullable=False)  # type: ignore[assignment]
    reason: str = Column(String(1000), nullable=False)  # type: ignore[assignment]
    status: str = Column(String(20), nullable=False, default="pending", index=True)  # type: ignore[assignment]
    # pending | in-review | awaiting-documents | approved | rejected | cancelled
    emergency_contact: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    handover_notes: str | None = Column(String(2000), nullable=True)  # type: ignore[assignment]

    reviewed_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]
    reviewed_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    review_comments: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    cancelled_at: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]

    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )


class LeaveBalance(Base):
    __tablename__ = "leave_balances"
    __table_args__ = (
        UniqueConstraint("employee_id", "year", "leave_type", name="uq_balance_emp_year_type"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)  # type: ignore[assignment]
    year: int = Column(Integer, nullable=False)  # type: ignore[assignment]
    leave_type: str = Column(String(30), nullable=False)  # type: ignore[assignment]
    allocated: float = Column(Float, nullable=False, default=0)  # type: ignore[assignment]
    used: float = Column(Float, nullable=False, default=0)  # type: ignore[assignment]
