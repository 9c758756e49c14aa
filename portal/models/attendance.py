"""
Attendance models — one record per employee per local day, with the day's
breaks (general and namaz) and logged tasks as child rows.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (Boolean, Column, DateTime, ForeignKey, Index, Integer,
                        String, UniqueConstraint)
from sqlalchemy.orm import relationship

from portal.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Attendance(Base):
    __tablename__ = "attendance"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        Index("ix_attendance_employee_date", "employee_id", "date"),
    )

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    employee_id: int = Column(Integer, ForeignKey("users.id"), nullable=False)  # type: ignore[assignment]
    date: str = Column(String(10), nullable=False, index=True)  # type: ignore[assignment]  # YYYY-MM-DD, local
    state: str = Column(String(20), nullable=False, default="working")  # type: ignore[assignment]
    # not_checked_in | working | on_break | in_prayer | checked_out

    shift: str = Column(String(10), nullable=False, default="morning")  # type: ignore[assignment]
    shift_start: str = Column(String(5), nullable=False)  # type: ignore[assignment]  # HH:MM
    shift_end: str = Column(String(5), nullable=False)  # type: ignore[assignment]

    check_in: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    check_in_status: str = Column(String(10), nullable=False, default="on-time")  # type: ignore[assignment]
    # early | on-time | late
    late_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    late_reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    check_in_location: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]

    check_out: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    is_early_check_out: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    early_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    early_reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    check_out_location: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]

    worked_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    break_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    namaz_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    overtime_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    overtime_status: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]
    # pending | approved | rejected
    overtime_reviewed_by: int | None = Column(Integer, ForeignKey("users.id"), nullable=True)  # type: ignore[assignment]

    notes: str | None = Column(String(1000), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    breaks = relationship(
        "AttendanceBreak",
        back_populates="attendance",
        cascade="all, delete-orphan",
        order_by="AttendanceBreak.id",
        lazy="selectin",
    )
    tasks = relationship(
        "AttendanceTask",
        back_populates="attendance",
        cascade="all, delete-orphan",
        order_by="AttendanceTask.id",
        lazy="selectin",
    )


class AttendanceBreak(Base):
    __tablename__ = "attendance_breaks"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    attendance_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("attendance.id", ondelete="CASCADE"), nullable=False, index=True
    )
    kind: str = Column(String(10), nullable=False, default="general")  # type: ignore[assignment]  # general | namaz
    break_type: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    namaz_type: str | None = Column(String(10), nullable=True)  # type: ignore[assignment]
    reason: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
    start_time: datetime = Column(DateTime(timezone=True), nullable=False)  # type: ignore[assignment]
    end_time: datetime | None = Column(DateTime(timezone=True), nullable=True)  # type: ignore[assignment]
    duration_minutes: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]

    attendance = relationship("Attendance", back_populates="breaks")


class AttendanceTask(Base):
    __tablename__ = "attendance_tasks"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    attendance_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("attendance.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description: str = Column(String(1000), nullable=False)  # type: ignore[assignment]
    time_spent: int = Column(Integer, nullable=False)  # type: ignore[assignment]  # minutes
    category: str = Column(String(20), nullable=False, default="other")  # type: ignore[assignment]
    priority: str = Column(String(10), nullable=False, default="medium")  # type: ignore[assignment]
    notes: str | None = Column(String(1000), nullable=True)  # type: ignore[assignment]
    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]

    attendance = relationship("Attendance", back_populates="tasks")
