"""
Attendance Settings model — singleton table for admin-configurable rules.

Only one row should ever exist. The admin updates it via the settings API,
and the attendance endpoints read it for grace periods, break allowances,
the standard working day and the local timezone.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String

from portal.db.base import Base


class AttendanceSettings(Base):
    __tablename__ = "attendance_settings"

    id: int = Column(Integer, primary_key=True, default=1)  # type: ignore[assignment]
    grace_minutes: int = Column(Integer, nullable=False, default=15)  # type: ignore[assignment]
    timezone_offset: str = Column(String(6), nullable=False, default="+05:00")  # type: ignore[assignment]
    max_break_minutes: int = Column(Integer, nullable=False, default=120)  # type: ignore[assignment]
    max_namaz_minutes: int = Column(Integer, nullable=False, default=90)  # type: ignore[assignment]
    standard_work_minutes: int = Column(Integer, nullable=False, default=480)  # type: ignore[assignment]
    task_time_limit_minutes: int = Column(Integer, nullable=False, default=600)  # type: ignore[assignment]
    min_task_minutes: int = Column(Integer, nullable=False, default=30)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
