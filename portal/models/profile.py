"""
Employee profile models — personal / professional record plus education,
experience and certification history.
"""

from __future__ import annotations

from datetime import date, datetime, timezone

from sqlalchemy import (JSON, Boolean, Column, Date, DateTime, ForeignKey,
                        Integer, String)
from sqlalchemy.orm import relationship

from portal.db.base import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EmployeeProfile(Base):
    __tablename__ = "employee_profiles"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    user_id: int = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)  # type: ignore[assignment]
    employee_code: str = Column(String(20), unique=True, nullable=False, index=True)  # type: ignore[assignment]

    first_name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    last_name: str = Column(String(50), nullable=False)  # type: ignore[assignment]
    display_name: str = Column(String(101), nullable=False)  # type: ignore[assignment]
    email: str | None = Column(String(320), nullable=True)  # type: ignore[assignment]
    mobile: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    date_of_joining: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    date_of_birth: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    designation: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    department: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    work_location: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    reporting_manager_id: int | None = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # type: ignore[assignment]
    employment_type: str = Column(String(20), nullable=False, default="full-time")  # type: ignore[assignment]
    bio: str | None = Column(String(1000), nullable=True)  # type: ignore[assignment]
    skills: list = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]

    completion_percentage: int = Column(Integer, nullable=False, default=0)  # type: ignore[assignment]
    is_profile_complete: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]

    # ── Notification settings ───────────────────────────────────────
    email_notifications: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    push_notifications: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    profile_updates: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    team_announcements: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    birthday_reminders: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    work_anniversaries: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]

    # ── Privacy settings ────────────────────────────────────────────
    profile_visibility: str = Column(String(10), nullable=False, default="public")  # type: ignore[assignment]
    show_email: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    show_mobile: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    show_birthday: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]
    show_work_anniversary: bool = Column(Boolean, nullable=False, default=True)  # type: ignore[assignment]

    two_factor_enabled: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]

    created_at: datetime = Column(DateTime(timezone=True), default=_utcnow)  # type: ignore[assignment]
    updated_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
    )

    education = relationship(
        "Education",
        cascade="all, delete-orphan",
        order_by="Education.id",
        lazy="selectin",
    )
    experience = relationship(
        "Experience",
        cascade="all, delete-orphan",
        order_by="Experience.id",
        lazy="selectin",
    )
    certifications = relationship(
        "Certification",
        cascade="all, delete-orphan",
        order_by="Certification.id",
        lazy="selectin",
    )


class Education(Base):
    __tablename__ = "profile_education"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    profile_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("employee_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    institution: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    degree: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    field_of_study: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    start_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    end_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    is_current: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    grade: str | None = Column(String(20), nullable=True)  # type: ignore[assignment]
    description: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]


class Experience(Base):
    __tablename__ = "profile_experience"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    profile_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("employee_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    company: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    position: str = Column(String(100), nullable=False)  # type: ignore[assignment]
    location: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    start_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    end_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    is_current: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    description: str | None = Column(String(1000), nullable=True)  # type: ignore[assignment]
    skills_used: list = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]
    achievements: list = Column(JSON, nullable=False, default=list)  # type: ignore[assignment]


class Certification(Base):
    __tablename__ = "profile_certifications"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    profile_id: int = Column(  # type: ignore[assignment]
        Integer, ForeignKey("employee_profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    issuing_organization: str = Column(String(200), nullable=False)  # type: ignore[assignment]
    issue_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    expiration_date: date | None = Column(Date, nullable=True)  # type: ignore[assignment]
    does_not_expire: bool = Column(Boolean, nullable=False, default=False)  # type: ignore[assignment]
    credential_id: str | None = Column(String(100), nullable=True)  # type: ignore[assignment]
    credential_url: str | None = Column(String(500), nullable=True)  # type: ignore[assignment]
