"""Pydantic schemas for employee profiles, history entries and settings."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from portal.core.profile_rules import (EMPLOYMENT_TYPES, MOBILE_RE,
                                       PROFILE_VISIBILITIES)


def _mobile(v: str | None) -> str | None:
    if v is None or v == "":
        return None
    v = v.replace(" ", "").replace("-", "")
    if not MOBILE_RE.match(v):
        raise ValueError("Mobile number must contain 10-15 digits")
    return v


def _employment_type(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip().lower()
    if v not in EMPLOYMENT_TYPES:
        raise ValueError(f"Employment type must be one of: {', '.join(EMPLOYMENT_TYPES)}")
    return v


def _skills(v: list[str] | None) -> list[str] | None:
    if v is None:
        return v
    cleaned: list[str] = []
    for skill in v:
        skill = skill.strip()
        if skill and skill not in cleaned:
            cleaned.append(skill)
    return cleaned


# ── Profile ─────────────────────────────────────────────────────────
class ProfileCreate(BaseModel):
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    display_name: str | None = Field(default=None, max_length=101)
    email: str | None = Field(default=None, max_length=320)
    mobile: str | None = None
    date_of_joining: date | None = None
    date_of_birth: date | None = None
    designation: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    work_location: str | None = Field(default=None, max_length=100)
    reporting_manager_id: int | None = None
    employment_type: str = "full-time"
    bio: str | None = Field(default=None, max_length=1000)
    skills: list[str] = Field(default_factory=list)

    @field_validator("mobile")
    @classmethod
    def _check_mobile(cls, v: str | None) -> str | None:
        return _mobile(v)

    @field_validator("employment_type")
    @classmethod
    def _check_employment_type(cls, v: str | None) -> str | None:
        return _employment_type(v)

    @field_validator("skills")
    @classmethod
    def _check_skills(cls, v: list[str] | None) -> list[str] | None:
        return _skills(v)


class ProfileUpdate(BaseModel):
    first_name: str | None = Field(default=None, max_length=50)
    last_name: str | None = Field(default=None, max_length=50)
    display_name: str | None = Field(default=None, max_length=101)
    email: str | None = Field(default=None, max_length=320)
    mobile: str | None = None
    date_of_joining: date | None = None
    date_of_birth: date | None = None
    designation: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    work_location: str | None = Field(default=None, max_length=100)
    reporting_manager_id: int | None = None
    employment_type: str | None = None
    bio: str | None = Field(default=None, max_length=1000)
    skills: list[str] | None = None

    @field_validator("mobile")
    @classmethod
    def _check_mobile(cls, v: str | None) -> str | None:
        return _mobile(v)

    @field_validator("employment_type")
    @classmethod
    def _check_employment_type(cls, v: str | None) -> str | None:
        return _employment_type(v)

    @field_validator("skills")
    @classmethod
    def _check_skills(cls, v: list[str] | None) -> list[str] | None:
        return _skills(v)


# ── Education ───────────────────────────────────────────────────────
class EducationCreate(BaseModel):
    institution: str = Field(min_length=1, max_length=200)
    degree: str = Field(min_length=1, max_length=100)
    field_of_study: str = Field(min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    is_current: bool = False
    grade: str | None = Field(default=None, max_length=20)
    description: str | None = Field(default=None, max_length=500)


class EducationUpdate(BaseModel):
    institution: str | None = Field(default=None, min_length=1, max_length=200)
    degree: str | None = Field(default=None, min_length=1, max_length=100)
    field_of_study: str | None = Field(default=None, min_length=1, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    is_current: bool | None = None
    grade: str | None = Field(default=None, max_length=20)
    description: str | None = Field(default=None, max_length=500)


class EducationRead(EducationCreate):
    id: int

    model_config = {"from_attributes": True}


# ── Experience ──────────────────────────────────────────────────────
class ExperienceCreate(BaseModel):
    company: str = Field(min_length=1, max_length=200)
    position: str = Field(min_length=1, max_length=100)
    location: str | None = Field(default=None, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    is_current: bool = False
    description: str | None = Field(default=None, max_length=1000)
    skills_used: list[str] = Field(default_factory=list)
    achievements: list[str] = Field(default_factory=list)


class ExperienceUpdate(BaseModel):
    company: str | None = Field(default=None, min_length=1, max_length=200)
    position: str | None = Field(default=None, min_length=1, max_length=100)
    location: str | None = Field(default=None, max_length=100)
    start_date: date | None = None
    end_date: date | None = None
    is_current: bool | None = None
    description: str | None = Field(default=None, max_length=1000)
    skills_used: list[str] | None = None
    achievements: list[str] | None = None


class ExperienceRead(ExperienceCreate):
    id: int

    model_config = {"from_attributes": True}


# ── Certifications ──────────────────────────────────────────────────
class CertificationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    issuing_organization: str = Field(min_length=1, max_length=200)
    issue_date: date | None = None
    expiration_date: date | None = None
    does_not_expire: bool = False
    credential_id: str | None = Field(default=None, max_length=100)
    credential_url: str | None = Field(default=None, max_length=500)


class CertificationUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    issuing_organization: str | None = Field(default=None, min_length=1, max_length=200)
    issue_date: date | None = None
    expiration_date: date | None = None
    does_not_expire: bool | None = None
    credential_id: str | None = Field(default=None, max_length=100)
    credential_url: str | None = Field(default=None, max_length=500)


class CertificationRead(CertificationCreate):
    id: int

    model_config = {"from_attributes": True}


class ProfileRead(BaseModel):
    id: int
    user_id: int
    employee_code: str
    first_name: str
    last_name: str
    display_name: str
    email: str | None
    mobile: str | None
    date_of_joining: date | None
    date_of_birth: date | None
    designation: str | None
    department: str | None
    work_location: str | None
    reporting_manager_id: int | None
    employment_type: str
    bio: str | None
    skills: list[str]
    completion_percentage: int
    is_profile_complete: bool
    years_of_service: int = 0
    education: list[EducationRead] = Field(default_factory=list)
    experience: list[ExperienceRead] = Field(default_factory=list)
    certifications: list[CertificationRead] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = {"from_attributes": True}


class PublicProfileRead(BaseModel):
    employee_code: str
    display_name: str
    email: str | None
    mobile: str | None
    date_of_birth: date | None
    date_of_joining: date | None
    years_of_service: int | None
    designation: str | None
    department: str | None
    work_location: str | None
    bio: str | None
    skills: list[str]


# ── Settings ────────────────────────────────────────────────────────
class NotificationSettings(BaseModel):
    email_notifications: bool = True
    push_notifications: bool = True
    profile_updates: bool = True
    team_announcements: bool = True
    birthday_reminders: bool = True
    work_anniversaries: bool = True

    model_config = {"from_attributes": True}


class NotificationSettingsUpdate(BaseModel):
    email_notifications: bool | None = None
    push_notifications: bool | None = None
    profile_updates: bool | None = None
    team_announcements: bool | None = None
    birthday_reminders: bool | None = None
    work_anniversaries: bool | None = None


class PrivacySettings(BaseModel):
    profile_visibility: str = "public"
    show_email: bool = True
    show_mobile: bool = False
    show_birthday: bool = True
    show_work_anniversary: bool = True

    model_config = {"from_attributes": True}


class PrivacySettingsUpdate(BaseModel):
    profile_visibility: str | None = None
    show_email: bool | None = None
    show_mobile: bool | None = None
    show_birthday: bool | None = None
    show_work_anniversary: bool | None = None

    @field_validator("profile_visibility")
    @classmethod
    def _visibility(cls, v: str | None) -> str | None:
        if v is not None and v not in PROFILE_VISIBILITIES:
            raise ValueError("Profile visibility must be public or private")
        return v


class TwoFactorUpdate(BaseModel):
    enabled: bool


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str


class AccountDeleteRequest(BaseModel):
    feedback: str | None = Field(default=None, max_length=1000)


class ProfileSettingsResponse(BaseModel):
    notifications: NotificationSettings
    privacy: PrivacySettings
    two_factor_enabled: bool
