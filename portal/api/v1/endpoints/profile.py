"""
Profile endpoints — the employee's own profile, education / experience /
certification history, account settings and deletion, and a privacy-aware
lookup of colleagues by their account email.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.deps import get_current_active_user, get_db
from portal.api.v1.endpoints.settings import get_or_create_settings
from portal.core import clock
from portal.core.exceptions import ConflictError, DomainError
from portal.core.profile_rules import (COMPLETION_FIELDS, apply_privacy,
                                       completion_percentage, display_name,
                                       employee_code, ensure_date_order,
                                       ensure_names, is_complete,
                                       years_of_service)
from portal.core.security import (get_password_hash,
                                  validate_password_strength, verify_password)
from portal.models.attendance import Attendance
from portal.models.leave import LeaveApplication, LeaveBalance
from portal.models.profile import (Certification, Education, EmployeeProfile,
                                   Experience)
from portal.models.user import User
from portal.schemas.common import ActionResponse
from portal.schemas.profile import (AccountDeleteRequest, CertificationCreate,
                                    CertificationRead, CertificationUpdate,
                                    EducationCreate, EducationRead,
                                    EducationUpdate,
                                    ExperienceCreate, ExperienceRead,
                                    ExperienceUpdate, NotificationSettings,
                                    NotificationSettingsUpdate,
                                    PasswordChangeRequest, PrivacySettings,
                                    PrivacySettingsUpdate, ProfileCreate,
                                    ProfileRead, ProfileSettingsResponse,
                                    ProfileUpdate, PublicProfileRead,
                                    TwoFactorUpdate)

router = APIRouter(prefix="/profile", tags=["profile"])
logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT", Education, Experience, Certification)


# ── Helpers ─────────────────────────────────────────────────────────
async def _load_profile(db: AsyncSession, user_id: int) -> EmployeeProfile | None:
    result = await db.execute(
        select(EmployeeProfile)
        .where(EmployeeProfile.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _require_profile(db: AsyncSession, user: User) -> EmployeeProfile:
    profile = await _load_profile(db, user.id)
    if profile is None:
        raise HTTPException(
            status_code=404,
            detail="Profile not found. Please create your profile first",
        )
    return profile


def _refresh_completion(profile: EmployeeProfile) -> None:
    values = {field: getattr(profile, field) for field in COMPLETION_FIELDS}
    percentage = completion_percentage(values, bool(profile.education))
    profile.completion_percentage = percentage
    profile.is_profile_complete = is_complete(percentage)


async def _local_today(db: AsyncSession) -> date:
    policy = await get_or_create_settings(db)
    return clock.to_local(clock.utcnow(), policy.timezone_offset).date()


async def _to_read(db: AsyncSession, profile: EmployeeProfile) -> ProfileRead:
    data = ProfileRead.model_validate(profile)
    data.years_of_service = years_of_service(profile.date_of_joining, await _local_today(db))
    return data


def _settings_response(profile: EmployeeProfile) -> ProfileSettingsResponse:
    return ProfileSettingsResponse(
        notifications=NotificationSettings.model_validate(profile),
        privacy=PrivacySettings.model_validate(profile),
        two_factor_enabled=profile.two_factor_enabled,
    )


def _find_entry(entries: Sequence[EntryT], entry_id: int, label: str) -> EntryT:
    for entry in entries:
        if entry.id == entry_id:
            return entry
    raise HTTPException(status_code=404, detail=f"{label} not found")


async def _ensure_reporting_manager(db: AsyncSession, user: User, manager_id: int | None) -> None:
    if manager_id is None:
        return
    if manager_id == user.id:
        raise DomainError("You cannot be your own reporting manager")
    if await db.get(User, manager_id) is None:
        raise DomainError("Reporting manager not found")


def _changes(body: Any, required: tuple[str, ...]) -> dict[str, Any]:
    """Fields sent in *body*, ignoring explicit nulls for non-nullable columns."""
    changes = body.model_dump(exclude_unset=True)
    for field in required:
        if changes.get(field, "") is None:
            del changes[field]
    return changes


# ── Profile ─────────────────────────────────────────────────────────
@router.get("", response_model=ProfileRead)
async def get_profile(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProfileRead:
    return await _to_read(db, await _require_profile(db, current_user))


@router.post("", response_model=ProfileRead, status_code=201)
async def create_profile(
    body: ProfileCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProfileRead:
    """Create the current user's profile and assign an employee code."""
    if await _load_profile(db, current_user.id) is not None:
        raise ConflictError("Profile already exists")
    ensure_names(body.first_name, body.last_name)
    await _ensure_reporting_manager(db, current_user, body.reporting_manager_id)

    existing = (await db.execute(select(func.count(EmployeeProfile.id)))).scalar() or 0
    data = body.model_dump()
    data["first_name"] = data["first_name"].strip()
    data["last_name"] = data["last_name"].strip()
    data["display_name"] = (data["display_name"] or "").strip() or display_name(
        data["first_name"], data["last_name"]
    )
    data["email"] = data["email"] or current_user.email
    data["mobile"] = data["mobile"] or current_user.mobile

    profile = EmployeeProfile(
        user_id=current_user.id,
        employee_code=employee_code((await _local_today(db)).year, existing),
        **data,
    )
    _refresh_completion(profile)
    db.add(profile)
    await db.commit()

    logger.info("Profile %s created for user %s", profile.employee_code, current_user.id)
    return await _to_read(db, await _require_profile(db, current_user))


@router.put("", response_model=ProfileRead)
async def update_profile(
    body: ProfileUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProfileRead:
    profile = await _require_profile(db, current_user)
    changes = _changes(body, ("display_name", "employment_type", "skills"))

    if "first_name" in changes or "last_name" in changes:
        first = changes.get("first_name", profile.first_name)
        last = changes.get("last_name", profile.last_name)
        ensure_names(first, last)
        changes["first_name"], changes["last_name"] = first.strip(), last.strip()
        changes.setdefault("display_name", display_name(first, last))
    if "reporting_manager_id" in changes:
        await _ensure_reporting_manager(db, current_user, changes["reporting_manager_id"])

    for field, value in changes.items():
        setattr(profile, field, value)
    _refresh_completion(profile)
    await db.commit()

    logger.info("Profile %s updated: %s", profile.employee_code, sorted(changes))
    return await _to_read(db, await _require_profile(db, current_user))


@router.get("/by-email", response_model=PublicProfileRead)
async def get_profile_by_email(
    email: str = Query(..., min_length=3, max_length=320),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> PublicProfileRead:
    """Look up a colleague by account email. Private profiles are visible to owner and admins only."""
    result = await db.execute(
        select(EmployeeProfile)
        .join(User, User.id == EmployeeProfile.user_id)
        .where(User.email == email.strip().lower())
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        raise HTTPException(status_code=404, detail="Profile not found")

    privileged = profile.user_id == current_user.id or current_user.role == "admin"
    if profile.profile_visibility == "private" and not privileged:
        raise HTTPException(status_code=403, detail="This profile is private")

    data: dict[str, Any] = {
        "employee_code": profile.employee_code,
        "display_name": profile.display_name,
        "email": profile.email,
        "mobile": profile.mobile,
        "date_of_birth": profile.date_of_birth,
        "date_of_joining": profile.date_of_joining,
        "years_of_service": years_of_service(profile.date_of_joining, await _local_today(db)),
        "designation": profile.designation,
        "department": profile.department,
        "work_location": profile.work_location,
        "bio": profile.bio,
        "skills": list(profile.skills or []),
    }
    if not privileged:
        data = apply_privacy(data, PrivacySettings.model_validate(profile).model_dump())
    return PublicProfileRead(**data)


# ── Education ───────────────────────────────────────────────────────
@router.get("/education", response_model=list[EducationRead])
async def list_education(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[Education]:
    return list((await _require_profile(db, current_user)).education)


@router.post("/education", response_model=EducationRead, status_code=201)
async def add_education(
    body: EducationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Education:
    profile = await _require_profile(db, current_user)
    ensure_date_order(body.start_date, body.end_date, open_ended=body.is_current, label="Education")

    entry = Education(**body.model_dump())
    if entry.is_current:
        entry.end_date = None
    profile.education.append(entry)
    _refresh_completion(profile)
    await db.commit()
    await db.refresh(entry)
    return entry


@router.put("/education/{entry_id}", response_model=EducationRead)
async def update_education(
    entry_id: int,
    body: EducationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Education:
    profile = await _require_profile(db, current_user)
    entry = _find_entry(profile.education, entry_id, "Education entry")
    changes = _changes(body, ("institution", "degree", "field_of_study", "is_current"))

    is_current = changes.get("is_current", entry.is_current)
    ensure_date_order(
        changes.get("start_date", entry.start_date),
        changes.get("end_date", entry.end_date),
        open_ended=is_current,
        label="Education",
    )
    for field, value in changes.items():
        setattr(entry, field, value)
    if is_current:
        entry.end_date = None
    await db.commit()
    return entry


@router.delete("/education/{entry_id}", response_model=ActionResponse)
async def delete_education(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    profile = await _require_profile(db, current_user)
    profile.education.remove(_find_entry(profile.education, entry_id, "Education entry"))
    _refresh_completion(profile)
    await db.commit()
    return ActionResponse(success=True, message="Education entry removed")


# ── Experience ──────────────────────────────────────────────────────
@router.get("/experience", response_model=list[ExperienceRead])
async def list_experience(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[Experience]:
    return list((await _require_profile(db, current_user)).experience)


@router.post("/experience", response_model=ExperienceRead, status_code=201)
async def add_experience(
    body: ExperienceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Experience:
    profile = await _require_profile(db, current_user)
    ensure_date_order(body.start_date, body.end_date, open_ended=body.is_current, label="Experience")

    entry = Experience(**body.model_dump())
    if entry.is_current:
        entry.end_date = None
    profile.experience.append(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


@router.put("/experience/{entry_id}", response_model=ExperienceRead)
async def update_experience(
    entry_id: int,
    body: ExperienceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Experience:
    profile = await _require_profile(db, current_user)
    entry = _find_entry(profile.experience, entry_id, "Experience entry")
    changes = _changes(
        body, ("company", "position", "is_current", "skills_used", "achievements")
    )

    is_current = changes.get("is_current", entry.is_current)
    ensure_date_order(
        changes.get("start_date", entry.start_date),
        changes.get("end_date", entry.end_date),
        open_ended=is_current,
        label="Experience",
    )
    for field, value in changes.items():
        setattr(entry, field, value)
    if is_current:
        entry.end_date = None
    await db.commit()
    return entry


@router.delete("/experience/{entry_id}", response_model=ActionResponse)
async def delete_experience(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    profile = await _require_profile(db, current_user)
    profile.experience.remove(_find_entry(profile.experience, entry_id, "Experience entry"))
    await db.commit()
    return ActionResponse(success=True, message="Experience entry removed")


# ── Certifications ──────────────────────────────────────────────────
@router.get("/certifications", response_model=list[CertificationRead])
async def list_certifications(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> list[Certification]:
    return list((await _require_profile(db, current_user)).certifications)


@router.post("/certifications", response_model=CertificationRead, status_code=201)
async def add_certification(
    body: CertificationCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Certification:
    profile = await _require_profile(db, current_user)
    ensure_date_order(
        body.issue_date,
        body.expiration_date,
        open_ended=body.does_not_expire,
        label="Certification",
    )

    entry = Certification(**body.model_dump())
    if entry.does_not_expire:
        entry.expiration_date = None
    profile.certifications.append(entry)
    await db.commit()
    await db.refresh(entry)
    return entry


@router.put("/certifications/{entry_id}", response_model=CertificationRead)
async def update_certification(
    entry_id: int,
    body: CertificationUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Certification:
    profile = await _require_profile(db, current_user)
    entry = _find_entry(profile.certifications, entry_id, "Certification")
    changes = _changes(body, ("name", "issuing_organization", "does_not_expire"))

    does_not_expire = changes.get("does_not_expire", entry.does_not_expire)
    ensure_date_order(
        changes.get("issue_date", entry.issue_date),
        changes.get("expiration_date", entry.expiration_date),
        open_ended=does_not_expire,
        label="Certification",
    )
    for field, value in changes.items():
        setattr(entry, field, value)
    if does_not_expire:
        entry.expiration_date = None
    await db.commit()
    return entry


@router.delete("/certifications/{entry_id}", response_model=ActionResponse)
async def delete_certification(
    entry_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    profile = await _require_profile(db, current_user)
    profile.certifications.remove(
        _find_entry(profile.certifications, entry_id, "Certification")
    )
    await db.commit()
    return ActionResponse(success=True, message="Certification removed")


# ── Settings ────────────────────────────────────────────────────────
@router.get("/settings", response_model=ProfileSettingsResponse)
async def get_profile_settings(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProfileSettingsResponse:
    return _settings_response(await _require_profile(db, current_user))


@router.put("/settings/notifications", response_model=ProfileSettingsResponse)
async def update_notification_settings(
    body: NotificationSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProfileSettingsResponse:
    profile = await _require_profile(db, current_user)
    for field, value in _changes(body, tuple(NotificationSettingsUpdate.model_fields)).items():
        setattr(profile, field, value)
    await db.commit()
    return _settings_response(profile)


@router.put("/settings/privacy", response_model=ProfileSettingsResponse)
async def update_privacy_settings(
    body: PrivacySettingsUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProfileSettingsResponse:
    profile = await _require_profile(db, current_user)
    for field, value in _changes(body, tuple(PrivacySettingsUpdate.model_fields)).items():
        setattr(profile, field, value)
    await db.commit()
    return _settings_response(profile)


@router.put("/settings/two-factor", response_model=ProfileSettingsResponse)
async def update_two_factor(
    body: TwoFactorUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ProfileSettingsResponse:
    profile = await _require_profile(db, current_user)
    profile.two_factor_enabled = body.enabled
    await db.commit()
    logger.info("User %s set two-factor to %s", current_user.id, body.enabled)
    return _settings_response(profile)


@router.put("/settings/security", response_model=ActionResponse)
async def change_password(
    body: PasswordChangeRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    if not verify_password(body.current_password, current_user.hashed_password):
        raise DomainError("Current password is incorrect")
    validate_password_strength(body.new_password)
    if body.new_password == body.current_password:
        raise DomainError("New password must be different from the current password")

    current_user.hashed_password = get_password_hash(body.new_password)
    await db.commit()
    logger.info("User %s changed their password", current_user.id)
    return ActionResponse(success=True, message="Password updated successfully")


# ── Account ─────────────────────────────────────────────────────────
@router.delete("/account", response_model=ActionResponse)
async def delete_account(
    body: AccountDeleteRequest | None = None,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    """Delete the current user with their profile, attendance and leave history.

    Refused while other profiles still name the user as reporting manager.
    """
    user_id = current_user.id
    managed = (
        await db.execute(
            select(func.count(EmployeeProfile.id)).where(
                EmployeeProfile.reporting_manager_id == user_id
            )
        )
    ).scalar() or 0
    if managed:
        raise DomainError(
            f"Cannot delete account. You are currently managing {managed} employee(s). "
            "Please reassign them to another manager first"
        )

    if body is not None and body.feedback:
        logger.info("Account deletion feedback from user %s: %s", user_id, body.feedback)

    # Reviews this user made stay on the records, unattributed
    await db.execute(
        update(Attendance)
        .where(Attendance.overtime_reviewed_by == user_id)
        .values(overtime_reviewed_by=None)
    )
    await db.execute(
        update(LeaveApplication)
        .where(LeaveApplication.reviewed_by == user_id)
        .values(reviewed_by=None)
    )
    await db.execute(delete(LeaveApplication).where(LeaveApplication.employee_id == user_id))
    await db.execute(delete(LeaveBalance).where(LeaveBalance.employee_id == user_id))

    records = await db.execute(select(Attendance).where(Attendance.employee_id == user_id))
    for record in records.scalars().all():
        await db.delete(record)
    profile = await _load_profile(db, user_id)
    if profile is not None:
        await db.delete(profile)
    await db.flush()
    await db.delete(current_user)
    await db.commit()

    logger.info("User %s deleted their account", user_id)
    return ActionResponse(success=True, message="Account deleted successfully")
