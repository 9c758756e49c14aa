"""
Settings endpoints — admin-configurable attendance policy.

Singleton pattern: only one row in attendance_settings. GET retrieves it,
PUT updates it. If no row exists, one is created with defaults on first use.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.deps import get_db, require_admin
from portal.core.config import settings as app_settings
from portal.models.attendance_settings import AttendanceSettings
from portal.models.user import User
from portal.schemas.attendance import AttendanceSettingsRead, AttendanceSettingsUpdate

router = APIRouter(tags=["settings"])
logger = logging.getLogger(__name__)


async def get_or_create_settings(db: AsyncSession) -> AttendanceSettings:
    """Fetch the singleton settings row, creating it with defaults if absent."""
    result = await db.execute(select(AttendanceSettings).limit(1))
    policy = result.scalar_one_or_none()
    if policy is None:
        policy = AttendanceSettings(
            id=1,
            grace_minutes=app_settings.DEFAULT_GRACE_MINUTES,
            timezone_offset=app_settings.DEFAULT_TIMEZONE_OFFSET,
            max_break_minutes=120,
            max_namaz_minutes=90,
            standard_work_minutes=480,
            task_time_limit_minutes=600,
            min_task_minutes=30,
        )
        db.add(policy)
        await db.commit()
        await db.refresh(policy)
        logger.info("Created default attendance settings")
    return policy


@router.get("/settings", response_model=AttendanceSettingsRead)
async def get_settings(
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> AttendanceSettings:
    """Get current attendance rules."""
    return await get_or_create_settings(db)


@router.put("/settings", response_model=AttendanceSettingsRead)
async def update_settings(
    body: AttendanceSettingsUpdate,
    db: AsyncSession = Depends(get_db),
    _admin: User = Depends(require_admin),
) -> AttendanceSettings:
    """Update attendance rules (grace period, timezone, break allowances, workday)."""
    policy = await get_or_create_settings(db)
    changes = body.model_dump(exclude_unset=True, exclude_none=True)

    for field, value in changes.items():
        setattr(policy, field, value)

    await db.commit()
    await db.refresh(policy)
    logger.info("Attendance settings updated: %s", changes)
    return policy
