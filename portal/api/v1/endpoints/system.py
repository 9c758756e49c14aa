"""
Health and status endpoints.
"""

from __future__ import annotations

import logging

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.deps import get_current_active_user, get_db
from portal.api.v1.endpoints.settings import get_or_create_settings
from portal.core import clock
from portal.core.config import settings
from portal.core.leave_rules import OPEN_STATUSES
from portal.models.attendance import Attendance
from portal.models.leave import LeaveApplication
from portal.models.user import User
from portal.schemas.common import HealthResponse, StatusResponse

router = APIRouter(tags=["system"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)) -> HealthResponse:
    """Public health check — DB and Redis connectivity."""
    result = HealthResponse(db=False, redis=False)

    try:
        await db.execute(select(1))
        result.db = True
    except Exception as e:
        logger.error("Health check DB failure: %s", e)

    try:
        r = aioredis.from_url(settings.REDIS_URL, socket_connect_timeout=1)
        await r.ping()
        await r.aclose()
        result.redis = True
    except Exception as e:
        logger.error("Health check Redis failure: %s", e)

    return result


@router.get("/status", response_model=StatusResponse)
async def system_status(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_active_user),
) -> StatusResponse:
    """Active users, today's check-ins and leave applications awaiting review."""
    policy = await get_or_create_settings(db)
    today = clock.to_local(clock.utcnow(), policy.timezone_offset).date().isoformat()

    user_count = await db.execute(
        select(func.count(User.id)).where(User.is_active.is_(True))
    )
    checked_in = await db.execute(
        select(func.count(Attendance.id)).where(Attendance.date == today)
    )
    pending = await db.execute(
        select(func.count(LeaveApplication.id)).where(
            LeaveApplication.status.in_(OPEN_STATUSES)
        )
    )

    return StatusResponse(
        total_users=user_count.scalar() or 0,
        checked_in_today=checked_in.scalar() or 0,
        pending_leaves=pending.scalar() or 0,
        status="operational",
    )
