"""
Leave endpoints — apply, edit, cancel, review, balances and statistics.

- Employees manage their own applications.
- Managers and admins list pending applications and review them.
- Approving consumes the yearly balance; cancelling an approved leave
  hands the days back.
"""

from __future__ import annotations

import logging
import math
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.deps import (REVIEWER_ROLES, get_current_active_user,
                                get_db, require_reviewer)
from portal.api.v1.endpoints.settings import get_or_create_settings
from portal.core import clock
from portal.core.exceptions import ConflictError, DomainError
from portal.core.leave_rules import (ACTIVE_STATUSES, DEFAULT_ALLOCATIONS,
                                     LEAVE_STATUSES, OPEN_STATUSES,
                                     count_leave_days, ensure_balance,
                                     ensure_cancellable, ensure_editable,
                                     ensure_reviewable, is_tracked,
                                     remaining_days)
from portal.models.leave import LeaveApplication, LeaveBalance
from portal.models.user import User
from portal.schemas.leave import (LeaveBalanceItem, LeaveBalanceResponse,
                                  LeaveCreate, LeaveListResponse, LeaveRead,
                                  LeaveReviewRequest, LeaveStatsResponse,
                                  LeaveUpdate)

router = APIRouter(prefix="/leave", tags=["leave"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
async def _get_balances(
    db: AsyncSession, employee_id: int, year: int
) -> dict[str, LeaveBalance]:
    """Balance rows for *year*, creating any tracked type that is missing."""
    result = await db.execute(
        select(LeaveBalance).where(
            LeaveBalance.employee_id == employee_id, LeaveBalance.year == year
        )
    )
    balances = {b.leave_type: b for b in result.scalars().all()}

    missing = [t for t in DEFAULT_ALLOCATIONS if t not in balances]
    for leave_type in missing:
        balance = LeaveBalance(
            employee_id=employee_id,
            year=year,
            leave_type=leave_type,
            allocated=DEFAULT_ALLOCATIONS[leave_type],
            used=0,
        )
        db.add(balance)
        balances[leave_type] = balance
    if missing:
        await db.flush()
        logger.info("Initialised %s leave balances for user %s", year, employee_id)
    return balances


async def _check_balance(
    db: AsyncSession, employee_id: int, leave_type: str, start: date, days: float
) -> LeaveBalance | None:
    if not is_tracked(leave_type):
        return None
    balance = (await _get_balances(db, employee_id, start.year))[leave_type]
    ensure_balance(leave_type, days, balance.allocated, balance.used)
    return balance


async def _check_overlap(
    db: AsyncSession,
    employee_id: int,
    start: date,
    end: date,
    exclude_id: int | None = None,
) -> None:
    query = select(LeaveApplication.id).where(
        LeaveApplication.employee_id == employee_id,
        LeaveApplication.status.in_(ACTIVE_STATUSES),
        LeaveApplication.start_date <= end,
        LeaveApplication.end_date >= start,
    )
    if exclude_id is not None:
        query = query.where(LeaveApplication.id != exclude_id)
    if (await db.execute(query.limit(1))).scalar_one_or_none() is not None:
        raise ConflictError("Leave dates overlap with an existing application")


async def _get_leave(db: AsyncSession, leave_id: int, user: User) -> LeaveApplication:
    """Owners see their own leave; managers and admins see any."""
    leave = await db.get(LeaveApplication, leave_id)
    if leave is None or (
        leave.employee_id != user.id and user.role not in REVIEWER_ROLES
    ):
        raise HTTPException(status_code=404, detail="Leave application not found")
    return leave


async def _get_own_leave(db: AsyncSession, leave_id: int, user: User) -> LeaveApplication:
    leave = await db.get(LeaveApplication, leave_id)
    if leave is None or leave.employee_id != user.id:
        raise HTTPException(status_code=404, detail="Leave application not found")
    return leave


# ── Apply / list ────────────────────────────────────────────────────
@router.post("/apply", response_model=LeaveRead, status_code=201)
async def apply_for_leave(
    body: LeaveCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> LeaveApplication:
    days = count_leave_days(body.leave_type, body.start_date, body.end_date)
    await _check_overlap(db, current_user.id, body.start_date, body.end_date)
    await _check_balance(db, current_user.id, body.leave_type, body.start_date, days)

    leave = LeaveApplication(
        employee_id=current_user.id,
        leave_type=body.leave_type,
        start_date=body.start_date,
        end_date=body.end_date,
        total_days=days,
        reason=body.reason,
        status="pending",
        emergency_contact=body.emergency_contact,
        handover_notes=body.handover_notes,
    )
    db.add(leave)
    await db.commit()
    await db.refresh(leave)

    logger.info(
        "User %s applied for %s leave (%s to %s, %g days)",
        current_user.id, leave.leave_type, leave.start_date, leave.end_date, days,
    )
    return leave


@router.get("", response_model=LeaveListResponse)
async def list_leaves(
    status: str | None = Query(None, description="Comma separated statuses"),
    leave_type: str | None = Query(None),
    year: int | None = Query(None, ge=2000, le=2100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> LeaveListResponse:
    """The current user's applications, newest first."""
    filters = [LeaveApplication.employee_id == current_user.id]
    if status:
        statuses = [s.strip() for s in status.split(",") if s.strip()]
        unknown = [s for s in statuses if s not in LEAVE_STATUSES]
        if unknown:
            raise DomainError(f"Unknown leave status: {', '.join(unknown)}")
        filters.append(LeaveApplication.status.in_(statuses))
    if leave_type:
        filters.append(LeaveApplication.leave_type == leave_type)
    if year:
        filters.append(LeaveApplication.start_date >= date(year, 1, 1))
        filters.append(LeaveApplication.start_date <= date(year, 12, 31))

    total = (
        await db.execute(select(func.count(LeaveApplication.id)).where(*filters))
    ).scalar() or 0
    result = await db.execute(
        select(LeaveApplication)
        .where(*filters)
        .order_by(LeaveApplication.created_at.desc(), LeaveApplication.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return LeaveListResponse(
        leaves=[LeaveRead.model_validate(leave) for leave in result.scalars().all()],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.get("/pending", response_model=list[LeaveRead])
async def list_pending_leaves(
    db: AsyncSession = Depends(get_db),
    _reviewer: User = Depends(require_reviewer),
) -> list[LeaveApplication]:
    """Applications still waiting on a decision, oldest first."""
    result = await db.execute(
        select(LeaveApplication)
        .where(LeaveApplication.status.in_(OPEN_STATUSES))
        .order_by(LeaveApplication.created_at.asc(), LeaveApplication.id.asc())
    )
    return list(result.scalars().all())


# ── Balance & stats ─────────────────────────────────────────────────
@router.get("/balance", response_model=LeaveBalanceResponse)
async def leave_balance(
    year: int | None = Query(None, ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> LeaveBalanceResponse:
    if year is None:
        policy = await get_or_create_settings(db)
        year = clock.to_local(clock.utcnow(), policy.timezone_offset).year

    balances = await _get_balances(db, current_user.id, year)
    await db.commit()

    return LeaveBalanceResponse(
        year=year,
        balances=[
            LeaveBalanceItem(
                leave_type=b.leave_type,
                allocated=b.allocated,
                used=b.used,
                remaining=remaining_days(b.allocated, b.used),
            )
            for b in sorted(balances.values(), key=lambda b: b.leave_type)
        ],
    )


@router.get("/stats", response_model=LeaveStatsResponse)
async def leave_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> LeaveStatsResponse:
    policy = await get_or_create_settings(db)
    today = clock.to_local(clock.utcnow(), policy.timezone_offset).date()

    result = await db.execute(
        select(LeaveApplication).where(LeaveApplication.employee_id == current_user.id)
    )
    leaves = list(result.scalars().all())

    def _count(*statuses: str) -> int:
        return sum(1 for leave in leaves if leave.status in statuses)

    return LeaveStatsResponse(
        total=len(leaves),
        pending=_count(*OPEN_STATUSES),
        approved=_count("approved"),
        rejected=_count("rejected"),
        cancelled=_count("cancelled"),
        upcoming=sum(
            1 for leave in leaves if leave.status == "approved" and leave.start_date > today
        ),
        days_taken=sum(
            leave.total_days
            for leave in leaves
            if leave.status == "approved" and leave.start_date.year == today.year
        ),
    )


# ── Single application ──────────────────────────────────────────────
@router.get("/{leave_id}", response_model=LeaveRead)
async def get_leave(
    leave_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> LeaveApplication:
    return await _get_leave(db, leave_id, current_user)


@router.put("/{leave_id}", response_model=LeaveRead)
async def update_leave(
    leave_id: int,
    body: LeaveUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> LeaveApplication:
    """Edit a pending application. The day count is recomputed."""
    leave = await _get_own_leave(db, leave_id, current_user)
    ensure_editable(leave.status)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    leave_type = changes.get("leave_type", leave.leave_type)
    start = changes.get("start_date", leave.start_date)
    end = changes.get("end_date", leave.end_date)

    days = count_leave_days(leave_type, start, end)
    await _check_overlap(db, current_user.id, start, end, exclude_id=leave.id)
    await _check_balance(db, current_user.id, leave_type, start, days)

    for field, value in changes.items():
        setattr(leave, field, value)
    leave.total_days = days
    await db.commit()
    await db.refresh(leave)

    logger.info("User %s updated leave %s", current_user.id, leave.id)
    return leave


@router.post("/{leave_id}/cancel", response_model=LeaveRead)
async def cancel_leave(
    leave_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> LeaveApplication:
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    leave = await _get_own_leave(db, leave_id, current_user)
    ensure_cancellable(
        leave.status, leave.start_date, now, clock.parse_offset(policy.timezone_offset)
    )

    if leave.status == "approved" and is_tracked(leave.leave_type):
        balance = (await _get_balances(db, leave.employee_id, leave.start_date.year))[
            leave.leave_type
        ]
        balance.used = max(0.0, balance.used - leave.total_days)

    leave.status = "cancelled"
    leave.cancelled_at = now
    await db.commit()
    await db.refresh(leave)

    logger.info("User %s cancelled leave %s", current_user.id, leave.id)
    return leave


@router.post("/{leave_id}/review", response_model=LeaveRead)
async def review_leave(
    leave_id: int,
    body: LeaveReviewRequest,
    db: AsyncSession = Depends(get_db),
    reviewer: User = Depends(require_reviewer),
) -> LeaveApplication:
    """Move an application to in-review, awaiting-documents, approved or rejected."""
    leave = await db.get(LeaveApplication, leave_id)
    if leave is None:
        raise HTTPException(status_code=404, detail="Leave application not found")
    if leave.employee_id == reviewer.id:
        raise HTTPException(status_code=403, detail="You cannot review your own leave")
    ensure_reviewable(leave.status, body.status)

    if body.status == "approved":
        balance = await _check_balance(
            db, leave.employee_id, leave.leave_type, leave.start_date, leave.total_days
        )
        if balance is not None:
            balance.used += leave.total_days

    leave.status = body.status
    leave.review_comments = body.comments
    leave.reviewed_by = reviewer.id
    leave.reviewed_at = clock.utcnow()
    await db.commit()
    await db.refresh(leave)

    logger.info("Leave %s marked %s by user %s", leave.id, leave.status, reviewer.id)
    return leave
