"""
Attendance endpoints — check-in / check-out, breaks, namaz breaks, the day's
task log, history and statistics, plus manual entry and correction of past days.

Every change to where today stands goes through ``attendance_rules.transition``;
the stored ``state`` column is the single source of truth for it. Past days
are closed or reopened from their recorded check-in / check-out times.
"""

from __future__ import annotations

import calendar
import logging
import math
from datetime import date, datetime, timedelta

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from portal.api.v1.deps import (REVIEWER_ROLES, get_current_active_user,
                                get_db, require_reviewer)
from portal.api.v1.endpoints.settings import get_or_create_settings
from portal.core import clock
from portal.core.attendance_rules import (AttendanceAction, AttendanceState,
                                          attendance_percentage,
                                          classify_check_in, duration_minutes,
                                          early_check_out_minutes,
                                          ensure_break_allowance,
                                          ensure_day_open,
                                          ensure_namaz_available,
                                          overtime_minutes, punctuality_score,
                                          resolve_shift, shift_bounds,
                                          state_of, task_errors, transition,
                                          validate_tasks, worked_minutes,
                                          working_days)
from portal.core.exceptions import DomainError, TaskValidationError
from portal.models.attendance import Attendance, AttendanceBreak, AttendanceTask
from portal.models.attendance_settings import AttendanceSettings
from portal.models.user import User
from portal.schemas.attendance import (AttendanceHistoryResponse,
                                       AttendanceRead, AttendanceStatsResponse,
                                       AttendanceUpdate,
                                       BreakRead, BreakStartRequest,
                                       BreakSummary, CheckInRequest,
                                       CheckOutRequest,
                                       ManualAttendanceCreate,
                                       MonthlyAttendanceResponse, MonthlyStats,
                                       NamazStartRequest,
                                       OvertimeReviewRequest, PeriodStats,
                                       TaskCreate, TaskRead, TaskUpdate,
                                       TodayStatusResponse)
from portal.schemas.common import ActionResponse

router = APIRouter(prefix="/attendance", tags=["attendance"])
logger = logging.getLogger(__name__)


# ── Helpers ─────────────────────────────────────────────────────────
def _local_today(policy: AttendanceSettings, now: datetime) -> date:
    return clock.to_local(now, policy.timezone_offset).date()


async def _load_record(db: AsyncSession, record_id: int) -> Attendance | None:
    result = await db.execute(
        select(Attendance)
        .where(Attendance.id == record_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _visible_record(db: AsyncSession, record_id: int, user: User) -> Attendance:
    """Own records are always visible; managers and admins see everyone's."""
    record = await _load_record(db, record_id)
    if record is None or (
        record.employee_id != user.id and user.role not in REVIEWER_ROLES
    ):
        raise HTTPException(status_code=404, detail="Attendance record not found")
    return record


async def _today(
    db: AsyncSession, user: User, policy: AttendanceSettings, now: datetime
) -> tuple[Attendance | None, AttendanceState]:
    """Today's record for *user* (if any) and the state it is in."""
    result = await db.execute(
        select(Attendance)
        .where(
            Attendance.employee_id == user.id,
            Attendance.date == _local_today(policy, now).isoformat(),
        )
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one_or_none()
    return record, state_of(record.state if record is not None else None)


async def _records_between(
    db: AsyncSession, employee_id: int, start: date, end: date
) -> list[Attendance]:
    result = await db.execute(
        select(Attendance)
        .where(
            Attendance.employee_id == employee_id,
            Attendance.date >= start.isoformat(),
            Attendance.date <= end.isoformat(),
        )
        .order_by(Attendance.date)
    )
    return list(result.scalars().all())


def _closed_minutes(record: Attendance, kind: str) -> int:
    return sum(
        b.duration_minutes for b in record.breaks if b.kind == kind and b.end_time is not None
    )


def _live_worked_minutes(record: Attendance, now: datetime) -> int:
    if record.check_out is not None:
        return record.worked_minutes
    return worked_minutes(
        record.check_in, now, [(b.start_time, b.end_time) for b in record.breaks]
    )


def _open_break(record: Attendance, kind: str, break_id: int) -> AttendanceBreak:
    for brk in record.breaks:
        if brk.id == break_id and brk.kind == kind:
            if brk.end_time is not None:
                raise DomainError("This break has already ended")
            return brk
    raise HTTPException(status_code=404, detail="Break not found")


def _find_task(record: Attendance, task_id: int) -> AttendanceTask:
    for task in record.tasks:
        if task.id == task_id:
            return task
    raise HTTPException(status_code=404, detail="Task not found")


def _period_stats(records: list[Attendance], now: datetime) -> PeriodStats:
    return PeriodStats(
        days_present=len(records),
        late_days=sum(1 for r in records if r.check_in_status == "late"),
        worked_minutes=sum(_live_worked_minutes(r, now) for r in records),
        overtime_minutes=sum(r.overtime_minutes for r in records),
    )


# ── Today ───────────────────────────────────────────────────────────
@router.get("/today", response_model=TodayStatusResponse)
async def today_status(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> TodayStatusResponse:
    """Where the current user's day stands, with live worked minutes."""
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    record, state = await _today(db, current_user, policy, now)

    return TodayStatusResponse(
        date=_local_today(policy, now).isoformat(),
        state=state.value,
        is_checked_in=state is not AttendanceState.NOT_CHECKED_IN,
        is_on_break=state is AttendanceState.ON_BREAK,
        is_in_prayer=state is AttendanceState.IN_PRAYER,
        is_checked_out=state is AttendanceState.CHECKED_OUT,
        worked_minutes=_live_worked_minutes(record, now) if record else 0,
        record=AttendanceRead.model_validate(record) if record else None,
    )


# ── Check-in / Check-out ────────────────────────────────────────────
@router.post("/checkin", response_model=AttendanceRead, status_code=201)
async def check_in(
    body: CheckInRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Attendance | None:
    """Start the working day. Arriving after the grace period needs a reason."""
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    record, state = await _today(db, current_user, policy, now)
    new_state = transition(state, AttendanceAction.CHECK_IN)

    today = _local_today(policy, now)
    start, end = resolve_shift(body.shift, body.custom_start_time, body.custom_end_time)
    shift_start, _ = shift_bounds(today, start, end, clock.parse_offset(policy.timezone_offset))
    check_in_status, late = classify_check_in(now, shift_start, policy.grace_minutes)

    late_reason = (body.late_reason or "").strip() or None
    if check_in_status == "late" and late_reason is None:
        raise DomainError(
            f"You are {late} minutes late. Please provide a reason for late check-in"
        )

    record = Attendance(
        employee_id=current_user.id,
        date=today.isoformat(),
        state=new_state.value,
        shift=body.shift,
        shift_start=start,
        shift_end=end,
        check_in=now,
        check_in_status=check_in_status,
        late_minutes=late,
        late_reason=late_reason,
        check_in_location=body.location,
        notes=body.notes,
    )
    db.add(record)
    await db.commit()

    logger.info(
        "User %s checked in for %s (%s shift, %s)",
        current_user.id, record.date, body.shift, check_in_status,
    )
    return await _load_record(db, record.id)


@router.post("/checkout", response_model=AttendanceRead)
async def check_out(
    body: CheckOutRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Attendance | None:
    """End the working day.

    Tasks already logged today plus any sent with this request must account
    for the worked time; leaving before the shift ends needs a reason.
    """
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    record, state = await _today(db, current_user, policy, now)
    new_state = transition(state, AttendanceAction.CHECK_OUT)

    worked = _live_worked_minutes(record, now)
    logged = [(t.description, t.time_spent) for t in record.tasks]
    submitted = [(t.description, t.time_spent) for t in body.tasks]
    validate_tasks(
        logged + submitted,
        worked,
        limit_minutes=policy.task_time_limit_minutes,
        min_total_minutes=policy.min_task_minutes,
    )

    _, shift_end = shift_bounds(
        date.fromisoformat(record.date),
        record.shift_start,
        record.shift_end,
        clock.parse_offset(policy.timezone_offset),
    )
    early = early_check_out_minutes(now, shift_end, policy.grace_minutes)
    early_reason = (body.early_reason or "").strip() or None
    if early and early_reason is None:
        raise DomainError(
            f"You are checking out {early} minutes early. "
            "Please provide a reason for early check-out"
        )

    for task in body.tasks:
        record.tasks.append(
            AttendanceTask(
                description=task.description.strip(),
                time_spent=task.time_spent,
                category=task.category,
                priority=task.priority,
                notes=task.notes,
            )
        )

    record.state = new_state.value
    record.check_out = now
    record.check_out_location = body.location
    record.is_early_check_out = early > 0
    record.early_minutes = early
    record.early_reason = early_reason
    record.worked_minutes = worked
    record.break_minutes = _closed_minutes(record, "general")
    record.namaz_minutes = _closed_minutes(record, "namaz")
    record.overtime_minutes = overtime_minutes(worked, policy.standard_work_minutes)
    record.overtime_status = "pending" if record.overtime_minutes else None
    if body.notes:
        record.notes = body.notes
    await db.commit()

    logger.info(
        "User %s checked out for %s: %d min worked, %d min overtime",
        current_user.id, record.date, worked, record.overtime_minutes,
    )
    return await _load_record(db, record.id)


# ── Breaks ──────────────────────────────────────────────────────────
@router.get("/breaks", response_model=BreakSummary)
async def list_breaks(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> BreakSummary:
    """Today's breaks with used / remaining allowances."""
    policy = await get_or_create_settings(db)
    record, state = await _today(db, current_user, policy, clock.utcnow())
    breaks = list(record.breaks) if record else []
    used_break = _closed_minutes(record, "general") if record else 0
    used_namaz = _closed_minutes(record, "namaz") if record else 0

    return BreakSummary(
        state=state.value,
        breaks=[BreakRead.model_validate(b) for b in breaks],
        break_minutes_used=used_break,
        break_minutes_remaining=max(0, policy.max_break_minutes - used_break),
        namaz_minutes_used=used_namaz,
        namaz_minutes_remaining=max(0, policy.max_namaz_minutes - used_namaz),
        namaz_taken=[b.namaz_type for b in breaks if b.kind == "namaz" and b.namaz_type],
    )


@router.post("/breaks/start", response_model=BreakRead, status_code=201)
async def start_break(
    body: BreakStartRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceBreak:
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    record, state = await _today(db, current_user, policy, now)
    new_state = transition(state, AttendanceAction.START_BREAK)
    ensure_break_allowance(_closed_minutes(record, "general"), policy.max_break_minutes)

    brk = AttendanceBreak(
        kind="general",
        break_type=body.break_type,
        reason=body.reason,
        start_time=now,
    )
    record.breaks.append(brk)
    record.state = new_state.value
    await db.commit()

    logger.info("User %s started a %s break", current_user.id, body.break_type)
    await db.refresh(brk)
    return brk


@router.put("/breaks/{break_id}/end", response_model=BreakRead)
async def end_break(
    break_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceBreak:
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    record, state = await _today(db, current_user, policy, now)
    new_state = transition(state, AttendanceAction.END_BREAK)

    brk = _open_break(record, "general", break_id)
    brk.end_time = now
    brk.duration_minutes = duration_minutes(brk.start_time, now)
    record.break_minutes = _closed_minutes(record, "general")
    record.state = new_state.value
    await db.commit()

    logger.info("User %s ended break %s after %d min", current_user.id, brk.id, brk.duration_minutes)
    return brk


# ── Namaz breaks ────────────────────────────────────────────────────
@router.post("/namaz/start", response_model=BreakRead, status_code=201)
async def start_namaz(
    body: NamazStartRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceBreak:
    """Each prayer can be taken once a day, within the daily namaz allowance."""
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    record, state = await _today(db, current_user, policy, now)
    new_state = transition(state, AttendanceAction.START_PRAYER)

    ensure_namaz_available(
        body.namaz_type, (b.namaz_type for b in record.breaks if b.kind == "namaz")
    )
    ensure_break_allowance(_closed_minutes(record, "namaz"), policy.max_namaz_minutes, "namaz")

    brk = AttendanceBreak(kind="namaz", namaz_type=body.namaz_type, start_time=now)
    record.breaks.append(brk)
    record.state = new_state.value
    await db.commit()

    logger.info("User %s started %s namaz", current_user.id, body.namaz_type)
    await db.refresh(brk)
    return brk


@router.put("/namaz/{break_id}/end", response_model=BreakRead)
async def end_namaz(
    break_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceBreak:
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    record, state = await _today(db, current_user, policy, now)
    new_state = transition(state, AttendanceAction.END_PRAYER)

    brk = _open_break(record, "namaz", break_id)
    brk.end_time = now
    brk.duration_minutes = duration_minutes(brk.start_time, now)
    record.namaz_minutes = _closed_minutes(record, "namaz")
    record.state = new_state.value
    await db.commit()

    logger.info("User %s ended namaz %s after %d min", current_user.id, brk.id, brk.duration_minutes)
    return brk


# ── Tasks ───────────────────────────────────────────────────────────
@router.post("/tasks", response_model=TaskRead, status_code=201)
async def add_task(
    body: TaskCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceTask:
    """Log a task against today's open attendance record."""
    policy = await get_or_create_settings(db)
    record, state = await _today(db, current_user, policy, clock.utcnow())
    ensure_day_open(state)

    errors = task_errors(
        len(record.tasks) + 1, body.description, body.time_spent, policy.task_time_limit_minutes
    )
    if errors:
        raise TaskValidationError(errors)

    task = AttendanceTask(
        description=body.description.strip(),
        time_spent=body.time_spent,
        category=body.category,
        priority=body.priority,
        notes=body.notes,
    )
    record.tasks.append(task)
    await db.commit()
    await db.refresh(task)
    return task


@router.put("/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: int,
    body: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceTask:
    policy = await get_or_create_settings(db)
    record, state = await _today(db, current_user, policy, clock.utcnow())
    ensure_day_open(state)
    task = _find_task(record, task_id)

    changes = body.model_dump(exclude_unset=True)
    for field in ("description", "time_spent", "category", "priority"):
        if changes.get(field, "") is None:
            del changes[field]
    description = changes.get("description", task.description)
    time_spent = changes.get("time_spent", task.time_spent)
    errors = task_errors(
        record.tasks.index(task) + 1, description, time_spent, policy.task_time_limit_minutes
    )
    if errors:
        raise TaskValidationError(errors)

    for field, value in changes.items():
        setattr(task, field, value.strip() if field == "description" else value)
    await db.commit()
    return task


@router.delete("/tasks/{task_id}", response_model=ActionResponse)
async def delete_task(
    task_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    policy = await get_or_create_settings(db)
    record, state = await _today(db, current_user, policy, clock.utcnow())
    ensure_day_open(state)
    record.tasks.remove(_find_task(record, task_id))
    await db.commit()
    return ActionResponse(success=True, message="Task removed")


# ── History & statistics ────────────────────────────────────────────
@router.get("/history", response_model=AttendanceHistoryResponse)
async def attendance_history(
    page: int = Query(1, ge=1),
    limit: int = Query(30, ge=1, le=100),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceHistoryResponse:
    """Paginated attendance records, newest first."""
    if start_date and end_date and end_date < start_date:
        raise DomainError("End date must be on or after the start date")

    filters = [Attendance.employee_id == current_user.id]
    if start_date:
        filters.append(Attendance.date >= start_date.isoformat())
    if end_date:
        filters.append(Attendance.date <= end_date.isoformat())

    total = (
        await db.execute(select(func.count(Attendance.id)).where(*filters))
    ).scalar() or 0
    result = await db.execute(
        select(Attendance)
        .where(*filters)
        .order_by(Attendance.date.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )

    return AttendanceHistoryResponse(
        records=[AttendanceRead.model_validate(r) for r in result.scalars().all()],
        total=total,
        page=page,
        limit=limit,
        total_pages=math.ceil(total / limit),
    )


@router.get("/monthly", response_model=MonthlyAttendanceResponse)
async def monthly_attendance(
    year: int | None = Query(None, ge=2000, le=2100),
    month: int | None = Query(None, ge=1, le=12),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MonthlyAttendanceResponse:
    """One month of records plus totals. Working days stop at today."""
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    today = _local_today(policy, now)
    year = year or today.year
    month = month or today.month

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    records = await _records_between(db, current_user.id, first, last)

    total_working = working_days(first, min(last, today))
    present = len(records)
    worked = sum(_live_worked_minutes(r, now) for r in records)

    stats = MonthlyStats(
        working_days=total_working,
        present_days=present,
        absent_days=max(0, total_working - present),
        late_days=sum(1 for r in records if r.check_in_status == "late"),
        early_check_outs=sum(1 for r in records if r.is_early_check_out),
        total_worked_minutes=worked,
        average_worked_minutes=worked // present if present else 0,
        overtime_minutes=sum(r.overtime_minutes for r in records),
        attendance_percentage=attendance_percentage(present, total_working),
    )
    return MonthlyAttendanceResponse(
        year=year,
        month=month,
        records=[AttendanceRead.model_validate(r) for r in records],
        stats=stats,
    )


@router.get("/stats", response_model=AttendanceStatsResponse)
async def attendance_stats(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> AttendanceStatsResponse:
    """Dashboard numbers for today, this week and this month."""
    policy = await get_or_create_settings(db)
    now = clock.utcnow()
    today = _local_today(policy, now)
    week_start = today - timedelta(days=today.weekday())
    month_start = today.replace(day=1)

    records = await _records_between(db, current_user.id, min(week_start, month_start), today)
    week = [r for r in records if r.date >= week_start.isoformat()]
    month = [r for r in records if r.date >= month_start.isoformat()]
    today_record = next((r for r in records if r.date == today.isoformat()), None)
    month_stats = _period_stats(month, now)

    return AttendanceStatsResponse(
        today_state=state_of(today_record.state if today_record else None).value,
        today_worked_minutes=_live_worked_minutes(today_record, now) if today_record else 0,
        week=_period_stats(week, now),
        month=month_stats,
        attendance_percentage=attendance_percentage(
            month_stats.days_present, working_days(month_start, today)
        ),
        punctuality_score=punctuality_score(month_stats.days_present, month_stats.late_days),
    )


# ── Single record & overtime review ─────────────────────────────────
@router.get("/{attendance_id}", response_model=AttendanceRead)
async def get_attendance(
    attendance_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Attendance:
    return await _visible_record(db, attendance_id, current_user)


@router.put("/{attendance_id}/overtime", response_model=AttendanceRead)
async def review_overtime(
    attendance_id: int,
    body: OvertimeReviewRequest,
    db: AsyncSession = Depends(get_db),
    reviewer: User = Depends(require_reviewer),
) -> Attendance | None:
    record = await _load_record(db, attendance_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Attendance record not found")
    if record.employee_id == reviewer.id:
        raise HTTPException(status_code=403, detail="You cannot review your own overtime")
    if not record.overtime_minutes:
        raise DomainError("No overtime recorded for this day")
    if record.overtime_status != "pending":
        raise DomainError(f"Overtime has already been {record.overtime_status}")

    record.overtime_status = body.status
    record.overtime_reviewed_by = reviewer.id
    await db.commit()

    logger.info(
        "Overtime on record %s %s by user %s", record.id, body.status, reviewer.id
    )
    return await _load_record(db, record.id)


# ── Manual records & corrections ────────────────────────────────────
def _apply_times(
    record: Attendance,
    policy: AttendanceSettings,
    check_in: datetime,
    check_out: datetime | None,
) -> None:
    """Recompute lateness, worked time and overtime from a day's check-in / check-out."""
    shift_start, shift_end = shift_bounds(
        date.fromisoformat(record.date),
        record.shift_start,
        record.shift_end,
        clock.parse_offset(policy.timezone_offset),
    )
    record.check_in = check_in
    record.check_in_status, record.late_minutes = classify_check_in(
        check_in, shift_start, policy.grace_minutes
    )
    record.check_out = check_out

    early = worked = 0
    record.state = AttendanceState.WORKING.value
    if check_out is not None:
        early = early_check_out_minutes(check_out, shift_end, policy.grace_minutes)
        worked = worked_minutes(
            check_in, check_out, [(b.start_time, b.end_time) for b in record.breaks]
        )
        record.state = AttendanceState.CHECKED_OUT.value
    record.is_early_check_out = early > 0
    record.early_minutes = early
    record.worked_minutes = worked

    previous = record.overtime_minutes or 0
    record.overtime_minutes = overtime_minutes(worked, policy.standard_work_minutes)
    if record.overtime_minutes != previous:
        # Changed overtime goes back for review
        record.overtime_status = "pending" if record.overtime_minutes else None
        record.overtime_reviewed_by = None


@router.post("", response_model=AttendanceRead, status_code=201)
async def create_attendance(
    body: ManualAttendanceCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Attendance | None:
    """Enter a past day by hand. Managers and admins may enter one for anyone."""
    employee_id = body.employee_id or current_user.id
    if employee_id != current_user.id:
        if current_user.role not in REVIEWER_ROLES:
            raise HTTPException(status_code=403, detail="Access denied")
        if await db.get(User, employee_id) is None:
            raise HTTPException(status_code=404, detail="Employee not found")

    policy = await get_or_create_settings(db)
    today = _local_today(policy, clock.utcnow())
    if body.date == today:
        raise DomainError("Use check-in/check-out endpoints for today's attendance")
    if body.date > today:
        raise DomainError("Cannot create attendance records for future dates")

    existing = await db.execute(
        select(Attendance.id).where(
            Attendance.employee_id == employee_id,
            Attendance.date == body.date.isoformat(),
        )
    )
    if existing.scalar_one_or_none() is not None:
        raise DomainError("Attendance record already exists for this date")

    errors: list[str] = []
    for index, task in enumerate(body.tasks, start=1):
        errors.extend(
            task_errors(index, task.description, task.time_spent, policy.task_time_limit_minutes)
        )
    if errors:
        raise TaskValidationError(errors)

    start, end = resolve_shift(body.shift, body.custom_start_time, body.custom_end_time)
    record = Attendance(
        employee_id=employee_id,
        date=body.date.isoformat(),
        shift=body.shift,
        shift_start=start,
        shift_end=end,
        late_reason=body.late_reason,
        early_reason=body.early_reason,
        check_in_location=body.location,
        notes=body.notes,
        tasks=[
            AttendanceTask(
                description=task.description.strip(),
                time_spent=task.time_spent,
                category=task.category,
                priority=task.priority,
                notes=task.notes,
            )
            for task in body.tasks
        ],
    )
    if body.check_in is not None:
        check_in = clock.ensure_utc(body.check_in)
    else:
        check_in, _ = shift_bounds(body.date, start, end, clock.parse_offset(policy.timezone_offset))
    check_out = clock.ensure_utc(body.check_out) if body.check_out is not None else None
    if check_out is not None and check_out <= check_in:
        raise DomainError("Check-out time must be after check-in time")
    _apply_times(record, policy, check_in, check_out)

    db.add(record)
    await db.commit()

    logger.info(
        "User %s entered attendance for employee %s on %s",
        current_user.id, employee_id, record.date,
    )
    return await _load_record(db, record.id)


@router.put("/{attendance_id}", response_model=AttendanceRead)
async def update_attendance(
    attendance_id: int,
    body: AttendanceUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Attendance | None:
    """Correct a past day. Today is only changed through check-in / check-out."""
    record = await _visible_record(db, attendance_id, current_user)
    policy = await get_or_create_settings(db)
    if record.date == _local_today(policy, clock.utcnow()).isoformat():
        raise DomainError(
            "Cannot update today's attendance record. Use check-in/check-out endpoints"
        )

    changes = body.model_dump(exclude_unset=True)
    if changes.get("check_in", "") is None:
        del changes["check_in"]

    if "check_in" in changes or "check_out" in changes:
        check_in = clock.ensure_utc(changes.get("check_in", record.check_in))
        check_out = changes.get("check_out", record.check_out)
        if check_out is not None:
            check_out = clock.ensure_utc(check_out)
            if check_out <= check_in:
                raise DomainError("Check-out time must be after check-in time")
        _apply_times(record, policy, check_in, check_out)

    for field in ("late_reason", "early_reason", "notes"):
        if field in changes:
            setattr(record, field, changes[field])
    await db.commit()

    logger.info(
        "User %s corrected attendance record %s: %s",
        current_user.id, record.id, sorted(changes),
    )
    return await _load_record(db, record.id)


@router.delete("/{attendance_id}", response_model=ActionResponse)
async def delete_attendance(
    attendance_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> ActionResponse:
    """Records from the last seven days are kept."""
    record = await _visible_record(db, attendance_id, current_user)
    policy = await get_or_create_settings(db)
    cutoff = _local_today(policy, clock.utcnow()) - timedelta(days=7)
    if record.date > cutoff.isoformat():
        raise DomainError("Cannot delete attendance records from the last 7 days")

    await db.delete(record)
    await db.commit()

    logger.info("User %s deleted attendance record %s", current_user.id, attendance_id)
    return ActionResponse(success=True, message="Attendance record deleted")
