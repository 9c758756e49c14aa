"""
Attendance endpoint tests: check-in / check-out, tasks, history and stats.

The clock is frozen at Monday 2026-03-02 08:05 local (+05:00), five minutes
into the default morning shift.
"""

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from conftest import auth_headers, make_user

BASE = "/api/v1/attendance"
TASK = {"description": "Sprint planning", "time_spent": 45, "category": "planning"}


async def _check_in(client: AsyncClient, headers: dict, **body):
    return await client.post(f"{BASE}/checkin", json=body, headers=headers)


async def _check_out(client: AsyncClient, headers: dict, **body):
    return await client.post(f"{BASE}/checkout", json=body, headers=headers)


# ── Today ───────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_today_before_check_in(async_client: AsyncClient, employee_headers):
    response = await async_client.get(f"{BASE}/today", headers=employee_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["date"] == "2026-03-02"
    assert data["state"] == "not_checked_in"
    assert data["is_checked_in"] is False
    assert data["record"] is None


# ── Check-in ────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_check_in_on_time(async_client: AsyncClient, employee, employee_headers):
    response = await _check_in(async_client, employee_headers, location="HQ")
    assert response.status_code == 201
    data = response.json()
    assert data["employee_id"] == employee.id
    assert data["date"] == "2026-03-02"
    assert data["state"] == "working"
    assert data["shift"] == "morning"
    assert (data["shift_start"], data["shift_end"]) == ("08:00", "16:00")
    assert data["check_in_status"] == "on-time"
    assert data["late_minutes"] == 0
    assert data["check_in_location"] == "HQ"

    today = (await async_client.get(f"{BASE}/today", headers=employee_headers)).json()
    assert today["state"] == "working"
    assert today["is_checked_in"] is True
    assert today["record"]["id"] == data["id"]


@pytest.mark.asyncio
async def test_second_check_in_is_rejected(async_client: AsyncClient, employee_headers):
    await _check_in(async_client, employee_headers)
    response = await _check_in(async_client, employee_headers)
    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Already checked in today"
    assert body["state"] == "working"
    assert body["success"] is False


@pytest.mark.asyncio
async def test_late_check_in_requires_reason(async_client: AsyncClient, employee_headers, frozen_clock):
    frozen_clock.set_local(9, 0)

    response = await _check_in(async_client, employee_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == (
        "You are 60 minutes late. Please provide a reason for late check-in"
    )

    response = await _check_in(async_client, employee_headers, late_reason="   ")
    assert response.status_code == 400

    response = await _check_in(async_client, employee_headers, late_reason="Traffic")
    assert response.status_code == 201
    data = response.json()
    assert data["check_in_status"] == "late"
    assert data["late_minutes"] == 60
    assert data["late_reason"] == "Traffic"


@pytest.mark.asyncio
async def test_check_in_inside_grace_is_on_time(async_client: AsyncClient, employee_headers, frozen_clock):
    frozen_clock.set_local(8, 15)
    response = await _check_in(async_client, employee_headers)
    assert response.json()["check_in_status"] == "on-time"


@pytest.mark.asyncio
async def test_early_check_in(async_client: AsyncClient, employee_headers, frozen_clock):
    frozen_clock.set_local(7, 30)
    response = await _check_in(async_client, employee_headers)
    assert response.status_code == 201
    assert response.json()["check_in_status"] == "early"


@pytest.mark.asyncio
async def test_random_shift_needs_custom_times(async_client: AsyncClient, employee_headers):
    response = await _check_in(async_client, employee_headers, shift="random")
    assert response.status_code == 400
    assert "Custom start and end times" in response.json()["detail"]

    response = await _check_in(
        async_client, employee_headers,
        shift="random", custom_start_time="08:00", custom_end_time="12:00",
    )
    assert response.status_code == 201
    data = response.json()
    assert (data["shift_start"], data["shift_end"]) == ("08:00", "12:00")
    assert data["check_in_status"] == "on-time"


@pytest.mark.asyncio
async def test_unknown_shift_is_a_validation_error(async_client: AsyncClient, employee_headers):
    response = await _check_in(async_client, employee_headers, shift="graveyard")
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_day_follows_local_timezone(async_client: AsyncClient, employee_headers, frozen_clock):
    """20:30 UTC is already 01:30 the next day at +05:00."""
    frozen_clock.advance(hours=17, minutes=25)

    response = await _check_in(async_client, employee_headers, shift="night", late_reason="Late bus")
    assert response.status_code == 201
    data = response.json()
    assert data["date"] == "2026-03-03"
    assert data["late_minutes"] == 90


# ── Check-out ───────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_check_out_without_check_in(async_client: AsyncClient, employee_headers):
    response = await _check_out(async_client, employee_headers, tasks=[TASK])
    assert response.status_code == 400
    assert response.json()["detail"] == "Not checked in today"
    assert response.json()["state"] == "not_checked_in"


@pytest.mark.asyncio
async def test_check_out_requires_tasks(async_client: AsyncClient, employee_headers, frozen_clock):
    await _check_in(async_client, employee_headers)
    frozen_clock.advance(hours=1)

    response = await _check_out(async_client, employee_headers, early_reason="Appointment")
    assert response.status_code == 400
    body = response.json()
    assert body["detail"] == "Task validation failed"
    assert body["errors"] == ["At least one task is required to check out"]


@pytest.mark.asyncio
async def test_check_out_reports_all_task_errors(async_client: AsyncClient, employee_headers, frozen_clock):
    await _check_in(async_client, employee_headers)
    frozen_clock.advance(hours=1)

    response = await _check_out(
        async_client, employee_headers,
        tasks=[{"description": "", "time_spent": 300}],
        early_reason="Appointment",
    )
    assert response.status_code == 400
    errors = response.json()["errors"]
    assert "Task 1: description is required" in errors
    assert any("exceeds worked time (60 min)" in e for e in errors)


@pytest.mark.asyncio
async def test_early_check_out_requires_reason(async_client: AsyncClient, employee_headers, frozen_clock):
    await _check_in(async_client, employee_headers)
    frozen_clock.advance(hours=1)

    response = await _check_out(async_client, employee_headers, tasks=[TASK])
    assert response.status_code == 400
    assert response.json()["detail"] == (
        "You are checking out 415 minutes early. Please provide a reason for early check-out"
    )


@pytest.mark.asyncio
async def test_early_check_out(async_client: AsyncClient, employee_headers, frozen_clock):
    await _check_in(async_client, employee_headers)
    frozen_clock.advance(hours=1)

    response = await _check_out(
        async_client, employee_headers, tasks=[TASK], early_reason="Doctor appointment"
    )
    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "checked_out"
    assert data["worked_minutes"] == 60
    assert data["is_early_check_out"] is True
    assert data["early_minutes"] == 415
    assert data["early_reason"] == "Doctor appointment"
    assert data["overtime_minutes"] == 0
    assert data["overtime_status"] is None
    assert [t["description"] for t in data["tasks"]] == ["Sprint planning"]

    response = await _check_in(async_client, employee_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Already checked out today"


@pytest.mark.asyncio
async def test_full_day_records_overtime(
    async_client: AsyncClient, employee_headers, manager_headers, frozen_clock
):
    await _check_in(async_client, employee_headers)
    frozen_clock.set_local(17, 5)

    response = await _check_out(
        async_client, employee_headers,
        tasks=[
            {"description": "Feature work", "time_spent": 300, "category": "development"},
            {"description": "Code review", "time_spent": 240, "category": "review"},
        ],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["worked_minutes"] == 540
    assert data["is_early_check_out"] is False
    assert data["overtime_minutes"] == 60
    assert data["overtime_status"] == "pending"

    record_id = data["id"]
    response = await async_client.put(
        f"{BASE}/{record_id}/overtime", json={"status": "approved"}, headers=employee_headers
    )
    assert response.status_code == 403

    response = await async_client.put(
        f"{BASE}/{record_id}/overtime", json={"status": "approved"}, headers=manager_headers
    )
    assert response.status_code == 200
    assert response.json()["overtime_status"] == "approved"

    response = await async_client.put(
        f"{BASE}/{record_id}/overtime", json={"status": "rejected"}, headers=manager_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Overtime has already been approved"


@pytest.mark.asyncio
async def test_reviewer_cannot_review_own_overtime(
    async_client: AsyncClient, manager_headers, admin_headers, frozen_clock
):
    await _check_in(async_client, manager_headers)
    frozen_clock.set_local(17, 5)
    response = await _check_out(
        async_client, manager_headers,
        tasks=[{"description": "Release prep", "time_spent": 540, "category": "planning"}],
    )
    assert response.status_code == 200
    record_id = response.json()["id"]
    assert response.json()["overtime_status"] == "pending"

    response = await async_client.put(
        f"{BASE}/{record_id}/overtime", json={"status": "approved"}, headers=manager_headers
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "You cannot review your own overtime"

    response = await async_client.put(
        f"{BASE}/{record_id}/overtime", json={"status": "approved"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["overtime_status"] == "approved"


@pytest.mark.asyncio
async def test_overtime_review_without_overtime(
    async_client: AsyncClient, employee_headers, manager_headers
):
    record = (await _check_in(async_client, employee_headers)).json()
    response = await async_client.put(
        f"{BASE}/{record['id']}/overtime", json={"status": "approved"}, headers=manager_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "No overtime recorded for this day"


# ── Tasks ───────────────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_tasks_need_an_open_day(async_client: AsyncClient, employee_headers):
    response = await async_client.post(f"{BASE}/tasks", json=TASK, headers=employee_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Not checked in today"


@pytest.mark.asyncio
async def test_task_lifecycle(async_client: AsyncClient, employee_headers):
    await _check_in(async_client, employee_headers)

    response = await async_client.post(f"{BASE}/tasks", json=TASK, headers=employee_headers)
    assert response.status_code == 201
    task = response.json()
    assert task["category"] == "planning"
    assert task["priority"] == "medium"

    response = await async_client.post(
        f"{BASE}/tasks", json={"description": "Ops", "time_spent": 0}, headers=employee_headers
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Task 2: time spent must be greater than zero"]

    response = await async_client.put(
        f"{BASE}/tasks/{task['id']}",
        json={"time_spent": 50, "priority": "high"},
        headers=employee_headers,
    )
    assert response.status_code == 200
    assert response.json()["time_spent"] == 50
    assert response.json()["priority"] == "high"

    response = await async_client.put(
        f"{BASE}/tasks/{task['id']}", json={"time_spent": 601}, headers=employee_headers
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Task 1: time spent cannot exceed 600 minutes"]

    response = await async_client.delete(f"{BASE}/tasks/{task['id']}", headers=employee_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    response = await async_client.delete(f"{BASE}/tasks/{task['id']}", headers=employee_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_task_notes_can_be_cleared(async_client: AsyncClient, employee_headers):
    await _check_in(async_client, employee_headers)
    task = (
        await async_client.post(
            f"{BASE}/tasks", json={**TASK, "notes": "Bring the roadmap"}, headers=employee_headers
        )
    ).json()
    assert task["notes"] == "Bring the roadmap"

    response = await async_client.put(
        f"{BASE}/tasks/{task['id']}",
        json={"notes": None, "description": None},
        headers=employee_headers,
    )
    assert response.status_code == 200
    assert response.json()["notes"] is None
    assert response.json()["description"] == "Sprint planning"


@pytest.mark.asyncio
async def test_logged_tasks_count_towards_check_out(
    async_client: AsyncClient, employee_headers, frozen_clock
):
    await _check_in(async_client, employee_headers)
    await async_client.post(f"{BASE}/tasks", json=TASK, headers=employee_headers)
    frozen_clock.advance(hours=1)

    response = await _check_out(async_client, employee_headers, early_reason="Leaving early")
    assert response.status_code == 200
    assert len(response.json()["tasks"]) == 1


# ── History & stats ─────────────────────────────────────────────────
@pytest.mark.asyncio
async def test_history_newest_first(async_client: AsyncClient, employee_headers, frozen_clock):
    await _check_in(async_client, employee_headers)
    frozen_clock.advance(days=1)
    await _check_in(async_client, employee_headers)

    response = await async_client.get(f"{BASE}/history", headers=employee_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert data["total_pages"] == 1
    assert [r["date"] for r in data["records"]] == ["2026-03-03", "2026-03-02"]

    response = await async_client.get(
        f"{BASE}/history",
        params={"start_date": "2026-03-03", "end_date": "2026-03-03"},
        headers=employee_headers,
    )
    assert response.json()["total"] == 1

    response = await async_client.get(
        f"{BASE}/history",
        params={"start_date": "2026-03-05", "end_date": "2026-03-01"},
        headers=employee_headers,
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_monthly_summary(async_client: AsyncClient, employee_headers, frozen_clock):
    await _check_in(async_client, employee_headers)
    frozen_clock.advance(days=1)
    frozen_clock.set_local(9, 0)
    await _check_in(async_client, employee_headers, late_reason="Traffic")

    response = await async_client.get(f"{BASE}/monthly", headers=employee_headers)
    assert response.status_code == 200
    data = response.json()
    assert (data["year"], data["month"]) == (2026, 3)
    stats = data["stats"]
    # 1 March 2026 is a Sunday, so working days so far are the 2nd and 3rd
    assert stats["working_days"] == 2
    assert stats["present_days"] == 2
    assert stats["absent_days"] == 0
    assert stats["late_days"] == 1
    assert stats["attendance_percentage"] == 100.0

    response = await async_client.get(
        f"{BASE}/monthly", params={"year": 2026, "month": 2}, headers=employee_headers
    )
    stats = response.json()["stats"]
    assert stats["working_days"] == 20
    assert stats["present_days"] == 0
    assert stats["absent_days"] == 20
    assert stats["attendance_percentage"] == 0.0


@pytest.mark.asyncio
async def test_stats(async_client: AsyncClient, employee_headers, frozen_clock):
    frozen_clock.set_local(9, 0)
    await _check_in(async_client, employee_headers, late_reason="Traffic")
    frozen_clock.advance(minutes=30)

    response = await async_client.get(f"{BASE}/stats", headers=employee_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["today_state"] == "working"
    assert data["today_worked_minutes"] == 30
    assert data["week"]["days_present"] == 1
    assert data["month"]["late_days"] == 1
    assert data["attendance_percentage"] == 100.0
    assert data["punctuality_score"] == 0.0


@pytest.mark.asyncio
async def test_record_visibility(
    async_client: AsyncClient, db_session: AsyncSession, employee_headers, manager_headers
):
    record = (await _check_in(async_client, employee_headers)).json()
    other = await make_user(db_session, "other@portal.test")

    response = await async_client.get(f"{BASE}/{record['id']}", headers=employee_headers)
    assert response.status_code == 200

    response = await async_client.get(f"{BASE}/{record['id']}", headers=auth_headers(other))
    assert response.status_code == 404

    response = await async_client.get(f"{BASE}/{record['id']}", headers=manager_headers)
    assert response.status_code == 200


# ── Manual records & corrections ────────────────────────────────────
PAST_DAY = {
    "date": "2026-02-20",
    "shift": "morning",
    "check_in": "2026-02-20T03:00:00Z",
    "check_out": "2026-02-20T11:00:00Z",
    "tasks": [{"description": "Backfilled work", "time_spent": 480}],
}


async def _enter(client: AsyncClient, headers: dict, **body):
    return await client.post(BASE, json=body, headers=headers)


@pytest.mark.asyncio
async def test_manual_record_for_past_day(async_client: AsyncClient, employee, employee_headers):
    response = await _enter(async_client, employee_headers, **PAST_DAY)
    assert response.status_code == 201
    data = response.json()
    assert data["employee_id"] == employee.id
    assert data["date"] == "2026-02-20"
    assert data["state"] == "checked_out"
    assert data["check_in_status"] == "on-time"
    assert data["worked_minutes"] == 480
    assert data["overtime_minutes"] == 0
    assert data["overtime_status"] is None
    assert [t["description"] for t in data["tasks"]] == ["Backfilled work"]

    response = await _enter(async_client, employee_headers, **PAST_DAY)
    assert response.status_code == 400
    assert response.json()["detail"] == "Attendance record already exists for this date"


@pytest.mark.asyncio
async def test_manual_record_defaults_to_shift_start(async_client: AsyncClient, employee_headers):
    response = await _enter(async_client, employee_headers, date="2026-02-19", shift="evening")
    assert response.status_code == 201
    data = response.json()
    assert (data["shift_start"], data["shift_end"]) == ("16:00", "24:00")
    assert data["check_in_status"] == "on-time"
    assert data["check_out"] is None
    assert data["state"] == "working"
    assert data["worked_minutes"] == 0


@pytest.mark.asyncio
async def test_manual_record_times_drive_lateness_and_overtime(
    async_client: AsyncClient, employee_headers
):
    response = await _enter(
        async_client, employee_headers,
        date="2026-02-18",
        shift="morning",
        check_in="2026-02-18T03:30:00Z",
        check_out="2026-02-18T13:30:00Z",
    )
    assert response.status_code == 201
    data = response.json()
    assert data["check_in_status"] == "late"
    assert data["late_minutes"] == 30
    assert data["worked_minutes"] == 600
    assert data["overtime_minutes"] == 120
    assert data["overtime_status"] == "pending"


@pytest.mark.asyncio
async def test_manual_record_validation(async_client: AsyncClient, employee_headers):
    response = await _enter(async_client, employee_headers, date="2026-02-20")
    assert response.status_code == 422

    response = await _enter(async_client, employee_headers, date="2026-03-02", shift="morning")
    assert response.status_code == 400
    assert response.json()["detail"] == "Use check-in/check-out endpoints for today's attendance"

    response = await _enter(async_client, employee_headers, date="2026-03-09", shift="morning")
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot create attendance records for future dates"

    response = await _enter(
        async_client, employee_headers, **{**PAST_DAY, "check_out": "2026-02-20T02:00:00Z"}
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Check-out time must be after check-in time"

    response = await _enter(
        async_client, employee_headers, **{**PAST_DAY, "tasks": [{"description": " ", "time_spent": 30}]}
    )
    assert response.status_code == 400
    assert response.json()["errors"] == ["Task 1: description is required"]


@pytest.mark.asyncio
async def test_manual_record_for_someone_else(
    async_client: AsyncClient, db_session: AsyncSession, employee, employee_headers, manager_headers
):
    other = await make_user(db_session, "other@portal.test")

    response = await _enter(async_client, employee_headers, **PAST_DAY, employee_id=other.id)
    assert response.status_code == 403

    response = await _enter(async_client, manager_headers, **PAST_DAY, employee_id=employee.id)
    assert response.status_code == 201
    assert response.json()["employee_id"] == employee.id

    response = await _enter(async_client, manager_headers, **PAST_DAY, employee_id=9999)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_today_cannot_be_corrected(async_client: AsyncClient, employee_headers):
    record = (await _check_in(async_client, employee_headers)).json()
    response = await async_client.put(
        f"{BASE}/{record['id']}", json={"notes": "Edited"}, headers=employee_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == (
        "Cannot update today's attendance record. Use check-in/check-out endpoints"
    )


@pytest.mark.asyncio
async def test_correct_past_record(
    async_client: AsyncClient, db_session: AsyncSession, employee_headers, manager_headers
):
    body = {k: v for k, v in PAST_DAY.items() if k not in ("check_out", "tasks")}
    record = (await _enter(async_client, employee_headers, **body)).json()
    url = f"{BASE}/{record['id']}"

    response = await async_client.put(
        url, json={"check_out": "2026-02-20T11:00:00Z"}, headers=employee_headers
    )
    assert response.status_code == 200
    assert response.json()["state"] == "checked_out"
    assert response.json()["worked_minutes"] == 480

    response = await async_client.put(
        url, json={"check_out": "2026-02-20T02:00:00Z"}, headers=employee_headers
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Check-out time must be after check-in time"

    response = await async_client.put(
        url,
        json={"check_in": "2026-02-20T03:30:00Z", "late_reason": "Traffic"},
        headers=employee_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["check_in_status"] == "late"
    assert data["late_minutes"] == 30
    assert data["late_reason"] == "Traffic"
    assert data["worked_minutes"] == 450

    response = await async_client.put(url, json={"late_reason": None}, headers=employee_headers)
    assert response.json()["late_reason"] is None

    other = auth_headers(await make_user(db_session, "other@portal.test"))
    response = await async_client.put(url, json={"notes": "Mine now"}, headers=other)
    assert response.status_code == 404

    response = await async_client.put(url, json={"notes": "Checked"}, headers=manager_headers)
    assert response.status_code == 200
    assert response.json()["notes"] == "Checked"


@pytest.mark.asyncio
async def test_corrected_overtime_goes_back_for_review(
    async_client: AsyncClient, employee_headers, manager_headers
):
    record = (
        await _enter(async_client, employee_headers, **{**PAST_DAY, "check_out": "2026-02-20T13:00:00Z"})
    ).json()
    assert record["overtime_minutes"] == 120
    url = f"{BASE}/{record['id']}"

    await async_client.put(f"{url}/overtime", json={"status": "approved"}, headers=manager_headers)

    response = await async_client.put(url, json={"notes": "Release night"}, headers=employee_headers)
    assert response.json()["overtime_status"] == "approved"

    response = await async_client.put(
        url, json={"check_out": "2026-02-20T13:30:00Z"}, headers=employee_headers
    )
    assert response.json()["overtime_minutes"] == 150
    assert response.json()["overtime_status"] == "pending"


@pytest.mark.asyncio
async def test_delete_keeps_the_last_seven_days(
    async_client: AsyncClient, db_session: AsyncSession, employee_headers
):
    recent = (
        await _enter(async_client, employee_headers, date="2026-02-25", shift="morning")
    ).json()
    response = await async_client.delete(f"{BASE}/{recent['id']}", headers=employee_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Cannot delete attendance records from the last 7 days"

    old = (await _enter(async_client, employee_headers, date="2026-02-23", shift="morning")).json()
    other = auth_headers(await make_user(db_session, "other@portal.test"))
    response = await async_client.delete(f"{BASE}/{old['id']}", headers=other)
    assert response.status_code == 404

    response = await async_client.delete(f"{BASE}/{old['id']}", headers=employee_headers)
    assert response.status_code == 200
    assert response.json()["success"] is True

    response = await async_client.get(f"{BASE}/{old['id']}", headers=employee_headers)
    assert response.status_code == 404
