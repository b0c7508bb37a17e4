from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient


def days_from_now(days: int) -> str:
    return (datetime.utcnow() + timedelta(days=days)).replace(microsecond=0).isoformat()


async def create_schedule(client: AsyncClient, plan_id: str, headers, **overrides) -> dict:
    payload = {"schedule_type": "IEP_ANNUAL_REVIEW", "due_date": days_from_now(90)}
    payload.update(overrides)
    response = await client.post(f"/api/v1/plans/{plan_id}/review-schedules", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_schedule_outside_lead_window_has_no_task(client: AsyncClient, iep_plan, cm_headers):
    schedule = await create_schedule(client, iep_plan["id"], cm_headers)

    assert schedule["status"] == "OPEN"
    assert schedule["lead_days"] == 30
    tasks = await client.get("/api/v1/compliance-tasks", headers=cm_headers)
    assert tasks.json() == []


@pytest.mark.asyncio
async def test_schedule_inside_lead_window_raises_task_and_alert(client: AsyncClient, iep_plan, case_manager,
                                                                 cm_headers):
    schedule = await create_schedule(
        client, iep_plan["id"], cm_headers, due_date=days_from_now(10), assigned_to_id=case_manager.id
    )

    tasks = (await client.get("/api/v1/compliance-tasks/my-tasks", headers=cm_headers)).json()
    assert len(tasks) == 1
    assert tasks[0]["task_type"] == "REVIEW_DUE_SOON"
    assert tasks[0]["review_schedule_id"] == schedule["id"]
    assert tasks[0]["title"] == "IEP Annual Review due soon"

    alerts = (await client.get("/api/v1/alerts", headers=cm_headers)).json()
    assert "REVIEW_DUE_SOON" in [a["alert_type"] for a in alerts["alerts"]]


@pytest.mark.asyncio
async def test_completing_schedule_closes_its_tasks(client: AsyncClient, iep_plan, case_manager, cm_headers):
    schedule = await create_schedule(
        client, iep_plan["id"], cm_headers, due_date=days_from_now(5), assigned_to_id=case_manager.id
    )

    response = await client.post(f"/api/v1/review-schedules/{schedule['id']}/complete", headers=cm_headers, json={
        "notes": "Held annual review",
    })
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "COMPLETE"
    assert "Completion notes: Held annual review" in body["notes"]

    tasks = (await client.get("/api/v1/compliance-tasks", headers=cm_headers)).json()
    assert [t["status"] for t in tasks] == ["COMPLETE"]

    again = await client.post(f"/api/v1/review-schedules/{schedule['id']}/complete", headers=cm_headers)
    assert again.json()["error"]["code"] == "ERR_REVIEW_SCHEDULE_ALREADY_COMPLETE"

    edit = await client.patch(f"/api/v1/review-schedules/{schedule['id']}", headers=cm_headers, json={
        "lead_days": 10,
    })
    assert edit.json()["error"]["code"] == "ERR_REVIEW_SCHEDULE_ALREADY_COMPLETE"


@pytest.mark.asyncio
async def test_sweep_marks_overdue(client: AsyncClient, iep_plan, case_manager, cm_headers, admin_headers):
    overdue = await create_schedule(
        client, iep_plan["id"], cm_headers, due_date=days_from_now(-3), assigned_to_id=case_manager.id
    )
    await create_schedule(client, iep_plan["id"], cm_headers, schedule_type="IEP_REEVALUATION")

    response = await client.post("/api/v1/review-schedules/sweep", headers=admin_headers)
    assert response.status_code == 200
    assert response.json() == {"marked_overdue": 1, "due_soon_tasks": 0}

    schedule = (await client.get(f"/api/v1/review-schedules/{overdue['id']}", headers=cm_headers)).json()
    assert schedule["status"] == "OVERDUE"

    types = sorted(t["task_type"] for t in (await client.get("/api/v1/compliance-tasks", headers=cm_headers)).json())
    assert types == ["REVIEW_DUE_SOON", "REVIEW_OVERDUE"]

    # A second sweep finds nothing new
    response = await client.post("/api/v1/review-schedules/sweep", headers=admin_headers)
    assert response.json() == {"marked_overdue": 0, "due_soon_tasks": 0}


@pytest.mark.asyncio
async def test_sweep_requires_admin(client: AsyncClient, cm_headers):
    response = await client.post("/api/v1/review-schedules/sweep", headers=cm_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_review_dashboard(client: AsyncClient, iep_plan, cm_headers):
    await create_schedule(client, iep_plan["id"], cm_headers, due_date=days_from_now(-1))
    await create_schedule(client, iep_plan["id"], cm_headers, due_date=days_from_now(12))
    await create_schedule(client, iep_plan["id"], cm_headers, due_date=days_from_now(200))

    response = await client.get("/api/v1/review-schedules/dashboard", headers=cm_headers)

    summary = response.json()["summary"]
    assert summary == {"overdue_count": 1, "upcoming_count": 1, "total_due_within_30_days": 2}


@pytest.mark.asyncio
async def test_compliance_task_lifecycle(client: AsyncClient, teacher, cm_headers, teacher_headers):
    created = await client.post("/api/v1/compliance-tasks", headers=cm_headers, json={
        "task_type": "SIGNATURE_NEEDED",
        "title": "Collect parent signature",
        "due_date": days_from_now(-1),
        "priority": 1,
        "assigned_to_id": teacher.id,
    })
    assert created.status_code == 201
    task = created.json()

    unread = await client.get("/api/v1/alerts/unread-count", headers=teacher_headers)
    assert unread.json()["unread_count"] == 1

    dashboard = (await client.get("/api/v1/compliance-tasks/dashboard?mine=true", headers=teacher_headers)).json()
    assert dashboard["by_status"]["OPEN"] == 1
    assert dashboard["overdue"] == 1
    assert dashboard["total"] == 1

    dismissed = await client.post(f"/api/v1/compliance-tasks/{task['id']}/dismiss", headers=teacher_headers, json={
        "reason": "Signed on paper",
    })
    assert dismissed.json()["status"] == "DISMISSED"
    assert dismissed.json()["dismissed_reason"] == "Signed on paper"

    mine = await client.get("/api/v1/compliance-tasks/my-tasks", headers=teacher_headers)
    assert mine.json() == []


@pytest.mark.asyncio
async def test_completed_task_cannot_be_completed_again(client: AsyncClient, cm_headers):
    created = await client.post("/api/v1/compliance-tasks", headers=cm_headers, json={
        "task_type": "DOCUMENT_REQUIRED", "title": "Upload vision screening",
    })
    task_id = created.json()["id"]

    first = await client.post(f"/api/v1/compliance-tasks/{task_id}/complete", headers=cm_headers)
    assert first.json()["status"] == "COMPLETE"

    second = await client.post(f"/api/v1/compliance-tasks/{task_id}/complete", headers=cm_headers)
    assert second.status_code == 400
    assert second.json()["error"]["code"] == "ERR_COMPLIANCE_TASK_ALREADY_COMPLETE"


@pytest.mark.asyncio
async def test_type_catalogs(client: AsyncClient):
    schedule_types = await client.get("/api/v1/schedule-types")
    task_types = await client.get("/api/v1/task-types")

    assert "SECTION504_PERIODIC_REVIEW" in [t["value"] for t in schedule_types.json()]
    assert "MEETING_REQUIRED" in [t["value"] for t in task_types.json()]


@pytest.mark.asyncio
async def test_offset_due_date_stored_as_utc(client: AsyncClient, iep_plan, cm_headers):
    schedule = await create_schedule(client, iep_plan["id"], cm_headers, due_date="2030-01-15T05:00:00+05:00")

    assert schedule["due_date"].startswith("2030-01-15T00:00:00")
    tasks = await client.get("/api/v1/compliance-tasks", headers=cm_headers)
    assert tasks.json() == []
