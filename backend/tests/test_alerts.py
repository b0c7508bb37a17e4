import pytest
from httpx import AsyncClient


async def send_alert(client: AsyncClient, headers, user_id: str, title: str = "Heads up") -> dict:
    response = await client.post("/api/v1/alerts", headers=headers, json={
        "user_id": user_id,
        "title": title,
        "message": "Please review the updated accommodations",
    })
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_meeting_scheduling_alerts_teacher(client: AsyncClient, student, cm_headers):
    await client.post("/api/v1/meetings", headers=cm_headers, json={
        "student_id": student["id"],
        "meeting_type": "REVIEW",
        "scheduled_at": "2026-12-03T09:30:00",
    })

    response = await client.get("/api/v1/alerts", headers=cm_headers)

    data = response.json()
    assert data["unread_count"] == 1
    alert = data["alerts"][0]
    assert alert["alert_type"] == "MEETING_SCHEDULED"
    assert alert["title"] == "Review Meeting scheduled"
    assert "12/03/2026" in alert["message"]


@pytest.mark.asyncio
async def test_read_and_clear(client: AsyncClient, teacher, cm_headers, teacher_headers):
    first = await send_alert(client, cm_headers, teacher.id, "First")
    await send_alert(client, cm_headers, teacher.id, "Second")

    read = await client.post(f"/api/v1/alerts/{first['id']}/read", headers=teacher_headers)
    assert read.json()["is_read"] is True
    assert read.json()["read_at"] is not None

    unread = await client.get("/api/v1/alerts?unread_only=true", headers=teacher_headers)
    assert [a["title"] for a in unread.json()["alerts"]] == ["Second"]

    cleared = await client.delete("/api/v1/alerts/clear-read", headers=teacher_headers)
    assert cleared.json() == {"deleted": 1}

    marked = await client.post("/api/v1/alerts/mark-all-read", headers=teacher_headers)
    assert marked.json() == {"updated": 1}

    count = await client.get("/api/v1/alerts/unread-count", headers=teacher_headers)
    assert count.json()["unread_count"] == 0


@pytest.mark.asyncio
async def test_alerts_are_private(client: AsyncClient, teacher, cm_headers):
    alert = await send_alert(client, cm_headers, teacher.id)

    read = await client.post(f"/api/v1/alerts/{alert['id']}/read", headers=cm_headers)
    assert read.status_code == 403

    deleted = await client.delete(f"/api/v1/alerts/{alert['id']}", headers=cm_headers)
    assert deleted.status_code == 403


@pytest.mark.asyncio
async def test_teacher_cannot_send_alerts(client: AsyncClient, case_manager, teacher_headers):
    response = await client.post("/api/v1/alerts", headers=teacher_headers, json={
        "user_id": case_manager.id, "title": "Hi", "message": "Hello",
    })

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_bulk_alerts_deduplicate(client: AsyncClient, teacher, case_manager, admin_headers, teacher_headers):
    response = await client.post("/api/v1/alerts/bulk", headers=admin_headers, json={
        "user_ids": [teacher.id, case_manager.id, teacher.id],
        "title": "Progress reports due",
        "message": "Quarterly progress reports are due Friday",
    })

    assert response.status_code == 201
    assert response.json() == {"created": 2}

    alerts = await client.get("/api/v1/alerts", headers=teacher_headers)
    assert len(alerts.json()["alerts"]) == 1


@pytest.mark.asyncio
async def test_missing_alert(client: AsyncClient, teacher_headers):
    response = await client.post("/api/v1/alerts/00000000-0000-0000-0000-000000000000/read", headers=teacher_headers)

    assert response.status_code == 404
