from datetime import datetime

import pytest
from httpx import AsyncClient


async def file_case(client: AsyncClient, student_id: str, headers, **overrides) -> dict:
    payload = {"case_type": "IEP_DISPUTE", "summary": "Parent disputes reduction in speech minutes"}
    payload.update(overrides)
    response = await client.post(f"/api/v1/students/{student_id}/disputes", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_case_numbers_count_up_per_year(client: AsyncClient, student, cm_headers):
    first = await file_case(client, student["id"], cm_headers)
    second = await file_case(client, student["id"], cm_headers, case_type="RECORDS_REQUEST")

    year = datetime.utcnow().year
    assert first["case_number"] == f"DC-{year}-0001"
    assert second["case_number"] == f"DC-{year}-0002"
    assert first["status"] == "OPEN"
    assert first["event_count"] == 1


@pytest.mark.asyncio
async def test_case_filing_records_intake_event(client: AsyncClient, student, cm_headers):
    case = await file_case(client, student["id"], cm_headers)

    detail = await client.get(f"/api/v1/disputes/{case['id']}", headers=cm_headers)

    events = detail.json()["events"]
    assert [e["event_type"] for e in events] == ["INTAKE"]
    assert events[0]["details"] == "Parent disputes reduction in speech minutes"


@pytest.mark.asyncio
async def test_case_rejects_other_students_plan(client: AsyncClient, student, iep_plan, cm_headers):
    other = await client.post("/api/v1/students", headers=cm_headers, json={
        "first_name": "Avery", "last_name": "Lin",
    })

    response = await client.post(f"/api/v1/students/{other.json()['id']}/disputes", headers=cm_headers, json={
        "case_type": "OTHER", "summary": "Wrong plan", "plan_instance_id": iep_plan["id"],
    })

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_status_change_adds_timeline_event(client: AsyncClient, student, cm_headers):
    case = await file_case(client, student["id"], cm_headers)

    in_review = await client.patch(f"/api/v1/disputes/{case['id']}", headers=cm_headers, json={"status": "IN_REVIEW"})
    assert in_review.json()["event_count"] == 2
    assert in_review.json()["resolved_date"] is None

    resolved = await client.patch(f"/api/v1/disputes/{case['id']}", headers=cm_headers, json={
        "status": "RESOLVED", "resolution_notes": "Minutes restored to 60 weekly",
    })
    body = resolved.json()
    assert body["status"] == "RESOLVED"
    assert body["resolved_date"] is not None
    assert body["resolution_notes"] == "Minutes restored to 60 weekly"

    events = (await client.get(f"/api/v1/disputes/{case['id']}/events", headers=cm_headers)).json()
    assert [e["event_type"] for e in events] == ["INTAKE", "STATUS_CHANGE", "RESOLUTION"]
    assert events[1]["summary"] == "Status changed from OPEN to IN_REVIEW"


@pytest.mark.asyncio
async def test_manual_events_and_dashboard(client: AsyncClient, student, cm_headers):
    case = await file_case(client, student["id"], cm_headers)
    closed = await file_case(client, student["id"], cm_headers, case_type="SECTION504_COMPLAINT")
    await client.patch(f"/api/v1/disputes/{closed['id']}", headers=cm_headers, json={"status": "CLOSED"})

    event = await client.post(f"/api/v1/disputes/{case['id']}/events", headers=cm_headers, json={
        "event_type": "MEETING", "summary": "Facilitated IEP meeting held",
    })
    assert event.status_code == 201

    dashboard = (await client.get("/api/v1/disputes/dashboard", headers=cm_headers)).json()
    assert dashboard["summary"] == {"open": 1, "in_review": 0, "resolved": 0, "closed": 1, "active": 1}
    assert [c["id"] for c in dashboard["recent_cases"]] == [case["id"]]
    assert dashboard["recent_cases"][0]["event_count"] == 2

    filtered = await client.get(f"/api/v1/students/{student['id']}/disputes?status=CLOSED", headers=cm_headers)
    assert [c["id"] for c in filtered.json()] == [closed["id"]]


@pytest.mark.asyncio
async def test_attachments(client: AsyncClient, student, cm_headers):
    case = await file_case(client, student["id"], cm_headers)

    rejected = await client.post(
        f"/api/v1/disputes/{case['id']}/attachments",
        headers=cm_headers,
        files={"file": ("script.sh", b"#!/bin/sh", "text/x-sh")},
    )
    assert rejected.status_code == 400

    uploaded = await client.post(
        f"/api/v1/disputes/{case['id']}/attachments",
        headers=cm_headers,
        files={"file": ("letter.txt", b"Dear team, ...", "text/plain")},
        data={"description": "Parent letter"},
    )
    assert uploaded.status_code == 201
    attachment = uploaded.json()
    assert attachment["description"] == "Parent letter"

    deleted = await client.delete(f"/api/v1/disputes/attachments/{attachment['id']}", headers=cm_headers)
    assert deleted.status_code == 204

    remaining = await client.get(f"/api/v1/disputes/{case['id']}/attachments", headers=cm_headers)
    assert remaining.json() == []


@pytest.mark.asyncio
async def test_export_pdf(client: AsyncClient, student, cm_headers):
    case = await file_case(client, student["id"], cm_headers)

    response = await client.get(f"/api/v1/disputes/{case['id']}/export-pdf", headers=cm_headers)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert case["case_number"] in response.headers["content-disposition"]


@pytest.mark.asyncio
async def test_teacher_cannot_file_case(client: AsyncClient, teacher_headers):
    student = await client.post("/api/v1/students", headers=teacher_headers, json={
        "first_name": "Jordan", "last_name": "Park",
    })

    response = await client.post(f"/api/v1/students/{student.json()['id']}/disputes", headers=teacher_headers, json={
        "case_type": "OTHER", "summary": "Attempted filing",
    })

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_case_hidden_from_other_teacher(client: AsyncClient, student, cm_headers, teacher_headers):
    case = await file_case(client, student["id"], cm_headers)

    response = await client.get(f"/api/v1/disputes/{case['id']}", headers=teacher_headers)

    assert response.status_code == 404
