import pytest
from httpx import AsyncClient

from factories import student_payload

IEP_REQUIRED_FIELDS = {
    "primary_disability": "Specific Learning Disability",
    "iep_meeting_date": "2026-09-14",
    "annual_review_date": "2027-09-13",
    "parent_guardian_name": "Dana Rivera",
    "case_manager": "Ms. Okafor",
    "student_strengths": "Curious, persistent, strong oral vocabulary",
    "parent_concerns": "Reading fluency is below grade level",
    "academic_performance": "Reads 48 wcpm on grade 3 passages",
    "functional_performance": "Follows two-step directions with visual prompts",
}


# ==================== Students ====================

@pytest.mark.asyncio
async def test_student_record_ids_are_sequential(client: AsyncClient, cm_headers):
    first = await client.post("/api/v1/students", headers=cm_headers, json=student_payload())
    second = await client.post("/api/v1/students", headers=cm_headers, json=student_payload())

    assert first.json()["record_id"] == "STU-000001"
    assert second.json()["record_id"] == "STU-000002"


@pytest.mark.asyncio
async def test_student_defaults_to_creator_jurisdiction(client: AsyncClient, student, case_manager, jurisdiction):
    assert student["teacher_id"] == case_manager.id
    assert student["jurisdiction_id"] == jurisdiction.id


@pytest.mark.asyncio
async def test_other_teacher_cannot_see_student(client: AsyncClient, student, teacher_headers):
    response = await client.get(f"/api/v1/students/{student['id']}", headers=teacher_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ERR_API_STUDENT_NOT_FOUND"


@pytest.mark.asyncio
async def test_access_grant_opens_student(client: AsyncClient, student, teacher, teacher_headers, admin_headers):
    grant = await client.post("/api/v1/admin/student-access", headers=admin_headers, json={
        "student_id": student["id"],
        "user_id": teacher.id,
    })
    assert grant.status_code == 201

    response = await client.get(f"/api/v1/students/{student['id']}", headers=teacher_headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_student_status_current_per_scope(client: AsyncClient, student, cm_headers):
    url = f"/api/v1/students/{student['id']}/status"
    await client.post(url, headers=cm_headers, json={
        "scope": "ACADEMIC", "code": "WATCH", "effective_date": "2026-09-01T00:00:00",
    })
    await client.post(url, headers=cm_headers, json={
        "scope": "ACADEMIC", "code": "ON_TRACK", "effective_date": "2026-10-01T00:00:00",
    })
    await client.post(url, headers=cm_headers, json={"scope": "BEHAVIOR", "code": "CONCERN"})

    response = await client.get(url, headers=cm_headers)

    assert response.status_code == 200
    data = response.json()
    current = {entry["scope"]: entry["code"] for entry in data["current"]}
    assert current == {"ACADEMIC": "ON_TRACK", "BEHAVIOR": "CONCERN"}
    assert len(data["history"]) == 3


@pytest.mark.asyncio
async def test_deleted_student_leaves_caseload(client: AsyncClient, student, cm_headers):
    response = await client.delete(f"/api/v1/students/{student['id']}", headers=cm_headers)
    assert response.status_code == 204

    listing = await client.get("/api/v1/students", headers=cm_headers)
    assert student["id"] not in [s["id"] for s in listing.json()]


# ==================== Plans ====================

@pytest.mark.asyncio
async def test_create_plan_uses_active_schema(client: AsyncClient, iep_plan, cm_headers):
    assert iep_plan["status"] == "DRAFT"
    assert iep_plan["plan_type"]["code"] == "IEP"

    response = await client.get(f"/api/v1/plans/{iep_plan['id']}", headers=cm_headers)
    assert response.status_code == 200
    detail = response.json()
    section_keys = [s["key"] for s in detail["schema"]["fields"]["sections"]]
    assert section_keys[0] == "student_information"
    assert detail["field_values"] == {}


@pytest.mark.asyncio
async def test_create_plan_unknown_type(client: AsyncClient, student, cm_headers):
    response = await client.post(f"/api/v1/students/{student['id']}/plans/NOPE", headers=cm_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_finalize_requires_required_fields(client: AsyncClient, iep_plan, cm_headers):
    url = f"/api/v1/plans/{iep_plan['id']}"
    await client.patch(f"{url}/fields", headers=cm_headers, json={
        "fields": {"primary_disability": "Autism"},
    })

    response = await client.post(f"{url}/finalize", headers=cm_headers)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "ERR_API_VALIDATION_FAILED"
    assert "primary_disability" not in error["details"]["missing_fields"]
    assert "student_strengths" in error["details"]["missing_fields"]

    await client.patch(f"{url}/fields", headers=cm_headers, json={"fields": IEP_REQUIRED_FIELDS})
    response = await client.post(f"{url}/finalize", headers=cm_headers)

    assert response.status_code == 200
    assert response.json()["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_field_values_upsert(client: AsyncClient, iep_plan, cm_headers):
    url = f"/api/v1/plans/{iep_plan['id']}/fields"
    await client.patch(url, headers=cm_headers, json={"fields": {"transition": "Not yet required"}})
    response = await client.patch(url, headers=cm_headers, json={
        "fields": {"transition": "Explore career interests", "extended_school_year": False},
    })

    assert response.status_code == 200
    assert response.json()["field_values"] == {
        "transition": "Explore career interests",
        "extended_school_year": False,
    }


# ==================== Goals and progress ====================

@pytest.mark.asyncio
async def test_goal_progress_flow(client: AsyncClient, iep_plan, cm_headers):
    goal_payload = {
        "goal_code": "R1",
        "area": "READING",
        "annual_goal_text": "Given a grade 3 passage, the student will read 90 wcpm with 95% accuracy.",
        "short_term_objectives": ["70 wcpm by January", "80 wcpm by April"],
        "progress_schedule": "quarterly",
    }
    created = await client.post(f"/api/v1/plans/{iep_plan['id']}/goals", headers=cm_headers, json=goal_payload)
    assert created.status_code == 201
    goal = created.json()
    assert goal["progress_schedule"] == "quarterly"

    duplicate = await client.post(f"/api/v1/plans/{iep_plan['id']}/goals", headers=cm_headers, json=goal_payload)
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "ERR_API_CONFLICT"

    quick = await client.post(f"/api/v1/goals/{goal['id']}/progress/quick", headers=cm_headers, json={
        "quick_select": "SOME_SUPPORT", "date": "2026-10-01T10:00:00",
    })
    assert quick.status_code == 201
    assert quick.json()["is_dictated"] is False

    dictated = await client.post(f"/api/v1/goals/{goal['id']}/progress/dictation", headers=cm_headers, json={
        "quick_select": "LOW_SUPPORT",
        "comment": "Read the passage with two self-corrections",
        "measure_json": {"wcpm": 62},
        "date": "2026-10-08T10:00:00",
    })
    assert dictated.status_code == 201
    assert dictated.json()["is_dictated"] is True

    detail = await client.get(f"/api/v1/goals/{goal['id']}", headers=cm_headers)
    records = detail.json()["progress_records"]
    assert [r["quick_select"] for r in records] == ["LOW_SUPPORT", "SOME_SUPPORT"]


@pytest.mark.asyncio
async def test_work_sample_upload_and_delete(client: AsyncClient, iep_plan, cm_headers):
    created = await client.post(f"/api/v1/plans/{iep_plan['id']}/goals", headers=cm_headers, json={
        "goal_code": "W1",
        "area": "WRITING",
        "annual_goal_text": "The student will write a five sentence paragraph with a topic sentence.",
    })
    goal_id = created.json()["id"]

    rejected = await client.post(
        f"/api/v1/goals/{goal_id}/work-samples",
        headers=cm_headers,
        files={"file": ("sample.exe", b"MZ", "application/octet-stream")},
    )
    assert rejected.status_code == 400
    assert rejected.json()["error"]["code"] == "ERR_API_INVALID_FILE_TYPE"

    uploaded = await client.post(
        f"/api/v1/goals/{goal_id}/work-samples",
        headers=cm_headers,
        files={"file": ("paragraph.txt", b"My summer was fun.", "text/plain")},
        data={"rating": "NEAR_TARGET"},
    )
    assert uploaded.status_code == 201
    sample = uploaded.json()
    assert sample["file_name"] == "paragraph.txt"

    deleted = await client.delete(f"/api/v1/work-samples/{sample['id']}", headers=cm_headers)
    assert deleted.status_code == 204

    listing = await client.get(f"/api/v1/goals/{goal_id}/work-samples", headers=cm_headers)
    assert listing.json() == []


@pytest.mark.asyncio
async def test_service_log_summary(client: AsyncClient, iep_plan, cm_headers):
    url = f"/api/v1/plans/{iep_plan['id']}/services"
    for minutes, service_type in ((30, "SPEECH_LANGUAGE"), (45, "SPECIAL_EDUCATION"), (15, "SPEECH_LANGUAGE")):
        response = await client.post(url, headers=cm_headers, json={
            "date": "2026-10-05T09:00:00",
            "minutes": minutes,
            "service_type": service_type,
            "setting": "RESOURCE_ROOM",
        })
        assert response.status_code == 201

    response = await client.get(url, headers=cm_headers)

    summary = response.json()["summary"]
    assert summary["total_minutes"] == 90
    assert summary["by_type"] == {"SPEECH_LANGUAGE": 45, "SPECIAL_EDUCATION": 45}


@pytest.mark.asyncio
async def test_service_minutes_bounds(client: AsyncClient, iep_plan, cm_headers):
    response = await client.post(f"/api/v1/plans/{iep_plan['id']}/services", headers=cm_headers, json={
        "date": "2026-10-05T09:00:00",
        "minutes": 0,
        "service_type": "COUNSELING",
        "setting": "HOME",
    })

    assert response.status_code == 400


# ==================== Decisions ====================

@pytest.mark.asyncio
async def test_decision_ledger_void(client: AsyncClient, iep_plan, cm_headers):
    created = await client.post(f"/api/v1/plans/{iep_plan['id']}/decisions", headers=cm_headers, json={
        "decision_type": "PLACEMENT_LRE",
        "summary": "General education with pull-out reading support",
        "rationale": "Student benefits from peer modeling",
        "section_key": "lre_placement",
    })
    assert created.status_code == 201
    decision = created.json()
    assert decision["status"] == "ACTIVE"

    no_reason = await client.post(f"/api/v1/decisions/{decision['id']}/void", headers=cm_headers, json={})
    assert no_reason.status_code == 400
    assert no_reason.json()["error"]["code"] == "ERR_DECISION_VOID_REQUIRES_REASON"

    voided = await client.post(f"/api/v1/decisions/{decision['id']}/void", headers=cm_headers, json={
        "void_reason": "Entered on the wrong plan",
    })
    assert voided.status_code == 200
    assert voided.json()["status"] == "VOID"

    again = await client.post(f"/api/v1/decisions/{decision['id']}/void", headers=cm_headers, json={
        "void_reason": "Twice",
    })
    assert again.json()["error"]["code"] == "ERR_DECISION_ALREADY_VOIDED"

    active = await client.get(f"/api/v1/plans/{iep_plan['id']}/decisions?status=ACTIVE", headers=cm_headers)
    assert active.json() == []


@pytest.mark.asyncio
async def test_decisions_only_for_iep(client: AsyncClient, student, cm_headers):
    plan = await client.post(f"/api/v1/students/{student['id']}/plans/FIVE_OH_FOUR", headers=cm_headers)
    assert plan.status_code == 201

    response = await client.post(f"/api/v1/plans/{plan.json()['id']}/decisions", headers=cm_headers, json={
        "decision_type": "OTHER",
        "summary": "Extended time",
        "rationale": "Processing speed",
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ERR_DECISION_CREATE_FOR_NON_IEP"


@pytest.mark.asyncio
async def test_teacher_cannot_record_decisions(client: AsyncClient, teacher_headers):
    student = await client.post("/api/v1/students", headers=teacher_headers, json=student_payload())
    plan = await client.post(f"/api/v1/students/{student.json()['id']}/plans/IEP", headers=teacher_headers)

    response = await client.post(f"/api/v1/plans/{plan.json()['id']}/decisions", headers=teacher_headers, json={
        "decision_type": "OTHER",
        "summary": "Summary",
        "rationale": "Rationale",
    })

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "ERR_API_FORBIDDEN"
