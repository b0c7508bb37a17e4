import pytest
from httpx import AsyncClient

from factories import GOAL_EXEMPLAR, upload_exemplar


@pytest.mark.asyncio
async def test_list_users_by_role(client: AsyncClient, admin_headers, case_manager, teacher):
    response = await client.get("/api/v1/admin/users?role=CASE_MANAGER", headers=admin_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert data["items"][0]["id"] == case_manager.id


@pytest.mark.asyncio
async def test_non_admin_is_forbidden(client: AsyncClient, cm_headers):
    response = await client.get("/api/v1/admin/users", headers=cm_headers)

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_cannot_deactivate_self(client: AsyncClient, admin_user, admin_headers):
    response = await client.patch(f"/api/v1/admin/users/{admin_user.id}", headers=admin_headers, json={
        "is_active": False,
    })

    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "is_active"


@pytest.mark.asyncio
async def test_set_permissions(client: AsyncClient, teacher, admin_headers):
    response = await client.put(f"/api/v1/admin/users/{teacher.id}/permissions", headers=admin_headers, json={
        "can_read_all": True,
    })

    assert response.status_code == 200
    permissions = response.json()["permissions"]
    assert permissions["can_read_all"] is True
    assert permissions["can_create_plans"] is True
    assert permissions["can_manage_users"] is False


@pytest.mark.asyncio
async def test_read_all_opens_jurisdiction_students(client: AsyncClient, student, teacher, admin_headers,
                                                    teacher_headers):
    hidden = await client.get(f"/api/v1/students/{student['id']}", headers=teacher_headers)
    assert hidden.status_code == 404

    await client.put(f"/api/v1/admin/users/{teacher.id}/permissions", headers=admin_headers, json={
        "can_read_all": True,
    })

    visible = await client.get(f"/api/v1/students/{student['id']}", headers=teacher_headers)
    assert visible.status_code == 200


@pytest.mark.asyncio
async def test_revoke_student_access(client: AsyncClient, student, teacher, admin_headers, teacher_headers):
    grant = await client.post("/api/v1/admin/student-access", headers=admin_headers, json={
        "student_id": student["id"], "user_id": teacher.id,
    })
    assert grant.status_code == 201

    revoked = await client.delete(f"/api/v1/admin/student-access/{grant.json()['id']}", headers=admin_headers)
    assert revoked.status_code == 204

    response = await client.get(f"/api/v1/students/{student['id']}", headers=teacher_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_jurisdictions_are_seeded(client: AsyncClient, admin_headers):
    response = await client.get("/api/v1/admin/jurisdictions", headers=admin_headers)

    codes = {(j["state_code"], j["district_code"]) for j in response.json()}
    assert ("MD", "HCPSS") in codes


@pytest.mark.asyncio
async def test_plan_views_are_audited(client: AsyncClient, iep_plan, case_manager, cm_headers, admin_headers):
    await client.get(f"/api/v1/plans/{iep_plan['id']}", headers=cm_headers)

    response = await client.get("/api/v1/admin/audit-logs?action=PLAN_VIEWED", headers=admin_headers)

    data = response.json()
    assert data["total"] == 1
    entry = data["items"][0]
    assert entry["entity_id"] == iep_plan["id"]
    assert entry["user_id"] == case_manager.id


@pytest.mark.asyncio
async def test_best_practice_upload_is_ingested(client: AsyncClient, admin_headers):
    document = await upload_exemplar(client, admin_headers)
    assert document["ingestion_status"] == "PENDING"

    listed = (await client.get("/api/v1/admin/best-practice-docs?plan_type=IEP", headers=admin_headers)).json()
    assert listed[0]["ingestion_status"] == "COMPLETE"
    assert listed[0]["ingestion_message"] == "Successfully extracted 1 chunks"

    chunks = (await client.get(f"/api/v1/admin/best-practice-docs/{document['id']}/chunks",
                               headers=admin_headers)).json()
    assert chunks["total_chunks"] == 1
    assert chunks["by_section"] == {"goals": 1}
    assert chunks["chunks"][0]["sequence"] == 0

    download = await client.get(f"/api/v1/admin/best-practice-docs/{document['id']}/download",
                                headers=admin_headers)
    assert download.content == GOAL_EXEMPLAR


@pytest.mark.asyncio
async def test_best_practice_rejects_unsupported_files(client: AsyncClient, admin_headers):
    response = await client.post(
        "/api/v1/admin/best-practice-docs",
        headers=admin_headers,
        files={"file": ("goals.xlsx", b"PK\x03\x04", "application/octet-stream")},
        data={"title": "Spreadsheet", "plan_type": "IEP"},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ERR_API_INVALID_FILE_TYPE"


@pytest.mark.asyncio
async def test_empty_document_fails_ingestion(client: AsyncClient, admin_headers):
    document = await upload_exemplar(client, admin_headers, content=b"   \n\n  ", filename="blank.txt")

    listed = (await client.get("/api/v1/admin/best-practice-docs", headers=admin_headers)).json()
    entry = next(d for d in listed if d["id"] == document["id"])
    assert entry["ingestion_status"] == "ERROR"
    assert entry["ingestion_message"] == "No text content extracted from document"


@pytest.mark.asyncio
async def test_reingest_and_deactivate(client: AsyncClient, admin_headers):
    document = await upload_exemplar(client, admin_headers)

    reingested = await client.post(f"/api/v1/admin/best-practice-docs/{document['id']}/reingest",
                                   headers=admin_headers)
    assert reingested.status_code == 200

    chunks = (await client.get(f"/api/v1/admin/best-practice-docs/{document['id']}/chunks",
                               headers=admin_headers)).json()
    assert chunks["total_chunks"] == 1

    updated = await client.patch(f"/api/v1/admin/best-practice-docs/{document['id']}", headers=admin_headers,
                                 json={"is_active": False})
    assert updated.json()["is_active"] is False

    active = await client.get("/api/v1/admin/best-practice-docs?active=true", headers=admin_headers)
    assert active.json() == []
