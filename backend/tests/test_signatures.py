from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient

from factories import auth_headers_for
from myteacher.models.user import UserRole


async def finalized_version(client: AsyncClient, plan_id: str, headers) -> str:
    response = await client.post(f"/api/v1/plans/{plan_id}/versions/finalize", headers=headers,
                                 json={"create_signature_packet": False})
    assert response.status_code == 201, response.text
    return response.json()["version"]["id"]


async def create_packet(client: AsyncClient, version_id: str, headers, **body) -> dict:
    body.setdefault("required_roles", ["CASE_MANAGER", "PARENT_GUARDIAN"])
    response = await client.post(f"/api/v1/plan-versions/{version_id}/signatures", headers=headers, json=body)
    assert response.status_code == 201, response.text
    return response.json()


def record_for(packet: dict, role: str) -> dict:
    return next(r for r in packet["records"] if r["role"] == role)


IN_PERSON = {"method": "IN_PERSON", "signer_name": "Dana Rivera"}


@pytest.mark.asyncio
async def test_sign_through_packet(client: AsyncClient, iep_plan, cm_headers):
    version_id = await finalized_version(client, iep_plan["id"], cm_headers)
    packet = await create_packet(client, version_id, cm_headers)
    parent = record_for(packet, "PARENT_GUARDIAN")

    response = await client.post(f"/api/v1/signature-packets/{packet['id']}/sign", headers=cm_headers,
                                 json={"signature_record_id": parent["id"], **IN_PERSON})

    assert response.status_code == 200, response.text
    assert response.json()["record"]["status"] == "SIGNED"
    assert response.json()["packet_complete"] is False
    summary = (await client.get(f"/api/v1/plan-versions/{version_id}/signatures", headers=cm_headers)).json()
    by_role = {s["role"]: s for s in summary["roles_summary"]}
    assert by_role["PARENT_GUARDIAN"]["signed"] is True
    assert by_role["CASE_MANAGER"] == {
        "role": "CASE_MANAGER", "label": "Case Manager", "signed": False, "pending": 1, "total": 1,
    }


@pytest.mark.asyncio
async def test_decline_through_packet(client: AsyncClient, iep_plan, cm_headers):
    version_id = await finalized_version(client, iep_plan["id"], cm_headers)
    packet = await create_packet(client, version_id, cm_headers)

    response = await client.post(f"/api/v1/signature-packets/{packet['id']}/decline", headers=cm_headers, json={
        "signature_record_id": record_for(packet, "PARENT_GUARDIAN")["id"],
        "decline_reason": "Requests another meeting",
    })

    assert response.status_code == 200
    assert response.json()["status"] == "DECLINED"
    assert response.json()["decline_reason"] == "Requests another meeting"


@pytest.mark.asyncio
async def test_packet_sign_rejects_record_from_other_packet(client: AsyncClient, cm_headers, student):
    iep = (await client.post(f"/api/v1/students/{student['id']}/plans/IEP", headers=cm_headers)).json()
    bip = (await client.post(f"/api/v1/students/{student['id']}/plans/BEHAVIOR_PLAN", headers=cm_headers)).json()
    first = await create_packet(client, await finalized_version(client, iep["id"], cm_headers), cm_headers)
    second = await create_packet(client, await finalized_version(client, bip["id"], cm_headers), cm_headers)

    response = await client.post(f"/api/v1/signature-packets/{first['id']}/sign", headers=cm_headers, json={
        "signature_record_id": second["records"][0]["id"], **IN_PERSON,
    })

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ERR_SIGN_RECORD_NOT_FOUND"
    untouched = (await client.get(f"/api/v1/plan-versions/{second['plan_version_id']}/signatures",
                                  headers=cm_headers)).json()
    assert all(r["status"] == "PENDING" for r in untouched["records"])


@pytest.mark.asyncio
async def test_packet_sign_unknown_packet(client: AsyncClient, cm_headers):
    response = await client.post("/api/v1/signature-packets/00000000-0000-0000-0000-000000000000/sign",
                                 headers=cm_headers, json={"signature_record_id": "missing", **IN_PERSON})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ERR_SIGN_PACKET_NOT_FOUND"


@pytest.mark.asyncio
async def test_manager_without_student_access_cannot_sign(client: AsyncClient, iep_plan, cm_headers, user_factory):
    version_id = await finalized_version(client, iep_plan["id"], cm_headers)
    packet = await create_packet(client, version_id, cm_headers)
    record = record_for(packet, "CASE_MANAGER")
    outsider = auth_headers_for(await user_factory(UserRole.CASE_MANAGER))

    hidden = await client.get(f"/api/v1/plan-versions/{version_id}/signatures", headers=outsider)
    by_record = await client.post(f"/api/v1/signature-records/{record['id']}/sign", headers=outsider, json=IN_PERSON)
    by_packet = await client.post(f"/api/v1/signature-packets/{packet['id']}/sign", headers=outsider,
                                  json={"signature_record_id": record["id"], **IN_PERSON})
    declined = await client.post(f"/api/v1/signature-records/{record['id']}/decline", headers=outsider,
                                 json={"decline_reason": "Not mine"})

    assert hidden.status_code == 404
    assert by_record.status_code == 404
    assert by_packet.status_code == 404
    assert declined.status_code == 404
    after = (await client.get(f"/api/v1/plan-versions/{version_id}/signatures", headers=cm_headers)).json()
    assert record_for(after, "CASE_MANAGER")["status"] == "PENDING"


@pytest.mark.asyncio
async def test_designated_signer_may_sign_own_record(client: AsyncClient, iep_plan, student, teacher,
                                                    teacher_headers, cm_headers, admin_headers):
    grant = await client.post("/api/v1/admin/student-access", headers=admin_headers, json={
        "student_id": student["id"], "user_id": teacher.id,
    })
    assert grant.status_code == 201
    version_id = await finalized_version(client, iep_plan["id"], cm_headers)
    packet = await create_packet(client, version_id, cm_headers, required_roles=["GENERAL_ED_TEACHER", "CASE_MANAGER"],
                                 signers=[
                                     {"role": "GENERAL_ED_TEACHER", "signer_user_id": teacher.id},
                                     {"role": "CASE_MANAGER"},
                                 ])

    own = await client.post(f"/api/v1/signature-records/{record_for(packet, 'GENERAL_ED_TEACHER')['id']}/sign",
                            headers=teacher_headers, json={**IN_PERSON, "signer_name": teacher.display_name})
    other = await client.post(f"/api/v1/signature-records/{record_for(packet, 'CASE_MANAGER')['id']}/sign",
                              headers=teacher_headers, json=IN_PERSON)

    assert own.status_code == 200, own.text
    assert own.json()["record"]["signer_user_id"] == teacher.id
    assert other.status_code == 403
    assert other.json()["error"]["code"] == "ERR_SIGN_UNAUTHORIZED_ROLE"


@pytest.mark.asyncio
async def test_expired_packet_rejects_signatures(client: AsyncClient, iep_plan, cm_headers):
    version_id = await finalized_version(client, iep_plan["id"], cm_headers)
    yesterday = (datetime.utcnow() - timedelta(days=1)).replace(microsecond=0).isoformat()
    packet = await create_packet(client, version_id, cm_headers, expires_at=yesterday)

    response = await client.post(f"/api/v1/signature-records/{packet['records'][0]['id']}/sign",
                                 headers=cm_headers, json=IN_PERSON)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ERR_SIGN_PACKET_EXPIRED"


@pytest.mark.asyncio
async def test_offset_expiry_accepted(client: AsyncClient, iep_plan, cm_headers):
    version_id = await finalized_version(client, iep_plan["id"], cm_headers)
    packet = await create_packet(client, version_id, cm_headers, expires_at="2030-01-15T00:00:00Z")
    assert packet["expires_at"].startswith("2030-01-15T00:00:00")

    response = await client.post(f"/api/v1/signature-packets/{packet['id']}/sign", headers=cm_headers,
                                 json={"signature_record_id": packet["records"][0]["id"], **IN_PERSON})

    assert response.status_code == 200, response.text


@pytest.mark.asyncio
async def test_complete_packet_rejects_further_signing(client: AsyncClient, iep_plan, cm_headers):
    version_id = await finalized_version(client, iep_plan["id"], cm_headers)
    packet = await create_packet(client, version_id, cm_headers, required_roles=["CASE_MANAGER"], signers=[
        {"role": "CASE_MANAGER"}, {"role": "CASE_MANAGER", "signer_name": "Co-manager"},
    ])
    first, second = packet["records"]

    done = await client.post(f"/api/v1/signature-records/{first['id']}/sign", headers=cm_headers, json=IN_PERSON)
    assert done.json()["packet_complete"] is True

    late = await client.post(f"/api/v1/signature-records/{second['id']}/sign", headers=cm_headers, json=IN_PERSON)
    assert late.status_code == 400
    assert late.json()["error"]["code"] == "ERR_SIGN_PACKET_COMPLETE"
