import pytest
from httpx import AsyncClient


async def finalize(client: AsyncClient, plan_id: str, headers, **body) -> dict:
    response = await client.post(f"/api/v1/plans/{plan_id}/versions/finalize", headers=headers, json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_finalize_creates_version_and_packet(client: AsyncClient, iep_plan, cm_headers):
    await client.patch(f"/api/v1/plans/{iep_plan['id']}/fields", headers=cm_headers, json={
        "fields": {"primary_disability": "Autism"},
    })

    data = await finalize(client, iep_plan["id"], cm_headers, version_notes="Annual review")

    version = data["version"]
    assert version["version_number"] == 1
    assert version["status"] == "FINAL"
    assert data["signature_packet_id"]
    assert data["decisions_created"] == 0

    detail = await client.get(f"/api/v1/plan-versions/{version['id']}", headers=cm_headers)
    snapshot = detail.json()["snapshot_json"]
    assert snapshot["field_values"]["primary_disability"] == "Autism"
    assert snapshot["student"]["record_id"] == "STU-000001"

    plan = await client.get(f"/api/v1/plans/{iep_plan['id']}", headers=cm_headers)
    assert plan.json()["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_refinalize_supersedes_previous(client: AsyncClient, iep_plan, cm_headers):
    first = await finalize(client, iep_plan["id"], cm_headers)
    second = await finalize(client, iep_plan["id"], cm_headers, create_signature_packet=False)

    assert second["version"]["version_number"] == 2
    assert second["signature_packet_id"] is None

    versions = await client.get(f"/api/v1/plans/{iep_plan['id']}/versions", headers=cm_headers)
    statuses = {v["id"]: v["status"] for v in versions.json()}
    assert statuses[first["version"]["id"]] == "SUPERSEDED"
    assert statuses[second["version"]["id"]] == "FINAL"


@pytest.mark.asyncio
async def test_finalize_records_decisions(client: AsyncClient, iep_plan, cm_headers):
    data = await finalize(client, iep_plan["id"], cm_headers, decisions=[
        {"decision_type": "ESY_DECISION", "summary": "ESY not required", "rationale": "No regression data"},
        {"decision_type": "SERVICES_CHANGE", "summary": "Add speech", "rationale": "Articulation errors"},
    ])

    assert data["decisions_created"] == 2
    decisions = await client.get(f"/api/v1/plans/{iep_plan['id']}/decisions", headers=cm_headers)
    assert {d["plan_version_id"] for d in decisions.json()} == {data["version"]["id"]}


@pytest.mark.asyncio
async def test_teacher_cannot_finalize_version(client: AsyncClient, iep_plan, teacher_headers):
    response = await client.post(
        f"/api/v1/plans/{iep_plan['id']}/versions/finalize", headers=teacher_headers, json={}
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_distribution_waits_for_case_manager_signature(client: AsyncClient, iep_plan, cm_headers):
    data = await finalize(
        client, iep_plan["id"], cm_headers,
        required_signature_roles=["CASE_MANAGER", "PARENT_GUARDIAN"],
    )
    version_id = data["version"]["id"]

    blocked = await client.post(f"/api/v1/plan-versions/{version_id}/distribute", headers=cm_headers)
    assert blocked.status_code == 400
    assert blocked.json()["error"]["code"] == "ERR_VERSION_REQUIRES_CM_SIGNATURE"

    packet = (await client.get(f"/api/v1/plan-versions/{version_id}/signatures", headers=cm_headers)).json()
    assert packet["status"] == "OPEN"
    assert [s["role"] for s in packet["roles_summary"]] == ["CASE_MANAGER", "PARENT_GUARDIAN"]
    records = {r["role"]: r for r in packet["records"]}

    no_attestation = await client.post(
        f"/api/v1/signature-records/{records['CASE_MANAGER']['id']}/sign",
        headers=cm_headers,
        json={"method": "ELECTRONIC", "signer_name": "Ms. Okafor"},
    )
    assert no_attestation.status_code == 400

    signed = await client.post(
        f"/api/v1/signature-records/{records['CASE_MANAGER']['id']}/sign",
        headers={**cm_headers, "X-Forwarded-For": "203.0.113.7, 10.0.0.1"},
        json={"method": "ELECTRONIC", "signer_name": "Ms. Okafor", "attestation": True},
    )
    assert signed.status_code == 200
    body = signed.json()
    assert body["packet_complete"] is False
    assert body["record"]["status"] == "SIGNED"
    assert body["record"]["ip_address"] == "203.0.113.7"
    assert body["record"]["attestation_text"]

    again = await client.post(
        f"/api/v1/signature-records/{records['CASE_MANAGER']['id']}/sign",
        headers=cm_headers,
        json={"method": "IN_PERSON", "signer_name": "Ms. Okafor"},
    )
    assert again.json()["error"]["code"] == "ERR_SIGN_ALREADY_SIGNED"

    distributed = await client.post(f"/api/v1/plan-versions/{version_id}/distribute", headers=cm_headers)
    assert distributed.status_code == 200
    assert distributed.json()["status"] == "DISTRIBUTED"

    twice = await client.post(f"/api/v1/plan-versions/{version_id}/distribute", headers=cm_headers)
    assert twice.json()["error"]["code"] == "ERR_VERSION_ALREADY_DISTRIBUTED"


@pytest.mark.asyncio
async def test_packet_completes_when_all_roles_sign(client: AsyncClient, iep_plan, cm_headers):
    data = await finalize(client, iep_plan["id"], cm_headers)
    version_id = data["version"]["id"]
    packet = (await client.get(f"/api/v1/plan-versions/{version_id}/signatures", headers=cm_headers)).json()

    response = await client.post(
        f"/api/v1/signature-records/{packet['records'][0]['id']}/sign",
        headers=cm_headers,
        json={"method": "PAPER_RETURNED", "signer_name": "Ms. Okafor"},
    )

    assert response.json()["packet_complete"] is True
    assert response.json()["record"]["attestation_text"] is None

    late = await client.post(f"/api/v1/signature-packets/{packet['id']}/records", headers=cm_headers, json={
        "role": "PARENT_GUARDIAN", "signer_name": "Dana Rivera",
    })
    assert late.json()["error"]["code"] == "ERR_SIGN_PACKET_NOT_OPEN"


@pytest.mark.asyncio
async def test_second_packet_rejected(client: AsyncClient, iep_plan, cm_headers):
    data = await finalize(client, iep_plan["id"], cm_headers)

    response = await client.post(
        f"/api/v1/plan-versions/{data['version']['id']}/signatures",
        headers=cm_headers,
        json={"required_roles": ["PARENT_GUARDIAN"]},
    )

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ERR_SIGN_PACKET_EXISTS"


@pytest.mark.asyncio
async def test_decline_requires_pending(client: AsyncClient, iep_plan, cm_headers):
    data = await finalize(client, iep_plan["id"], cm_headers, required_signature_roles=["PARENT_GUARDIAN"])
    packet = (await client.get(
        f"/api/v1/plan-versions/{data['version']['id']}/signatures", headers=cm_headers
    )).json()
    record_id = packet["records"][0]["id"]

    declined = await client.post(f"/api/v1/signature-records/{record_id}/decline", headers=cm_headers, json={
        "decline_reason": "Parent disagrees with placement",
    })
    assert declined.status_code == 200
    assert declined.json()["status"] == "DECLINED"

    again = await client.post(f"/api/v1/signature-records/{record_id}/decline", headers=cm_headers, json={
        "decline_reason": "Still disagrees",
    })
    assert again.json()["error"]["code"] == "ERR_SIGN_NOT_PENDING"


@pytest.mark.asyncio
async def test_exports_render_and_download(client: AsyncClient, iep_plan, cm_headers):
    data = await finalize(client, iep_plan["id"], cm_headers)
    version_id = data["version"]["id"]

    # The finalize request renders a PDF in the background
    exports = await client.get(f"/api/v1/plan-versions/{version_id}/exports", headers=cm_headers)
    assert [e["format"] for e in exports.json()] == ["PDF"]

    html = await client.post(f"/api/v1/plan-versions/{version_id}/exports", headers=cm_headers, json={
        "format": "HTML",
    })
    assert html.status_code == 201
    export = html.json()
    assert export["file_name"] == "STU-000001_v1.html"
    assert export["mime_type"] == "text/html"

    download = await client.get(f"/api/v1/plan-exports/{export['id']}/download", headers=cm_headers)
    assert download.status_code == 200
    assert download.headers["content-type"].startswith("text/html")
    assert "STU-000001_v1.html" in download.headers["content-disposition"]

    pdf_id = exports.json()[0]["id"]
    pdf = await client.get(f"/api/v1/plan-exports/{pdf_id}/download", headers=cm_headers)
    assert pdf.content.startswith(b"%PDF")


@pytest.mark.asyncio
async def test_export_download_hidden_from_other_teachers(client: AsyncClient, iep_plan, cm_headers, teacher_headers):
    data = await finalize(client, iep_plan["id"], cm_headers)
    exports = await client.get(f"/api/v1/plan-versions/{data['version']['id']}/exports", headers=cm_headers)

    response = await client.get(f"/api/v1/plan-exports/{exports.json()[0]['id']}/download", headers=teacher_headers)

    assert response.status_code == 404
