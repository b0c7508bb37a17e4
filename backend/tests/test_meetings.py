import pytest
from httpx import AsyncClient


async def create_state_pack(client: AsyncClient, admin_headers, rules, **overrides) -> dict:
    payload = {
        "scope_type": "STATE",
        "scope_id": "MD",
        "plan_type": "IEP",
        "name": "Maryland IEP Rules",
        "rules": rules,
    }
    payload.update(overrides)
    response = await client.post("/api/v1/rule-packs", headers=admin_headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def schedule(client: AsyncClient, headers, student_id: str, **overrides) -> dict:
    payload = {
        "student_id": student_id,
        "meeting_type": "ANNUAL",
        "scheduled_at": "2026-11-12T14:00:00",
    }
    payload.update(overrides)
    response = await client.post("/api/v1/meetings", headers=headers, json=payload)
    assert response.status_code == 201, response.text
    return response.json()


# ==================== Rule packs ====================

@pytest.mark.asyncio
async def test_rule_pack_uses_definition_defaults(client: AsyncClient, admin_headers):
    pack = await create_state_pack(client, admin_headers, [
        {"rule_key": "PRE_MEETING_DOCS_DAYS"},
        {"rule_key": "CONFERENCE_NOTES_REQUIRED",
         "evidence_requirements": [{"evidence_type_key": "CONFERENCE_NOTES"}]},
    ])

    rules = {r["rule_definition"]["key"]: r for r in pack["rules"]}
    assert rules["PRE_MEETING_DOCS_DAYS"]["config"] == {"days": 5}
    assert rules["CONFERENCE_NOTES_REQUIRED"]["evidence_requirements"][0]["evidence_type"]["key"] == "CONFERENCE_NOTES"


@pytest.mark.asyncio
async def test_rule_pack_rejects_unknown_rule(client: AsyncClient, admin_headers):
    response = await client.post("/api/v1/rule-packs", headers=admin_headers, json={
        "scope_type": "STATE", "scope_id": "MD", "name": "Broken", "rules": [{"rule_key": "NOT_A_RULE"}],
    })

    assert response.status_code == 400
    assert "NOT_A_RULE" in response.json()["error"]["message"]


@pytest.mark.asyncio
async def test_rule_pack_admin_only(client: AsyncClient, cm_headers):
    response = await client.post("/api/v1/rule-packs", headers=cm_headers, json={
        "scope_type": "STATE", "scope_id": "MD", "name": "Nope",
    })

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_active_pack_falls_back_to_state(client: AsyncClient, admin_headers, cm_headers):
    await create_state_pack(client, admin_headers, [{"rule_key": "CONFERENCE_NOTES_REQUIRED"}])
    newer = await create_state_pack(client, admin_headers, [], version=2, name="Maryland IEP Rules 2026")

    response = await client.get(
        "/api/v1/rule-packs/active?scope_type=DISTRICT&scope_id=MD-HCPSS&plan_type=IEP", headers=cm_headers
    )

    assert response.status_code == 200
    resolved = response.json()
    assert resolved["id"] == newer["id"]
    assert resolved["scope_type"] == "STATE"


@pytest.mark.asyncio
async def test_active_pack_missing(client: AsyncClient, cm_headers):
    response = await client.get("/api/v1/rule-packs/active?scope_type=STATE&scope_id=VA", headers=cm_headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_deactivated_pack_not_resolved(client: AsyncClient, admin_headers, cm_headers):
    pack = await create_state_pack(client, admin_headers, [])
    deleted = await client.delete(f"/api/v1/rule-packs/{pack['id']}", headers=admin_headers)
    assert deleted.status_code == 204

    response = await client.get("/api/v1/rule-packs/active?scope_type=STATE&scope_id=MD", headers=cm_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_add_duplicate_rule_conflicts(client: AsyncClient, admin_headers):
    pack = await create_state_pack(client, admin_headers, [{"rule_key": "AUDIO_RECORDING_RULE"}])

    response = await client.post(f"/api/v1/rule-packs/{pack['id']}/rules", headers=admin_headers, json={
        "rule_key": "AUDIO_RECORDING_RULE",
    })

    assert response.status_code == 409


# ==================== Meetings ====================

@pytest.mark.asyncio
async def test_meeting_without_pack_only_warns(client: AsyncClient, student, cm_headers):
    meeting = await schedule(client, cm_headers, student["id"])
    assert meeting["status"] == "SCHEDULED"
    assert meeting["meeting_type"]["code"] == "ANNUAL"

    detail = await client.get(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers)
    enforcement = detail.json()["enforcement"]
    assert enforcement["can_close"] is True
    assert [w["code"] for w in enforcement["warnings"]] == ["NO_RULE_PACK"]

    closed = await client.post(f"/api/v1/meetings/{meeting['id']}/close", headers=cm_headers)
    assert closed.status_code == 200
    assert closed.json()["status"] == "CLOSED"


@pytest.mark.asyncio
async def test_close_blocked_until_conference_notes(client: AsyncClient, student, admin_headers, cm_headers):
    await create_state_pack(client, admin_headers, [{"rule_key": "CONFERENCE_NOTES_REQUIRED"}])
    meeting = await schedule(client, cm_headers, student["id"])

    blocked = await client.post(f"/api/v1/meetings/{meeting['id']}/close", headers=cm_headers)
    assert blocked.status_code == 400
    error = blocked.json()["error"]
    assert error["code"] == "ERR_ENFORCEMENT_FAILED"
    assert [e["code"] for e in error["details"]["errors"]] == ["MISSING_CONFERENCE_NOTES"]

    evidence = await client.post(f"/api/v1/meetings/{meeting['id']}/evidence", headers=cm_headers, json={
        "evidence_type_key": "CONFERENCE_NOTES", "note": "Team agreed on reading goals",
    })
    assert evidence.status_code == 200
    assert evidence.json()["evidence_type"]["key"] == "CONFERENCE_NOTES"

    # Upserting the same type updates the existing row
    await client.post(f"/api/v1/meetings/{meeting['id']}/evidence", headers=cm_headers, json={
        "evidence_type_key": "CONFERENCE_NOTES", "note": "Revised notes",
    })
    detail = (await client.get(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers)).json()
    assert [e["note"] for e in detail["evidence"]] == ["Revised notes"]
    assert detail["enforcement"]["can_close"] is True

    closed = await client.post(f"/api/v1/meetings/{meeting['id']}/close", headers=cm_headers)
    assert closed.status_code == 200
    assert closed.json()["closed_at"] is not None


@pytest.mark.asyncio
async def test_unknown_evidence_type(client: AsyncClient, student, cm_headers):
    meeting = await schedule(client, cm_headers, student["id"])

    response = await client.post(f"/api/v1/meetings/{meeting['id']}/evidence", headers=cm_headers, json={
        "evidence_type_key": "SELFIE",
    })

    assert response.status_code == 400
    assert response.json()["error"]["details"]["field"] == "evidence_type_key"


@pytest.mark.asyncio
async def test_recording_rules(client: AsyncClient, student, admin_headers, cm_headers):
    await create_state_pack(client, admin_headers, [{"rule_key": "AUDIO_RECORDING_RULE"}])
    meeting = await schedule(client, cm_headers, student["id"], parent_recording=True)

    detail = (await client.get(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers)).json()
    codes = {e["code"] for e in detail["enforcement"]["errors"]}
    assert codes == {"STAFF_RECORDING_REQUIRED", "MISSING_RECORDING_ACK"}

    await client.patch(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers, json={"staff_recording": True})
    await client.post(f"/api/v1/meetings/{meeting['id']}/evidence", headers=cm_headers, json={
        "evidence_type_key": "RECORDING_ACK",
    })

    closed = await client.post(f"/api/v1/meetings/{meeting['id']}/close", headers=cm_headers)
    assert closed.status_code == 200


@pytest.mark.asyncio
async def test_continued_meeting_needs_waiver(client: AsyncClient, student, admin_headers, cm_headers):
    await create_state_pack(client, admin_headers, [
        {"rule_key": "CONTINUED_MEETING_NOTICE_DAYS"},
        {"rule_key": "CONTINUED_MEETING_MUTUAL_AGREEMENT"},
    ])
    original = await schedule(client, cm_headers, student["id"], scheduled_at="2026-11-02T14:00:00")
    continued = await schedule(
        client, cm_headers, student["id"],
        meeting_type="CONTINUED",
        scheduled_at="2026-11-06T14:00:00",
        continued_from_meeting_id=original["id"],
    )
    assert continued["is_continued"] is True

    detail = (await client.get(f"/api/v1/meetings/{continued['id']}", headers=cm_headers)).json()
    codes = {e["code"] for e in detail["enforcement"]["errors"]}
    assert codes == {"MISSING_NOTICE_WAIVER", "MISSING_MUTUAL_AGREEMENT"}

    await client.patch(f"/api/v1/meetings/{continued['id']}", headers=cm_headers, json={
        "notice_waiver_signed": True,
        "mutual_agreement_for_continued_date": True,
    })
    closed = await client.post(f"/api/v1/meetings/{continued['id']}/close", headers=cm_headers)
    assert closed.status_code == 200


@pytest.mark.asyncio
async def test_due_dates_skip_weekends(client: AsyncClient, student, admin_headers, cm_headers):
    await create_state_pack(client, admin_headers, [
        {"rule_key": "PRE_MEETING_DOCS_DAYS"},
        {"rule_key": "POST_MEETING_DOCS_DAYS"},
        {"rule_key": "US_MAIL_PRE_MEETING_DAYS"},
    ])
    # Thursday
    meeting = await schedule(client, cm_headers, student["id"], scheduled_at="2026-11-12T14:00:00")

    detail = (await client.get(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers)).json()
    due = detail["enforcement"]["due_dates"]
    assert due["pre_docs_deadline"].startswith("2026-11-05")
    assert due["post_docs_deadline"].startswith("2026-11-19")
    assert due["us_mail_pre_docs_deadline"].startswith("2026-11-02")
    assert due["us_mail_post_docs_deadline"] is None
    assert [w["code"] for w in detail["enforcement"]["warnings"]] == ["PRE_DOCS_NOT_SENT"]

    await client.post(f"/api/v1/meetings/{meeting['id']}/mark-pre-docs-sent", headers=cm_headers, json={
        "delivery_method": "US_MAIL",
    })
    detail = (await client.get(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers)).json()
    assert detail["pre_docs_delivery_method"] == "US_MAIL"
    assert detail["enforcement"]["warnings"] == []


@pytest.mark.asyncio
async def test_meeting_status_transitions(client: AsyncClient, student, cm_headers):
    meeting = await schedule(client, cm_headers, student["id"])

    held = await client.post(f"/api/v1/meetings/{meeting['id']}/mark-held", headers=cm_headers)
    assert held.json()["status"] == "HELD"

    again = await client.post(f"/api/v1/meetings/{meeting['id']}/mark-held", headers=cm_headers)
    assert again.status_code == 400

    await client.post(f"/api/v1/meetings/{meeting['id']}/close", headers=cm_headers)
    cancel = await client.post(f"/api/v1/meetings/{meeting['id']}/cancel", headers=cm_headers)
    assert cancel.status_code == 400

    listing = await client.get(f"/api/v1/meetings/student/{student['id']}?status=CLOSED", headers=cm_headers)
    assert [m["id"] for m in listing.json()] == [meeting["id"]]


@pytest.mark.asyncio
async def test_meeting_hidden_from_other_teacher(client: AsyncClient, student, cm_headers, teacher_headers):
    meeting = await schedule(client, cm_headers, student["id"])

    response = await client.get(f"/api/v1/meetings/{meeting['id']}", headers=teacher_headers)

    assert response.status_code == 404


# ==================== Consent gate ====================

@pytest.mark.asyncio
async def test_initial_iep_consent_gate(client: AsyncClient, student, iep_plan, admin_headers, cm_headers):
    await create_state_pack(client, admin_headers, [{"rule_key": "INITIAL_IEP_CONSENT_GATE"}])
    meeting = await schedule(
        client, cm_headers, student["id"], meeting_type="INITIAL", plan_instance_id=iep_plan["id"]
    )

    blocked = await client.post(f"/api/v1/plans/{iep_plan['id']}/implement", headers=cm_headers)
    assert blocked.status_code == 400
    error = blocked.json()["error"]
    assert error["code"] == "ERR_CONSENT_REQUIRED"
    assert error["details"]["errors"][0]["code"] == "MISSING_CONSENT"

    # The gate never blocks closing the meeting itself
    detail = (await client.get(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers)).json()
    assert detail["enforcement"]["can_close"] is True
    assert detail["enforcement"]["can_implement"] is False

    await client.patch(f"/api/v1/meetings/{meeting['id']}", headers=cm_headers, json={
        "consent_status": "OBTAINED",
    })
    implemented = await client.post(f"/api/v1/plans/{iep_plan['id']}/implement", headers=cm_headers)
    assert implemented.status_code == 200
    assert implemented.json()["status"] == "ACTIVE"


@pytest.mark.asyncio
async def test_consent_gate_ignores_annual_meetings(client: AsyncClient, student, iep_plan, admin_headers, cm_headers):
    await create_state_pack(client, admin_headers, [{"rule_key": "INITIAL_IEP_CONSENT_GATE"}])
    await schedule(client, cm_headers, student["id"], plan_instance_id=iep_plan["id"])

    response = await client.post(f"/api/v1/plans/{iep_plan['id']}/implement", headers=cm_headers)

    assert response.status_code == 200
