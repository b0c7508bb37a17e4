import pytest
from httpx import AsyncClient


async def behavior_plan(client: AsyncClient, student_id: str, headers) -> dict:
    response = await client.post(f"/api/v1/students/{student_id}/plans/BEHAVIOR_PLAN", headers=headers)
    assert response.status_code == 201, response.text
    return response.json()


async def create_target(client: AsyncClient, plan_id: str, headers, **overrides) -> dict:
    body = {
        "code": "T1",
        "name": "Calling out",
        "definition": "Speaks without raising a hand during instruction",
        "measurement_type": "FREQUENCY",
    }
    body.update(overrides)
    response = await client.post(f"/api/v1/plans/{plan_id}/behavior-targets", headers=headers, json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_targets_only_on_behavior_plans(client: AsyncClient, iep_plan, cm_headers):
    response = await client.post(f"/api/v1/plans/{iep_plan['id']}/behavior-targets", headers=cm_headers, json={
        "code": "T1",
        "name": "Calling out",
        "definition": "Speaks without raising a hand during instruction",
        "measurement_type": "FREQUENCY",
    })

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ERR_BEHAVIOR_PLAN_REQUIRED"


@pytest.mark.asyncio
async def test_frequency_events_and_summary(client: AsyncClient, student, cm_headers):
    plan = await behavior_plan(client, student["id"], cm_headers)
    target = await create_target(client, plan["id"], cm_headers)
    url = f"/api/v1/behavior-targets/{target['id']}/events"

    for day, count in (("2026-10-05", 4), ("2026-10-06", 2), ("2026-10-09", 1)):
        response = await client.post(url, headers=cm_headers, json={"event_date": f"{day}T10:00:00", "count": count})
        assert response.status_code == 201, response.text

    response = await client.get(url, headers=cm_headers)

    body = response.json()
    assert body["measurement_type"] == "FREQUENCY"
    assert [e["count"] for e in body["events"]] == [1, 2, 4]
    assert body["summary"]["total_events"] == 3
    assert body["summary"]["total_count"] == 7

    window = await client.get(url, headers=cm_headers,
                              params={"date_from": "2026-10-05T00:00:00", "date_to": "2026-10-06T23:59:59"})
    assert window.json()["summary"]["total_count"] == 6


@pytest.mark.asyncio
async def test_event_requires_measure_for_type(client: AsyncClient, student, cm_headers):
    plan = await behavior_plan(client, student["id"], cm_headers)
    frequency = await create_target(client, plan["id"], cm_headers)
    duration = await create_target(client, plan["id"], cm_headers, code="T2", measurement_type="DURATION")

    missing_count = await client.post(f"/api/v1/behavior-targets/{frequency['id']}/events", headers=cm_headers,
                                      json={"event_date": "2026-10-05T10:00:00"})
    missing_duration = await client.post(f"/api/v1/behavior-targets/{duration['id']}/events", headers=cm_headers,
                                         json={"event_date": "2026-10-05T10:00:00", "count": 1})

    assert missing_count.status_code == 400
    assert "Count is required" in missing_count.json()["error"]["message"]
    assert missing_duration.status_code == 400
    assert "Duration is required" in missing_duration.json()["error"]["message"]


@pytest.mark.asyncio
async def test_rating_out_of_range(client: AsyncClient, student, cm_headers):
    plan = await behavior_plan(client, student["id"], cm_headers)
    target = await create_target(client, plan["id"], cm_headers, measurement_type="RATING")

    response = await client.post(f"/api/v1/behavior-targets/{target['id']}/events", headers=cm_headers,
                                 json={"event_date": "2026-10-05T10:00:00", "rating": 6})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_listing_shows_recent_events_and_skips_inactive(client: AsyncClient, student, cm_headers):
    plan = await behavior_plan(client, student["id"], cm_headers)
    kept = await create_target(client, plan["id"], cm_headers)
    dropped = await create_target(client, plan["id"], cm_headers, code="T2", name="Leaving seat")
    for day in range(1, 8):
        await client.post(f"/api/v1/behavior-targets/{kept['id']}/events", headers=cm_headers,
                          json={"event_date": f"2026-10-0{day}T10:00:00", "count": day})

    assert (await client.delete(f"/api/v1/behavior-targets/{dropped['id']}", headers=cm_headers)).status_code == 204
    response = await client.get(f"/api/v1/plans/{plan['id']}/behavior-targets", headers=cm_headers)

    targets = response.json()
    assert [t["code"] for t in targets] == ["T1"]
    assert [e["count"] for e in targets[0]["recent_events"]] == [7, 6, 5, 4, 3]


@pytest.mark.asyncio
async def test_update_target_and_delete_event(client: AsyncClient, student, cm_headers):
    plan = await behavior_plan(client, student["id"], cm_headers)
    target = await create_target(client, plan["id"], cm_headers)
    event = (await client.post(f"/api/v1/behavior-targets/{target['id']}/events", headers=cm_headers,
                               json={"event_date": "2026-10-05T10:00:00", "count": 3})).json()

    patched = await client.patch(f"/api/v1/behavior-targets/{target['id']}", headers=cm_headers,
                                 json={"name": "Calling out during lessons"})
    deleted = await client.delete(f"/api/v1/behavior-events/{event['id']}", headers=cm_headers)

    assert patched.json()["name"] == "Calling out during lessons"
    assert deleted.status_code == 204
    listing = await client.get(f"/api/v1/behavior-targets/{target['id']}/events", headers=cm_headers)
    assert listing.json()["events"] == []


@pytest.mark.asyncio
async def test_outsider_cannot_see_targets(client: AsyncClient, student, cm_headers, teacher_headers):
    plan = await behavior_plan(client, student["id"], cm_headers)
    target = await create_target(client, plan["id"], cm_headers)

    listing = await client.get(f"/api/v1/plans/{plan['id']}/behavior-targets", headers=teacher_headers)
    events = await client.get(f"/api/v1/behavior-targets/{target['id']}/events", headers=teacher_headers)

    assert listing.status_code == 404
    assert events.status_code == 404


@pytest.mark.asyncio
async def test_unknown_target(client: AsyncClient, cm_headers):
    response = await client.get("/api/v1/behavior-targets/00000000-0000-0000-0000-000000000000/events",
                                headers=cm_headers)

    assert response.status_code == 404
