import pytest
from httpx import AsyncClient

from myteacher.services import content_generation
from factories import GOAL_EXEMPLAR, upload_exemplar


class FakeClaudeClient:
    def __init__(self):
        self.prompts = []

    async def generate(self, prompt, system_prompt=None, **kwargs):
        self.prompts.append(prompt)
        return {"content": "  By June 2027, Sam will read 100 wcpm.  ", "total_tokens": 42}

    async def generate_json(self, prompt, system_prompt=None, **kwargs):
        self.prompts.append(prompt)
        return {"is_valid": True, "score": 9}


@pytest.fixture
def fake_claude(monkeypatch) -> FakeClaudeClient:
    fake = FakeClaudeClient()
    monkeypatch.setattr(content_generation, "get_claude_client", lambda: fake)
    return fake


@pytest.mark.asyncio
async def test_draft_without_reference_content(client: AsyncClient, iep_plan, cm_headers, fake_claude):
    response = await client.post(f"/api/v1/plans/{iep_plan['id']}/generate-draft", headers=cm_headers, json={
        "section_key": "goals", "field_key": "goals_list",
    })

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "ERR_NO_REFERENCE_CONTENT"
    assert fake_claude.prompts == []


@pytest.mark.asyncio
async def test_draft_uses_reference_chunks(client: AsyncClient, iep_plan, admin_headers, cm_headers, fake_claude):
    await upload_exemplar(client, admin_headers)

    response = await client.post(f"/api/v1/plans/{iep_plan['id']}/generate-draft", headers=cm_headers, json={
        "section_key": "goals",
        "field_key": "goals_list",
        "user_prompt": "Focus on reading fluency",
    })

    assert response.status_code == 200, response.text
    draft = response.json()
    assert draft["text"] == "By June 2027, Sam will read 100 wcpm."
    assert draft["section_tag"] == "goals"
    assert draft["tokens_used"] == 42
    assert len(draft["source_chunk_ids"]) == 1

    prompt = fake_claude.prompts[0]
    assert GOAL_EXEMPLAR.decode() in prompt
    assert "## Specific Request\nFocus on reading fluency" in prompt
    assert "- Grade: 3" in prompt


@pytest.mark.asyncio
async def test_draft_without_api_key(client: AsyncClient, iep_plan, admin_headers, cm_headers):
    await upload_exemplar(client, admin_headers)

    response = await client.post(f"/api/v1/plans/{iep_plan['id']}/generate-draft", headers=cm_headers, json={
        "section_key": "goals", "field_key": "goals_list",
    })

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "ERR_AI_NOT_CONFIGURED"


@pytest.mark.asyncio
async def test_generation_availability(client: AsyncClient, iep_plan, admin_headers, cm_headers):
    await upload_exemplar(client, admin_headers)

    response = await client.get(f"/api/v1/plans/{iep_plan['id']}/generation-availability", headers=cm_headers)

    data = response.json()
    assert data["plan_type"] == "IEP"
    available = {s["section_tag"]: s["has_reference_content"] for s in data["sections"]}
    assert available["goals"] is True
    assert available["transition"] is False


@pytest.mark.asyncio
async def test_reference_preview(client: AsyncClient, admin_headers, cm_headers):
    await upload_exemplar(client, admin_headers)

    response = await client.get(
        "/api/v1/generation/reference-preview?plan_type=IEP&section_tag=goals", headers=cm_headers
    )

    assert [c["section_tag"] for c in response.json()] == ["goals"]


@pytest.mark.asyncio
async def test_goal_validation(client: AsyncClient, cm_headers, fake_claude):
    response = await client.post("/api/v1/goals/validate", headers=cm_headers, json={
        "annual_goal_text": "Sam will improve reading.",
        "area": "READING",
        "student_grade": "3",
    })

    assert response.status_code == 200
    assert response.json() == {"is_valid": True, "score": 9, "issues": [], "suggestions": []}
    assert "Sam will improve reading." in fake_claude.prompts[0]
