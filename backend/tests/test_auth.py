import pytest
from httpx import AsyncClient

from factories import auth_headers_for, register_payload


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient):
    """New accounts are TEACHERs that still need onboarding"""
    payload = register_payload()
    response = await client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 201
    data = response.json()
    assert data["email"] == payload["email"].lower()
    assert data["role"] == "TEACHER"
    assert data["is_onboarded"] is False
    assert data["permissions"]["can_create_plans"] is True
    assert "id" in data


@pytest.mark.asyncio
async def test_register_duplicate_username(client: AsyncClient):
    payload = register_payload()
    await client.post("/api/v1/auth/register", json=payload)

    response = await client.post("/api/v1/auth/register", json=payload)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "ERR_API_VALIDATION_FAILED"
    assert "already registered" in error["message"]


@pytest.mark.asyncio
async def test_register_invalid_payload(client: AsyncClient):
    response = await client.post("/api/v1/auth/register", json={"username": "x", "password": "short"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "ERR_API_VALIDATION_FAILED"
    fields = {e["field"] for e in error["details"]["errors"]}
    assert {"username", "email", "password", "display_name"} <= fields


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient):
    payload = register_payload()
    await client.post("/api/v1/auth/register", json=payload)

    response = await client.post(
        "/api/v1/auth/login",
        json={"username": payload["email"].upper(), "password": payload["password"]}
    )

    assert response.status_code == 200
    data = response.json()
    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"
    assert data["user"]["username"] == payload["username"]


@pytest.mark.asyncio
async def test_login_invalid_credentials(client: AsyncClient):
    payload = register_payload()
    await client.post("/api/v1/auth/register", json=payload)

    response = await client.post(
        "/api/v1/auth/login",
        json={"username": payload["username"], "password": "wrongpassword"}
    )

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ERR_API_AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_refresh_token(client: AsyncClient):
    payload = register_payload()
    await client.post("/api/v1/auth/register", json=payload)
    login = await client.post(
        "/api/v1/auth/login",
        json={"username": payload["username"], "password": payload["password"]}
    )
    tokens = login.json()

    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200
    assert response.json()["access_token"]

    # An access token is not accepted as a refresh token
    response = await client.post("/api/v1/auth/refresh", json={"refresh_token": tokens["access_token"]})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user(client: AsyncClient, teacher_headers):
    response = await client.get("/api/v1/auth/me", headers=teacher_headers)

    assert response.status_code == 200
    data = response.json()
    assert data["role"] == "TEACHER"
    assert data["is_onboarded"] is True


@pytest.mark.asyncio
async def test_unauthorized_access(client: AsyncClient):
    response = await client.get("/api/v1/auth/me")

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ERR_API_AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_invalid_token(client: AsyncClient):
    response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == 401
    assert response.json()["error"]["code"] == "ERR_API_AUTH_REQUIRED"


@pytest.mark.asyncio
async def test_onboarding_links_jurisdiction(client: AsyncClient, user_factory, jurisdiction):
    user = await user_factory(onboarded=False)
    headers = auth_headers_for(user)

    blocked = await client.get("/api/v1/students", headers=headers)
    assert blocked.status_code == 403
    assert blocked.json()["error"]["code"] == "ERR_API_ONBOARDING_REQUIRED"

    response = await client.post("/api/v1/auth/onboarding", headers=headers, json={
        "role": "CASE_MANAGER",
        "state_code": "MD",
        "district_name": jurisdiction.district_name.upper(),
        "school_name": "River Hill High",
    })

    assert response.status_code == 200
    data = response.json()
    assert data["is_onboarded"] is True
    assert data["role"] == "CASE_MANAGER"
    assert data["jurisdiction_id"] == jurisdiction.id

    allowed = await client.get("/api/v1/students", headers=headers)
    assert allowed.status_code == 200


@pytest.mark.asyncio
async def test_google_url_requires_configuration(client: AsyncClient):
    response = await client.get("/api/v1/auth/google/url")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "ERR_OAUTH_NOT_CONFIGURED"


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
