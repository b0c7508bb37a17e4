"""
Unit Tests for Google sign-in
Tests for: consent URL, profile mapping, code exchange
"""
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from myteacher.modules.oauth import google_provider
from myteacher.modules.oauth.google_provider import GoogleOAuthProvider, profile_from_claims


@pytest.fixture
def provider():
    return GoogleOAuthProvider("client-123", "shh", "http://localhost:3000/auth/callback/google")


def route_google(monkeypatch, handler):
    """Send the provider's httpx traffic to handler"""
    real_client = httpx.AsyncClient
    monkeypatch.setattr(
        google_provider.httpx, "AsyncClient",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )


class TestConsentUrl:

    def test_carries_client_and_state(self, provider):
        url = urlparse(provider.get_authorization_url("state-xyz"))
        query = parse_qs(url.query)

        assert url.netloc == "accounts.google.com"
        assert query["client_id"] == ["client-123"]
        assert query["state"] == ["state-xyz"]
        assert query["scope"] == ["openid email profile"]

    def test_unconfigured(self):
        assert GoogleOAuthProvider("", "", "http://x").is_configured is False


class TestProfileMapping:

    def test_full_claims(self):
        profile = profile_from_claims({
            "sub": "g-1", "email": "pat@school.org", "email_verified": True,
            "name": "Pat Lee", "picture": "http://img",
        })
        assert profile == {
            "google_id": "g-1",
            "email": "pat@school.org",
            "email_verified": True,
            "display_name": "Pat Lee",
            "avatar_url": "http://img",
        }

    def test_name_falls_back_to_email(self):
        assert profile_from_claims({"sub": "g-1", "email": "pat@school.org"})["display_name"] == "pat@school.org"


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_id_token_is_verified(self, provider, monkeypatch):
        route_google(monkeypatch, lambda request: httpx.Response(200, json={"id_token": "signed", "access_token": "at"}))
        seen = []

        def fake_verify(token):
            seen.append(token)
            return {"sub": "g-9", "email": "cm@school.org", "iss": "accounts.google.com"}

        monkeypatch.setattr(provider, "_verified_claims", fake_verify)

        profile = await provider.authenticate("code-1")

        assert seen == ["signed"]
        assert profile["google_id"] == "g-9"

    @pytest.mark.asyncio
    async def test_rejected_id_token(self, provider, monkeypatch):
        route_google(monkeypatch, lambda request: httpx.Response(200, json={"id_token": "forged"}))
        monkeypatch.setattr(provider, "_verified_claims", lambda token: None)

        assert await provider.authenticate("code-1") is None

    @pytest.mark.asyncio
    async def test_userinfo_fallback(self, provider, monkeypatch):
        def handler(request):
            if request.url.host == "oauth2.googleapis.com":
                return httpx.Response(200, json={"access_token": "at"})
            assert request.headers["Authorization"] == "Bearer at"
            return httpx.Response(200, json={"sub": "g-2", "email": "t@school.org"})

        route_google(monkeypatch, handler)

        profile = await provider.authenticate("code-1")

        assert profile["google_id"] == "g-2"

    @pytest.mark.asyncio
    async def test_refused_code(self, provider, monkeypatch):
        route_google(monkeypatch, lambda request: httpx.Response(400, json={"error": "invalid_grant"}))

        assert await provider.authenticate("bad") is None
