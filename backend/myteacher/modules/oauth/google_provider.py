"""
Google sign-in for staff accounts.

The browser is sent to Google's consent page, comes back with a code, and
the API exchanges that code. Identity comes from the signed ID token in the
token response (checked with google-auth); the userinfo endpoint is only
used when Google omits the ID token.
"""

import asyncio
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

from myteacher.core.config import settings
from myteacher.core.logging_config import logger

AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_URL = "https://oauth2.googleapis.com/token"
USERINFO_URL = "https://www.googleapis.com/oauth2/v3/userinfo"
ISSUERS = frozenset({"accounts.google.com", "https://accounts.google.com"})
HTTP_TIMEOUT = 15.0


def profile_from_claims(claims: Dict[str, Any]) -> Dict[str, Any]:
    email = claims.get("email")
    return {
        "google_id": claims.get("sub"),
        "email": email,
        "email_verified": bool(claims.get("email_verified")),
        "display_name": claims.get("name") or email or "",
        "avatar_url": claims.get("picture"),
    }


class GoogleOAuthProvider:

    def __init__(self, client_id: str, client_secret: str, redirect_uri: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri

    @property
    def is_configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def get_authorization_url(self, state: str) -> str:
        query = urlencode({
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "access_type": "online",
            "prompt": "select_account",
            "state": state,
        })
        return f"{AUTH_URL}?{query}"

    def _verified_claims(self, token: str) -> Optional[Dict[str, Any]]:
        try:
            claims = id_token.verify_oauth2_token(token, google_requests.Request(), self.client_id)
        except ValueError as e:
            logger.warning(f"[GoogleOAuth] ID token rejected: {e}")
            return None
        if claims.get("iss") not in ISSUERS:
            logger.warning(f"[GoogleOAuth] Unexpected issuer {claims.get('iss')}")
            return None
        return claims

    async def authenticate(self, code: str) -> Optional[Dict[str, Any]]:
        """Profile for the signed-in Google account, or None when Google refuses the code"""
        try:
            async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
                token_response = await client.post(TOKEN_URL, data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "code": code,
                    "grant_type": "authorization_code",
                    "redirect_uri": self.redirect_uri,
                })
                token_response.raise_for_status()
                tokens = token_response.json()

                if tokens.get("id_token"):
                    # certificate fetch and signature check are blocking
                    claims = await asyncio.to_thread(self._verified_claims, tokens["id_token"])
                    return profile_from_claims(claims) if claims else None

                if not tokens.get("access_token"):
                    logger.error("[GoogleOAuth] Token response had neither id_token nor access_token")
                    return None
                userinfo = await client.get(
                    USERINFO_URL, headers={"Authorization": f"Bearer {tokens['access_token']}"}
                )
                userinfo.raise_for_status()
                return profile_from_claims(userinfo.json())
        except httpx.HTTPStatusError as e:
            logger.error(f"[GoogleOAuth] {e.request.url} returned {e.response.status_code}: {e.response.text}")
        except httpx.RequestError as e:
            logger.error(f"[GoogleOAuth] Request to Google failed: {e}")
        return None


google_oauth = GoogleOAuthProvider(
    settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET, settings.GOOGLE_REDIRECT_URI
)
