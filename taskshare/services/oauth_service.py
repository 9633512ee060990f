"""
Google OAuth 2.0 client.
Builds the consent URL and exchanges an authorization code for the
signed-in user's verified identity.
"""
from __future__ import annotations

import logging
from urllib.parse import urlencode

import httpx

from taskshare.core.config import settings
from taskshare.core.exceptions import UnauthorizedException
from taskshare.schemas.user import ExternalIdentity

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"


class GoogleOAuthClient:

    def __init__(
        self,
        *,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 10.0,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout

    def authorization_url(self, state: str) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": "openid email profile",
            "state": state,
            "prompt": "select_account",
        }
        return f"{GOOGLE_AUTH_URL}?{urlencode(params)}"

    async def fetch_identity(self, code: str) -> ExternalIdentity:
        """
        Exchange the authorization code and read the user's profile.
        Raises UnauthorizedException if Google rejects the exchange or the
        email is not verified.
        """
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                token_resp = await client.post(
                    GOOGLE_TOKEN_URL,
                    data={
                        "code": code,
                        "client_id": self.client_id,
                        "client_secret": self.client_secret,
                        "redirect_uri": self.redirect_uri,
                        "grant_type": "authorization_code",
                    },
                )
                token_resp.raise_for_status()
                access_token = token_resp.json()["access_token"]

                info_resp = await client.get(
                    GOOGLE_USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                info_resp.raise_for_status()
                info = info_resp.json()
            except (httpx.HTTPError, KeyError, ValueError) as exc:
                logger.warning("Google OAuth exchange failed: %s", exc)
                raise UnauthorizedException("Google sign-in failed")

        if not info.get("email") or not info.get("email_verified", False):
            raise UnauthorizedException("Google account email is not verified")

        return ExternalIdentity(
            provider="google",
            subject=str(info["sub"]),
            email=info["email"],
            name=info.get("name") or info["email"].split("@")[0],
            avatar_url=info.get("picture"),
        )


google_oauth = GoogleOAuthClient(
    client_id=settings.GOOGLE_CLIENT_ID,
    client_secret=settings.GOOGLE_CLIENT_SECRET,
    redirect_uri=settings.GOOGLE_REDIRECT_URI,
)
