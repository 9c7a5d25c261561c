# casebook/services/oauth.py
import base64
import binascii
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode, urlparse

import httpx

from casebook.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_PATH = "/api/oauth/token"
USERINFO_PATH = "/api/oauth/userinfo"


class OAuthError(Exception):
    """The portal rejected the code or returned something unusable."""


@dataclass
class OAuthIdentity:
    open_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    login_method: Optional[str] = None


def encode_state(redirect_uri: str) -> str:
    return base64.b64encode(redirect_uri.encode()).decode()


def decode_state(state: str) -> str:
    try:
        return base64.b64decode(state.encode(), validate=True).decode()
    except (binascii.Error, UnicodeDecodeError):
        raise OAuthError("Malformed state parameter")


def build_login_url(redirect_uri: str) -> Optional[str]:
    """Portal sign-in URL, or None when the portal is not configured."""
    portal = settings.OAUTH_PORTAL_URL.strip()
    if not portal or not settings.APP_ID:
        logger.warning("[Auth] OAUTH_PORTAL_URL or APP_ID missing; login is disabled")
        return None

    if not urlparse(portal).scheme:
        portal = f"https://{portal}"

    query = urlencode({
        "appId": settings.APP_ID,
        "redirectUri": redirect_uri,
        "state": encode_state(redirect_uri),
        "type": "signIn",
    })
    return f"{portal.rstrip('/')}/app-auth?{query}"


class OAuthClient:
    def __init__(
        self,
        server_url: str,
        app_id: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.server_url = server_url.rstrip("/")
        self.app_id = app_id
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.server_url, timeout=self.timeout, transport=self.transport)

    async def authenticate(self, code: str, state: str) -> OAuthIdentity:
        """Exchange an authorization code for the signed-in identity."""
        if not self.server_url:
            raise OAuthError("OAUTH_SERVER_URL is not configured")

        redirect_uri = decode_state(state)

        async with self._client() as client:
            # 1. Exchange code for access token
            try:
                res = await client.post(
                    TOKEN_PATH,
                    json={
                        "clientId": self.app_id,
                        "grantType": "authorization_code",
                        "code": code,
                        "redirectUri": redirect_uri,
                    },
                )
                token_data = res.json() if res.is_success else {}
            except (httpx.HTTPError, ValueError) as exc:
                raise OAuthError(f"Token exchange failed: {exc}") from exc

            access_token = token_data.get("accessToken")
            if not access_token:
                raise OAuthError(f"Token exchange failed with status {res.status_code}")

            # 2. Fetch the identity behind the token
            try:
                user_res = await client.get(USERINFO_PATH, headers={"Authorization": f"Bearer {access_token}"})
                user_res.raise_for_status()
                user_data = user_res.json()
            except (httpx.HTTPError, ValueError) as exc:
                raise OAuthError(f"User info request failed: {exc}") from exc

        open_id = user_data.get("openId")
        if not open_id:
            raise OAuthError("User info is missing openId")

        return OAuthIdentity(
            open_id=open_id,
            name=user_data.get("name"),
            email=user_data.get("email"),
            avatar_url=user_data.get("avatarUrl"),
            login_method=user_data.get("loginMethod") or user_data.get("platform"),
        )


def get_oauth_client() -> OAuthClient:
    return OAuthClient(settings.OAUTH_SERVER_URL, settings.APP_ID, timeout=settings.OAUTH_TIMEOUT_SECONDS)
