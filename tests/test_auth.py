from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from casebook import crud
from casebook.auth.token import create_access_token
from casebook.core.config import settings
from casebook.main import app
from casebook.models.user import UserRole
from casebook.services.oauth import OAuthClient, OAuthError, decode_state, encode_state, get_oauth_client

REDIRECT_URI = "http://localhost:3000/api/oauth/callback"


def portal_handler(identity: dict, calls: list):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.path == "/api/oauth/token":
            if b'"code":"good-code"' not in request.content.replace(b" ", b""):
                return httpx.Response(400, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"accessToken": "portal-token"})
        if request.url.path == "/api/oauth/userinfo":
            assert request.headers["Authorization"] == "Bearer portal-token"
            return httpx.Response(200, json=identity)
        return httpx.Response(404)
    return handler


@pytest.fixture
def portal():
    calls = []
    identity = {
        "openId": "google-123",
        "name": "Alice",
        "email": "alice@example.com",
        "avatarUrl": "https://cdn.test/alice.png",
        "loginMethod": "google",
    }
    client = OAuthClient(
        "https://portal.test",
        "app-123",
        transport=httpx.MockTransport(portal_handler(identity, calls)),
    )
    app.dependency_overrides[get_oauth_client] = lambda: client
    yield {"identity": identity, "calls": calls}
    app.dependency_overrides.pop(get_oauth_client, None)


def test_callback_upserts_user_and_sets_session(client, portal, db):
    res = client.get(
        "/api/oauth/callback",
        params={"code": "good-code", "state": encode_state(REDIRECT_URI)},
        follow_redirects=False,
    )
    assert res.status_code == 302
    assert res.headers["location"] == "/"
    assert settings.SESSION_COOKIE_NAME in res.headers["set-cookie"]

    user = crud.get_user_by_open_id(db, "google-123")
    assert user.name == "Alice"
    assert user.login_method == "google"
    assert user.role is UserRole.user

    token_request = portal["calls"][0]
    assert b"app-123" in token_request.content
    assert REDIRECT_URI.encode() in token_request.content


def test_session_cookie_authenticates(client, portal):
    res = client.get(
        "/api/oauth/callback",
        params={"code": "good-code", "state": encode_state(REDIRECT_URI)},
        follow_redirects=False,
    )
    token = res.cookies.get(settings.SESSION_COOKIE_NAME)
    assert token

    client.cookies.set(settings.SESSION_COOKIE_NAME, token)
    me = client.get("/api/auth/me").json()
    assert me["openId"] == "google-123"
    assert me["avatarUrl"] == "https://cdn.test/alice.png"


def test_callback_with_rejected_code(client, portal, db):
    res = client.get(
        "/api/oauth/callback",
        params={"code": "bad-code", "state": encode_state(REDIRECT_URI)},
        follow_redirects=False,
    )
    assert res.status_code == 502
    assert crud.get_user_by_open_id(db, "google-123") is None


def test_owner_allow_list_promotes_to_admin(client, portal, db, monkeypatch):
    monkeypatch.setattr(settings, "OWNER_OPEN_IDS", "someone-else, google-123")

    client.get(
        "/api/oauth/callback",
        params={"code": "good-code", "state": encode_state(REDIRECT_URI)},
        follow_redirects=False,
    )
    assert crud.get_user_by_open_id(db, "google-123").role is UserRole.admin


def test_single_owner_fallback(monkeypatch):
    monkeypatch.setattr(settings, "OWNER_OPEN_IDS", "")
    monkeypatch.setattr(settings, "OWNER_OPEN_ID", " owner-1 ")
    assert settings.owner_open_ids() == ["owner-1"]


def test_me_is_null_when_anonymous(client):
    res = client.get("/api/auth/me")
    assert res.status_code == 200
    assert res.json() is None


def test_invalid_token_is_rejected_on_protected_routes(client):
    res = client.get("/api/profile/me/posts", headers={"Authorization": "Bearer not-a-jwt"})
    assert res.status_code == 403


def test_token_for_deleted_user(client):
    token = create_access_token({"sub": "999"})
    res = client.get("/api/profile/me/posts", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 404


def test_logout_clears_cookie(client):
    res = client.post("/api/auth/logout")
    assert res.json() == {"success": True}
    assert settings.SESSION_COOKIE_NAME in res.headers["set-cookie"]


def test_login_url(client, monkeypatch):
    monkeypatch.setattr(settings, "OAUTH_PORTAL_URL", "portal.example.com")
    monkeypatch.setattr(settings, "APP_ID", "app-123")

    url = client.get("/api/auth/login-url", params={"redirect_uri": REDIRECT_URI}).json()["url"]
    parsed = urlparse(url)
    query = parse_qs(parsed.query)
    assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == "https://portal.example.com/app-auth"
    assert query["appId"] == ["app-123"]
    assert query["type"] == ["signIn"]
    assert decode_state(query["state"][0]) == REDIRECT_URI


def test_login_url_without_portal(client, monkeypatch):
    monkeypatch.setattr(settings, "OAUTH_PORTAL_URL", "")
    assert client.get("/api/auth/login-url").json() == {"url": None}


def test_malformed_state():
    with pytest.raises(OAuthError):
        decode_state("%%%")
