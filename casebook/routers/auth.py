import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session

from casebook import crud
from casebook.auth.token import create_access_token, get_optional_user
from casebook.core.config import settings
from casebook.database import get_db
from casebook.models.user import User
from casebook.schemas.user_schema import LoginUrlOut, UserResponse
from casebook.services.oauth import OAuthClient, OAuthError, build_login_url, get_oauth_client

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.ACCESS_TOKEN_EXPIRES_MINUTES * 60,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite=settings.SESSION_COOKIE_SAMESITE,
        domain=settings.SESSION_COOKIE_DOMAIN,
        path="/",
    )


@router.get("/auth/login-url", response_model=LoginUrlOut)
def login_url(redirect_uri: Optional[str] = None):
    target = redirect_uri or f"{settings.PUBLIC_URL.rstrip('/')}/api/oauth/callback"
    return LoginUrlOut(url=build_login_url(target))


@router.get("/oauth/callback")
async def oauth_callback(
    code: str,
    state: str,
    db: Session = Depends(get_db),
    oauth: OAuthClient = Depends(get_oauth_client),
):
    # 1. Exchange code for identity
    try:
        identity = await oauth.authenticate(code, state)
    except OAuthError:
        logger.exception("[OAuth] Callback failed")
        raise HTTPException(status_code=502, detail="Sign-in failed. Please try again.")

    # 2. Save or update user
    profile = {
        "name": identity.name,
        "email": identity.email,
        "avatar_url": identity.avatar_url,
        "login_method": identity.login_method,
    }
    user = crud.upsert_user(db, identity.open_id, **{k: v for k, v in profile.items() if v is not None})
    logger.info("User %s signed in via %s", user.id, user.login_method or "oauth")

    # 3. Session cookie, then back to the app
    jwt_token = create_access_token(data={"sub": str(user.id)})
    response = RedirectResponse(url="/", status_code=302)
    _set_session_cookie(response, jwt_token)
    return response


@router.get("/auth/me", response_model=Optional[UserResponse])
def me(user: Optional[User] = Depends(get_optional_user)):
    return user


@router.post("/auth/logout")
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME, path="/", domain=settings.SESSION_COOKIE_DOMAIN)
    return {"success": True}
