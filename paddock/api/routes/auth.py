import logging
from typing import Optional

import requests
from fastapi import APIRouter, Cookie, Depends
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session

from paddock.core.config import settings
from paddock.core.security import create_access_token, get_current_user, get_optional_user
from paddock.db.session import get_db
from paddock.models.predictions import User
from paddock.schemas.users import User as UserOut
from paddock.services import facebook
from paddock.services import users as user_service

logger = logging.getLogger(__name__)

router = APIRouter()

LOGIN_FAILED_PATH = "/auth/login-failed"


def _login_failed() -> RedirectResponse:
    response = RedirectResponse(LOGIN_FAILED_PATH, status_code=302)
    response.delete_cookie(facebook.STATE_COOKIE)
    return response


@router.get("/auth/user", response_model=UserOut)
def current_user(user: User = Depends(get_current_user)):
    return user

@router.get("/auth/status")
def auth_status(user: Optional[User] = Depends(get_optional_user)):
    return {"authenticated": user is not None}

@router.get("/auth/login-failed")
def login_failed():
    logger.warning("Login failed endpoint called")
    return JSONResponse(status_code=401, content={"error": "Login failed"})

@router.get("/oauth2/authorization/facebook")
def facebook_login():
    nonce = facebook.new_nonce()
    response = RedirectResponse(facebook.authorization_url(facebook.make_state(nonce)), status_code=302)
    response.set_cookie(
        facebook.STATE_COOKIE, nonce,
        max_age=facebook.STATE_TTL_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.facebook_redirect_uri.startswith("https"),
    )
    return response

@router.get("/login/oauth2/code/facebook")
def facebook_callback(code: Optional[str] = None, state: Optional[str] = None,
                      error: Optional[str] = None,
                      oauth_state: Optional[str] = Cookie(None),
                      db: Session = Depends(get_db)):
    if error or not code or not facebook.verify_state(state, oauth_state):
        logger.warning("OAuth2 callback rejected (error=%s, code present=%s)", error, bool(code))
        return _login_failed()

    try:
        access_token = facebook.exchange_code(code)
        profile = facebook.fetch_profile(access_token)
    except (facebook.FacebookAuthError, requests.RequestException):
        logger.exception("Facebook login failed")
        return _login_failed()

    user = user_service.process_oauth_login(db, profile)
    token = create_access_token(user)
    logger.info("OAuth2 callback successful, generated JWT for user: %s", user.name)
    response = RedirectResponse(facebook.frontend_redirect(user, token), status_code=302)
    response.delete_cookie(facebook.STATE_COOKIE)
    return response
