"""
Facebook login (OAuth2 authorization code flow) against the Graph API.
"""
import json
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
from urllib.parse import urlencode, quote

import jwt
import requests

from paddock.core.config import settings
from paddock.models.predictions import User

logger = logging.getLogger(__name__)

STATE_TTL_MINUTES = 10
STATE_COOKIE = "oauth_state"


class FacebookAuthError(Exception):
    pass


def new_nonce() -> str:
    return secrets.token_urlsafe(16)

def make_state(nonce: str) -> str:
    """Signed state carrying `nonce`; the same nonce goes into the browser cookie."""
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"nonce": nonce, "iat": now, "exp": now + timedelta(minutes=STATE_TTL_MINUTES)},
        settings.jwt_secret,
        algorithm="HS256",
    )

def verify_state(state: Optional[str], nonce: Optional[str]) -> bool:
    """True when `state` is ours, unexpired and was issued to the browser holding `nonce`."""
    if not state or not nonce:
        return False
    try:
        claims = jwt.decode(state, settings.jwt_secret, algorithms=["HS256"])
    except jwt.PyJWTError:
        return False
    return secrets.compare_digest(str(claims.get("nonce", "")).encode(), nonce.encode())

def authorization_url(state: str) -> str:
    params = {
        "client_id": settings.facebook_client_id,
        "redirect_uri": settings.facebook_redirect_uri,
        "state": state,
        "scope": "email,public_profile",
        "response_type": "code",
    }
    return f"{settings.facebook_dialog_url}?{urlencode(params)}"

def exchange_code(code: str, session: Optional[requests.Session] = None) -> str:
    http = session or requests
    resp = http.get(
        f"{settings.facebook_graph_url}/oauth/access_token",
        params={
            "client_id": settings.facebook_client_id,
            "client_secret": settings.facebook_client_secret,
            "redirect_uri": settings.facebook_redirect_uri,
            "code": code,
        },
        timeout=15,
    )
    if resp.status_code != 200:
        raise FacebookAuthError(f"Token exchange failed with status {resp.status_code}")
    token = resp.json().get("access_token")
    if not token:
        raise FacebookAuthError("Token exchange returned no access token")
    return token

def fetch_profile(access_token: str, session: Optional[requests.Session] = None) -> Dict[str, Any]:
    http = session or requests
    resp = http.get(
        f"{settings.facebook_graph_url}/me",
        params={"fields": "id,name,email", "access_token": access_token},
        timeout=15,
    )
    if resp.status_code != 200:
        raise FacebookAuthError(f"Profile lookup failed with status {resp.status_code}")
    profile = resp.json()
    if not profile.get("id"):
        raise FacebookAuthError("Profile has no id")
    return profile

def frontend_redirect(user: User, token: str) -> str:
    user_json = json.dumps({
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "profile_picture_url": user.profile_picture_url or "",
    }, separators=(",", ":"))
    return f"{settings.frontend_url.rstrip('/')}/#/?token={token}&user={quote(user_json)}"
