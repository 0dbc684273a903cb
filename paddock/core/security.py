"""
Bearer token auth: PyJWT (HS256) tokens issued after the Facebook login.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from paddock.core.config import settings
from paddock.core.exceptions import ForbiddenError, NotAuthenticatedError
from paddock.db.session import get_db
from paddock.models.predictions import User
from paddock.services import users as user_service

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
TEST_TOKEN = "test-token"
NOT_AUTHENTICATED = "Not authenticated. Please use a JWT token for API requests."

bearer = HTTPBearer(auto_error=False)


def create_access_token(user: User, expires_in: Optional[int] = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = settings.jwt_expiration_seconds if expires_in is None else expires_in
    claims = {
        "sub": str(user.id),
        "username": user.name,
        "email": user.email,
        "is_admin": bool(user.is_admin),
        "iat": now,
        "exp": now + timedelta(seconds=ttl),
    }
    token = jwt.encode(claims, settings.jwt_secret, algorithm=ALGORITHM)
    logger.debug("Generated JWT token for user %s (%s)", user.id, user.name)
    return token

def decode_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a valid token, None when it is malformed, tampered or expired."""
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        logger.debug("Token validation failed: %s", e)
        return None

def user_from_token(db: Session, token: str) -> Optional[User]:
    if token == TEST_TOKEN:
        if settings.env != "dev":
            return None
        return user_service.get_or_create_test_user(db)

    claims = decode_token(token)
    if not claims:
        return None
    try:
        user_id = int(claims["sub"])
    except (KeyError, TypeError, ValueError):
        return None
    # Tokens outlive deleted accounts
    return db.get(User, user_id)


def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: Session = Depends(get_db),
) -> Optional[User]:
    if credentials is None:
        return None
    return user_from_token(db, credentials.credentials)

def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise NotAuthenticatedError(NOT_AUTHENTICATED)
    return user

def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin privileges required")
    return user
