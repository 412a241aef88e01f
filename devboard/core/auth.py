"""
Auth utilities for the DevBoard API.

Issues and validates HS256 JWTs and resolves the current user from the
Authorization header. Passwords are bcrypt-hashed before storage.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

import bcrypt
import jwt
from fastapi import Depends, Request
from sqlalchemy.orm import Session

from devboard.core.config import settings
from devboard.core.database import get_db
from devboard.core.errors import AuthenticationError
from devboard.models.user import User

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its stored hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        return False


def _secret() -> str:
    if not settings.JWT_SECRET:
        raise AuthenticationError("Authentication is not configured", status_code=500, code="auth_not_configured")
    return settings.JWT_SECRET


def create_access_token(user_id: str, *, now: Optional[datetime] = None) -> str:
    """Issue a signed token whose 'sub' claim is the user id."""
    issued = now or datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "iat": int(issued.timestamp()),
        "exp": int((issued + timedelta(minutes=settings.JWT_EXPIRATION_MINUTES)).timestamp()),
    }
    return jwt.encode(payload, _secret(), algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> str:
    """
    Verify a JWT and extract the user id.

    Raises:
        AuthenticationError: Invalid, expired, or subject-less token
    """
    try:
        payload = jwt.decode(
            token,
            _secret(),
            algorithms=[settings.JWT_ALGORITHM],
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthenticationError("Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthenticationError("Invalid token")
    return user_id


def _bearer_token(request: Request) -> str:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        raise AuthenticationError("You are not logged in. Please log in to get access.")
    return auth_header[7:]


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:
    """
    Resolve the authenticated user from a Bearer JWT.

    Raises:
        AuthenticationError 401: Missing/invalid token, or the user no longer exists
    """
    from devboard.features.users.service import get_user

    user_id = decode_access_token(_bearer_token(request))
    user = get_user(db, user_id)
    if user is None or not user.is_active:
        raise AuthenticationError("The user belonging to this token no longer exists.")
    request.state.user_id = user.id
    return user
