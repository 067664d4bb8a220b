"""JWT token utilities."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt

from ..config import get_settings
from .identity import Identity


class InvalidTokenError(Exception):
    """Token failed signature, expiry or claim checks."""


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed JWT access token."""
    settings = get_settings()
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(
            minutes=settings.access_token_expire_minutes
        )

    to_encode.update({"exp": expire, "type": "access", "jti": str(uuid.uuid4())})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_identity_token(identity: Identity, expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token carrying the identity claims."""
    return create_access_token(
        {"sub": identity.id, "email": identity.email, "name": identity.name},
        expires_delta=expires_delta,
    )


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and validate access token; None when invalid or expired."""
    try:
        settings = get_settings()
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    if payload.get("type") != "access":
        return None
    return payload


def verify_token(token: Optional[str]) -> Identity:
    """Verify a bearer credential and return the identity it carries."""
    if not token:
        raise InvalidTokenError("Missing token")

    payload = decode_access_token(token)
    if not payload:
        raise InvalidTokenError("Invalid or expired token")

    user_id = payload.get("sub")
    if not user_id:
        raise InvalidTokenError("Token has no subject")
    try:
        user_id = str(uuid.UUID(str(user_id)))
    except ValueError:
        raise InvalidTokenError("Token subject is not a user id")

    return Identity(
        id=user_id,
        email=payload.get("email") or "",
        name=payload.get("name") or "",
    )
