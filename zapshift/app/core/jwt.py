"""
Identity token utilities.

Bearer tokens are issued by the external identity provider and carry the
signed-in user's email. This module verifies them; `create_access_token`
mints tokens in the same format for local tooling and tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from zapshift.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a signed identity token.

    Args:
        data: Claims to encode (should include: sub, email)
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string

    Example payload:
        {
            "sub": "uid-123",
            "email": "sender@example.com",
            "exp": 1234567890
        }
    """
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)

    to_encode.update({"exp": expire})
    if settings.identity_audience and "aud" not in to_encode:
        to_encode["aud"] = settings.identity_audience

    return jwt.encode(to_encode, settings.identity_secret_key, algorithm=settings.identity_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate an identity token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded claims if signature, expiry and audience are valid, None otherwise
    """
    options = {"verify_aud": settings.identity_audience is not None}
    try:
        return jwt.decode(
            token,
            settings.identity_secret_key,
            algorithms=[settings.identity_algorithm],
            audience=settings.identity_audience,
            options=options,
        )
    except JWTError:
        return None
