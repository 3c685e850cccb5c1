"""
Authentication dependencies for FastAPI.

This module provides the dependency that turns a bearer token into a verified identity.
"""

from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from zapshift.app.core.exceptions import AuthenticationError, TokenRevokedError
from zapshift.app.core.jwt import decode_access_token
from zapshift.app.core.token_revocation import is_token_revoked

# Missing credentials are reported as 401 by get_verified_identity itself
security = HTTPBearer(auto_error=False)


async def get_verified_identity(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """
    FastAPI dependency for bearer authentication.

    Checks:
    1. An `Authorization: Bearer <token>` header is present
    2. Token signature, expiry (and audience, when configured) are valid
    3. Token carries an email claim
    4. Token has not been revoked by sign-out

    Returns:
        Identity dict: {"email", "sub", "token", "exp"}

    Raises:
        AuthenticationError / TokenRevokedError: 401 for any failure
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Unauthorized access")

    token = credentials.credentials

    payload = decode_access_token(token)
    if payload is None:
        raise AuthenticationError("Could not validate credentials")

    email = payload.get("email")
    if not email:
        raise AuthenticationError("Token does not carry a verified email")

    if await is_token_revoked(token):
        raise TokenRevokedError()

    return {
        "email": email,
        "sub": payload.get("sub"),
        "token": token,
        "exp": payload.get("exp"),
    }
