"""
Token Revocation using Redis.

Signing out blacklists the presented identity token so it is refused until
it would have expired anyway.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from zapshift.app.core.config import settings
from zapshift.app.core.redis_client import get_redis

logger = logging.getLogger("zapshift.auth")

# Redis key prefix for blacklisted tokens
TOKEN_BLACKLIST_PREFIX = "blacklist:token:"


def _ttl_seconds(expires_at: Optional[int]) -> int:
    if expires_at is None:
        return settings.access_token_expire_minutes * 60
    remaining = int(expires_at - datetime.now(timezone.utc).timestamp())
    return max(remaining, 1)


async def revoke_token(token: str, email: str, expires_at: Optional[int] = None) -> bool:
    """
    Revoke a specific identity token by adding it to the blacklist.

    Args:
        token: The bearer token string to revoke
        email: Verified email of the token owner (stored for audit purposes)
        expires_at: The token's `exp` claim; the blacklist entry lives until then

    Returns:
        True if successfully revoked, False otherwise
    """
    try:
        client = await get_redis()
        await client.setex(f"{TOKEN_BLACKLIST_PREFIX}{token}", _ttl_seconds(expires_at), email)
        return True
    except Exception as e:
        logger.warning("Error revoking token for %s: %s", email, e)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.

    Args:
        token: Bearer token string to check

    Returns:
        True if token is revoked, False otherwise
    """
    try:
        client = await get_redis()
        exists = await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}")
        return exists > 0
    except Exception as e:
        # Fail open: an unreachable revocation store must not lock every user out
        logger.warning("Error checking token revocation: %s", e)
        return False
