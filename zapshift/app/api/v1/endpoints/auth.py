"""
Authentication API endpoints.

Tokens are issued by the identity provider; this service only verifies
them and lets a client revoke the token it holds on sign-out.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from zapshift.app.core.dependencies import get_verified_identity
from zapshift.app.core.guards import get_current_principal
from zapshift.app.core.token_revocation import revoke_token
from zapshift.app.db.session import get_db
from zapshift.app.services.audit import AuditAction, log_event

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.get("/me")
async def get_current_identity(principal: dict = Depends(get_current_principal)):
    """Verified email and current role of the caller."""
    return {"email": principal["email"], "role": principal["role"].value}


@router.post("/logout")
async def logout(
    identity: dict = Depends(get_verified_identity),
    db: AsyncSession = Depends(get_db)
):
    """
    Revoke the presented bearer token.

    The token is refused with 401 from now until its natural expiry.
    """
    revoked = await revoke_token(identity["token"], identity["email"], identity.get("exp"))

    if revoked:
        await log_event(
            db=db,
            action=AuditAction.TOKEN_REVOKED,
            actor_email=identity["email"],
            target_email=identity["email"],
        )

    return {"success": revoked, "message": "Signed out" if revoked else "Token could not be revoked"}
