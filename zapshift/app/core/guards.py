"""
Access policy for role-based and ownership-based access control.

Each rule is a plain predicate returning an `AccessDecision`; the FastAPI
dependencies below evaluate the rule and turn a denial into a 403.
"""

from dataclasses import dataclass
from typing import List, Optional
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from zapshift.app.core.dependencies import get_verified_identity
from zapshift.app.core.exceptions import InsufficientPermissionsError
from zapshift.app.db.repository import user_repository
from zapshift.app.db.session import get_db
from zapshift.app.models.enums import UserRole


@dataclass(frozen=True)
class AccessDecision:
    """Outcome of an access rule: allowed, or denied with a reason."""
    allowed: bool
    reason: Optional[str] = None

    @classmethod
    def allow(cls) -> "AccessDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "AccessDecision":
        return cls(allowed=False, reason=reason)


def evaluate_role(role: UserRole, allowed_roles: List[UserRole]) -> AccessDecision:
    if role in allowed_roles:
        return AccessDecision.allow()
    return AccessDecision.deny(
        f"Access denied. Required role: {', '.join(r.value for r in allowed_roles)}"
    )


def same_email(left: str, right: str) -> bool:
    # EmailStr lower-cases only the domain, so compare case-folded
    return left.casefold() == right.casefold()

def evaluate_email_ownership(requested_email: Optional[str], principal: dict) -> AccessDecision:
    """
    A caller may only ask for records filed under their own email.

    No email requested means "my own records" and is always allowed.
    """
    if requested_email is None or same_email(requested_email, principal["email"]):
        return AccessDecision.allow()
    return AccessDecision.deny("Forbidden access")


def evaluate_assigned_rider(rider_email: Optional[str], principal: dict) -> AccessDecision:
    """Admins, or the rider a parcel is assigned to."""
    if principal.get("role") == UserRole.ADMIN:
        return AccessDecision.allow()
    if principal.get("role") == UserRole.RIDER and rider_email and same_email(rider_email, principal["email"]):
        return AccessDecision.allow()
    return AccessDecision.deny("Only the assigned rider or an admin can update this delivery")


def enforce(decision: AccessDecision) -> None:
    """Raise 403 for a denied decision."""
    if not decision.allowed:
        raise InsufficientPermissionsError(decision.reason or "Insufficient permissions")


async def resolve_role(db: AsyncSession, email: str) -> UserRole:
    """Role of the user record for `email`; USER when no record exists."""
    user = await user_repository.find_one(db, email=email)
    return user.role if user else UserRole.USER


async def get_current_principal(
    identity: dict = Depends(get_verified_identity),
    db: AsyncSession = Depends(get_db),
) -> dict:
    """Verified identity plus the caller's current role."""
    return {**identity, "role": await resolve_role(db, identity["email"])}


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.patch("/riders/{rider_id}")
        async def update_rider(admin: dict = Depends(require_role([UserRole.ADMIN]))):
            ...

    Raises:
        AuthenticationError 401 without a valid token
        InsufficientPermissionsError 403 if the caller's role is not allowed
    """
    async def role_checker(principal: dict = Depends(get_current_principal)) -> dict:
        enforce(evaluate_role(principal["role"], allowed_roles))
        return principal

    return role_checker


require_admin = require_role([UserRole.ADMIN])
