"""
Audit trail of role changes, rider decisions and parcel lifecycle events.

Admins read it to settle disputes (who assigned which rider, when a
payment was confirmed).
"""

import logging
from typing import Optional, Dict, Any
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, desc
from zapshift.app.db.session import utcnow
from zapshift.app.models.audit_log import AuditLog

logger = logging.getLogger("zapshift.audit")


class AuditAction:
    """Action names stored in AuditLog.action."""
    USER_CREATED = "USER_CREATED"
    ROLE_CHANGED = "ROLE_CHANGED"
    TOKEN_REVOKED = "TOKEN_REVOKED"

    # Riders
    RIDER_APPLIED = "RIDER_APPLIED"
    RIDER_APPROVED = "RIDER_APPROVED"
    RIDER_REJECTED = "RIDER_REJECTED"

    # Parcels
    PARCEL_CREATED = "PARCEL_CREATED"
    PARCEL_UPDATED = "PARCEL_UPDATED"
    PARCEL_DELETED = "PARCEL_DELETED"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
    RIDER_ASSIGNED = "RIDER_ASSIGNED"
    PARCEL_DELIVERED = "PARCEL_DELIVERED"


async def log_event(
    db: AsyncSession,
    action: str,
    actor_email: Optional[str] = None,
    target_email: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    ip_address: Optional[str] = None
) -> AuditLog:
    """
    Append one event to the audit trail and commit it.

    Runs after the audited change has committed, so a failed audit write
    never undoes a parcel, payment or rider change.
    """
    entry = AuditLog(
        actor_email=actor_email,
        action=action,
        target_email=target_email,
        meta_data=metadata,
        ip_address=ip_address,
        timestamp=utcnow(),
    )
    db.add(entry)
    await db.commit()
    logger.debug("audit %s actor=%s target=%s", action, actor_email, target_email)
    return entry


async def get_audit_trail(
    db: AsyncSession,
    target_email: Optional[str] = None,
    action: Optional[str] = None,
    limit: int = 100
) -> list[AuditLog]:
    """Most recent events first, optionally narrowed to one target or action."""
    query = select(AuditLog)
    if target_email:
        query = query.where(AuditLog.target_email == target_email)
    if action:
        query = query.where(AuditLog.action == action)
    query = query.order_by(desc(AuditLog.timestamp), desc(AuditLog.id)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())
