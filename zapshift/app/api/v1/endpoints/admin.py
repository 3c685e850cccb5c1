"""
Admin API Endpoints.

Read access to the audit trail.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from zapshift.app.core.guards import require_admin
from zapshift.app.db.session import get_db
from zapshift.app.schemas.admin import AuditLogResponse, AuditTrailResponse
from zapshift.app.services.audit import get_audit_trail

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/audit-logs", response_model=AuditTrailResponse)
async def list_audit_logs(
    target_email: Optional[str] = Query(None, alias="targetEmail"),
    action: Optional[str] = Query(None, description="Filter by action, e.g. PAYMENT_CONFIRMED"),
    limit: int = Query(100, ge=1, le=500),
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """Audit trail, most recent first (admin only)."""
    logs = await get_audit_trail(db, target_email=target_email, action=action, limit=limit)
    return AuditTrailResponse(
        logs=[AuditLogResponse.model_validate(log) for log in logs],
        total=len(logs),
    )
