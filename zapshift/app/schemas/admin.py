"""
Audit trail schemas for the admin endpoints.
"""

from datetime import datetime
from typing import Optional, List
from zapshift.app.schemas.common import CamelModel


class AuditLogResponse(CamelModel):
    """One audit event; metaData carries ids such as parcel_id or transaction_id."""
    id: int
    actor_email: Optional[str]
    action: str
    target_email: Optional[str]
    meta_data: Optional[dict]
    ip_address: Optional[str]
    timestamp: datetime


class AuditTrailResponse(CamelModel):
    logs: List[AuditLogResponse]
    total: int
