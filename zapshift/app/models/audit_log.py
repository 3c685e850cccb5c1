"""
Audit trail table.
"""

from sqlalchemy import Column, Integer, String, DateTime, JSON
from zapshift.app.db.session import Base, utcnow


class AuditLog(Base):
    """
    Audit log model.

    Events logged:
    - USER_CREATED / ROLE_CHANGED
    - RIDER_APPLIED / RIDER_APPROVED / RIDER_REJECTED
    - PARCEL_CREATED / PARCEL_UPDATED / PARCEL_DELETED
    - PAYMENT_CONFIRMED / RIDER_ASSIGNED / PARCEL_DELIVERED
    - TOKEN_REVOKED
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Who performed the action (None for anonymous or gateway-driven actions)
    actor_email = Column(String(255), index=True, nullable=True)

    action = Column(String(100), nullable=False, index=True)

    # Whose record was acted upon
    target_email = Column(String(255), index=True, nullable=True)

    meta_data = Column(JSON, nullable=True)
    ip_address = Column(String(50), nullable=True)

    timestamp = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', actor={self.actor_email}, target={self.target_email})>"
