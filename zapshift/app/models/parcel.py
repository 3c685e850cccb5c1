"""
Parcel database model.

Senders create parcels, pay for them through a hosted checkout, and admins
hand them to riders for delivery.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, ForeignKey, Enum
from zapshift.app.db.session import Base, utcnow
from zapshift.app.models.parcel_enums import PaymentStatus, DeliveryStatus


class Parcel(Base):
    """
    Parcel model.

    Invariants:
    - tracking_id is set if and only if payment_status is PAID
    - rider_id / rider_name / rider_email / rider_phone are written together
    """
    __tablename__ = "parcels"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)

    # Sender
    sender_email = Column(String(255), nullable=False, index=True)
    sender_name = Column(String(150), nullable=True)
    sender_district = Column(String(100), nullable=True)

    # Parcel details
    parcel_name = Column(String(200), nullable=False)
    parcel_type = Column(String(50), nullable=True)
    parcel_weight = Column(Float, nullable=True)
    cost = Column(Float, nullable=False)

    # Receiver
    receiver_name = Column(String(150), nullable=True)
    receiver_email = Column(String(255), nullable=True)
    receiver_phone = Column(String(30), nullable=True)
    receiver_address = Column(String(500), nullable=True)
    receiver_district = Column(String(100), nullable=True)

    # Lifecycle
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.UNPAID, nullable=False, index=True)
    delivery_status = Column(Enum(DeliveryStatus), nullable=True, index=True)
    tracking_id = Column(String(32), unique=True, nullable=True, index=True)

    # Assigned rider
    rider_id = Column(Integer, ForeignKey("riders.id"), nullable=True, index=True)
    rider_name = Column(String(150), nullable=True)
    rider_email = Column(String(255), nullable=True, index=True)
    rider_phone = Column(String(30), nullable=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<Parcel(id={self.id}, name='{self.parcel_name}', payment='{self.payment_status.value}')>"
