"""
Payment database model.

Immutable record of a confirmed checkout payment.
"""

from sqlalchemy import Column, Integer, Float, String, DateTime, Enum
from zapshift.app.db.session import Base, utcnow
from zapshift.app.models.parcel_enums import PaymentStatus


class Payment(Base):
    """
    Payment model.

    transaction_id is the gateway's payment-intent id. Its unique constraint
    guarantees one record per gateway payment even when two confirmations race.
    parcel_id is not a foreign key: payment history outlives
    parcel deletion. NO updates or deletions.
    """
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    transaction_id = Column(String(255), unique=True, nullable=False, index=True)

    amount = Column(Float, nullable=False)
    currency = Column(String(10), nullable=False)
    customer_email = Column(String(255), nullable=True, index=True)

    parcel_id = Column(Integer, nullable=False, index=True)
    parcel_name = Column(String(200), nullable=True)
    payment_status = Column(Enum(PaymentStatus), nullable=False)
    tracking_id = Column(String(32), nullable=False, index=True)

    paid_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    def __repr__(self):
        return f"<Payment(id={self.id}, transaction_id='{self.transaction_id}', amount={self.amount})>"
