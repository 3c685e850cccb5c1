"""
Rider database model.

A rider is a delivery agent who applied through the rider form and goes
through admin approval before being assignable.
"""

from sqlalchemy import Column, Integer, String, DateTime, Enum
from zapshift.app.db.session import Base, utcnow
from zapshift.app.models.enums import RiderStatus, WorkStatus


class Rider(Base):
    """
    Rider model.

    One application per email (unique constraint). work_status is NULL until
    approval, then toggles between AVAILABLE and IN_DELIVERY as parcels are
    assigned and delivered.
    """
    __tablename__ = "riders"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(150), nullable=True)
    phone = Column(String(30), nullable=True)
    rider_district = Column(String(100), nullable=False, index=True)

    # Application form details
    age = Column(Integer, nullable=True)
    nid = Column(String(50), nullable=True)
    bike_brand = Column(String(100), nullable=True)
    bike_registration = Column(String(50), nullable=True)

    status = Column(Enum(RiderStatus), default=RiderStatus.PENDING, nullable=False, index=True)
    work_status = Column(Enum(WorkStatus), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<Rider(id={self.id}, email='{self.email}', status='{self.status.value}')>"
