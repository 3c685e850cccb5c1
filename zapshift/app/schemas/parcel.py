"""
Parcel Pydantic schemas.

Defines request and response models for parcel management and checkout.
"""

from pydantic import EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional
from zapshift.app.models.parcel_enums import PaymentStatus, DeliveryStatus
from zapshift.app.schemas.common import CamelModel


class ParcelCreate(CamelModel):
    """
    Schema for creating a new parcel.

    Lifecycle fields (payment/delivery status, tracking id, rider) are not
    accepted from clients; unknown keys are ignored.
    """
    sender_email: EmailStr = Field(..., description="Sender email address")
    parcel_name: str = Field(..., min_length=1, max_length=200)
    cost: float = Field(..., gt=0, description="Delivery cost in major currency units")
    parcel_type: Optional[str] = Field(None, max_length=50, description="document / non-document")
    parcel_weight: Optional[float] = Field(None, gt=0, description="Weight in kilograms")
    sender_name: Optional[str] = Field(None, max_length=150)
    sender_district: Optional[str] = Field(None, max_length=100)
    receiver_name: Optional[str] = Field(None, max_length=150)
    receiver_email: Optional[EmailStr] = None
    receiver_phone: Optional[str] = Field(None, max_length=30)
    receiver_address: Optional[str] = Field(None, max_length=500)
    receiver_district: Optional[str] = Field(None, max_length=100)


class ParcelUpdate(CamelModel):
    """
    Schema for editing an unpaid parcel.

    Omitted fields are left alone. parcelName and cost may be omitted but not
    cleared; an explicit null for them is a validation error.
    """
    parcel_name: Optional[str] = Field(None, min_length=1, max_length=200)
    cost: Optional[float] = Field(None, gt=0)
    parcel_type: Optional[str] = Field(None, max_length=50)
    parcel_weight: Optional[float] = Field(None, gt=0)
    sender_name: Optional[str] = Field(None, max_length=150)
    sender_district: Optional[str] = Field(None, max_length=100)
    receiver_name: Optional[str] = Field(None, max_length=150)
    receiver_email: Optional[EmailStr] = None
    receiver_phone: Optional[str] = Field(None, max_length=30)
    receiver_address: Optional[str] = Field(None, max_length=500)
    receiver_district: Optional[str] = Field(None, max_length=100)

    @field_validator("parcel_name", "cost")
    @classmethod
    def reject_null(cls, value):
        if value is None:
            raise ValueError("cannot be null")
        return value


class RiderAssignment(CamelModel):
    """Schema for assigning a rider to a paid parcel."""
    rider_id: int
    rider_name: Optional[str] = None
    rider_email: Optional[EmailStr] = None
    rider_phone: Optional[str] = None


class ParcelResponse(CamelModel):
    """Schema for parcel response."""
    id: int
    sender_email: str
    sender_name: Optional[str] = None
    sender_district: Optional[str] = None
    parcel_name: str
    parcel_type: Optional[str] = None
    parcel_weight: Optional[float] = None
    cost: float
    receiver_name: Optional[str] = None
    receiver_email: Optional[str] = None
    receiver_phone: Optional[str] = None
    receiver_address: Optional[str] = None
    receiver_district: Optional[str] = None
    payment_status: PaymentStatus
    delivery_status: Optional[DeliveryStatus] = None
    tracking_id: Optional[str] = None
    rider_id: Optional[int] = None
    rider_name: Optional[str] = None
    rider_email: Optional[str] = None
    rider_phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    delivered_at: Optional[datetime] = None


class ParcelTrackingResponse(CamelModel):
    """Public tracking view: no sender, receiver or rider contact details."""
    tracking_id: str
    parcel_name: str
    payment_status: PaymentStatus
    delivery_status: Optional[DeliveryStatus] = None
    created_at: datetime
    delivered_at: Optional[datetime] = None


class CheckoutSessionRequest(CamelModel):
    """Schema for opening a hosted checkout session."""
    parcel_id: int
    parcel_name: str = Field(..., min_length=1, max_length=200)
    sender_email: EmailStr
    cost: float = Field(..., gt=0)


class CheckoutSessionResponse(CamelModel):
    url: str
