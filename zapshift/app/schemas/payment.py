"""
Payment schemas.
"""

from datetime import datetime
from typing import Optional
from zapshift.app.models.parcel_enums import PaymentStatus
from zapshift.app.schemas.common import CamelModel, InsertResult, UpdateResult


class PaymentResponse(CamelModel):
    id: int
    transaction_id: str
    amount: float
    currency: str
    customer_email: Optional[str] = None
    parcel_id: int
    parcel_name: Optional[str] = None
    payment_status: PaymentStatus
    tracking_id: str
    paid_at: datetime


class PaymentConfirmationResponse(CamelModel):
    """
    Body of PATCH /payment-success.

    - replay: {message: "Payment already processed", transactionId, trackingId}
    - unpaid session: {success: false}
    - confirmed: {success: true, modifyParcel, trackingId, transactionId, paymentInfo}
    """
    success: Optional[bool] = None
    message: Optional[str] = None
    transaction_id: Optional[str] = None
    tracking_id: Optional[str] = None
    modify_parcel: Optional[UpdateResult] = None
    payment_info: Optional[InsertResult] = None
