"""
Parcel status enumerations.
"""

import enum


class PaymentStatus(str, enum.Enum):
    UNPAID = "unpaid"
    PAID = "paid"


class DeliveryStatus(str, enum.Enum):
    """
    Stored delivery status. NULL until the parcel is paid.

    Status flow:
        PENDING_PICKUP → DRIVER_ASSIGNED → DELIVERED
    """
    PENDING_PICKUP = "pending-pickup"
    DRIVER_ASSIGNED = "driver_assigned"
    DELIVERED = "delivered"


class ParcelState(str, enum.Enum):
    """
    Lifecycle state derived from payment and delivery status.

    Opening a checkout session writes nothing, so an unpaid parcel reads as
    CREATED whether or not a session was opened for it.
    """
    CREATED = "CREATED"
    AWAITING_PAYMENT = "AWAITING_PAYMENT"
    PAID = "PAID"
    DRIVER_ASSIGNED = "DRIVER_ASSIGNED"
    DELIVERED = "DELIVERED"
