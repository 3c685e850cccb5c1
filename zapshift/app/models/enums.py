"""
User and rider enumerations.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        USER: Default role for every new account (sends parcels)
        RIDER: Granted when the user's rider application is approved
        ADMIN: Operations staff; approves riders and assigns deliveries
    """
    USER = "user"
    RIDER = "rider"
    ADMIN = "admin"


class RiderStatus(str, enum.Enum):
    """
    Rider application status.

    Status flow:
        PENDING → APPROVED | REJECTED
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class WorkStatus(str, enum.Enum):
    """Rider availability. Unset (NULL) until the rider is approved."""
    AVAILABLE = "available"
    IN_DELIVERY = "in_delivery"
