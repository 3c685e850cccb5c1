"""
Rider assignment rules.

Binds a parcel's delivery state to the assigned rider's work status:
a rider is IN_DELIVERY exactly while assigned to one undelivered parcel.
The functions here only compute values; the lifecycle service stages them
in the same transaction as the parcel change.
"""

from typing import Any, Dict, Optional

from zapshift.app.core.exceptions import ConflictError
from zapshift.app.models.enums import RiderStatus, WorkStatus
from zapshift.app.models.rider import Rider
from zapshift.app.schemas.parcel import RiderAssignment

CLAIMED = {"work_status": WorkStatus.IN_DELIVERY}
RELEASED = {"work_status": WorkStatus.AVAILABLE}


def ensure_assignable(rider: Rider) -> None:
    """
    Raise ConflictError unless the rider is approved and free.

    Riders already in delivery are refused, which rules out double-booking.
    """
    if rider.status != RiderStatus.APPROVED:
        raise ConflictError(
            "Rider is not approved",
            details={"rider_id": rider.id, "status": rider.status.value},
        )
    if rider.work_status != WorkStatus.AVAILABLE:
        raise ConflictError(
            "Rider is not available",
            details={
                "rider_id": rider.id,
                "work_status": rider.work_status.value if rider.work_status else None,
            },
        )


def ensure_matches_request(rider: Rider, assignment: RiderAssignment) -> None:
    """Raise ConflictError when the request names a different email than the rider record."""
    if assignment.rider_email and assignment.rider_email.casefold() != rider.email.casefold():
        raise ConflictError(
            "Rider email does not match the rider record",
            details={"rider_id": rider.id, "requested": assignment.rider_email, "expected": rider.email},
        )


def parcel_rider_fields(rider: Rider, assignment: RiderAssignment) -> Dict[str, Any]:
    """
    Rider identity group written onto the parcel.

    The rider record is authoritative for id and email; name and phone from
    the request win over the application form when given.
    """
    return {
        "rider_id": rider.id,
        "rider_email": rider.email,
        "rider_name": assignment.rider_name or rider.name,
        "rider_phone": assignment.rider_phone or rider.phone,
    }


def needs_release(previous: Optional[Rider]) -> bool:
    """True when a rider taken off a parcel must go back to AVAILABLE."""
    return previous is not None and previous.work_status == WorkStatus.IN_DELIVERY
