"""
Rider API Endpoints.

Rider applications and the admin approval workflow.
"""

import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from zapshift.app.core.exceptions import ResourceNotFoundError
from zapshift.app.core.guards import require_admin
from zapshift.app.db.repository import DuplicateKeyError, rider_repository, user_repository
from zapshift.app.db.session import get_db, utcnow
from zapshift.app.models.enums import RiderStatus, UserRole, WorkStatus
from zapshift.app.schemas.common import InsertResult, UpdateResult
from zapshift.app.schemas.rider import RiderApplication, RiderResponse, RiderStatusUpdate
from zapshift.app.services.audit import AuditAction, log_event

router = APIRouter(prefix="/riders", tags=["Riders"])
logger = logging.getLogger("zapshift.riders")


@router.get("", response_model=List[RiderResponse])
async def list_riders(
    rider_status: Optional[RiderStatus] = Query(None, alias="status"),
    rider_district: Optional[str] = Query(None, alias="riderDistrict"),
    work_status: Optional[WorkStatus] = Query(None, alias="workStatus"),
    db: AsyncSession = Depends(get_db)
):
    """List riders, newest first, filtered by status, district and work status."""
    riders = await rider_repository.find(
        db,
        {"status": rider_status, "rider_district": rider_district, "work_status": work_status},
        order_by="created_at",
        descending=True,
    )
    return [RiderResponse.model_validate(r) for r in riders]


@router.post("", response_model=InsertResult, status_code=status.HTTP_201_CREATED)
async def apply_as_rider(
    application: RiderApplication,
    response: Response,
    db: AsyncSession = Depends(get_db)
):
    """
    Submit a rider application.

    The riders.email unique constraint rejects a second application; that is
    answered with "Rider already applied" (200), not an error.
    """
    values = application.model_dump()
    values.update(status=RiderStatus.PENDING, work_status=None, created_at=utcnow())

    try:
        rider = await rider_repository.insert(db, values)
    except DuplicateKeyError:
        response.status_code = status.HTTP_200_OK
        return InsertResult(acknowledged=False, inserted_id=None, message="Rider already applied")

    await log_event(
        db=db,
        action=AuditAction.RIDER_APPLIED,
        actor_email=rider.email,
        target_email=rider.email,
        metadata={"rider_id": rider.id, "rider_district": rider.rider_district},
    )
    return InsertResult(inserted_id=rider.id)


@router.patch("/{rider_id}", response_model=UpdateResult)
async def update_rider_status(
    rider_id: int = Path(..., description="Rider ID"),
    decision: RiderStatusUpdate = ...,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Approve or reject a rider application (admin only).

    Approval, in the same transaction:
    - makes the rider AVAILABLE (if no work status yet)
    - promotes the user with the rider's email to the rider role (admins keep their role)
    Rejection leaves the user's role untouched.
    """
    rider = await rider_repository.get(db, rider_id)
    if not rider:
        raise ResourceNotFoundError("Rider", rider_id)

    changes = {"status": decision.status}
    if decision.status == RiderStatus.APPROVED and rider.work_status is None:
        changes["work_status"] = WorkStatus.AVAILABLE
    outcome = rider_repository.apply(rider, changes)

    promoted = False
    if decision.status == RiderStatus.APPROVED:
        user = await user_repository.find_one(db, email=rider.email)
        if user and user.role == UserRole.USER:
            user_repository.apply(user, {"role": UserRole.RIDER})
            promoted = True

    await rider_repository.commit(db)
    logger.info("Rider %s set to %s (user promoted: %s)", rider_id, decision.status.value, promoted)

    if outcome.modified_count:
        action = (
            AuditAction.RIDER_APPROVED
            if decision.status == RiderStatus.APPROVED
            else AuditAction.RIDER_REJECTED
        )
        await log_event(
            db=db,
            action=action,
            actor_email=admin["email"],
            target_email=rider.email,
            metadata={"rider_id": rider_id, "status": decision.status.value, "user_promoted": promoted},
        )
    return UpdateResult.from_outcome(outcome)
