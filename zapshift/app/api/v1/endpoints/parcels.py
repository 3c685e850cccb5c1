"""
Parcel API Endpoints.

Parcel CRUD, rider assignment and delivery completion. Lifecycle rules live in
ParcelLifecycleService; these handlers only translate HTTP to service calls.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from zapshift.app.core.guards import get_current_principal, require_admin
from zapshift.app.db.session import get_db
from zapshift.app.models.parcel_enums import DeliveryStatus
from zapshift.app.schemas.common import DeleteResult, InsertResult, UpdateResult
from zapshift.app.schemas.parcel import (
    ParcelCreate,
    ParcelResponse,
    ParcelTrackingResponse,
    ParcelUpdate,
    RiderAssignment,
)
from zapshift.app.services.parcel_lifecycle import ParcelLifecycleService

router = APIRouter(prefix="/parcels", tags=["Parcels"])


@router.get("", response_model=List[ParcelResponse])
async def list_parcels(
    email: Optional[str] = Query(None, description="Sender email"),
    delivery_status: Optional[DeliveryStatus] = Query(None, alias="deliveryStatus"),
    rider_email: Optional[str] = Query(None, alias="riderEmail"),
    db: AsyncSession = Depends(get_db)
):
    """List parcels, newest first, optionally filtered by sender, delivery status or rider."""
    parcels = await ParcelLifecycleService.list_parcels(
        db, sender_email=email, delivery_status=delivery_status, rider_email=rider_email
    )
    return [ParcelResponse.model_validate(p) for p in parcels]


@router.get("/track/{tracking_id}", response_model=ParcelTrackingResponse)
async def track_parcel(
    tracking_id: str = Path(..., description="Tracking ID, e.g. PRCL-20250101-A1B2C3"),
    db: AsyncSession = Depends(get_db)
):
    """Public tracking lookup. Exposes status only, no contact details."""
    parcel = await ParcelLifecycleService.track(db, tracking_id)
    return ParcelTrackingResponse.model_validate(parcel)


@router.get("/{parcel_id}", response_model=ParcelResponse)
async def get_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    db: AsyncSession = Depends(get_db)
):
    parcel = await ParcelLifecycleService.get_parcel(db, parcel_id)
    return ParcelResponse.model_validate(parcel)


@router.post("", response_model=InsertResult, status_code=status.HTTP_201_CREATED)
async def create_parcel(
    parcel_data: ParcelCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    Create a parcel.

    The server sets createdAt and starts the parcel unpaid with no tracking id.
    """
    parcel = await ParcelLifecycleService.create_parcel(db, parcel_data)
    return InsertResult(inserted_id=parcel.id)


@router.put("/{parcel_id}", response_model=UpdateResult)
async def update_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    parcel_data: ParcelUpdate = ...,
    db: AsyncSession = Depends(get_db)
):
    """Edit an unpaid parcel. Returns 409 once the parcel has been paid."""
    outcome = await ParcelLifecycleService.update_parcel(db, parcel_id, parcel_data)
    return UpdateResult.from_outcome(outcome)


@router.patch("/{parcel_id}", response_model=UpdateResult)
async def assign_rider(
    parcel_id: int = Path(..., description="Parcel ID"),
    assignment: RiderAssignment = ...,
    admin: dict = Depends(require_admin),
    db: AsyncSession = Depends(get_db)
):
    """
    Assign a rider to a paid parcel (admin only).

    Validates:
    - Parcel is paid and not yet delivered
    - Rider exists, is approved and available
    """
    outcome = await ParcelLifecycleService.assign_rider(db, parcel_id, assignment, admin["email"])
    return UpdateResult.from_outcome(outcome)


@router.patch("/{parcel_id}/delivered", response_model=UpdateResult)
async def complete_delivery(
    parcel_id: int = Path(..., description="Parcel ID"),
    principal: dict = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """Mark a parcel delivered (assigned rider or admin). Frees the rider."""
    outcome = await ParcelLifecycleService.complete_delivery(db, parcel_id, principal)
    return UpdateResult.from_outcome(outcome)


@router.delete("/{parcel_id}", response_model=DeleteResult)
async def delete_parcel(
    parcel_id: int = Path(..., description="Parcel ID"),
    db: AsyncSession = Depends(get_db)
):
    deleted = await ParcelLifecycleService.delete_parcel(db, parcel_id)
    return DeleteResult(deleted_count=deleted)
