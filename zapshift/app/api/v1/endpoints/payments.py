"""
Payment API Endpoints.

Hosted checkout, payment confirmation and payment history.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from zapshift.app.core.guards import enforce, evaluate_email_ownership, get_current_principal
from zapshift.app.db.repository import payment_repository
from zapshift.app.db.session import get_db
from zapshift.app.models.enums import UserRole
from zapshift.app.schemas.common import InsertResult, UpdateResult
from zapshift.app.schemas.parcel import CheckoutSessionRequest, CheckoutSessionResponse
from zapshift.app.schemas.payment import PaymentConfirmationResponse, PaymentResponse
from zapshift.app.services.parcel_lifecycle import ConfirmationOutcome, ParcelLifecycleService
from zapshift.app.services.payment_gateway import PaymentGateway, get_payment_gateway

router = APIRouter(tags=["Payments"])


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    request: CheckoutSessionRequest,
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db)
):
    """Open a hosted checkout session for an unpaid parcel and return the redirect URL."""
    url = await ParcelLifecycleService.create_checkout_session(db, gateway, request)
    return CheckoutSessionResponse(url=url)


@router.patch(
    "/payment-success",
    response_model=PaymentConfirmationResponse,
    response_model_exclude_none=True,
)
async def confirm_payment(
    session_id: str = Query(..., min_length=1),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    db: AsyncSession = Depends(get_db)
):
    """
    Confirm a checkout session after the gateway redirect.

    Idempotent: refreshing the success page or replaying the call returns
    "Payment already processed" with the original tracking id.
    """
    confirmation = await ParcelLifecycleService.confirm_payment(db, gateway, session_id)

    if confirmation.outcome == ConfirmationOutcome.ALREADY_PROCESSED:
        return PaymentConfirmationResponse(
            message="Payment already processed",
            transaction_id=confirmation.transaction_id,
            tracking_id=confirmation.tracking_id,
        )

    if confirmation.outcome == ConfirmationOutcome.NOT_PAID:
        return PaymentConfirmationResponse(success=False)

    return PaymentConfirmationResponse(
        success=True,
        modify_parcel=UpdateResult.from_outcome(confirmation.parcel_update),
        tracking_id=confirmation.tracking_id,
        transaction_id=confirmation.transaction_id,
        payment_info=InsertResult(inserted_id=confirmation.payment_id),
    )


@router.get("/payments", response_model=List[PaymentResponse])
async def list_payments(
    email: Optional[str] = Query(None, description="Customer email; must be the caller's own"),
    principal: dict = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db)
):
    """
    Payment history, newest first.

    - `email` given: must equal the caller's verified email, else 403
    - no `email`: admins see every payment, everyone else their own
    """
    enforce(evaluate_email_ownership(email, principal))

    # ownership is case-insensitive; filter on the verified spelling
    customer_email = principal["email"] if email is not None else None
    if customer_email is None and principal["role"] != UserRole.ADMIN:
        customer_email = principal["email"]

    payments = await payment_repository.find(
        db,
        {"customer_email": customer_email},
        order_by="paid_at",
        descending=True,
    )
    return [PaymentResponse.model_validate(p) for p in payments]
