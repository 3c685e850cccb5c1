"""
Parcel Lifecycle Service (Domain Logic).

Owns the parcel state machine:

    CREATED --checkout--> AWAITING_PAYMENT --paid--> PAID
    PAID --assign--> DRIVER_ASSIGNED --reassign--> DRIVER_ASSIGNED
    DRIVER_ASSIGNED --deliver--> DELIVERED

The service is stateless: each call re-reads what it needs and commits its
writes before returning. Writes that touch two records (parcel + payment,
parcel + rider) are staged and committed as one transaction.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from zapshift.app.core.exceptions import (
    ConflictError,
    InvalidStateTransitionError,
    ResourceNotFoundError,
    UpstreamServiceError,
)
from zapshift.app.core.guards import enforce, evaluate_assigned_rider
from zapshift.app.db.repository import (
    DuplicateKeyError,
    UpdateOutcome,
    parcel_repository,
    payment_repository,
    rider_repository,
)
from zapshift.app.db.session import utcnow
from zapshift.app.models.parcel import Parcel
from zapshift.app.models.parcel_enums import DeliveryStatus, ParcelState, PaymentStatus
from zapshift.app.schemas.parcel import (
    CheckoutSessionRequest,
    ParcelCreate,
    ParcelUpdate,
    RiderAssignment,
)
from zapshift.app.services import rider_assignment
from zapshift.app.services.audit import AuditAction, log_event
from zapshift.app.services.payment_gateway import PaymentGateway, to_major_units
from zapshift.app.services.tracking import generate_tracking_id

logger = logging.getLogger("zapshift.lifecycle")


TRANSITIONS: Dict[ParcelState, FrozenSet[ParcelState]] = {
    ParcelState.CREATED: frozenset({ParcelState.AWAITING_PAYMENT, ParcelState.PAID}),
    ParcelState.AWAITING_PAYMENT: frozenset({ParcelState.PAID}),
    ParcelState.PAID: frozenset({ParcelState.DRIVER_ASSIGNED}),
    ParcelState.DRIVER_ASSIGNED: frozenset({ParcelState.DRIVER_ASSIGNED, ParcelState.DELIVERED}),
    ParcelState.DELIVERED: frozenset(),
}


def derive_state(parcel: Parcel) -> ParcelState:
    """Lifecycle state from the stored payment and delivery status."""
    if parcel.payment_status != PaymentStatus.PAID:
        return ParcelState.CREATED
    if parcel.delivery_status == DeliveryStatus.DELIVERED:
        return ParcelState.DELIVERED
    if parcel.delivery_status == DeliveryStatus.DRIVER_ASSIGNED:
        return ParcelState.DRIVER_ASSIGNED
    return ParcelState.PAID


def ensure_transition(current: ParcelState, target: ParcelState) -> None:
    if target not in TRANSITIONS[current]:
        raise InvalidStateTransitionError(current.value, target.value)


class ConfirmationOutcome(str, enum.Enum):
    ALREADY_PROCESSED = "already_processed"
    SUCCESS = "success"
    NOT_PAID = "not_paid"


@dataclass
class PaymentConfirmation:
    outcome: ConfirmationOutcome
    transaction_id: Optional[str] = None
    tracking_id: Optional[str] = None
    parcel_update: Optional[UpdateOutcome] = None
    payment_id: Optional[int] = None


async def _get_parcel_or_404(db: AsyncSession, parcel_id: int) -> Parcel:
    parcel = await parcel_repository.get(db, parcel_id)
    if parcel is None:
        raise ResourceNotFoundError("Parcel", parcel_id)
    return parcel


class ParcelLifecycleService:

    @staticmethod
    async def list_parcels(
        db: AsyncSession,
        sender_email: Optional[str] = None,
        delivery_status: Optional[DeliveryStatus] = None,
        rider_email: Optional[str] = None,
    ) -> List[Parcel]:
        return await parcel_repository.find(
            db,
            {
                "sender_email": sender_email,
                "delivery_status": delivery_status,
                "rider_email": rider_email,
            },
            order_by="created_at",
            descending=True,
        )

    @staticmethod
    async def get_parcel(db: AsyncSession, parcel_id: int) -> Parcel:
        return await _get_parcel_or_404(db, parcel_id)

    @staticmethod
    async def track(db: AsyncSession, tracking_id: str) -> Parcel:
        parcel = await parcel_repository.find_one(db, tracking_id=tracking_id)
        if parcel is None:
            raise ResourceNotFoundError("Tracking ID", tracking_id)
        return parcel

    @staticmethod
    async def create_parcel(db: AsyncSession, data: ParcelCreate) -> Parcel:
        values = data.model_dump()
        values.update(
            payment_status=PaymentStatus.UNPAID,
            delivery_status=None,
            tracking_id=None,
            created_at=utcnow(),
        )
        parcel = await parcel_repository.insert(db, values)
        logger.info("Parcel %s created for %s", parcel.id, parcel.sender_email)

        await log_event(
            db=db,
            action=AuditAction.PARCEL_CREATED,
            actor_email=parcel.sender_email,
            metadata={"parcel_id": parcel.id, "cost": parcel.cost},
        )
        return parcel

    @staticmethod
    async def update_parcel(db: AsyncSession, parcel_id: int, data: ParcelUpdate) -> UpdateOutcome:
        """Edit descriptive fields and cost. Only unpaid parcels can be edited."""
        parcel = await _get_parcel_or_404(db, parcel_id)
        if derive_state(parcel) != ParcelState.CREATED:
            raise ConflictError("Paid parcels cannot be edited", details={"parcel_id": parcel_id})

        update_data = data.model_dump(exclude_unset=True)
        outcome = parcel_repository.apply(parcel, update_data)
        await parcel_repository.commit(db)

        if outcome.modified_count:
            await log_event(
                db=db,
                action=AuditAction.PARCEL_UPDATED,
                actor_email=parcel.sender_email,
                metadata={"parcel_id": parcel_id, "updated_fields": list(update_data.keys())},
            )
        return outcome

    @staticmethod
    async def delete_parcel(db: AsyncSession, parcel_id: int) -> int:
        """
        Delete a parcel.

        A parcel out for delivery is refused: its rider would stay IN_DELIVERY.
        """
        parcel = await _get_parcel_or_404(db, parcel_id)
        if derive_state(parcel) == ParcelState.DRIVER_ASSIGNED:
            raise ConflictError(
                "Parcel is out for delivery and cannot be deleted",
                details={"parcel_id": parcel_id, "rider_id": parcel.rider_id},
            )

        sender_email = parcel.sender_email
        deleted = await parcel_repository.delete(db, parcel_id)
        await log_event(
            db=db,
            action=AuditAction.PARCEL_DELETED,
            actor_email=sender_email,
            metadata={"parcel_id": parcel_id},
        )
        return deleted

    @staticmethod
    async def create_checkout_session(
        db: AsyncSession, gateway: PaymentGateway, request: CheckoutSessionRequest
    ) -> str:
        """
        Open a hosted checkout session and return its redirect URL.

        Nothing is written locally. The amount charged must match the stored
        parcel cost.
        """
        parcel = await _get_parcel_or_404(db, request.parcel_id)
        ensure_transition(derive_state(parcel), ParcelState.AWAITING_PAYMENT)

        if round(request.cost, 2) != round(parcel.cost, 2):
            raise ConflictError(
                "Checkout amount does not match the parcel cost",
                details={"parcel_id": parcel.id, "requested": request.cost, "expected": parcel.cost},
            )

        session = await gateway.create_checkout_session(
            parcel_id=parcel.id,
            parcel_name=request.parcel_name,
            sender_email=request.sender_email,
            cost=parcel.cost,
        )
        return session.url

    @staticmethod
    async def confirm_payment(
        db: AsyncSession, gateway: PaymentGateway, session_id: str
    ) -> PaymentConfirmation:
        """
        Confirm a checkout session. Safe to call any number of times.

        Flow:
        1. Fetch the session from the gateway (client-reported status is never used)
        2. Payment already recorded for its payment intent -> ALREADY_PROCESSED
        3. Session not paid -> NOT_PAID, nothing written
        4. Mark the parcel paid and record the payment in one transaction
        5. A unique violation on the payment means a concurrent confirmation won:
           the transaction is rolled back and answered as ALREADY_PROCESSED
        """
        session = await gateway.retrieve_session(session_id)
        transaction_id = session.payment_intent

        if transaction_id:
            existing = await payment_repository.find_one(db, transaction_id=transaction_id)
            if existing is not None:
                logger.warning("Payment %s already processed, replay ignored", transaction_id)
                return PaymentConfirmation(
                    outcome=ConfirmationOutcome.ALREADY_PROCESSED,
                    transaction_id=transaction_id,
                    tracking_id=existing.tracking_id,
                )

        if not session.is_paid:
            logger.info("Checkout session %s not paid (%s)", session_id, session.payment_status)
            return PaymentConfirmation(outcome=ConfirmationOutcome.NOT_PAID, transaction_id=transaction_id)

        if not transaction_id:
            raise UpstreamServiceError(
                "Paid checkout session has no payment intent",
                details={"session_id": session_id},
            )

        raw_parcel_id = session.metadata.get("parcelId", "")
        if not raw_parcel_id.isdigit():
            raise ResourceNotFoundError("Parcel", raw_parcel_id or None)
        parcel = await _get_parcel_or_404(db, int(raw_parcel_id))
        parcel_id = parcel.id

        if parcel.payment_status == PaymentStatus.PAID:
            # Second payment for a parcel paid through another session:
            # record it under the existing tracking id, leave the parcel alone
            tracking_id = parcel.tracking_id
            parcel_update = UpdateOutcome(matched_count=1, modified_count=0)
        else:
            ensure_transition(derive_state(parcel), ParcelState.PAID)
            tracking_id = generate_tracking_id()
            parcel_update = parcel_repository.apply(parcel, {
                "payment_status": PaymentStatus.PAID,
                "delivery_status": DeliveryStatus.PENDING_PICKUP,
                "tracking_id": tracking_id,
            })

        try:
            payment = await payment_repository.insert(db, {
                "transaction_id": transaction_id,
                "amount": to_major_units(session.amount_total),
                "currency": session.currency or "",
                "customer_email": session.customer_email,
                "parcel_id": parcel_id,
                "parcel_name": session.metadata.get("parcelName"),
                "payment_status": PaymentStatus.PAID,
                "tracking_id": tracking_id,
                "paid_at": utcnow(),
            }, commit=False)
            await parcel_repository.commit(db)
        except DuplicateKeyError:
            winner = await payment_repository.find_one(db, transaction_id=transaction_id)
            if winner is None:
                raise ConflictError(
                    "Tracking id collision, confirm the payment again",
                    details={"transaction_id": transaction_id},
                )
            logger.warning("Concurrent confirmation of %s lost the race", transaction_id)
            return PaymentConfirmation(
                outcome=ConfirmationOutcome.ALREADY_PROCESSED,
                transaction_id=transaction_id,
                tracking_id=winner.tracking_id,
            )

        payment_id = payment.id
        logger.info("Parcel %s paid: transaction %s, tracking %s", parcel_id, transaction_id, tracking_id)

        await log_event(
            db=db,
            action=AuditAction.PAYMENT_CONFIRMED,
            actor_email=session.customer_email,
            metadata={
                "parcel_id": parcel_id,
                "payment_id": payment_id,
                "transaction_id": transaction_id,
                "tracking_id": tracking_id,
            },
        )

        return PaymentConfirmation(
            outcome=ConfirmationOutcome.SUCCESS,
            transaction_id=transaction_id,
            tracking_id=tracking_id,
            parcel_update=parcel_update,
            payment_id=payment_id,
        )

    @staticmethod
    async def assign_rider(
        db: AsyncSession, parcel_id: int, assignment: RiderAssignment, actor_email: str
    ) -> UpdateOutcome:
        """
        Hand a paid parcel to an approved, available rider.

        Parcel and rider are updated in one transaction. On reassignment the
        previous rider is released back to AVAILABLE in the same transaction.
        """
        parcel = await _get_parcel_or_404(db, parcel_id)
        ensure_transition(derive_state(parcel), ParcelState.DRIVER_ASSIGNED)

        if parcel.rider_id == assignment.rider_id:
            return UpdateOutcome(matched_count=1, modified_count=0)

        rider = await rider_repository.get(db, assignment.rider_id)
        if rider is None:
            raise ResourceNotFoundError("Rider", assignment.rider_id)
        rider_assignment.ensure_matches_request(rider, assignment)
        rider_assignment.ensure_assignable(rider)

        previous = None
        if parcel.rider_id is not None:
            previous = await rider_repository.get(db, parcel.rider_id)

        parcel_fields = rider_assignment.parcel_rider_fields(rider, assignment)
        outcome = parcel_repository.apply(parcel, {
            "delivery_status": DeliveryStatus.DRIVER_ASSIGNED,
            **parcel_fields,
        })
        rider_repository.apply(rider, rider_assignment.CLAIMED)
        if rider_assignment.needs_release(previous):
            rider_repository.apply(previous, rider_assignment.RELEASED)
        await parcel_repository.commit(db)

        logger.info("Parcel %s assigned to rider %s", parcel_id, parcel_fields["rider_id"])
        await log_event(
            db=db,
            action=AuditAction.RIDER_ASSIGNED,
            actor_email=actor_email,
            target_email=parcel_fields["rider_email"],
            metadata={
                "parcel_id": parcel_id,
                "rider_id": parcel_fields["rider_id"],
                "previous_rider_id": previous.id if previous else None,
            },
        )
        return outcome

    @staticmethod
    async def complete_delivery(db: AsyncSession, parcel_id: int, principal: dict) -> UpdateOutcome:
        """
        Mark an assigned parcel delivered and free its rider.

        Allowed for the assigned rider or an admin.
        """
        parcel = await _get_parcel_or_404(db, parcel_id)
        enforce(evaluate_assigned_rider(parcel.rider_email, principal))
        ensure_transition(derive_state(parcel), ParcelState.DELIVERED)

        rider = await rider_repository.get(db, parcel.rider_id) if parcel.rider_id else None

        outcome = parcel_repository.apply(parcel, {
            "delivery_status": DeliveryStatus.DELIVERED,
            "delivered_at": utcnow(),
        })
        if rider_assignment.needs_release(rider):
            rider_repository.apply(rider, rider_assignment.RELEASED)
        await parcel_repository.commit(db)

        logger.info("Parcel %s delivered by %s", parcel_id, parcel.rider_email)
        await log_event(
            db=db,
            action=AuditAction.PARCEL_DELIVERED,
            actor_email=principal["email"],
            target_email=parcel.rider_email,
            metadata={"parcel_id": parcel_id, "rider_id": parcel.rider_id},
        )
        return outcome
