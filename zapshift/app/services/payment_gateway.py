"""
Payment gateway client.

Wraps Stripe Checkout behind a small interface so the lifecycle service can
be exercised against a fake gateway. The Stripe SDK is synchronous; calls run
in the threadpool and pass through a circuit breaker.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import stripe
from starlette.concurrency import run_in_threadpool

from zapshift.app.core.config import settings
from zapshift.app.core.exceptions import (
    ResourceNotFoundError,
    UpstreamServiceError,
    UpstreamUnavailableError,
)
from zapshift.app.core.reliability import CircuitBreaker, CircuitOpenError

logger = logging.getLogger("zapshift.payments")


@dataclass
class CheckoutSession:
    """A freshly created hosted checkout session."""
    id: str
    url: str


@dataclass
class GatewaySession:
    """Authoritative state of a checkout session as reported by the gateway."""
    id: str
    payment_status: str
    payment_intent: Optional[str]
    amount_total: Optional[int]
    currency: Optional[str]
    customer_email: Optional[str]
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"


class PaymentGateway(ABC):
    """Hosted checkout provider."""

    @abstractmethod
    async def create_checkout_session(
        self, parcel_id: int, parcel_name: str, sender_email: str, cost: float
    ) -> CheckoutSession:
        ...

    @abstractmethod
    async def retrieve_session(self, session_id: str) -> GatewaySession:
        ...


def to_minor_units(amount: float) -> int:
    """Major currency units to the smallest unit the gateway bills in (cents)."""
    return int(round(amount * 100))


def to_major_units(amount: Optional[int]) -> float:
    return (amount or 0) / 100


payment_circuit_breaker = CircuitBreaker(
    failure_threshold=settings.gateway_failure_threshold,
    reset_timeout=settings.gateway_reset_timeout,
    excluded_exceptions=(stripe.InvalidRequestError,),
    name="stripe",
)


class StripePaymentGateway(PaymentGateway):
    """Stripe Checkout implementation."""

    def __init__(
        self,
        api_key: str,
        currency: str,
        site_domain: str,
        breaker: CircuitBreaker = payment_circuit_breaker,
    ):
        self.api_key = api_key
        self.currency = currency
        self.site_domain = site_domain.rstrip("/")
        self.breaker = breaker

    async def _call(self, func, *args, **kwargs) -> Any:
        try:
            return await self.breaker.call(run_in_threadpool, func, *args, api_key=self.api_key, **kwargs)
        except CircuitOpenError:
            raise UpstreamUnavailableError("Payment gateway")
        except stripe.InvalidRequestError:
            raise
        except stripe.StripeError as e:
            logger.error("Stripe request failed: %s", e)
            raise UpstreamServiceError(
                "Payment gateway request failed",
                details={"gateway_error": e.user_message or str(e)},
            )

    async def create_checkout_session(
        self, parcel_id: int, parcel_name: str, sender_email: str, cost: float
    ) -> CheckoutSession:
        params = {
            "line_items": [
                {
                    "price_data": {
                        "currency": self.currency,
                        "unit_amount": to_minor_units(cost),
                        "product_data": {"name": parcel_name},
                    },
                    "quantity": 1,
                }
            ],
            "customer_email": sender_email,
            "mode": "payment",
            "metadata": {"parcelId": str(parcel_id), "parcelName": parcel_name},
            "success_url": f"{self.site_domain}/dashboard/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
            "cancel_url": f"{self.site_domain}/dashboard/payment-cancelled",
        }
        try:
            session = await self._call(stripe.checkout.Session.create, **params)
        except stripe.InvalidRequestError as e:
            raise UpstreamServiceError(
                "Payment gateway rejected the checkout request",
                details={"gateway_error": e.user_message or str(e)},
            )
        logger.info("Checkout session %s created for parcel %s", session.id, parcel_id)
        return CheckoutSession(id=session.id, url=session.url)

    async def retrieve_session(self, session_id: str) -> GatewaySession:
        try:
            session = await self._call(stripe.checkout.Session.retrieve, session_id)
        except stripe.InvalidRequestError:
            raise ResourceNotFoundError("Checkout session", session_id)

        # StripeObject is attribute-access only; unset fields come back as None
        customer_email = getattr(session, "customer_email", None)
        customer_details = getattr(session, "customer_details", None)
        if not customer_email and customer_details is not None:
            customer_email = getattr(customer_details, "email", None)
        metadata = getattr(session, "metadata", None)

        return GatewaySession(
            id=session.id,
            payment_status=getattr(session, "payment_status", None),
            payment_intent=getattr(session, "payment_intent", None),
            amount_total=getattr(session, "amount_total", None),
            currency=getattr(session, "currency", None),
            customer_email=customer_email,
            metadata=metadata.to_dict() if metadata is not None else {},
        )


def get_payment_gateway() -> PaymentGateway:
    """FastAPI dependency returning the configured gateway."""
    return StripePaymentGateway(
        api_key=settings.stripe_secret_key,
        currency=settings.stripe_currency,
        site_domain=settings.site_domain,
    )
