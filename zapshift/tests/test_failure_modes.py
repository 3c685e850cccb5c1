"""
Failure Injection Tests.

Validates resilience against payment gateway failures.
"""

import pytest
import stripe

from zapshift.app.core.exceptions import (
    ResourceNotFoundError,
    UpstreamServiceError,
    UpstreamUnavailableError,
)
from zapshift.app.core.reliability import CircuitBreaker, CircuitOpenError
from zapshift.app.services.payment_gateway import StripePaymentGateway, to_minor_units


@pytest.mark.asyncio
async def test_circuit_breaker_activates():
    """Test that circuit breaker opens after threshold failures."""
    cb = CircuitBreaker(failure_threshold=2, reset_timeout=60)

    async def failing_func():
        raise ValueError("Boom")

    for _ in range(2):
        with pytest.raises(ValueError):
            await cb.call(failing_func)

    with pytest.raises(CircuitOpenError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"


@pytest.mark.asyncio
async def test_circuit_breaker_half_open_recovers(mocker):
    cb = CircuitBreaker(failure_threshold=1, reset_timeout=30)

    async def failing_func():
        raise ValueError("Boom")

    async def healthy_func():
        return "ok"

    clock = mocker.patch("zapshift.app.core.reliability.time.time", return_value=1000.0)
    with pytest.raises(ValueError):
        await cb.call(failing_func)
    assert cb.state == "OPEN"

    clock.return_value = 1031.0
    assert await cb.call(healthy_func) == "ok"
    assert cb.state == "CLOSED"
    assert cb.failures == 0


@pytest.mark.asyncio
async def test_excluded_exceptions_do_not_trip_the_circuit():
    cb = CircuitBreaker(failure_threshold=1, excluded_exceptions=(KeyError,))

    async def caller_mistake():
        raise KeyError("unknown session")

    for _ in range(3):
        with pytest.raises(KeyError):
            await cb.call(caller_mistake)
    assert cb.state == "CLOSED"


def make_gateway(failure_threshold=5):
    breaker = CircuitBreaker(
        failure_threshold=failure_threshold,
        reset_timeout=60,
        excluded_exceptions=(stripe.InvalidRequestError,),
        name="stripe-test",
    )
    return StripePaymentGateway(
        api_key="sk_test_123",
        currency="usd",
        site_domain="https://zapshift.example.com/",
        breaker=breaker,
    )


@pytest.mark.asyncio
async def test_stripe_checkout_session_parameters(mocker):
    create = mocker.patch(
        "stripe.checkout.Session.create",
        return_value=mocker.Mock(id="cs_live_1", url="https://checkout.stripe.com/c/cs_live_1"),
    )

    session = await make_gateway().create_checkout_session(
        parcel_id=7, parcel_name="Documents", sender_email="sender@example.com", cost=150.5
    )

    assert session.url == "https://checkout.stripe.com/c/cs_live_1"
    kwargs = create.call_args.kwargs
    assert kwargs["api_key"] == "sk_test_123"
    assert kwargs["mode"] == "payment"
    assert kwargs["customer_email"] == "sender@example.com"
    assert kwargs["metadata"] == {"parcelId": "7", "parcelName": "Documents"}
    assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 15050
    assert kwargs["success_url"] == (
        "https://zapshift.example.com/dashboard/payment-success?session_id={CHECKOUT_SESSION_ID}"
    )
    assert kwargs["cancel_url"] == "https://zapshift.example.com/dashboard/payment-cancelled"


@pytest.mark.asyncio
async def test_stripe_session_is_read_from_gateway(mocker):
    stripe_session = stripe.checkout.Session.construct_from({
        "id": "cs_live_1",
        "payment_status": "paid",
        "payment_intent": "pi_123",
        "amount_total": 15000,
        "currency": "usd",
        "customer_email": None,
        "customer_details": {"email": "sender@example.com"},
        "metadata": {"parcelId": "7", "parcelName": "Documents"},
    }, "sk_test_123")
    mocker.patch("stripe.checkout.Session.retrieve", return_value=stripe_session)

    session = await make_gateway().retrieve_session("cs_live_1")

    assert session.is_paid
    assert session.payment_intent == "pi_123"
    assert session.customer_email == "sender@example.com"
    assert session.metadata == {"parcelId": "7", "parcelName": "Documents"}


@pytest.mark.asyncio
async def test_stripe_session_without_metadata(mocker):
    stripe_session = stripe.checkout.Session.construct_from({
        "id": "cs_live_2",
        "payment_status": "unpaid",
        "amount_total": 15000,
        "currency": "usd",
        "customer_email": "sender@example.com",
    }, "sk_test_123")
    mocker.patch("stripe.checkout.Session.retrieve", return_value=stripe_session)

    session = await make_gateway().retrieve_session("cs_live_2")

    assert not session.is_paid
    assert session.payment_intent is None
    assert session.customer_email == "sender@example.com"
    assert session.metadata == {}


@pytest.mark.asyncio
async def test_unknown_stripe_session_maps_to_404(mocker):
    mocker.patch(
        "stripe.checkout.Session.retrieve",
        side_effect=stripe.InvalidRequestError("No such checkout.session: cs_x", "id"),
    )
    gateway = make_gateway(failure_threshold=1)

    with pytest.raises(ResourceNotFoundError):
        await gateway.retrieve_session("cs_x")
    # Caller mistakes leave the circuit closed
    assert gateway.breaker.state == "CLOSED"


@pytest.mark.asyncio
async def test_stripe_outage_maps_to_502_then_503(mocker):
    mocker.patch(
        "stripe.checkout.Session.retrieve",
        side_effect=stripe.APIConnectionError("Network error"),
    )
    gateway = make_gateway(failure_threshold=2)

    for _ in range(2):
        with pytest.raises(UpstreamServiceError):
            await gateway.retrieve_session("cs_live_1")

    with pytest.raises(UpstreamUnavailableError):
        await gateway.retrieve_session("cs_live_1")


@pytest.mark.asyncio
async def test_gateway_errors_use_standard_body(client, gateway, parcel_id, mocker):
    mocker.patch.object(
        gateway, "retrieve_session", side_effect=UpstreamUnavailableError("Payment gateway")
    )

    response = await client.patch("/payment-success", params={"session_id": "cs_1"})

    assert response.status_code == 503
    assert response.json()["error_code"] == "ERR_UPSTREAM_002"


def test_to_minor_units_rounds_to_cents():
    assert to_minor_units(19.99) == 1999
    assert to_minor_units(150) == 15000
