"""
Integration tests for rider assignment and delivery completion.

A rider is IN_DELIVERY exactly while assigned to one undelivered parcel.
"""

import pytest

from conftest import PARCEL_PAYLOAD, auth_headers, fetch_one
from zapshift.app.db.session import utcnow
from zapshift.app.models.enums import RiderStatus, WorkStatus
from zapshift.app.models.parcel import Parcel
from zapshift.app.models.parcel_enums import DeliveryStatus
from zapshift.app.models.rider import Rider


@pytest.fixture
async def second_rider(db_session):
    rider = Rider(
        email="karim@zapshift.com",
        name="Karim Rider",
        phone="01900000000",
        rider_district="Dhaka",
        status=RiderStatus.APPROVED,
        work_status=WorkStatus.AVAILABLE,
        created_at=utcnow(),
    )
    db_session.add(rider)
    await db_session.commit()
    return rider


async def pay_new_parcel(client, gateway, session_id):
    created = await client.post("/parcels", json=PARCEL_PAYLOAD)
    parcel_id = created.json()["insertedId"]
    gateway.add_session(session_id, parcel_id, payment_intent=f"pi_{session_id}")
    await client.patch("/payment-success", params={"session_id": session_id})
    return parcel_id


@pytest.mark.asyncio
async def test_assign_rider(client, paid_parcel_id, approved_rider, admin_headers):
    response = await client.patch(
        f"/parcels/{paid_parcel_id}",
        json={"riderId": approved_rider.id, "riderPhone": "01799999999"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    assert response.json() == {"acknowledged": True, "matchedCount": 1, "modifiedCount": 1}

    parcel = await fetch_one(Parcel, id=paid_parcel_id)
    assert parcel.delivery_status == DeliveryStatus.DRIVER_ASSIGNED
    assert parcel.rider_id == approved_rider.id
    assert parcel.rider_email == "rider@zapshift.com"
    assert parcel.rider_name == "Rahim Rider"
    assert parcel.rider_phone == "01799999999"

    rider = await fetch_one(Rider, id=approved_rider.id)
    assert rider.work_status == WorkStatus.IN_DELIVERY


@pytest.mark.asyncio
async def test_assign_rider_with_mismatched_email_is_refused(client, paid_parcel_id, approved_rider, admin_headers):
    response = await client.patch(
        f"/parcels/{paid_parcel_id}",
        json={"riderId": approved_rider.id, "riderEmail": "someone.else@zapshift.com"},
        headers=admin_headers,
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_CONFLICT_001"
    parcel = await fetch_one(Parcel, id=paid_parcel_id)
    assert parcel.rider_id is None
    assert (await fetch_one(Rider, id=approved_rider.id)).work_status == WorkStatus.AVAILABLE


@pytest.mark.asyncio
async def test_assign_rider_with_matching_email(client, paid_parcel_id, approved_rider, admin_headers):
    response = await client.patch(
        f"/parcels/{paid_parcel_id}",
        json={"riderId": approved_rider.id, "riderEmail": "Rider@ZapShift.com"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    parcel = await fetch_one(Parcel, id=paid_parcel_id)
    assert parcel.rider_email == "rider@zapshift.com"

@pytest.mark.asyncio
async def test_assign_rider_requires_admin(client, paid_parcel_id, approved_rider):
    response = await client.patch(
        f"/parcels/{paid_parcel_id}",
        json={"riderId": approved_rider.id},
        headers=auth_headers("sender@example.com"),
    )

    assert response.status_code == 403
    parcel = await fetch_one(Parcel, id=paid_parcel_id)
    assert parcel.rider_id is None


@pytest.mark.asyncio
async def test_assign_rider_to_unpaid_parcel(client, parcel_id, approved_rider, admin_headers):
    response = await client.patch(
        f"/parcels/{parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers
    )

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"
    assert (await fetch_one(Rider, id=approved_rider.id)).work_status == WorkStatus.AVAILABLE


@pytest.mark.asyncio
async def test_assign_unknown_rider(client, paid_parcel_id, admin_headers):
    response = await client.patch(f"/parcels/{paid_parcel_id}", json={"riderId": 999}, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_pending_rider_is_refused(client, db_session, paid_parcel_id, admin_headers):
    pending = Rider(
        email="pending@zapshift.com", rider_district="Dhaka", status=RiderStatus.PENDING, created_at=utcnow()
    )
    db_session.add(pending)
    await db_session.commit()

    response = await client.patch(
        f"/parcels/{paid_parcel_id}", json={"riderId": pending.id}, headers=admin_headers
    )

    assert response.status_code == 409
    assert response.json()["message"] == "Rider is not approved"


@pytest.mark.asyncio
async def test_busy_rider_cannot_be_double_booked(client, gateway, paid_parcel_id, approved_rider, admin_headers):
    await client.patch(f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers)
    other_parcel_id = await pay_new_parcel(client, gateway, "cs_other")

    response = await client.patch(
        f"/parcels/{other_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers
    )

    assert response.status_code == 409
    assert response.json()["message"] == "Rider is not available"
    other = await fetch_one(Parcel, id=other_parcel_id)
    assert other.delivery_status == DeliveryStatus.PENDING_PICKUP


@pytest.mark.asyncio
async def test_assigning_same_rider_again_is_noop(client, paid_parcel_id, approved_rider, admin_headers):
    await client.patch(f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers)

    response = await client.patch(
        f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers
    )

    assert response.status_code == 200
    assert response.json()["modifiedCount"] == 0
    assert (await fetch_one(Rider, id=approved_rider.id)).work_status == WorkStatus.IN_DELIVERY


@pytest.mark.asyncio
async def test_reassignment_releases_previous_rider(
    client, paid_parcel_id, approved_rider, second_rider, admin_headers
):
    await client.patch(f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers)

    response = await client.patch(
        f"/parcels/{paid_parcel_id}", json={"riderId": second_rider.id}, headers=admin_headers
    )

    assert response.status_code == 200
    parcel = await fetch_one(Parcel, id=paid_parcel_id)
    assert parcel.rider_id == second_rider.id
    assert parcel.rider_email == "karim@zapshift.com"
    assert (await fetch_one(Rider, id=approved_rider.id)).work_status == WorkStatus.AVAILABLE
    assert (await fetch_one(Rider, id=second_rider.id)).work_status == WorkStatus.IN_DELIVERY


@pytest.mark.asyncio
async def test_assigned_rider_completes_delivery(client, paid_parcel_id, approved_rider, admin_headers):
    await client.patch(f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers)

    response = await client.patch(
        f"/parcels/{paid_parcel_id}/delivered", headers=auth_headers("rider@zapshift.com")
    )

    assert response.status_code == 200
    parcel = await fetch_one(Parcel, id=paid_parcel_id)
    assert parcel.delivery_status == DeliveryStatus.DELIVERED
    assert parcel.delivered_at is not None
    assert (await fetch_one(Rider, id=approved_rider.id)).work_status == WorkStatus.AVAILABLE

    # Delivered is terminal
    again = await client.patch(f"/parcels/{paid_parcel_id}/delivered", headers=admin_headers)
    assert again.status_code == 409
    reassign = await client.patch(
        f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers
    )
    assert reassign.status_code == 409


@pytest.mark.asyncio
async def test_other_user_cannot_complete_delivery(client, paid_parcel_id, approved_rider, admin_headers):
    await client.patch(f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers)

    response = await client.patch(
        f"/parcels/{paid_parcel_id}/delivered", headers=auth_headers("sender@example.com")
    )

    assert response.status_code == 403
    parcel = await fetch_one(Parcel, id=paid_parcel_id)
    assert parcel.delivery_status == DeliveryStatus.DRIVER_ASSIGNED


@pytest.mark.asyncio
async def test_delivery_before_assignment_is_refused(client, paid_parcel_id, admin_headers):
    response = await client.patch(f"/parcels/{paid_parcel_id}/delivered", headers=admin_headers)

    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"


@pytest.mark.asyncio
async def test_list_parcels_by_rider(client, gateway, paid_parcel_id, approved_rider, admin_headers):
    await pay_new_parcel(client, gateway, "cs_unassigned")
    await client.patch(f"/parcels/{paid_parcel_id}", json={"riderId": approved_rider.id}, headers=admin_headers)

    response = await client.get(
        "/parcels", params={"riderEmail": "rider@zapshift.com", "deliveryStatus": "driver_assigned"}
    )

    assert [p["id"] for p in response.json()] == [paid_parcel_id]
