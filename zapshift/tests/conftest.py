"""
Centralized Test Configuration.
"""

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event, select, func
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from zapshift.app.main import app
from zapshift.app.db.session import get_db, Base, utcnow
from zapshift.app.core.exceptions import ResourceNotFoundError
from zapshift.app.core.jwt import create_access_token
from zapshift.app.models.enums import UserRole, RiderStatus, WorkStatus
from zapshift.app.models.user import User
from zapshift.app.models.rider import Rider
from zapshift.app.services.payment_gateway import (
    CheckoutSession,
    GatewaySession,
    PaymentGateway,
    get_payment_gateway,
)
import zapshift.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)).lower():
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}
        self._closed = False

    async def ping(self):
        return not self._closed

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}

    async def aclose(self):
        self._closed = True


class FakePaymentGateway(PaymentGateway):
    """
    In-memory stand-in for Stripe Checkout.

    Tests register sessions with `add_session`; `retrieve_session` returns
    them as the gateway would.
    """

    def __init__(self):
        self.sessions = {}
        self.created = []

    def add_session(
        self,
        session_id,
        parcel_id,
        paid=True,
        payment_intent=None,
        amount_total=15000,
        currency="usd",
        customer_email="sender@example.com",
        parcel_name="Documents",
    ):
        self.sessions[session_id] = GatewaySession(
            id=session_id,
            payment_status="paid" if paid else "unpaid",
            payment_intent=payment_intent or f"pi_{session_id}",
            amount_total=amount_total,
            currency=currency,
            customer_email=customer_email,
            metadata={"parcelId": str(parcel_id), "parcelName": parcel_name},
        )
        return self.sessions[session_id]

    async def create_checkout_session(self, parcel_id, parcel_name, sender_email, cost):
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append({
            "id": session_id,
            "parcel_id": parcel_id,
            "parcel_name": parcel_name,
            "sender_email": sender_email,
            "cost": cost,
        })
        return CheckoutSession(id=session_id, url=f"https://checkout.stripe.test/{session_id}")

    async def retrieve_session(self, session_id):
        if session_id not in self.sessions:
            raise ResourceNotFoundError("Checkout session", session_id)
        return self.sessions[session_id]


@pytest.fixture(scope="session")
def redis_client_session():
    return MockRedis()


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture(autouse=True)
def apply_overrides(redis_client_session, gateway):
    """Point the app at the test database, fake Redis and fake gateway."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = redis_client_session

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_gateway] = lambda: gateway
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(redis_client_session):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    await redis_client_session.flushdb()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


# Shared session for fixture data creation
@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


def auth_headers(email: str) -> dict:
    token = create_access_token({"sub": f"uid-{email}", "email": email})
    return {"Authorization": f"Bearer {token}"}


async def count_rows(model, **filters) -> int:
    """Row count read through a fresh session."""
    async with TestingSessionLocal() as session:
        query = select(func.count()).select_from(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        return (await session.execute(query)).scalar()


async def fetch_one(model, **filters):
    async with TestingSessionLocal() as session:
        query = select(model)
        for field, value in filters.items():
            query = query.where(getattr(model, field) == value)
        return (await session.execute(query)).scalars().first()


@pytest.fixture
async def admin_headers(db_session):
    """Admin user record plus a bearer header for it."""
    db_session.add(User(email="admin@zapshift.com", name="Ops Admin", role=UserRole.ADMIN, created_at=utcnow()))
    await db_session.commit()
    return auth_headers("admin@zapshift.com")


@pytest.fixture
async def approved_rider(db_session):
    """An approved, available rider with a matching rider-role user."""
    rider = Rider(
        email="rider@zapshift.com",
        name="Rahim Rider",
        phone="01700000000",
        rider_district="Dhaka",
        status=RiderStatus.APPROVED,
        work_status=WorkStatus.AVAILABLE,
        created_at=utcnow(),
    )
    db_session.add(rider)
    db_session.add(User(email="rider@zapshift.com", name="Rahim Rider", role=UserRole.RIDER, created_at=utcnow()))
    await db_session.commit()
    return rider


PARCEL_PAYLOAD = {
    "senderEmail": "sender@example.com",
    "senderName": "Sara Sender",
    "parcelName": "Documents",
    "parcelType": "document",
    "cost": 150,
    "receiverName": "Rafi Receiver",
    "receiverDistrict": "Chattogram",
}


@pytest.fixture
async def parcel_id(client):
    """An unpaid parcel created through the API."""
    response = await client.post("/parcels", json=PARCEL_PAYLOAD)
    assert response.status_code == 201
    return response.json()["insertedId"]


@pytest.fixture
async def paid_parcel_id(client, gateway, parcel_id):
    """A parcel taken through a successful checkout."""
    gateway.add_session("cs_paid_fixture", parcel_id, paid=True, payment_intent="pi_fixture")
    response = await client.patch("/payment-success", params={"session_id": "cs_paid_fixture"})
    assert response.json()["success"] is True
    return parcel_id
