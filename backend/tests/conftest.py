"""
Pytest fixtures for test database, client, payment provider and auth.

Runs against in-memory SQLite by default; point TEST_DATABASE_URL at a
PostgreSQL database (postgresql+asyncpg://...) to run the same suite there.
Tables are created and dropped per test for isolation.
"""

import os
from datetime import timedelta
from decimal import Decimal
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from myecclesia.main import app
from myecclesia.db.base import Base
from myecclesia.db.session import get_db
from myecclesia.core.exceptions import PaymentProviderError
from myecclesia.core.security import create_access_token
from myecclesia.models import Event, EventTicketOrder, Ticket, TicketType
from myecclesia.services.cancellation_service import utc_today
from myecclesia.services.interfaces.payment_provider import CheckoutSession, PaymentProvider
from myecclesia.services.provider_factory import get_payment_provider

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

USER_ID = "6f1c2b8e-2d1a-4c55-9a51-0b7d3f0e1a01"
OTHER_USER_ID = "0c9d8e7f-6a5b-4c3d-8e2f-1a0b9c8d7e02"


class FakePaymentProvider(PaymentProvider):
    """In-memory checkout sessions keyed by id."""

    def __init__(self):
        self.sessions: dict[str, CheckoutSession] = {}
        self.retrieved: list[str] = []

    def add_session(
        self,
        session_id: str = "cs_test_1",
        payment_status: str = "paid",
        metadata: Optional[dict] = None,
        amount_total: Optional[int] = 3750,
        currency: Optional[str] = "gbp",
    ) -> CheckoutSession:
        session = CheckoutSession(
            id=session_id,
            payment_status=payment_status,
            status="complete" if payment_status == "paid" else "open",
            metadata=metadata or {},
            amount_total=amount_total,
            currency=currency,
        )
        self.sessions[session_id] = session
        return session

    async def retrieve_session(self, session_id: str) -> CheckoutSession:
        self.retrieved.append(session_id)
        try:
            return self.sessions[session_id]
        except KeyError:
            raise PaymentProviderError(f"No such checkout.session: '{session_id}'")

    def verify_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        raise NotImplementedError


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    kwargs = {"poolclass": StaticPool} if TEST_DATABASE_URL.startswith("sqlite") else {}
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, **kwargs)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    TestSessionLocal = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
def payments() -> FakePaymentProvider:
    return FakePaymentProvider()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, payments: FakePaymentProvider) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the test session and the fake payment provider."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_provider] = lambda: payments

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def other_user_id() -> str:
    return OTHER_USER_ID


@pytest.fixture
def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, email='member@example.org')}"}


@pytest.fixture
def other_auth_headers(other_user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token(other_user_id)}"}


@pytest_asyncio.fixture
async def test_event(db_session: AsyncSession) -> Event:
    """A paid event a month away with 10 tickets left."""
    event = Event(
        title="Worship Night at St Aldates",
        slug="worship-night-st-aldates",
        date=utc_today() + timedelta(days=30),
        time="19:30",
        location="Oxford",
        price=Decimal("12.50"),
        available_tickets=10,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def free_event(db_session: AsyncSession) -> Event:
    event = Event(
        title="Community Prayer Breakfast",
        slug="community-prayer-breakfast",
        date=utc_today() + timedelta(days=7),
        price=None,
        available_tickets=None,
    )
    db_session.add(event)
    await db_session.commit()
    await db_session.refresh(event)
    return event


@pytest_asyncio.fixture
async def ticket_type(db_session: AsyncSession, test_event: Event) -> TicketType:
    ticket_type = TicketType(
        event_id=test_event.id,
        name="General",
        price=Decimal("12.50"),
        quantity_available=100,
        quantity_sold=5,
    )
    db_session.add(ticket_type)
    await db_session.commit()
    await db_session.refresh(ticket_type)
    return ticket_type


@pytest_asyncio.fixture
async def pending_order(db_session: AsyncSession, test_event: Event, user_id: str) -> EventTicketOrder:
    order = EventTicketOrder(
        event_id=test_event.id,
        user_id=user_id,
        quantity=3,
        amount_pence=None,
        currency="gbp",
        stripe_session_id="cs_test_1",
        status="pending",
    )
    db_session.add(order)
    await db_session.commit()
    await db_session.refresh(order)
    return order


@pytest.fixture
def make_ticket(db_session: AsyncSession, user_id: str):
    """Factory for tickets owned by the test user unless told otherwise."""

    async def _make_ticket(event: Event, **overrides) -> Ticket:
        values = {
            "user_id": user_id,
            "event_id": event.id,
            "quantity": 1,
            "status": "active",
            "check_in_status": "not_checked_in",
        }
        values.update(overrides)
        ticket = Ticket(**values)
        db_session.add(ticket)
        await db_session.commit()
        await db_session.refresh(ticket)
        return ticket

    return _make_ticket
