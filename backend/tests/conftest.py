"""
Pytest fixtures for the reservation engine, stores and HTTP façade.

Each test gets its own SQLite file database. Transactions open with
BEGIN IMMEDIATE so concurrent sessions serialize on the write lock the way
row locks serialize them on PostgreSQL, which keeps the concurrency tests
meaningful without a database server.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from marketplace.api.deps import get_clock, get_unit_of_work
from marketplace.db.base import Base
from marketplace.main import app
from marketplace.models import Booking, BookingStatus, Service, ServiceSlot, SlotStatus
from marketplace.schemas.booking import BookingDetailsInput, PaymentInput, RefundIntent
from marketplace.schemas.service import ServiceCreate
from marketplace.schemas.slot import SlotCreate
from marketplace.services import catalog_service, slot_service
from marketplace.services.interfaces.refund_sink import RefundSink
from marketplace.services.refund_factory import get_refund_sink
from marketplace.services.reservation_engine import ReservationEngine
from marketplace.stores.unit_of_work import UnitOfWork

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
HOLD_TTL = timedelta(minutes=15)


class FrozenClock:
    def __init__(self, now: datetime):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


class RecordingRefundSink(RefundSink):
    def __init__(self):
        self.intents: list[RefundIntent] = []

    async def emit(self, intent: RefundIntent) -> None:
        self.intents.append(intent)


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}",
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def uow(db_engine: AsyncEngine) -> UnitOfWork:
    return UnitOfWork(async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False))


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(NOW)


@pytest.fixture
def refund_sink() -> RecordingRefundSink:
    return RecordingRefundSink()


@pytest.fixture
def reservation_engine(uow, clock, refund_sink) -> ReservationEngine:
    return ReservationEngine(uow, clock=clock, refund_sink=refund_sink, hold_ttl=HOLD_TTL)


@pytest_asyncio.fixture
async def service(uow) -> Service:
    """An active service priced at 100.00."""
    return await catalog_service.create_service(
        uow,
        ServiceCreate(
            vendor_id="vendor-1",
            category_id="category-1",
            unit_id="unit-hour",
            title="Deep Tissue Massage",
            description="60 minute session",
            base_price=Decimal("100.00"),
            dynamic_attributes={"therapist": "any", "oils": ["lavender", "eucalyptus"], "home_visit": False},
        ),
    )


@pytest_asyncio.fixture
async def slots(uow, service) -> list[ServiceSlot]:
    """Three consecutive one-hour AVAILABLE slots starting tomorrow."""
    start = NOW + timedelta(days=1)
    published = []
    for hour in range(3):
        published.append(
            await slot_service.publish_slot(
                uow,
                SlotCreate(
                    service_id=service.id,
                    start_time=start + timedelta(hours=hour),
                    end_time=start + timedelta(hours=hour + 1),
                ),
            )
        )
    return published


@pytest.fixture
def details_input() -> BookingDetailsInput:
    return BookingDetailsInput(
        unit_price=Decimal("100"),
        quantity=2,
        tax_total=Decimal("10"),
        grand_total=Decimal("210"),
    )


@pytest.fixture
def payment_input() -> PaymentInput:
    return PaymentInput(amount=Decimal("210"), processor_id="pi_3Nx7", status="succeeded")


@pytest.fixture
def check_invariant(uow):
    """
    Assert the slot/booking pairing: every BOOKED slot belongs to a live or
    completed booking, every PENDING/ACTIVE booking holds at least one slot,
    and CANCELLED bookings hold none.
    """

    async def _check() -> None:
        async with uow.transaction() as tx:
            all_slots = (await tx.session.execute(select(ServiceSlot))).scalars().all()
            bookings = {b.id: b for b in (await tx.session.execute(select(Booking))).scalars().all()}

        held_by: dict[str, list[str]] = {}
        for slot in all_slots:
            if slot.status == SlotStatus.BOOKED.value:
                assert slot.booking_id in bookings
                assert bookings[slot.booking_id].status in {
                    BookingStatus.PENDING.value,
                    BookingStatus.ACTIVE.value,
                    BookingStatus.COMPLETED.value,
                }
                held_by.setdefault(slot.booking_id, []).append(slot.id)
            else:
                assert slot.booking_id is None

        for booking in bookings.values():
            if booking.status in (BookingStatus.PENDING.value, BookingStatus.ACTIVE.value):
                assert held_by.get(booking.id), f"{booking.id} is {booking.status} without slots"
            if booking.status == BookingStatus.CANCELLED.value:
                assert booking.id not in held_by

    return _check


@pytest_asyncio.fixture(scope="function")
async def client(uow, clock, refund_sink) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client with the unit of work, clock and refund sink swapped for test doubles."""
    app.dependency_overrides[get_unit_of_work] = lambda: uow
    app.dependency_overrides[get_clock] = lambda: clock
    app.dependency_overrides[get_refund_sink] = lambda: refund_sink

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
