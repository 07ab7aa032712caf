"""
Transaction scope shared by the stores.

    async with uow.transaction() as tx:
        await tx.bookings.create(...)
        await tx.slots.compare_and_swap_status(...)

Everything written through `tx` commits when the block exits normally and
rolls back on any exception, including asyncio.CancelledError raised when the
calling request is cancelled mid-flight. The connection returns to the pool
on every exit path.
"""

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Awaitable, Callable, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from marketplace.stores.booking_store import BookingStore
from marketplace.stores.service_store import ServiceStore
from marketplace.stores.slot_store import SlotStore

T = TypeVar("T")


@dataclass
class Transaction:
    session: AsyncSession
    slots: SlotStore
    bookings: BookingStore
    services: ServiceStore


class UnitOfWork:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[Transaction]:
        async with self._session_factory() as session:
            async with session.begin():
                yield Transaction(
                    session=session,
                    slots=SlotStore(session),
                    bookings=BookingStore(session),
                    services=ServiceStore(session),
                )

    async def with_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """Run `fn` inside one transaction and return its result."""
        async with self.transaction() as tx:
            return await fn(tx)
