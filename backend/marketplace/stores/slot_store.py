"""
SlotStore: data access for ServiceSlot rows.

compare_and_swap_status is the only way status/booking_id change:

    UPDATE service_slots SET status = :new, booking_id = :booking
    WHERE id = :id AND status = :expected [AND booking_id = :expected_booking]

Zero affected rows means another transaction got there first. The caller
learns about it through StaleStateError instead of a table lock, and the
enclosing transaction rolls back every other write it made.
"""

from datetime import datetime
from typing import AsyncIterator, Iterable, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace.core.exceptions import StaleStateError
from marketplace.models.slot import ServiceSlot, SlotStatus
from marketplace.schemas.slot import TimeRange


class SlotStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, slot: ServiceSlot) -> ServiceSlot:
        self.session.add(slot)
        await self.session.flush()
        return slot

    async def get(self, slot_id: str) -> Optional[ServiceSlot]:
        result = await self.session.execute(
            select(ServiceSlot)
            .where(ServiceSlot.id == slot_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def get_many(self, slot_ids: Iterable[str]) -> list[ServiceSlot]:
        result = await self.session.execute(
            select(ServiceSlot)
            .where(ServiceSlot.id.in_(list(slot_ids)))
            .order_by(ServiceSlot.id)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def list_for_booking(self, booking_id: str) -> list[ServiceSlot]:
        result = await self.session.execute(
            select(ServiceSlot).where(ServiceSlot.booking_id == booking_id).order_by(ServiceSlot.id)
        )
        return list(result.scalars().all())

    async def list_for_service(
        self,
        service_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ServiceSlot]:
        query = select(ServiceSlot).where(ServiceSlot.service_id == service_id)
        if start is not None:
            query = query.where(ServiceSlot.start_time >= start)
        if end is not None:
            query = query.where(ServiceSlot.end_time <= end)
        result = await self.session.execute(query.order_by(ServiceSlot.start_time))
        return list(result.scalars().all())

    def _available_query(self, service_id: str, time_range: TimeRange):
        # Uses ix_service_slots_availability (service_id, status, start_time)
        return (
            select(ServiceSlot)
            .where(
                ServiceSlot.service_id == service_id,
                ServiceSlot.status == SlotStatus.AVAILABLE.value,
                ServiceSlot.start_time >= time_range.start,
                ServiceSlot.end_time <= time_range.end,
            )
            .order_by(ServiceSlot.start_time)
        )

    async def iter_available(self, service_id: str, time_range: TimeRange) -> AsyncIterator[ServiceSlot]:
        """Stream AVAILABLE slots inside the window without materialising the result."""
        stream = await self.session.stream_scalars(self._available_query(service_id, time_range))
        async for slot in stream:
            yield slot

    async def find_available(self, service_id: str, time_range: TimeRange) -> list[ServiceSlot]:
        return [slot async for slot in self.iter_available(service_id, time_range)]

    async def find_overlapping(
        self,
        service_id: str,
        start: datetime,
        end: datetime,
        exclude_slot_id: Optional[str] = None,
    ) -> Optional[ServiceSlot]:
        query = select(ServiceSlot).where(
            ServiceSlot.service_id == service_id,
            ServiceSlot.start_time < end,
            ServiceSlot.end_time > start,
        )
        if exclude_slot_id is not None:
            query = query.where(ServiceSlot.id != exclude_slot_id)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def reschedule_unbooked(self, slot_id: str, start: datetime, end: datetime, **values) -> bool:
        """Move a slot's window unless it is BOOKED. Returns False when nothing was updated."""
        result = await self.session.execute(
            update(ServiceSlot)
            .where(ServiceSlot.id == slot_id, ServiceSlot.status != SlotStatus.BOOKED.value)
            .values(start_time=start, end_time=end, **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def compare_and_swap_status(
        self,
        slot_id: str,
        expected_status: SlotStatus,
        new_status: SlotStatus,
        booking_id: Optional[str] = None,
        expected_booking_id: Optional[str] = None,
    ) -> None:
        conditions = [ServiceSlot.id == slot_id, ServiceSlot.status == expected_status.value]
        if expected_booking_id is not None:
            conditions.append(ServiceSlot.booking_id == expected_booking_id)

        result = await self.session.execute(
            update(ServiceSlot)
            .where(*conditions)
            .values(status=new_status.value, booking_id=booking_id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleStateError("ServiceSlot", slot_id, expected_status.value)

    async def delete_unbooked(self, slot_id: str) -> bool:
        """Hard-delete a slot unless it is BOOKED. Returns False when nothing was deleted."""
        result = await self.session.execute(
            delete(ServiceSlot)
            .where(ServiceSlot.id == slot_id, ServiceSlot.status != SlotStatus.BOOKED.value)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
