"""
BookingStore: data access for Booking, BookingDetails and Payment.

Status changes use the same compare-and-swap discipline as SlotStore:
update_status only applies when the stored status still equals the one the
caller read, so two lifecycle calls racing on one booking cannot both apply.
"""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from marketplace.core.exceptions import StaleStateError
from marketplace.models.booking import Booking, BookingDetails, BookingStatus, Payment
from marketplace.models.service import Service


class BookingStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, booking: Booking) -> Booking:
        self.session.add(booking)
        await self.session.flush()
        return booking

    async def get(self, booking_id: str, with_related: bool = False) -> Optional[Booking]:
        query = select(Booking).where(Booking.id == booking_id)
        if with_related:
            query = query.options(
                selectinload(Booking.slots),
                selectinload(Booking.details),
                selectinload(Booking.payment),
            )
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def list_bookings(
        self,
        customer_id: Optional[str] = None,
        vendor_id: Optional[str] = None,
        status: Optional[BookingStatus] = None,
    ) -> list[Booking]:
        query = select(Booking)
        if customer_id is not None:
            query = query.where(Booking.customer_id == customer_id)
        if vendor_id is not None:
            query = query.join(Service, Service.id == Booking.service_id).where(Service.vendor_id == vendor_id)
        if status is not None:
            query = query.where(Booking.status == status.value)
        result = await self.session.execute(query.order_by(Booking.scheduled_date.desc(), Booking.id))
        return list(result.scalars().all())

    async def update_status(
        self,
        booking_id: str,
        expected_status: BookingStatus,
        new_status: BookingStatus,
        **values: Any,
    ) -> None:
        result = await self.session.execute(
            update(Booking)
            .where(Booking.id == booking_id, Booking.status == expected_status.value)
            .values(status=new_status.value, **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise StaleStateError("Booking", booking_id, expected_status.value)

    async def add_details(self, details: BookingDetails) -> BookingDetails:
        self.session.add(details)
        await self.session.flush()
        return details

    async def add_payment(self, payment: Payment) -> Payment:
        self.session.add(payment)
        await self.session.flush()
        return payment

    async def get_payment(self, booking_id: str) -> Optional[Payment]:
        result = await self.session.execute(select(Payment).where(Payment.booking_id == booking_id))
        return result.scalar_one_or_none()

    async def mark_refund_requested(self, payment_id: str, requested_at: datetime) -> None:
        await self.session.execute(
            update(Payment)
            .where(Payment.id == payment_id, Payment.refund_requested_at.is_(None))
            .values(refund_requested_at=requested_at)
            .execution_options(synchronize_session=False)
        )

    async def find_expired_holds(self, cutoff: datetime, limit: int = 500) -> list[str]:
        """Ids of PENDING bookings created before `cutoff` that never got a Payment."""
        # Uses ix_bookings_status_created (status, created_at)
        result = await self.session.execute(
            select(Booking.id)
            .outerjoin(Payment, Payment.booking_id == Booking.id)
            .where(
                Booking.status == BookingStatus.PENDING.value,
                Booking.created_at < cutoff,
                Payment.id.is_(None),
            )
            .order_by(Booking.created_at)
            .limit(limit)
        )
        return list(result.scalars().all())
