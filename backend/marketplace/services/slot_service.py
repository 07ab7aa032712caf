"""
Vendor-side slot management: publishing and rescheduling availability, manual holds, removal.

Status changes go through SlotStore.compare_and_swap_status like the
reservation engine's, so a vendor blocking a slot and a customer booking it
at the same instant cannot both succeed.
"""

from datetime import datetime
from typing import Optional

from marketplace.core.clock import ensure_utc, new_id
from marketplace.core.exceptions import (
    NotFoundError,
    SlotConflictError,
    SlotOverlapError,
    StaleStateError,
    ValidationError,
)
from marketplace.core.logging import get_logger
from marketplace.models.slot import ServiceSlot, SlotStatus
from marketplace.schemas.slot import SlotCreate, SlotReschedule, TimeRange
from marketplace.services.transitions import ensure_slot_transition
from marketplace.stores.unit_of_work import Transaction, UnitOfWork

logger = get_logger(__name__)


async def publish_slot(uow: UnitOfWork, data: SlotCreate) -> ServiceSlot:
    """Publish a new time window for a service. Rejects overlaps within the same service."""
    start_time, end_time = _ordered_window(data.start_time, data.end_time)

    async with uow.transaction() as tx:
        service = await tx.services.get(data.service_id)
        if service is None:
            raise NotFoundError("Service", data.service_id)

        overlap = await tx.slots.find_overlapping(data.service_id, start_time, end_time)
        if overlap is not None:
            logger.warning("slot_publish_overlap", service_id=data.service_id, existing_slot_id=overlap.id)
            raise SlotOverlapError(
                "Slot overlaps an existing slot for this service",
                details={"existing_slot_id": overlap.id},
            )

        slot = await tx.slots.add(
            ServiceSlot(
                id=new_id(),
                service_id=data.service_id,
                start_time=start_time,
                end_time=end_time,
                status=data.status,
                is_recurring=data.is_recurring,
            )
        )

    logger.info("slot_published", slot_id=slot.id, service_id=slot.service_id, status=slot.status)
    return slot


async def get_slot(uow: UnitOfWork, slot_id: str) -> ServiceSlot:
    async with uow.transaction() as tx:
        return await _require_slot(tx, slot_id)


async def list_slots(
    uow: UnitOfWork,
    service_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> list[ServiceSlot]:
    """All slots of a service regardless of status, optionally bounded in time."""
    async with uow.transaction() as tx:
        return await tx.slots.list_for_service(service_id, start=ensure_utc(start), end=ensure_utc(end))


async def find_available_slots(uow: UnitOfWork, service_id: str, time_range: TimeRange) -> list[ServiceSlot]:
    """Bookable slots only: BOOKED and BLOCKED are excluded."""
    async with uow.transaction() as tx:
        return await tx.slots.find_available(service_id, time_range)


async def block_slot(uow: UnitOfWork, slot_id: str) -> ServiceSlot:
    """Vendor hold: AVAILABLE -> BLOCKED."""
    return await _swap(uow, slot_id, SlotStatus.BLOCKED)


async def unblock_slot(uow: UnitOfWork, slot_id: str) -> ServiceSlot:
    """Lift a vendor hold: BLOCKED -> AVAILABLE."""
    return await _swap(uow, slot_id, SlotStatus.AVAILABLE)


async def update_slot(uow: UnitOfWork, slot_id: str, data: SlotReschedule) -> ServiceSlot:
    """
    Reschedule a slot. BOOKED slots belong to a booking and cannot move;
    status and booking_id are never touched here.
    """
    start_time, end_time = _ordered_window(data.start_time, data.end_time)
    values = {} if data.is_recurring is None else {"is_recurring": data.is_recurring}

    async with uow.transaction() as tx:
        slot = await _require_slot(tx, slot_id)
        if slot.status == SlotStatus.BOOKED.value:
            raise SlotConflictError([slot_id], message="Slot is booked and cannot be rescheduled")

        overlap = await tx.slots.find_overlapping(slot.service_id, start_time, end_time, exclude_slot_id=slot_id)
        if overlap is not None:
            raise SlotOverlapError(
                "Slot overlaps an existing slot for this service",
                details={"existing_slot_id": overlap.id},
            )

        # Booked between the read and this write
        if not await tx.slots.reschedule_unbooked(slot_id, start_time, end_time, **values):
            raise SlotConflictError([slot_id], message="Slot is booked and cannot be rescheduled")
        slot = await tx.slots.get(slot_id)

    logger.info("slot_rescheduled", slot_id=slot_id, start_time=start_time.isoformat(), end_time=end_time.isoformat())
    return slot


async def remove_slot(uow: UnitOfWork, slot_id: str) -> None:
    """Hard-delete a slot. BOOKED slots are part of a booking and stay."""
    async with uow.transaction() as tx:
        await _require_slot(tx, slot_id)
        if not await tx.slots.delete_unbooked(slot_id):
            raise SlotConflictError([slot_id], message="Slot is booked and cannot be removed")

    logger.info("slot_removed", slot_id=slot_id)


async def _swap(uow: UnitOfWork, slot_id: str, target: SlotStatus) -> ServiceSlot:
    async with uow.transaction() as tx:
        slot = await _require_slot(tx, slot_id)
        if slot.status == SlotStatus.BOOKED.value:
            raise SlotConflictError([slot_id], message="Slot is booked")
        current = ensure_slot_transition(slot.status, target)

        try:
            await tx.slots.compare_and_swap_status(slot_id, current, target)
        except StaleStateError as e:
            raise SlotConflictError([slot_id]) from e
        slot = await tx.slots.get(slot_id)

    logger.info("slot_status_changed", slot_id=slot_id, previous_status=current.value, status=target.value)
    return slot


def _ordered_window(start: datetime, end: datetime) -> tuple[datetime, datetime]:
    start_time, end_time = ensure_utc(start), ensure_utc(end)
    if start_time >= end_time:
        raise ValidationError(
            "Slot start_time must be before end_time",
            details={"start_time": start_time.isoformat(), "end_time": end_time.isoformat()},
        )
    return start_time, end_time


async def _require_slot(tx: Transaction, slot_id: str) -> ServiceSlot:
    slot = await tx.slots.get(slot_id)
    if slot is None:
        raise NotFoundError("ServiceSlot", slot_id)
    return slot
