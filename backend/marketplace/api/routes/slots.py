"""
Vendor slot endpoints and availability lookups.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.deps import get_unit_of_work
from marketplace.schemas.slot import SlotCreate, SlotReschedule, SlotResponse, TimeRange
from marketplace.services import slot_service
from marketplace.stores.unit_of_work import UnitOfWork

router = APIRouter(tags=["Slots"])


@router.post("/slots/", response_model=SlotResponse, status_code=status.HTTP_201_CREATED)
async def publish_slot(payload: SlotCreate, uow: UnitOfWork = Depends(get_unit_of_work)):
    return await slot_service.publish_slot(uow, payload)


@router.get("/slots/{slot_id}", response_model=SlotResponse)
async def get_slot(slot_id: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    return await slot_service.get_slot(uow, slot_id)


@router.patch("/slots/{slot_id}", response_model=SlotResponse)
async def update_slot(slot_id: str, payload: SlotReschedule, uow: UnitOfWork = Depends(get_unit_of_work)):
    """Move an unbooked slot to a new window."""
    return await slot_service.update_slot(uow, slot_id, payload)


@router.post("/slots/{slot_id}/block", response_model=SlotResponse)
async def block_slot(slot_id: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    return await slot_service.block_slot(uow, slot_id)


@router.post("/slots/{slot_id}/unblock", response_model=SlotResponse)
async def unblock_slot(slot_id: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    return await slot_service.unblock_slot(uow, slot_id)


@router.delete("/slots/{slot_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_slot(slot_id: str, uow: UnitOfWork = Depends(get_unit_of_work)):
    await slot_service.remove_slot(uow, slot_id)


@router.get("/services/{service_id}/slots", response_model=list[SlotResponse])
async def list_service_slots(
    service_id: str,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Every slot of the service, any status."""
    return await slot_service.list_slots(uow, service_id, start=start, end=end)


@router.get("/services/{service_id}/availability", response_model=list[SlotResponse])
async def find_available_slots(
    service_id: str,
    start: datetime = Query(...),
    end: datetime = Query(...),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """AVAILABLE slots falling entirely inside [start, end]."""
    return await slot_service.find_available_slots(uow, service_id, TimeRange(start=start, end=end))
