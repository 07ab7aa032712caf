"""
Booking lifecycle endpoints. Each route is a single ReservationEngine call.
"""

from typing import Optional

from fastapi import APIRouter, Depends, status

from marketplace.api.deps import get_reservation_engine
from marketplace.models.booking import BookingStatus
from marketplace.schemas.booking import (
    BookingCancel,
    BookingConfirm,
    BookingCreate,
    BookingDetailResponse,
    BookingResponse,
)
from marketplace.services.reservation_engine import ReservationEngine

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("/", response_model=BookingDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    payload: BookingCreate,
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    """
    Hold one or more slots for a customer.

    Returns 409 when any slot was taken in the meantime; the client should
    refresh availability and pick another slot.
    """
    return await engine.create_booking(
        customer_id=payload.customer_id,
        service_id=payload.service_id,
        slot_ids=payload.slot_ids,
        scheduled_date=payload.scheduled_date,
    )


@router.get("/", response_model=list[BookingResponse])
async def list_bookings(
    customer_id: Optional[str] = None,
    vendor_id: Optional[str] = None,
    status: Optional[BookingStatus] = None,
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    return await engine.list_bookings(customer_id=customer_id, vendor_id=vendor_id, status=status)


@router.get("/{booking_id}", response_model=BookingDetailResponse)
async def get_booking(
    booking_id: str,
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    return await engine.get_booking(booking_id)


@router.post("/{booking_id}/confirm", response_model=BookingDetailResponse)
async def confirm_booking(
    booking_id: str,
    payload: BookingConfirm,
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    """Record the price snapshot and the processor's payment result; PENDING -> ACTIVE."""
    return await engine.confirm_booking(booking_id, payload.details, payload.payment)


@router.post("/{booking_id}/complete", response_model=BookingDetailResponse)
async def complete_booking(
    booking_id: str,
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    return await engine.complete_booking(booking_id)


@router.post("/{booking_id}/cancel", response_model=BookingDetailResponse)
async def cancel_booking(
    booking_id: str,
    payload: Optional[BookingCancel] = None,
    engine: ReservationEngine = Depends(get_reservation_engine),
):
    """Cancel and release the booking's slots. Repeating the call is harmless."""
    reason = payload.reason if payload else None
    return await engine.cancel_booking(booking_id, reason=reason)
