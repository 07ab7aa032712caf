"""
Pydantic schemas for booking lifecycle requests and responses.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, JsonValue

from marketplace.schemas.slot import SlotResponse


class BookingCreate(BaseModel):
    customer_id: str = Field(..., min_length=1, max_length=36)
    service_id: str = Field(..., min_length=1, max_length=36)
    slot_ids: list[str] = Field(..., min_length=1)
    scheduled_date: datetime


class BookingDetailsInput(BaseModel):
    """Price snapshot computed upstream; the engine only checks that it adds up."""

    unit_price: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    quantity: int = Field(1, gt=0)
    tax_total: Decimal = Field(Decimal("0"), ge=0, max_digits=12, decimal_places=2)
    grand_total: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)


class PaymentInput(BaseModel):
    """Result already obtained from the payment processor."""

    amount: Decimal = Field(..., ge=0, max_digits=12, decimal_places=2)
    processor_id: str = Field(..., min_length=1, max_length=255)
    status: str = Field(..., min_length=1, max_length=50)


class BookingConfirm(BaseModel):
    details: BookingDetailsInput
    payment: PaymentInput


class BookingCancel(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class BookingDetailsResponse(BaseModel):
    service_snapshot: JsonValue
    unit_price: Decimal
    quantity: int
    tax_total: Decimal
    grand_total: Decimal
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentResponse(BaseModel):
    id: str
    amount: Decimal
    processor_id: str
    status: str
    refund_requested_at: Optional[datetime]

    model_config = {"from_attributes": True}


class BookingResponse(BaseModel):
    id: str
    customer_id: str
    service_id: str
    status: str
    scheduled_date: datetime
    created_at: datetime
    confirmed_at: Optional[datetime]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]

    model_config = {"from_attributes": True}


class BookingDetailResponse(BookingResponse):
    slots: list[SlotResponse]
    details: Optional[BookingDetailsResponse]
    payment: Optional[PaymentResponse]


class RefundIntent(BaseModel):
    """Emitted when a paid booking is cancelled; settled by an external refund worker."""

    booking_id: str
    payment_id: str
    processor_id: str
    amount: Decimal
    reason: Optional[str]
    requested_at: datetime
