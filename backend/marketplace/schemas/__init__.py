from marketplace.schemas.service import ServiceCreate, ServiceResponse, ServiceSnapshot, ServiceUpdate
from marketplace.schemas.slot import SlotCreate, SlotReschedule, SlotResponse, TimeRange
from marketplace.schemas.booking import (
    BookingCancel,
    BookingConfirm,
    BookingCreate,
    BookingDetailResponse,
    BookingDetailsInput,
    BookingResponse,
    PaymentInput,
    RefundIntent,
)

__all__ = [
    "ServiceCreate", "ServiceResponse", "ServiceSnapshot", "ServiceUpdate",
    "SlotCreate", "SlotReschedule", "SlotResponse", "TimeRange",
    "BookingCreate", "BookingConfirm", "BookingCancel", "BookingDetailsInput", "PaymentInput",
    "BookingResponse", "BookingDetailResponse", "RefundIntent",
]
