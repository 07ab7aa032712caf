from marketplace.models.service import Service
from marketplace.models.slot import ServiceSlot, SlotStatus
from marketplace.models.booking import Booking, BookingDetails, BookingStatus, Payment

__all__ = [
    "Service",
    "ServiceSlot", "SlotStatus",
    "Booking", "BookingDetails", "BookingStatus", "Payment",
]
