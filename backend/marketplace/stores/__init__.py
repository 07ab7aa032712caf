"""
Persistence layer. Stores wrap one AsyncSession each; UnitOfWork hands out a
set of them bound to a single transaction.
"""

from .booking_store import BookingStore
from .service_store import ServiceStore
from .slot_store import SlotStore
from .unit_of_work import Transaction, UnitOfWork

__all__ = ["BookingStore", "ServiceStore", "SlotStore", "Transaction", "UnitOfWork"]
