"""
Booking and ServiceSlot state machines.

Booking:

            create            confirm            complete
    (none) -------> PENDING -------> ACTIVE -------> COMPLETED
                       |                |
                       | cancel         | cancel
                       v                v
                    CANCELLED <---------+

COMPLETED and CANCELLED are terminal.

ServiceSlot: AVAILABLE <-> BOOKED follows the owning booking,
AVAILABLE <-> BLOCKED is a vendor hold independent of bookings.
"""

from marketplace.core.exceptions import InvalidTransitionError, TerminalStateError
from marketplace.models.booking import BookingStatus
from marketplace.models.slot import SlotStatus

BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.ACTIVE, BookingStatus.CANCELLED}),
    BookingStatus.ACTIVE: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}

TERMINAL_BOOKING_STATES = frozenset(
    status for status, targets in BOOKING_TRANSITIONS.items() if not targets
)

# States whose booking still holds its slots
HOLDING_BOOKING_STATES = frozenset({BookingStatus.PENDING, BookingStatus.ACTIVE})

SLOT_TRANSITIONS: dict[SlotStatus, frozenset[SlotStatus]] = {
    SlotStatus.AVAILABLE: frozenset({SlotStatus.BOOKED, SlotStatus.BLOCKED}),
    SlotStatus.BOOKED: frozenset({SlotStatus.AVAILABLE}),
    SlotStatus.BLOCKED: frozenset({SlotStatus.AVAILABLE}),
}


def can_transition_booking(current: BookingStatus, target: BookingStatus) -> bool:
    return target in BOOKING_TRANSITIONS[BookingStatus(current)]


def ensure_booking_transition(current: str, target: BookingStatus) -> BookingStatus:
    """
    Validate a Booking transition and return the parsed current status.

    Raises TerminalStateError when `current` is terminal and
    InvalidTransitionError for any other edge missing from the table.
    """
    current_status = BookingStatus(current)
    if current_status in TERMINAL_BOOKING_STATES:
        raise TerminalStateError("Booking", current_status.value, target.value)
    if not can_transition_booking(current_status, target):
        raise InvalidTransitionError("Booking", current_status.value, target.value)
    return current_status


def ensure_slot_transition(current: str, target: SlotStatus) -> SlotStatus:
    current_status = SlotStatus(current)
    if target not in SLOT_TRANSITIONS[current_status]:
        raise InvalidTransitionError("ServiceSlot", current_status.value, target.value)
    return current_status
