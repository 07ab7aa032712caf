"""
Tests for the booking and slot state machines.
"""

import pytest

from marketplace.core.exceptions import InvalidTransitionError, TerminalStateError
from marketplace.models import BookingStatus, SlotStatus
from marketplace.services.transitions import (
    TERMINAL_BOOKING_STATES,
    can_transition_booking,
    ensure_booking_transition,
    ensure_slot_transition,
)


@pytest.mark.parametrize(
    "current,target",
    [
        (BookingStatus.PENDING, BookingStatus.ACTIVE),
        (BookingStatus.PENDING, BookingStatus.CANCELLED),
        (BookingStatus.ACTIVE, BookingStatus.COMPLETED),
        (BookingStatus.ACTIVE, BookingStatus.CANCELLED),
    ],
)
def test_allowed_booking_transitions(current, target):
    assert can_transition_booking(current, target)
    assert ensure_booking_transition(current.value, target) is current


@pytest.mark.parametrize(
    "current,target",
    [
        (BookingStatus.PENDING, BookingStatus.COMPLETED),
        (BookingStatus.ACTIVE, BookingStatus.ACTIVE),
        (BookingStatus.PENDING, BookingStatus.PENDING),
    ],
)
def test_missing_booking_edges_rejected(current, target):
    with pytest.raises(InvalidTransitionError) as exc_info:
        ensure_booking_transition(current.value, target)
    assert not isinstance(exc_info.value, TerminalStateError)
    assert exc_info.value.current == current.value
    assert exc_info.value.target == target.value


@pytest.mark.parametrize("terminal", [BookingStatus.COMPLETED, BookingStatus.CANCELLED])
@pytest.mark.parametrize("target", list(BookingStatus))
def test_terminal_states_accept_nothing(terminal, target):
    with pytest.raises(TerminalStateError) as exc_info:
        ensure_booking_transition(terminal.value, target)
    assert exc_info.value.code == "terminal_state"


def test_terminal_set():
    assert TERMINAL_BOOKING_STATES == {BookingStatus.COMPLETED, BookingStatus.CANCELLED}


def test_slot_transitions():
    assert ensure_slot_transition("AVAILABLE", SlotStatus.BOOKED) is SlotStatus.AVAILABLE
    assert ensure_slot_transition("AVAILABLE", SlotStatus.BLOCKED) is SlotStatus.AVAILABLE
    assert ensure_slot_transition("BOOKED", SlotStatus.AVAILABLE) is SlotStatus.BOOKED
    assert ensure_slot_transition("BLOCKED", SlotStatus.AVAILABLE) is SlotStatus.BLOCKED

    # Blocked slots are never booked directly, booked slots never blocked
    with pytest.raises(InvalidTransitionError):
        ensure_slot_transition("BLOCKED", SlotStatus.BOOKED)
    with pytest.raises(InvalidTransitionError):
        ensure_slot_transition("BOOKED", SlotStatus.BLOCKED)
