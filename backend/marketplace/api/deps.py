"""
FastAPI dependencies wiring the engine to its collaborators.
Tests replace get_unit_of_work, get_clock and get_refund_sink through
app.dependency_overrides.
"""

from datetime import timedelta

from fastapi import Depends

from marketplace.core.clock import SystemClock
from marketplace.core.config import get_settings
from marketplace.db.session import get_session_factory
from marketplace.services.interfaces.refund_sink import RefundSink
from marketplace.services.refund_factory import get_refund_sink
from marketplace.services.reservation_engine import ReservationEngine
from marketplace.stores.unit_of_work import UnitOfWork


def get_unit_of_work() -> UnitOfWork:
    return UnitOfWork(get_session_factory())


def get_clock() -> SystemClock:
    return SystemClock()


def build_engine(uow: UnitOfWork, clock: SystemClock, refund_sink: RefundSink) -> ReservationEngine:
    settings = get_settings()
    return ReservationEngine(
        uow,
        clock=clock,
        refund_sink=refund_sink,
        hold_ttl=timedelta(minutes=settings.HOLD_TTL_MINUTES),
        max_slots_per_booking=settings.MAX_SLOTS_PER_BOOKING,
    )


def get_reservation_engine(
    uow: UnitOfWork = Depends(get_unit_of_work),
    clock: SystemClock = Depends(get_clock),
    refund_sink: RefundSink = Depends(get_refund_sink),
) -> ReservationEngine:
    return build_engine(uow, clock, refund_sink)
