"""
ServiceSlot model: a bookable time window for a Service.

Key design decisions:
- `status` and `booking_id` only ever change through the conditional update in
  SlotStore.compare_and_swap_status, so two reservations racing on one slot
  cannot both win
- CHECK constraint pins `booking_id IS NOT NULL <=> status = 'BOOKED'`
- composite index serves the availability query (service, status, start)
"""

import enum

from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, TimestampMixin


class SlotStatus(str, enum.Enum):
    AVAILABLE = "AVAILABLE"
    BOOKED = "BOOKED"
    BLOCKED = "BLOCKED"


class ServiceSlot(Base, TimestampMixin):
    __tablename__ = "service_slots"

    id = Column(String(36), primary_key=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=True, index=True)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=SlotStatus.AVAILABLE.value)
    is_recurring = Column(Boolean, nullable=False, default=False)

    service = relationship("Service", back_populates="slots", lazy="raise")
    booking = relationship("Booking", back_populates="slots", lazy="raise")

    __table_args__ = (
        CheckConstraint("start_time < end_time", name="check_slot_time_range"),
        CheckConstraint("status IN ('AVAILABLE', 'BOOKED', 'BLOCKED')", name="check_slot_status"),
        CheckConstraint(
            "(status = 'BOOKED' AND booking_id IS NOT NULL) OR (status <> 'BOOKED' AND booking_id IS NULL)",
            name="check_slot_booking_link",
        ),
        Index("ix_service_slots_availability", "service_id", "status", "start_time"),
    )

    def __repr__(self) -> str:
        return f"<ServiceSlot(id={self.id}, service={self.service_id}, status={self.status})>"
