"""
Booking aggregate: Booking, BookingDetails and Payment.

Key design decisions:
- Booking.status moves only through BookingStore.update_status (compare-and-swap)
- `created_at` marks the start of the hold; the expiry sweep reads it through
  the (status, created_at) index
- BookingDetails and Payment are 1:1 with Booking (unique booking_id) and are
  written once, at confirmation
- money columns are NUMERIC and surface as Decimal, never float
"""

import enum

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, JSON, Numeric, String
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, TimestampMixin, utcnow


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True)
    customer_id = Column(String(36), nullable=False, index=True)
    service_id = Column(String(36), ForeignKey("services.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    scheduled_date = Column(DateTime(timezone=True), nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancellation_reason = Column(String(255), nullable=True)

    service = relationship("Service", lazy="raise")
    slots = relationship("ServiceSlot", back_populates="booking", lazy="raise", order_by="ServiceSlot.start_time")
    details = relationship("BookingDetails", back_populates="booking", uselist=False, lazy="raise")
    payment = relationship("Payment", back_populates="booking", uselist=False, lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "status IN ('PENDING', 'ACTIVE', 'COMPLETED', 'CANCELLED')",
            name="check_booking_status",
        ),
        Index("ix_bookings_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, customer={self.customer_id}, status={self.status})>"


class BookingDetails(Base):
    __tablename__ = "booking_details"

    id = Column(String(36), primary_key=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, unique=True)
    service_snapshot = Column(JSON, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    tax_total = Column(Numeric(12, 2), nullable=False)
    grand_total = Column(Numeric(12, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    booking = relationship("Booking", back_populates="details", lazy="raise")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="check_details_quantity_positive"),
    )


class Payment(Base, TimestampMixin):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True)
    booking_id = Column(String(36), ForeignKey("bookings.id"), nullable=False, unique=True)
    amount = Column(Numeric(12, 2), nullable=False)
    processor_id = Column(String(255), nullable=False)
    status = Column(String(50), nullable=False)
    refund_requested_at = Column(DateTime(timezone=True), nullable=True)

    booking = relationship("Booking", back_populates="payment", lazy="raise")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, booking={self.booking_id}, status={self.status})>"
