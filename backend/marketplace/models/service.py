"""
Service model: a vendor-owned catalog entry.

Key design decisions:
- vendor/category/unit ids reference collaborators outside this system, so
  they are plain indexed strings rather than foreign keys
- never hard-deleted while bookings reference it; `is_active` soft-deactivates
- `dynamic_attributes` is an opaque JSON document owned by the vendor
"""

from sqlalchemy import Boolean, CheckConstraint, Column, Index, JSON, Numeric, String
from sqlalchemy.orm import relationship

from marketplace.db.base import Base, TimestampMixin


class Service(Base, TimestampMixin):
    __tablename__ = "services"

    id = Column(String(36), primary_key=True)
    vendor_id = Column(String(36), nullable=False, index=True)
    category_id = Column(String(36), nullable=False)
    unit_id = Column(String(36), nullable=False)
    title = Column(String(255), nullable=False)
    description = Column(String(1000), nullable=True)
    base_price = Column(Numeric(12, 2), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    dynamic_attributes = Column(JSON, nullable=True)

    slots = relationship("ServiceSlot", back_populates="service", lazy="raise")

    __table_args__ = (
        CheckConstraint("base_price > 0", name="check_service_base_price_positive"),
        Index("ix_services_vendor_active", "vendor_id", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<Service(id={self.id}, vendor={self.vendor_id}, active={self.is_active})>"
