"""
Pydantic schemas for the service catalog.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, JsonValue, field_validator


class ServiceCreate(BaseModel):
    vendor_id: str = Field(..., min_length=1, max_length=36)
    category_id: str = Field(..., min_length=1, max_length=36)
    unit_id: str = Field(..., min_length=1, max_length=36)
    title: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    base_price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    is_active: bool = True
    dynamic_attributes: Optional[JsonValue] = None


class ServiceResponse(BaseModel):
    id: str
    vendor_id: str
    category_id: str
    unit_id: str
    title: str
    description: Optional[str]
    base_price: Decimal
    is_active: bool
    dynamic_attributes: Optional[JsonValue]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ServiceSnapshot(ServiceResponse):
    """Frozen copy of a Service stored with BookingDetails for audit."""

    def to_json(self) -> JsonValue:
        return self.model_dump(mode="json")


class ServiceUpdate(BaseModel):
    """Partial vendor edit. Bookings already confirmed keep their snapshot."""

    category_id: Optional[str] = Field(None, min_length=1, max_length=36)
    unit_id: Optional[str] = Field(None, min_length=1, max_length=36)
    title: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = Field(None, max_length=1000)
    base_price: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    dynamic_attributes: Optional[JsonValue] = None

    @field_validator("category_id", "unit_id", "title", "base_price")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value
