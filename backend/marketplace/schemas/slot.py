"""
Pydantic schemas for service slots and availability queries.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from marketplace.core.clock import ensure_utc
from marketplace.core.exceptions import ValidationError


class SlotCreate(BaseModel):
    service_id: str = Field(..., min_length=1, max_length=36)
    start_time: datetime
    end_time: datetime
    # BOOKED is reachable only through a reservation
    status: Literal["AVAILABLE", "BLOCKED"] = "AVAILABLE"
    is_recurring: bool = False


class SlotReschedule(BaseModel):
    """Move a slot that is not BOOKED. Status and booking link are left alone."""

    start_time: datetime
    end_time: datetime
    is_recurring: Optional[bool] = None


class SlotResponse(BaseModel):
    id: str
    service_id: str
    booking_id: Optional[str]
    start_time: datetime
    end_time: datetime
    status: str
    is_recurring: bool

    model_config = {"from_attributes": True}


@dataclass(frozen=True)
class TimeRange:
    """
    Window a slot must fall entirely inside to match an availability lookup.
    Bounds are normalized to UTC; a naive bound is taken as UTC.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", ensure_utc(self.start))
        object.__setattr__(self, "end", ensure_utc(self.end))
        if self.start >= self.end:
            raise ValidationError("time range start must be before its end")
