"""
Pydantic models for salon bookings.

A booking carries snapshot copies of the service name and price taken
when it was made; later catalog edits never rewrite them.  Only the
service duration is looked up live (see ``AvailabilityService``).
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

BookingStatus = Literal["active", "cancelled"]

ACTIVE = "active"
CANCELLED = "cancelled"


class BookingBase(BaseModel):
    client_name: str = Field(..., min_length=1, examples=["Jane Wanjiku"])
    # Stored in canonical digit form, see ``core.phone.normalize_phone``.
    phone_number: str = Field(..., examples=["254712345678"])
    service_id: str = Field(..., min_length=1, examples=["gumgell"])
    service_name: str = Field(..., examples=["Gumgell"])
    price_minor_units: int = Field(..., ge=0, examples=[1500])
    appointment_start: datetime = Field(..., examples=["2024-03-10T10:00:00"])


class BookingCreate(BookingBase):
    """Schema for inserting a booking."""

    status: BookingStatus = ACTIVE


class Booking(BookingBase):
    """A booking as stored.

    ``id`` is ``None`` only for instances built by callers that have not
    been inserted yet; ``BookingService.update`` rejects those.
    """

    id: Optional[int] = None
    status: BookingStatus = ACTIVE

    model_config = {
        "from_attributes": True,
        "validate_assignment": True,
    }

    @property
    def is_active(self) -> bool:
        return self.status == ACTIVE


class BookingInterval(BaseModel):
    """A booking together with its resolved time span.

    When the booking's service no longer resolves, ``duration_minutes``
    is 0 and ``end`` equals ``start``.
    """

    booking: Booking
    start: datetime
    end: datetime
    duration_minutes: int = 0
