from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from decimal import Decimal
from datetime import datetime
from enum import Enum
from marketplace.utils.time_utils import to_utc_naive


class BookingStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class PaymentStatus(str, Enum):
    pending = "pending"
    paid = "paid"
    refunded = "refunded"


# Statuses that occupy a slot
ACTIVE_STATUSES = frozenset(
    {BookingStatus.pending, BookingStatus.confirmed, BookingStatus.in_progress}
)
TERMINAL_STATUSES = frozenset({BookingStatus.completed, BookingStatus.cancelled})


class BookingCreate(BaseModel):
    service_id: str = Field(..., min_length=1, description="ID of the service being booked")
    date: datetime = Field(..., description="Requested slot (ISO-8601 timestamp)")
    notes: Optional[str] = Field(None, max_length=2000, description="Notes for the provider")

    @field_validator("date")
    @classmethod
    def normalize_date(cls, v):
        # Slots are compared as naive UTC, so 10:00Z and 12:00+02:00 collide
        return to_utc_naive(v)


class BookingTransition(BaseModel):
    status: BookingStatus = Field(..., description="Requested target status")
    notes: Optional[str] = Field(None, max_length=2000, description="Replacement notes")


class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    provider_id: str
    service_id: str
    date: datetime
    status: BookingStatus = BookingStatus.pending
    notes: Optional[str] = None
    total_price: Decimal
    payment_status: PaymentStatus = PaymentStatus.pending
    created_at: datetime
    updated_at: datetime


class BookingDetail(BookingResponse):
    can_review: bool = False


class BookingList(BaseModel):
    bookings: List[BookingResponse]
    total: int
    skip: int
    limit: int


class MessageResponse(BaseModel):
    message: str
