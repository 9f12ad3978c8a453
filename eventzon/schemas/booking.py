"""
Pydantic schemas for booking-related API requests and responses.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field

from ..models.booking import BookingStatus


class AttendeeInfo(BaseModel):
    """Person named on the ticket."""

    name: str = Field(..., min_length=1, max_length=200, description="Attendee full name")
    email: EmailStr = Field(..., description="Address receiving the ticket")
    phone: Optional[str] = Field(None, max_length=50, description="Attendee phone number")


class BookingCreateRequest(BaseModel):
    """Schema for creating a new booking."""

    event_id: UUID = Field(..., description="ID of the event to book")
    quantity: int = Field(..., ge=1, description="Number of tickets to book")
    attendee: AttendeeInfo


class EventBookingRequest(BaseModel):
    """Schema for booking directly from an event page."""

    quantity: int = Field(..., ge=1, description="Number of tickets to book")
    attendee: AttendeeInfo


class CheckoutRequest(BaseModel):
    """Schema for checking out the whole cart."""

    attendee: AttendeeInfo


class BookingResponse(BaseModel):
    """Schema for booking responses."""

    id: UUID
    user_id: UUID
    event_id: UUID
    quantity: int
    total_amount: Decimal
    currency: str
    status: BookingStatus
    booking_reference: str
    ticket_number: str
    attendee_name: str
    attendee_email: str
    attendee_phone: Optional[str] = None
    check_in_time: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    # Related data
    event_title: Optional[str] = None
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    venue: Optional[str] = None
    city: Optional[str] = None

    model_config = {"from_attributes": True}

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        """Build a response, flattening the loaded event when present."""
        response = cls.model_validate(booking)
        event = booking.__dict__.get("event")
        if event is not None:
            response.event_title = event.title
            response.event_date = event.event_date
            response.start_time = event.start_time
            response.venue = event.venue
            response.city = event.city
        return response


class BookingListResponse(BaseModel):
    """Schema for booking list responses."""

    bookings: List[BookingResponse]
    total: int
    limit: int
    offset: int


class CheckoutFailure(BaseModel):
    """A cart line that could not be booked."""

    event_id: UUID
    quantity: int
    error_code: str
    message: str


class CheckoutResponse(BaseModel):
    """Outcome of a cart checkout."""

    bookings: List[BookingResponse]
    failures: List[CheckoutFailure] = []
    message: str = "Checkout processed"


class CancelBookingResponse(BaseModel):
    """Response for booking cancellation."""

    booking: BookingResponse
    message: str = "Booking cancelled successfully"
