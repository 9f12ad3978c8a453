"""
Pydantic schemas for ticket verification and check-in.
"""

from datetime import date, datetime, time
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.booking import BookingStatus


class TicketVerification(BaseModel):
    """Result of looking up a presented ticket."""

    ticket_number: str
    valid: bool = Field(..., description="True when the ticket may be admitted")
    status: Optional[BookingStatus] = None
    booking_id: Optional[UUID] = None
    booking_reference: Optional[str] = None
    attendee_name: Optional[str] = None
    quantity: Optional[int] = None
    event_title: Optional[str] = None
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    venue: Optional[str] = None
    check_in_time: Optional[datetime] = None
    message: str


class CheckInResponse(BaseModel):
    """Response for a successful admission."""

    ticket_number: str
    booking_id: UUID
    status: BookingStatus
    check_in_time: datetime
    attendee_name: str
    quantity: int
    message: str = "Check-in successful"
