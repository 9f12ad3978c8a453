"""
Event schemas for request/response validation.
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator, ConfigDict

from ..models.event import EventStatus
from ..utils.local_time import local_today


class EventBase(BaseModel):
    """Base event schema with common fields."""

    title: str = Field(..., min_length=1, max_length=255, description="Event title")
    description: Optional[str] = Field(None, description="Event description")
    category: Optional[str] = Field(None, max_length=100, description="Event category")
    venue: str = Field(..., min_length=1, max_length=255, description="Event venue")
    address: Optional[str] = Field(None, max_length=500, description="Street address")
    city: Optional[str] = Field(None, max_length=100, description="City")
    region: Optional[str] = Field(None, max_length=100, description="Region of Cameroon")
    country: str = Field("Cameroun", max_length=100, description="Country")
    event_date: date = Field(..., description="Event date")
    start_time: time = Field(..., description="Start time")
    end_time: Optional[time] = Field(None, description="End time")
    image_url: Optional[str] = Field(None, max_length=500, description="Poster image URL")
    price: Decimal = Field(..., ge=0, description="Ticket price")
    max_attendees: int = Field(..., gt=0, description="Total ticket inventory")


class EventCreate(EventBase):
    """Schema for creating a new event."""

    @field_validator('event_date')
    @classmethod
    def event_date_must_not_be_past(cls, v):
        """Validate that event date is not in the past."""
        if v < local_today():
            raise ValueError('Event date must not be in the past')
        return v


class EventUpdate(BaseModel):
    """Schema for a partial event update. Only fields sent are changed."""

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, max_length=100)
    venue: Optional[str] = Field(None, min_length=1, max_length=255)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    region: Optional[str] = Field(None, max_length=100)
    country: Optional[str] = Field(None, max_length=100)
    event_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    image_url: Optional[str] = Field(None, max_length=500)
    price: Optional[Decimal] = Field(None, ge=0)
    max_attendees: Optional[int] = Field(None, gt=0, description="New total inventory; tickets already sold are kept")
    status: Optional[EventStatus] = Field(None, description="active or cancelled")

    @field_validator('title', 'venue', 'country', 'event_date', 'start_time', 'price', 'max_attendees', 'status')
    @classmethod
    def required_fields_not_null(cls, v):
        if v is None:
            raise ValueError('Field cannot be cleared')
        return v

    @field_validator('event_date')
    @classmethod
    def event_date_must_not_be_past(cls, v):
        if v < local_today():
            raise ValueError('Event date must not be in the past')
        return v

    @field_validator('status')
    @classmethod
    def status_is_settable(cls, v):
        if v == EventStatus.SOLD_OUT:
            raise ValueError('sold_out follows from the inventory and cannot be set')
        return v


class EventResponse(EventBase):
    """Schema for event response."""

    id: UUID
    organizer_id: Optional[UUID] = None
    currency: str
    available_tickets: int
    status: EventStatus
    version: int
    created_at: datetime
    updated_at: datetime
    is_sold_out: bool

    model_config = ConfigDict(from_attributes=True)


class EventListResponse(BaseModel):
    """Schema for paginated event list response."""

    events: list[EventResponse]
    total: int
    page: int
    size: int
    pages: int
