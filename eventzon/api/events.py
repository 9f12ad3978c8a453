"""
Event browsing and management API endpoints.
"""

import math
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.booking import BookingResponse, EventBookingRequest
from ..schemas.event import EventCreate, EventListResponse, EventResponse, EventUpdate
from ..services.booking_service import BookingService
from ..services.event_service import EventService
from ..utils.dependencies import RequestContext, get_current_admin_user, get_current_user


router = APIRouter(prefix="/events", tags=["events"])


def get_event_service(db: AsyncSession = Depends(get_db)) -> EventService:
    """Dependency to get event service instance."""
    return EventService(db)


@router.get("", response_model=EventListResponse)
async def list_events(
    page: int = Query(1, ge=1, description="Page number"),
    size: int = Query(20, ge=1, le=100, description="Page size"),
    search: Optional[str] = Query(None, description="Search in title, description or venue"),
    city: Optional[str] = Query(None, description="Filter by city"),
    region: Optional[str] = Query(None, description="Filter by region"),
    category: Optional[str] = Query(None, description="Filter by category"),
    available_only: bool = Query(False, description="Show only events with tickets left"),
    event_service: EventService = Depends(get_event_service)
):
    """
    Get list of events with filtering and pagination.

    Cancelled events are never listed.
    """
    events, total = await event_service.get_events(
        search=search,
        city=city,
        region=region,
        category=category,
        available_only=available_only,
        page=page,
        size=size,
    )
    pages = math.ceil(total / size) if total > 0 else 1

    return EventListResponse(
        events=events,
        total=total,
        page=page,
        size=size,
        pages=pages
    )


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    event_data: EventCreate,
    context: RequestContext = Depends(get_current_admin_user),
    event_service: EventService = Depends(get_event_service)
):
    """
    Create a new event.

    Only admin users can create events.
    """
    return await event_service.create_event(event_data, organizer_id=context.user_id)


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: UUID,
    event_service: EventService = Depends(get_event_service)
):
    """
    Get event details by ID.
    """
    return await event_service.get_event_by_id(event_id)


@router.put("/{event_id}", response_model=EventResponse)
async def update_event(
    event_id: UUID,
    event_data: EventUpdate,
    context: RequestContext = Depends(get_current_admin_user),
    event_service: EventService = Depends(get_event_service)
):
    """
    Update an existing event. Only fields sent are changed.

    Only admin users can update events. Sending ``status: cancelled``
    cancels the event; its tickets stop verifying and no new bookings are
    accepted.
    """
    return await event_service.update_event(event_id, event_data)


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_id: UUID,
    context: RequestContext = Depends(get_current_admin_user),
    event_service: EventService = Depends(get_event_service)
):
    """
    Delete an event together with its bookings and cart lines.

    Only admin users can delete events.
    """
    await event_service.delete_event(event_id)


@router.post("/{event_id}/book", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_event(
    event_id: UUID,
    request: EventBookingRequest,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Book tickets directly from the event page, bypassing the cart."""
    booking_service = BookingService(db)
    booking = await booking_service.create_booking(
        context.user_id, event_id, request.quantity, request.attendee
    )
    return BookingResponse.from_booking(await booking_service.get_booking(booking.id))
