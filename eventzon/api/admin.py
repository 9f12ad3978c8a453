"""
Admin endpoints: check-in, analytics report and booking listings.
"""

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.booking import BookingStatus
from ..schemas.analytics import AnalyticsReport
from ..schemas.booking import BookingListResponse, BookingResponse
from ..schemas.ticket import CheckInResponse
from ..services.analytics_service import AnalyticsService
from ..services.booking_service import BookingService
from ..utils.dependencies import RequestContext, get_current_admin_user
from ..utils.exceptions import ValidationError

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/check-in/{ticket_number}", response_model=CheckInResponse)
async def check_in(
    ticket_number: str,
    context: RequestContext = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Admit a ticket holder at the door.

    A ticket can be checked in once; a second scan is rejected.
    """
    booking = await BookingService(db).check_in(ticket_number)
    return CheckInResponse(
        ticket_number=booking.ticket_number,
        booking_id=booking.id,
        status=booking.status,
        check_in_time=booking.check_in_time,
        attendee_name=booking.attendee_name,
        quantity=booking.quantity,
    )


@router.get("/analytics", response_model=AnalyticsReport)
async def get_analytics_report(
    start_date: Optional[date] = Query(None, description="Start date for filtering (inclusive)"),
    end_date: Optional[date] = Query(None, description="End date for filtering (inclusive)"),
    context: RequestContext = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the booking analytics report.

    Requires admin privileges.
    """
    if start_date and end_date and start_date > end_date:
        raise ValidationError(
            "start_date must not be after end_date",
            field_errors={"start_date": ["must not be after end_date"]}
        )
    return await AnalyticsService(db).get_report(start_date, end_date)


@router.get("/bookings", response_model=BookingListResponse)
async def list_all_bookings(
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(50, ge=1, le=100, description="Page size"),
    offset: int = Query(0, ge=0, description="Number of bookings to skip"),
    context: RequestContext = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    bookings, total = await BookingService(db).get_all_bookings(status_filter, limit, offset)
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(booking) for booking in bookings],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/events/{event_id}/bookings", response_model=BookingListResponse)
async def list_event_bookings(
    event_id: UUID,
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(50, ge=1, le=100, description="Page size"),
    offset: int = Query(0, ge=0, description="Number of bookings to skip"),
    context: RequestContext = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
):
    bookings, total = await BookingService(db).get_event_bookings(event_id, status_filter, limit, offset)
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(booking) for booking in bookings],
        total=total,
        limit=limit,
        offset=offset,
    )
