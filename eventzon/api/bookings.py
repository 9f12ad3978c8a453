"""
FastAPI routes for booking management and ticket downloads.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.booking import BookingStatus
from ..schemas.booking import (
    BookingCreateRequest,
    BookingListResponse,
    BookingResponse,
    CancelBookingResponse,
)
from ..services.booking_service import BookingService
from ..services.ticket_service import TicketService
from ..utils.dependencies import RequestContext, get_current_user

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("", response_model=BookingListResponse)
async def get_user_bookings(
    status_filter: Optional[List[BookingStatus]] = Query(None, alias="status", description="Filter by status"),
    limit: int = Query(50, ge=1, le=100, description="Page size"),
    offset: int = Query(0, ge=0, description="Number of bookings to skip"),
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the caller's bookings, newest first."""
    bookings, total = await BookingService(db).get_user_bookings(
        context.user_id, status_filter, limit, offset
    )
    return BookingListResponse(
        bookings=[BookingResponse.from_booking(booking) for booking in bookings],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    request: BookingCreateRequest,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Book tickets for an event.

    The booking is confirmed immediately and the ticket is e-mailed to the
    attendee in the background.
    """
    booking_service = BookingService(db)
    booking = await booking_service.create_booking(
        context.user_id, request.event_id, request.quantity, request.attendee
    )
    return BookingResponse.from_booking(await booking_service.get_booking(booking.id))


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    # Admins may read any booking
    owner = None if context.is_admin else context.user_id
    booking = await BookingService(db).get_booking(booking_id, owner)
    return BookingResponse.from_booking(booking)


@router.delete("/{booking_id}", response_model=CancelBookingResponse)
async def cancel_booking(
    booking_id: UUID,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Cancel a booking and put its tickets back on sale.

    Cancelling an already cancelled booking returns it unchanged.
    """
    owner = None if context.is_admin else context.user_id
    booking = await BookingService(db).cancel_booking(booking_id, owner)
    return CancelBookingResponse(booking=BookingResponse.from_booking(booking))


@router.get("/{booking_id}/ticket")
async def download_ticket(
    booking_id: UUID,
    locale: Optional[str] = Query(None, pattern="^(fr|en)$", description="Ticket language"),
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Download the printable ticket."""
    owner = None if context.is_admin else context.user_id
    _, _, document = await TicketService(db).build_ticket_artifacts(booking_id, owner, locale)
    return Response(
        content=document.content,
        media_type=document.content_type,
        headers={"Content-Disposition": f'attachment; filename="{document.filename}"'},
    )


@router.get("/{booking_id}/qr")
async def get_ticket_qr(
    booking_id: UUID,
    context: RequestContext = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the ticket's verification QR code as a PNG image."""
    owner = None if context.is_admin else context.user_id
    _, qr, _ = await TicketService(db).build_ticket_artifacts(booking_id, owner)
    return Response(content=qr.png, media_type="image/png")
