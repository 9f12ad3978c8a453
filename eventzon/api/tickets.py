"""
Public ticket verification endpoint, the target of the QR code link.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas.ticket import TicketVerification
from ..services.ticket_service import TicketService

router = APIRouter(tags=["tickets"])


@router.get("/verify-ticket/{ticket_number}", response_model=TicketVerification)
async def verify_ticket(
    ticket_number: str,
    db: AsyncSession = Depends(get_db)
):
    """
    Check whether a ticket may be admitted.

    Unknown tickets are reported as invalid rather than as an error.
    """
    return await TicketService(db).verify_ticket(ticket_number)
