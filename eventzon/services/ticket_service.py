"""
Ticket artifacts: QR verification payload, printable ticket document and
ticket verification.
"""

import base64
import html
import io
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

import qrcode
import qrcode.constants
from qrcode.exceptions import DataOverflowError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import get_settings
from ..models.booking import Booking, BookingStatus
from ..models.event import Event, EventStatus
from ..schemas.ticket import TicketVerification
from ..utils.exceptions import BookingNotFoundError, EncodingError
from ..utils.formatting import format_amount, format_date, format_time

logger = logging.getLogger(__name__)

MAX_QR_VERSION = 40


@dataclass(frozen=True)
class TicketQRCode:
    """Encoded verification payload."""
    payload: str
    png: bytes
    version: int

    @property
    def data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.png).decode("ascii")


@dataclass(frozen=True)
class TicketDocument:
    """Printable ticket, attached to e-mails and served for download."""
    filename: str
    content_type: str
    content: bytes


TICKET_LABELS = {
    "fr": {
        "subtitle": "Billet d'Événement - Cameroun",
        "event": "Détails de l'événement",
        "venue": "Lieu",
        "address": "Adresse",
        "date": "Date",
        "time": "Heure",
        "attendee": "Participant",
        "name": "Nom",
        "email": "Email",
        "phone": "Téléphone",
        "payment": "Paiement",
        "tickets": "Nombre de billets",
        "total": "Total",
        "reference": "Référence",
        "ticket_number": "Numéro de billet",
        "scan": "Scannez pour vérifier",
        "instructions": "Instructions",
        "instruction_lines": [
            "Présentez ce billet (imprimé ou sur mobile) à l'entrée.",
            "Arrivez au moins 15 minutes avant le début de l'événement.",
            "Munissez-vous d'une pièce d'identité valide.",
            "Ce billet est personnel et non transférable.",
        ],
    },
    "en": {
        "subtitle": "Event Ticket - Cameroon",
        "event": "Event details",
        "venue": "Venue",
        "address": "Address",
        "date": "Date",
        "time": "Time",
        "attendee": "Attendee",
        "name": "Name",
        "email": "Email",
        "phone": "Phone",
        "payment": "Payment",
        "tickets": "Number of tickets",
        "total": "Total",
        "reference": "Reference",
        "ticket_number": "Ticket number",
        "scan": "Scan to verify",
        "instructions": "Instructions",
        "instruction_lines": [
            "Show this ticket (printed or on your phone) at the entrance.",
            "Arrive at least 15 minutes before the event starts.",
            "Bring a valid ID.",
            "This ticket is personal and non-transferable.",
        ],
    },
}


class TicketService:
    """Builds ticket artifacts and answers verification lookups."""

    def __init__(self, session: Optional[AsyncSession] = None):
        self.session = session
        self.settings = get_settings()

    def verification_url(self, ticket_number: str) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/verify-ticket/{ticket_number}"

    def build_verification_payload(self, booking: Booking, event: Event) -> Dict[str, Any]:
        return {
            "bookingId": str(booking.id),
            "bookingReference": booking.booking_reference,
            "ticketNumber": booking.ticket_number,
            "eventTitle": event.title,
            "venue": event.venue,
            "eventDate": event.event_date.isoformat(),
            "startTime": event.start_time.strftime("%H:%M"),
            "attendeeName": booking.attendee_name,
            "quantity": booking.quantity,
            "verificationUrl": self.verification_url(booking.ticket_number),
        }

    def generate_verification_payload(self, booking: Booking, event: Event) -> TicketQRCode:
        """
        Encode the verification payload as a PNG QR code.

        Error correction is level M (about 15% of the symbol recoverable).
        A configured ``qr_version`` pins the symbol size; otherwise the
        smallest version that fits is used.

        Raises:
            EncodingError: When the payload exceeds the symbol capacity
        """
        payload = json.dumps(
            self.build_verification_payload(booking, event),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=False,
        )
        png, version = self._encode_qr(payload)
        return TicketQRCode(payload=payload, png=png, version=version)

    def render_ticket_document(
        self,
        booking: Booking,
        event: Event,
        qr_png: bytes,
        locale: Optional[str] = None
    ) -> TicketDocument:
        """
        Render the single-page printable ticket.

        Output depends only on its inputs, so re-rendering a booking yields
        identical bytes.
        """
        locale = locale or self.settings.default_locale
        labels = TICKET_LABELS.get(locale, TICKET_LABELS["fr"])
        e = html.escape

        qr_src = "data:image/png;base64," + base64.b64encode(qr_png).decode("ascii")
        location = ", ".join(
            part for part in (event.address, event.city, event.region or event.country) if part
        )
        time_range = format_time(event.start_time, locale)
        if event.end_time:
            time_range += f" - {format_time(event.end_time, locale)}"

        phone_row = ""
        if booking.attendee_phone:
            phone_row = f"<tr><th>{labels['phone']}</th><td>{e(booking.attendee_phone)}</td></tr>"

        instructions = "".join(f"<li>{e(line)}</li>" for line in labels["instruction_lines"])

        document = f"""<!DOCTYPE html>
<html lang="{locale}">
<head>
<meta charset="utf-8">
<title>EventZon - {e(booking.booking_reference)}</title>
<style>
@page {{ size: A4; margin: 15mm; }}
body {{ font-family: Arial, sans-serif; color: #1f2937; margin: 0; }}
.ticket {{ max-width: 720px; margin: 0 auto; border: 2px solid #2E7D32; border-radius: 12px; overflow: hidden; }}
.header {{ background: #2E7D32; color: #fff; padding: 20px; text-align: center; }}
.header h1 {{ margin: 0; font-size: 28px; }}
.section {{ padding: 16px 24px; border-bottom: 1px solid #e5e7eb; }}
.section h2 {{ font-size: 16px; color: #2E7D32; margin: 0 0 8px; }}
th {{ text-align: left; padding-right: 16px; color: #6b7280; font-weight: normal; }}
.qr {{ text-align: center; padding: 16px; }}
.qr img {{ width: 180px; height: 180px; }}
</style>
</head>
<body>
<div class="ticket">
<div class="header">
<h1>EventZon</h1>
<p>{labels['subtitle']}</p>
</div>
<div class="section">
<h2>{labels['event']}</h2>
<h3>{e(event.title)}</h3>
<table>
<tr><th>{labels['venue']}</th><td>{e(event.venue)}</td></tr>
<tr><th>{labels['address']}</th><td>{e(location)}</td></tr>
<tr><th>{labels['date']}</th><td>{format_date(event.event_date, locale)}</td></tr>
<tr><th>{labels['time']}</th><td>{time_range}</td></tr>
</table>
</div>
<div class="section">
<h2>{labels['attendee']}</h2>
<table>
<tr><th>{labels['name']}</th><td>{e(booking.attendee_name)}</td></tr>
<tr><th>{labels['email']}</th><td>{e(booking.attendee_email)}</td></tr>
{phone_row}
</table>
</div>
<div class="section">
<h2>{labels['payment']}</h2>
<table>
<tr><th>{labels['tickets']}</th><td>{booking.quantity}</td></tr>
<tr><th>{labels['total']}</th><td>{format_amount(booking.total_amount, booking.currency, locale)}</td></tr>
<tr><th>{labels['reference']}</th><td>{e(booking.booking_reference)}</td></tr>
<tr><th>{labels['ticket_number']}</th><td>{e(booking.ticket_number)}</td></tr>
</table>
</div>
<div class="qr">
<img src="{qr_src}" alt="QR">
<p>{labels['scan']}</p>
</div>
<div class="section">
<h2>{labels['instructions']}</h2>
<ul>{instructions}</ul>
</div>
</div>
</body>
</html>
"""
        return TicketDocument(
            filename=f"billet-{booking.booking_reference}.html",
            content_type="text/html; charset=utf-8",
            content=document.encode("utf-8"),
        )

    async def build_ticket_artifacts(
        self,
        booking_id: UUID,
        user_id: Optional[UUID] = None,
        locale: Optional[str] = None
    ) -> Tuple[Booking, TicketQRCode, TicketDocument]:
        """
        Load a booking and build its QR code and printable document.

        Raises:
            BookingNotFoundError: When missing or owned by another user
        """
        booking = await self._load_booking(Booking.id == booking_id)
        if booking is None or (user_id is not None and booking.user_id != user_id):
            raise BookingNotFoundError(str(booking_id))

        qr = self.generate_verification_payload(booking, booking.event)
        document = self.render_ticket_document(booking, booking.event, qr.png, locale)
        return booking, qr, document

    async def verify_ticket(self, ticket_number: str) -> TicketVerification:
        """Report whether a presented ticket may be admitted."""
        booking = await self._load_booking(Booking.ticket_number == ticket_number)

        if booking is None:
            logger.info(f"Verification of unknown ticket {ticket_number}")
            return TicketVerification(
                ticket_number=ticket_number,
                valid=False,
                message="Ticket not found",
            )

        event = booking.event
        valid = booking.status == BookingStatus.CONFIRMED and event.status != EventStatus.CANCELLED

        if valid:
            message = "Ticket is valid"
        elif booking.status == BookingStatus.ATTENDED:
            message = "Ticket has already been used"
        elif booking.status == BookingStatus.CANCELLED:
            message = "Booking has been cancelled"
        else:
            message = "Event has been cancelled"

        return TicketVerification(
            ticket_number=ticket_number,
            valid=valid,
            status=booking.status,
            booking_id=booking.id,
            booking_reference=booking.booking_reference,
            attendee_name=booking.attendee_name,
            quantity=booking.quantity,
            event_title=event.title,
            event_date=event.event_date,
            start_time=event.start_time,
            venue=event.venue,
            check_in_time=booking.check_in_time,
            message=message,
        )

    def _encode_qr(self, payload: str) -> Tuple[bytes, int]:
        version = self.settings.qr_version
        qr = qrcode.QRCode(
            version=version,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=self.settings.qr_box_size,
            border=self.settings.qr_border,
        )
        qr.add_data(payload)

        try:
            # A pinned version must not silently grow
            qr.make(fit=version is None)
        except DataOverflowError as e:
            size = len(payload.encode("utf-8"))
            logger.error(f"QR payload of {size} bytes does not fit version {version or MAX_QR_VERSION}")
            raise EncodingError(
                f"Ticket payload does not fit in a QR code: {e}",
                payload_size=size,
                version=version or MAX_QR_VERSION,
            )

        img = qr.make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue(), qr.version

    async def _load_booking(self, condition) -> Optional[Booking]:
        if self.session is None:
            raise RuntimeError("TicketService needs a database session for lookups")
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(condition)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()
