"""
Notification service for booking confirmations, event reminders and
cancellation notices sent by e-mail.
"""

import asyncio
import enum
import html
import logging
import smtplib
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..config import Settings, get_settings
from ..models.booking import Booking, BookingStatus
from ..models.event import Event, EventStatus
from ..utils.exceptions import BookingNotFoundError, DeliveryError
from ..utils.formatting import format_amount, format_date, format_time
from ..utils.local_time import local_now
from .ticket_service import TicketDocument, TicketQRCode, TicketService

logger = logging.getLogger(__name__)


class ReminderLeadTime(str, enum.Enum):
    """How long before the event a reminder goes out."""
    HOURS_24 = "24h"
    HOURS_2 = "2h"

    @property
    def delta(self) -> timedelta:
        return timedelta(hours=24 if self is ReminderLeadTime.HOURS_24 else 2)


@dataclass
class EmailMessage:
    """Rendered message handed to a mail transport."""
    to: str
    subject: str
    html: str
    text: str
    attachments: List[TicketDocument] = field(default_factory=list)


class SMTPTransport:
    """Blocking SMTP delivery; run it off the event loop."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def send(self, message: EmailMessage) -> None:
        """
        Send one message.

        Raises:
            DeliveryError: When SMTP is not configured or the server rejects the message
        """
        settings = self.settings
        if not settings.smtp_server:
            raise DeliveryError("SMTP server is not configured")

        msg = MIMEMultipart("mixed")
        msg["Subject"] = message.subject
        msg["From"] = settings.mail_from
        msg["To"] = message.to

        body = MIMEMultipart("alternative")
        body.attach(MIMEText(message.text, "plain", "utf-8"))
        body.attach(MIMEText(message.html, "html", "utf-8"))
        msg.attach(body)

        for document in message.attachments:
            subtype = document.content_type.split(";")[0].split("/")[-1]
            part = MIMEApplication(document.content, _subtype=subtype)
            part.add_header("Content-Disposition", "attachment", filename=document.filename)
            msg.attach(part)

        try:
            with smtplib.SMTP(
                settings.smtp_server,
                settings.smtp_port,
                timeout=settings.smtp_timeout_seconds
            ) as server:
                if settings.smtp_use_tls:
                    server.starttls()
                if settings.smtp_username:
                    server.login(settings.smtp_username, settings.smtp_password or "")
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DeliveryError(f"Failed to send e-mail to {message.to}: {e}")


MESSAGES = {
    "fr": {
        "greeting": "Bonjour",
        "signature": "Cordialement,<br><strong>L'équipe EventZon</strong>",
        "footer": "EventZon - Votre plateforme de réservation d'événements au Cameroun",
        "venue": "Lieu",
        "address": "Adresse",
        "date": "Date",
        "time": "Heure",
        "tickets": "Nombre de billets",
        "total": "Total payé",
        "reference": "Numéro de réservation",
        "confirmation_subject": "Confirmation de réservation - {title}",
        "confirmation_title": "Confirmation de Réservation",
        "confirmation_intro": "Nous avons le plaisir de confirmer votre réservation pour l'événement suivant :",
        "confirmation_qr": "Présentez ce QR code à l'entrée de l'événement :",
        "confirmation_attachment": "Votre billet est joint à cet e-mail.",
        "confirmation_outro": "Nous avons hâte de vous voir à l'événement !",
        "reminder_subject": "Rappel : {title} commence dans {lead}",
        "reminder_title": "Rappel d'Événement",
        "reminder_intro": "Votre événement commence dans {lead} :",
        "reminder_outro": "N'oubliez pas votre billet et une pièce d'identité valide.",
        "lead_24h": "24 heures",
        "lead_2h": "2 heures",
        "cancellation_subject": "Annulation de réservation - {title}",
        "cancellation_title": "Réservation Annulée",
        "cancellation_intro": "Votre réservation pour l'événement suivant a été annulée :",
        "cancellation_outro": "Vos billets ont été remis en vente. Nous espérons vous revoir bientôt.",
    },
    "en": {
        "greeting": "Hello",
        "signature": "Best regards,<br><strong>The EventZon team</strong>",
        "footer": "EventZon - Your event booking platform in Cameroon",
        "venue": "Venue",
        "address": "Address",
        "date": "Date",
        "time": "Time",
        "tickets": "Number of tickets",
        "total": "Total paid",
        "reference": "Booking reference",
        "confirmation_subject": "Booking confirmation - {title}",
        "confirmation_title": "Booking Confirmed",
        "confirmation_intro": "We are pleased to confirm your booking for the following event:",
        "confirmation_qr": "Show this QR code at the entrance:",
        "confirmation_attachment": "Your ticket is attached to this e-mail.",
        "confirmation_outro": "We look forward to seeing you at the event!",
        "reminder_subject": "Reminder: {title} starts in {lead}",
        "reminder_title": "Event Reminder",
        "reminder_intro": "Your event starts in {lead}:",
        "reminder_outro": "Remember to bring your ticket and a valid ID.",
        "lead_24h": "24 hours",
        "lead_2h": "2 hours",
        "cancellation_subject": "Booking cancelled - {title}",
        "cancellation_title": "Booking Cancelled",
        "cancellation_intro": "Your booking for the following event has been cancelled:",
        "cancellation_outro": "Your tickets have been released. We hope to see you again soon.",
    },
}


class NotificationService:
    """Service for handling email notifications."""

    def __init__(self, session: Optional[AsyncSession] = None, transport=None):
        self.session = session
        self.settings = get_settings()
        self.transport = transport or SMTPTransport(self.settings)

    async def send_booking_confirmation(
        self,
        booking: Booking,
        event: Event,
        ticket_document: TicketDocument,
        qr: Optional[TicketQRCode] = None,
        locale: Optional[str] = None
    ) -> EmailMessage:
        """
        Send the confirmation with the ticket attached.

        Raises:
            DeliveryError: When the transport fails
        """
        texts = self._texts(locale)
        qr_block = ""
        if qr is not None:
            qr_block = (
                f'<div style="text-align:center;margin:20px 0;">'
                f'<p>{texts["confirmation_qr"]}</p>'
                f'<img src="{qr.data_url}" alt="QR" style="max-width:200px;height:auto;">'
                f'</div>'
            )

        message = self._compose(
            booking,
            event,
            texts,
            subject=texts["confirmation_subject"].format(title=event.title),
            title=texts["confirmation_title"],
            intro=texts["confirmation_intro"],
            outro=f'{texts["confirmation_attachment"]} {texts["confirmation_outro"]}',
            extra_html=qr_block,
            locale=locale,
        )
        message.attachments.append(ticket_document)

        await self._send(message)
        logger.info(f"Booking confirmation sent for booking {booking.id}")
        return message

    async def send_event_reminder(
        self,
        booking: Booking,
        event: Event,
        lead_time: ReminderLeadTime,
        ticket_document: Optional[TicketDocument] = None,
        locale: Optional[str] = None
    ) -> EmailMessage:
        """
        Send a reminder 24 hours or 2 hours before the event.

        Raises:
            DeliveryError: When the transport fails
        """
        lead_time = ReminderLeadTime(lead_time)
        texts = self._texts(locale)
        lead = texts[f"lead_{lead_time.value}"]

        message = self._compose(
            booking,
            event,
            texts,
            subject=texts["reminder_subject"].format(title=event.title, lead=lead),
            title=texts["reminder_title"],
            intro=texts["reminder_intro"].format(lead=lead),
            outro=texts["reminder_outro"],
            locale=locale,
        )
        if ticket_document is not None:
            message.attachments.append(ticket_document)

        await self._send(message)
        logger.info(f"{lead_time.value} reminder sent for booking {booking.id}")
        return message

    async def send_booking_cancellation(
        self,
        booking: Booking,
        event: Event,
        locale: Optional[str] = None
    ) -> EmailMessage:
        """
        Send a cancellation notice.

        Raises:
            DeliveryError: When the transport fails
        """
        texts = self._texts(locale)
        message = self._compose(
            booking,
            event,
            texts,
            subject=texts["cancellation_subject"].format(title=event.title),
            title=texts["cancellation_title"],
            intro=texts["cancellation_intro"],
            outro=texts["cancellation_outro"],
            locale=locale,
        )

        await self._send(message)
        logger.info(f"Booking cancellation sent for booking {booking.id}")
        return message

    async def deliver_booking_confirmation(self, booking_id: UUID) -> Optional[EmailMessage]:
        """Load a booking, build its ticket and send the confirmation unless it was cancelled meanwhile."""
        ticket_service = TicketService(self.session)
        booking, qr, document = await ticket_service.build_ticket_artifacts(booking_id)

        if booking.status != BookingStatus.CONFIRMED:
            logger.info(f"Skipping confirmation for booking {booking_id} in status {booking.status.value}")
            return None

        return await self.send_booking_confirmation(booking, booking.event, document, qr)

    async def deliver_event_reminder(self, booking_id: UUID, lead_time: ReminderLeadTime) -> Optional[EmailMessage]:
        """Send a reminder unless the booking or event was cancelled meanwhile."""
        ticket_service = TicketService(self.session)
        booking, _, document = await ticket_service.build_ticket_artifacts(booking_id)

        if booking.status != BookingStatus.CONFIRMED or booking.event.status == EventStatus.CANCELLED:
            logger.info(f"Skipping reminder for booking {booking_id} in status {booking.status.value}")
            return None

        return await self.send_event_reminder(booking, booking.event, lead_time, document)

    async def deliver_booking_cancellation(self, booking_id: UUID) -> EmailMessage:
        booking = await self._get_booking_with_event(booking_id)
        return await self.send_booking_cancellation(booking, booking.event)

    async def get_bookings_due_for_reminder(
        self,
        lead_time: ReminderLeadTime,
        now: Optional[datetime] = None,
        window: timedelta = timedelta(hours=1)
    ) -> List[Booking]:
        """
        Confirmed bookings whose event starts in ``[now + lead - window, now + lead)``.

        Event dates and times are local wall-clock values, so ``now`` should
        be naive local time. Called by the external reminder scheduler.
        """
        lead_time = ReminderLeadTime(lead_time)
        now = now or local_now(self.settings.event_timezone)
        window_end = now + lead_time.delta
        window_start = window_end - window

        result = await self.session.execute(
            select(Booking)
            .join(Event, Booking.event_id == Event.id)
            .options(selectinload(Booking.event))
            .where(
                Booking.status == BookingStatus.CONFIRMED,
                Event.status != EventStatus.CANCELLED,
                Event.event_date >= window_start.date(),
                Event.event_date <= window_end.date()
            )
            .order_by(Event.event_date, Event.start_time, Booking.created_at)
        )

        due = []
        for booking in result.scalars().all():
            starts_at = datetime.combine(booking.event.event_date, booking.event.start_time)
            if window_start <= starts_at < window_end:
                due.append(booking)
        return due

    async def _send(self, message: EmailMessage) -> None:
        try:
            await asyncio.to_thread(self.transport.send, message)
        except DeliveryError as e:
            logger.error(f"Delivery failed: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Mail transport error: {e}")
            raise DeliveryError(str(e))

    def _texts(self, locale: Optional[str]) -> Dict[str, str]:
        return MESSAGES.get(locale or self.settings.default_locale, MESSAGES["fr"])

    async def _get_booking_with_event(self, booking_id: UUID) -> Booking:
        result = await self.session.execute(
            select(Booking)
            .options(selectinload(Booking.event))
            .where(Booking.id == booking_id)
        )
        booking = result.scalar_one_or_none()
        if booking is None:
            raise BookingNotFoundError(str(booking_id))
        return booking

    def _compose(
        self,
        booking: Booking,
        event: Event,
        texts: Dict[str, str],
        subject: str,
        title: str,
        intro: str,
        outro: str,
        extra_html: str = "",
        locale: Optional[str] = None
    ) -> EmailMessage:
        locale = locale or self.settings.default_locale
        e = html.escape
        location = ", ".join(
            part for part in (event.address, event.city, event.region or event.country) if part
        )
        rows = [
            (texts["venue"], event.venue),
            (texts["address"], location),
            (texts["date"], format_date(event.event_date, locale)),
            (texts["time"], format_time(event.start_time, locale)),
            (texts["tickets"], str(booking.quantity)),
            (texts["total"], format_amount(booking.total_amount, booking.currency, locale)),
            (texts["reference"], booking.booking_reference),
        ]

        details_html = "".join(f"<p><strong>{label}:</strong> {e(value)}</p>" for label, value in rows)
        details_text = "\n".join(f"{label}: {value}" for label, value in rows)

        html_content = f"""<!DOCTYPE html>
<html lang="{locale}">
<head>
<meta charset="utf-8">
<title>{e(title)} - EventZon</title>
<style>
body {{ font-family: Arial, sans-serif; line-height: 1.6; color: #333; max-width: 600px; margin: 0 auto; padding: 20px; }}
.header {{ background: #2E7D32; color: white; padding: 30px; text-align: center; border-radius: 10px 10px 0 0; }}
.content {{ background: #f8f9fa; padding: 30px; border-radius: 0 0 10px 10px; }}
.ticket-info {{ background: white; padding: 20px; border-radius: 8px; margin: 20px 0; border-left: 4px solid #2E7D32; }}
.footer {{ text-align: center; padding: 20px; color: #666; border-top: 1px solid #ddd; margin-top: 20px; }}
</style>
</head>
<body>
<div class="header"><h1>{e(title)}</h1><p>{e(event.title)}</p></div>
<div class="content">
<p>{texts['greeting']} <strong>{e(booking.attendee_name)}</strong>,</p>
<p>{intro}</p>
<div class="ticket-info"><h2>{e(event.title)}</h2>{details_html}</div>
{extra_html}
<p>{outro}</p>
<p>{texts['signature']}</p>
</div>
<div class="footer"><p>{texts['footer']}</p></div>
</body>
</html>
"""
        signature_text = texts["signature"].replace("<br>", "\n").replace("<strong>", "").replace("</strong>", "")
        text_content = (
            f"{title.upper()}\n\n"
            f"{texts['greeting']} {booking.attendee_name},\n\n"
            f"{intro}\n\n"
            f"{event.title}\n{details_text}\n\n"
            f"{outro}\n\n"
            f"{signature_text}\n"
        )

        return EmailMessage(
            to=booking.attendee_email,
            subject=subject,
            html=html_content,
            text=text_content,
        )
