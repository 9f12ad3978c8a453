"""
Tests for ticket artifacts and ticket verification.
"""

import json
import uuid
from datetime import date, time
from decimal import Decimal

import pytest

from eventzon.models import Booking, BookingStatus, Event
from eventzon.services.booking_service import BookingService
from eventzon.services.ticket_service import TicketService
from eventzon.utils.exceptions import BookingNotFoundError, EncodingError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def event() -> Event:
    return Event(
        id=uuid.UUID("11111111-1111-1111-1111-111111111111"),
        title="Festival Ngondo",
        venue="Berges du Wouri",
        address="Rue de la Joie",
        city="Douala",
        region="Littoral",
        country="Cameroun",
        event_date=date(2024, 6, 15),
        start_time=time(19, 30),
        end_time=time(23, 0),
        price=Decimal("1500.00"),
        currency="XAF",
        max_attendees=500,
        available_tickets=497,
    )


@pytest.fixture
def booking(event) -> Booking:
    return Booking(
        id=uuid.UUID("22222222-2222-2222-2222-222222222222"),
        event_id=event.id,
        quantity=3,
        total_amount=Decimal("4500.00"),
        currency="XAF",
        attendee_name="Jean Mballa",
        attendee_email="jean.mballa@example.cm",
        attendee_phone=None,
        status=BookingStatus.CONFIRMED,
        booking_reference="EVT-1718035200000-K3F9Q2ZLM",
        ticket_number="TK1718035200AB12CD34",
    )


def test_verification_payload_fields(booking, event):
    payload = TicketService().build_verification_payload(booking, event)

    assert payload == {
        "bookingId": "22222222-2222-2222-2222-222222222222",
        "bookingReference": "EVT-1718035200000-K3F9Q2ZLM",
        "ticketNumber": "TK1718035200AB12CD34",
        "eventTitle": "Festival Ngondo",
        "venue": "Berges du Wouri",
        "eventDate": "2024-06-15",
        "startTime": "19:30",
        "attendeeName": "Jean Mballa",
        "quantity": 3,
        "verificationUrl": "https://eventzon.cm/verify-ticket/TK1718035200AB12CD34",
    }


def test_qr_code_encodes_payload(booking, event):
    qr = TicketService().generate_verification_payload(booking, event)

    assert qr.png.startswith(PNG_SIGNATURE)
    assert json.loads(qr.payload)["ticketNumber"] == "TK1718035200AB12CD34"
    assert 1 <= qr.version <= 40
    assert qr.data_url.startswith("data:image/png;base64,")


def test_pinned_qr_version_overflow(booking, event, monkeypatch):
    service = TicketService()
    monkeypatch.setattr(service.settings, "qr_version", 1)

    with pytest.raises(EncodingError) as exc_info:
        service.generate_verification_payload(booking, event)
    assert exc_info.value.details["version"] == 1


def test_ticket_document_is_deterministic(booking, event):
    service = TicketService()
    qr = service.generate_verification_payload(booking, event)

    first = service.render_ticket_document(booking, event, qr.png, locale="fr")
    second = service.render_ticket_document(booking, event, qr.png, locale="fr")

    assert first.content == second.content
    assert first.filename == "billet-EVT-1718035200000-K3F9Q2ZLM.html"
    assert first.content_type.startswith("text/html")

    content = first.content.decode("utf-8")
    assert "samedi 15 juin 2024" in content
    assert "19h30 - 23h00" in content
    assert "4 500 XAF" in content
    assert "Jean Mballa" in content


def test_ticket_document_in_english(booking, event):
    service = TicketService()
    qr = service.generate_verification_payload(booking, event)

    content = service.render_ticket_document(booking, event, qr.png, locale="en").content.decode("utf-8")

    assert "Saturday, June 15, 2024" in content
    assert "Event Ticket - Cameroon" in content


@pytest.mark.asyncio
async def test_verify_ticket_states(db_session, test_user, test_event, attendee, settings):
    booking_service = BookingService(db_session)
    booking = await booking_service.create_booking(test_user.id, test_event.id, 1, attendee)
    ticket_number = booking.ticket_number
    tickets = TicketService(db_session)

    valid = await tickets.verify_ticket(ticket_number)
    assert valid.valid is True
    assert valid.status == BookingStatus.CONFIRMED
    assert valid.event_title == "Makossa Night"

    await booking_service.check_in(ticket_number)
    used = await tickets.verify_ticket(ticket_number)
    assert used.valid is False
    assert used.status == BookingStatus.ATTENDED
    assert used.check_in_time is not None

    unknown = await tickets.verify_ticket("TK000")
    assert unknown.valid is False
    assert unknown.status is None


@pytest.mark.asyncio
async def test_cancelled_ticket_is_not_valid(db_session, test_user, test_event, attendee):
    booking_service = BookingService(db_session)
    booking = await booking_service.create_booking(test_user.id, test_event.id, 1, attendee)
    await booking_service.cancel_booking(booking.id)

    result = await TicketService(db_session).verify_ticket(booking.ticket_number)

    assert result.valid is False
    assert result.status == BookingStatus.CANCELLED


@pytest.mark.asyncio
async def test_ticket_artifacts_are_owner_only(db_session, test_user, admin_user, test_event, attendee):
    booking = await BookingService(db_session).create_booking(test_user.id, test_event.id, 2, attendee)
    tickets = TicketService(db_session)

    loaded, qr, document = await tickets.build_ticket_artifacts(booking.id, test_user.id)
    assert loaded.id == booking.id
    assert qr.png.startswith(PNG_SIGNATURE)
    assert document.filename == f"billet-{booking.booking_reference}.html"

    with pytest.raises(BookingNotFoundError):
        await tickets.build_ticket_artifacts(booking.id, admin_user.id)
