"""
Tests for e-mail notifications and reminder selection.
"""

import uuid
from datetime import date, datetime, time, timedelta

import pytest

from eventzon.services.booking_service import BookingService
from eventzon.services.notification_service import (
    NotificationService,
    ReminderLeadTime,
    SMTPTransport,
)
from eventzon.utils.exceptions import BookingNotFoundError, DeliveryError
from tests.conftest import make_event, persist


class FakeTransport:
    """Collects messages instead of talking to an SMTP server."""

    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    def send(self, message):
        if self.fail:
            raise ConnectionRefusedError("connection refused")
        self.sent.append(message)


@pytest.mark.asyncio
async def test_confirmation_attaches_ticket(db_session, test_user, test_event, attendee):
    booking = await BookingService(db_session).create_booking(test_user.id, test_event.id, 3, attendee)
    transport = FakeTransport()

    message = await NotificationService(db_session, transport).deliver_booking_confirmation(booking.id)

    assert transport.sent == [message]
    assert message.to == "awa.ngono@example.cm"
    assert message.subject == "Confirmation de réservation - Makossa Night"
    assert "4 500 XAF" in message.text
    assert booking.booking_reference in message.html
    assert "data:image/png;base64," in message.html
    assert [doc.filename for doc in message.attachments] == [f"billet-{booking.booking_reference}.html"]


@pytest.mark.asyncio
async def test_cancellation_notice_in_english(db_session, test_user, test_event, attendee):
    service = BookingService(db_session)
    booking = await service.create_booking(test_user.id, test_event.id, 1, attendee)
    cancelled = await service.cancel_booking(booking.id)
    transport = FakeTransport()

    message = await NotificationService(db_session, transport).send_booking_cancellation(
        cancelled, cancelled.event, locale="en"
    )

    assert message.subject == "Booking cancelled - Makossa Night"
    assert message.attachments == []


@pytest.mark.asyncio
async def test_reminder_skipped_after_cancellation(db_session, test_user, test_event, attendee):
    service = BookingService(db_session)
    booking = await service.create_booking(test_user.id, test_event.id, 1, attendee)
    await service.cancel_booking(booking.id)
    transport = FakeTransport()

    result = await NotificationService(db_session, transport).deliver_event_reminder(
        booking.id, ReminderLeadTime.HOURS_24
    )

    assert result is None
    assert transport.sent == []


@pytest.mark.asyncio
async def test_confirmation_skipped_after_cancellation(db_session, test_user, test_event, attendee):
    service = BookingService(db_session)
    booking = await service.create_booking(test_user.id, test_event.id, 1, attendee)
    await service.cancel_booking(booking.id)
    transport = FakeTransport()

    result = await NotificationService(db_session, transport).deliver_booking_confirmation(booking.id)

    assert result is None
    assert transport.sent == []


@pytest.mark.asyncio
async def test_reminder_subject_names_lead_time(db_session, test_user, test_event, attendee):
    booking = await BookingService(db_session).create_booking(test_user.id, test_event.id, 1, attendee)
    transport = FakeTransport()

    message = await NotificationService(db_session, transport).deliver_event_reminder(booking.id, "2h")

    assert message.subject == "Rappel : Makossa Night commence dans 2 heures"


@pytest.mark.asyncio
async def test_unconfigured_smtp_raises_delivery_error(db_session, test_user, test_event, attendee, settings):
    booking = await BookingService(db_session).create_booking(test_user.id, test_event.id, 1, attendee)
    service = NotificationService(db_session, SMTPTransport(settings))

    with pytest.raises(DeliveryError):
        await service.deliver_booking_confirmation(booking.id)


@pytest.mark.asyncio
async def test_transport_failure_becomes_delivery_error(db_session, test_user, test_event, attendee):
    booking = await BookingService(db_session).create_booking(test_user.id, test_event.id, 1, attendee)
    service = NotificationService(db_session, FakeTransport(fail=True))

    with pytest.raises(DeliveryError):
        await service.deliver_booking_cancellation(booking.id)


@pytest.mark.asyncio
async def test_missing_booking(db_session):
    with pytest.raises(BookingNotFoundError):
        await NotificationService(db_session, FakeTransport()).deliver_booking_cancellation(uuid.uuid4())


@pytest.mark.asyncio
async def test_bookings_due_for_reminder(db_session, session_factory, test_user, attendee):
    now = datetime(2030, 3, 10, 18, 0)
    inside = await persist(session_factory, make_event(title="Inside", event_date=date(2030, 3, 11), start_time=time(17, 30)))
    edge = await persist(session_factory, make_event(title="Edge", event_date=date(2030, 3, 11), start_time=time(18, 0)))
    early = await persist(session_factory, make_event(title="Early", event_date=date(2030, 3, 11), start_time=time(16, 59)))

    service = BookingService(db_session)
    for event in (inside, edge, early):
        await service.create_booking(test_user.id, event.id, 1, attendee)

    due = await NotificationService(db_session, FakeTransport()).get_bookings_due_for_reminder(
        ReminderLeadTime.HOURS_24, now=now
    )

    assert [booking.event.title for booking in due] == ["Inside"]


def test_lead_time_deltas():
    assert ReminderLeadTime.HOURS_24.delta == timedelta(hours=24)
    assert ReminderLeadTime("2h").delta == timedelta(hours=2)
