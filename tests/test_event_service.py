"""
Tests for event creation and listing.
"""

import uuid
from datetime import date, time, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from eventzon.models import Booking, Event, EventStatus
from eventzon.schemas.event import EventCreate, EventUpdate
from eventzon.services.booking_service import BookingService
from eventzon.services.event_service import EventService
from eventzon.services.ticket_service import TicketService
from eventzon.utils.exceptions import EventNotFoundError, EventUnavailableError, ValidationError
from tests.conftest import make_event, persist, reload


@pytest.mark.asyncio
async def test_create_event_opens_full_inventory(db_session, admin_user):
    event = await EventService(db_session).create_event(
        EventCreate(
            title="Salon du Livre",
            venue="Musée National",
            city="Yaoundé",
            region="Centre",
            event_date=date.today() + timedelta(days=5),
            start_time=time(10, 0),
            price=Decimal("0"),
            max_attendees=50,
        ),
        organizer_id=admin_user.id,
    )

    assert event.available_tickets == 50
    assert event.status == EventStatus.ACTIVE
    assert event.currency == "XAF"
    assert event.country == "Cameroun"
    assert event.organizer_id == admin_user.id


def test_event_in_the_past_is_rejected():
    with pytest.raises(ValueError):
        EventCreate(
            title="Hier",
            venue="Nulle part",
            event_date=date.today() - timedelta(days=1),
            start_time=time(10, 0),
            price=Decimal("100"),
            max_attendees=10,
        )


@pytest.mark.asyncio
async def test_listing_filters(db_session, session_factory, test_event, small_event):
    await persist(session_factory, make_event(title="Annulé", status=EventStatus.CANCELLED))
    await persist(session_factory, make_event(title="Complet", available_tickets=0, status=EventStatus.SOLD_OUT))
    service = EventService(db_session)

    events, total = await service.get_events()
    assert total == 3
    assert "Annulé" not in {event.title for event in events}

    events, total = await service.get_events(available_only=True)
    assert {event.title for event in events} == {"Makossa Night", "Concert Intime"}

    events, total = await service.get_events(region="Littoral")
    assert [event.title for event in events] == ["Concert Intime"]

    events, total = await service.get_events(search="makossa")
    assert {event.title for event in events} == {"Makossa Night", "Complet"}


@pytest.mark.asyncio
async def test_delete_event_cascades_to_bookings(db_session, session_factory, test_user, test_event, attendee):
    await BookingService(db_session).create_booking(test_user.id, test_event.id, 1, attendee)

    service = EventService(db_session)
    await service.delete_event(test_event.id)

    with pytest.raises(EventNotFoundError):
        await service.get_event_by_id(test_event.id)
    async with session_factory() as session:
        assert await session.scalar(select(func.count(Booking.id))) == 0


@pytest.mark.asyncio
async def test_update_capacity_keeps_tickets_sold(db_session, test_user, test_event, attendee):
    await BookingService(db_session).create_booking(test_user.id, test_event.id, 4, attendee)
    service = EventService(db_session)

    event = await service.update_event(test_event.id, EventUpdate(max_attendees=120, price=Decimal("2000")))
    assert event.max_attendees == 120
    assert event.available_tickets == 116
    assert event.price == Decimal("2000.00")

    event = await service.update_event(test_event.id, EventUpdate(max_attendees=4))
    assert event.available_tickets == 0
    assert event.status == EventStatus.SOLD_OUT

    event = await service.update_event(test_event.id, EventUpdate(max_attendees=6))
    assert event.available_tickets == 2
    assert event.status == EventStatus.ACTIVE


@pytest.mark.asyncio
async def test_capacity_below_tickets_sold_is_rejected(db_session, session_factory, test_user, small_event, attendee):
    await BookingService(db_session).create_booking(test_user.id, small_event.id, 2, attendee)

    with pytest.raises(ValidationError) as exc_info:
        await EventService(db_session).update_event(small_event.id, EventUpdate(max_attendees=1))

    assert exc_info.value.field_errors == {"max_attendees": ["must be at least 2"]}
    event = await reload(session_factory, Event, small_event.id)
    assert (event.max_attendees, event.available_tickets) == (2, 0)


@pytest.mark.asyncio
async def test_cancelled_event_stops_bookings_and_tickets(db_session, test_user, test_event, attendee):
    booking_service = BookingService(db_session)
    booking = await booking_service.create_booking(test_user.id, test_event.id, 1, attendee)
    ticket_number = booking.ticket_number
    service = EventService(db_session)

    event = await service.update_event(test_event.id, EventUpdate(status=EventStatus.CANCELLED))
    assert event.status == EventStatus.CANCELLED
    assert event.available_tickets == 99

    with pytest.raises(EventUnavailableError):
        await booking_service.create_booking(test_user.id, test_event.id, 1, attendee)
    assert (await TicketService(db_session).verify_ticket(ticket_number)).valid is False

    # Editing other fields leaves a cancelled event cancelled
    event = await service.update_event(test_event.id, EventUpdate(venue="Stade Omnisport"))
    assert event.status == EventStatus.CANCELLED

    event = await service.update_event(test_event.id, EventUpdate(status=EventStatus.ACTIVE))
    assert event.status == EventStatus.ACTIVE
    assert (await TicketService(db_session).verify_ticket(ticket_number)).valid is True


def test_update_schema_rejects_derived_and_cleared_fields():
    with pytest.raises(ValueError):
        EventUpdate(status=EventStatus.SOLD_OUT)
    with pytest.raises(ValueError):
        EventUpdate(title=None)
    assert EventUpdate(description=None).model_dump(exclude_unset=True) == {"description": None}


@pytest.mark.asyncio
async def test_update_unknown_event(db_session):
    with pytest.raises(EventNotFoundError):
        await EventService(db_session).update_event(uuid.uuid4(), EventUpdate(title="Rien"))
