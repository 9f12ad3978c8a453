"""
Tests for queueing notification tasks and running them outside a worker.
"""

import pytest
from sqlalchemy import func, select

from eventzon.config import get_settings
from eventzon.models import Booking, Event
from eventzon.services.booking_service import BookingService
from eventzon.tasks import notification_tasks
from eventzon.tasks.celery_app import celery_app
from eventzon.utils.exceptions import DeliveryError
from tests.conftest import reload

# Bound before the autouse fixture swaps the module attribute for a recorder
queue_notification = notification_tasks.queue_notification


class FailedResult:
    """What ``delay`` returns in eager mode once the task has raised."""

    def __init__(self, exc: Exception):
        self.result = exc

    def failed(self) -> bool:
        return True


class FailingTask:
    def __init__(self):
        self.calls = []

    def delay(self, booking_id: str) -> FailedResult:
        self.calls.append(booking_id)
        return FailedResult(DeliveryError("SMTP server unreachable"))


@pytest.fixture
def failing_confirmation(monkeypatch):
    task = FailingTask()
    monkeypatch.setitem(notification_tasks.NOTIFICATION_TASKS, "booking_confirmation", task)
    monkeypatch.setitem(celery_app.conf, "task_always_eager", True)
    return task


def test_unknown_kind_is_rejected():
    with pytest.raises(ValueError):
        queue_notification("booking_refund", "00000000-0000-0000-0000-000000000000")


def test_eager_failure_is_raised(failing_confirmation):
    with pytest.raises(DeliveryError):
        queue_notification("booking_confirmation", "b-1")

    assert failing_confirmation.calls == ["b-1"]


@pytest.mark.asyncio
async def test_eager_failure_keeps_booking(
    db_session, session_factory, test_user, test_event, attendee, failing_confirmation
):
    service = BookingService(db_session, notifier=queue_notification)
    booking = await service.create_booking(test_user.id, test_event.id, 2, attendee)

    assert failing_confirmation.calls == [str(booking.id)]
    assert (await reload(session_factory, Event, test_event.id)).available_tickets == 98
    assert (await reload(session_factory, Booking, booking.id)) is not None


@pytest.mark.asyncio
async def test_runner_inside_a_running_loop(engine, db_session, test_user, test_event, attendee, monkeypatch):
    """Eager tasks run from a request handler, where an event loop is already running."""
    monkeypatch.setattr(get_settings(), "database_url", engine.url.render_as_string(hide_password=False))
    booking = await BookingService(db_session).create_booking(test_user.id, test_event.id, 2, attendee)
    booking_id = booking.id
    reference = booking.booking_reference

    async def work(service):
        loaded = await service._get_booking_with_event(booking_id)
        count = await service.session.scalar(select(func.count(Booking.id)))
        return {"reference": loaded.booking_reference, "title": loaded.event.title, "count": count}

    result = notification_tasks._run(work)

    assert result == {"reference": reference, "title": "Makossa Night", "count": 1}
